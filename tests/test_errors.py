import pytest

from services.errors import (EvaluationFailed, GenerationFailed, InvalidFileType,
                             LLMServiceError, MalformedQuestionShape, QuizError,
                             is_rate_limited)


@pytest.mark.parametrize("exc,expected", [
    (LLMServiceError("boom", status_code=429), True),
    (LLMServiceError("boom", status_code=503), False),
    (RuntimeError("got HTTP 429 from upstream"), True),
    (RuntimeError("Too Many Requests"), True),
    (RuntimeError("google.rpc.QuotaFailure"), True),
    (RuntimeError("timeout"), False),
])
def test_is_rate_limited(exc, expected):
    assert is_rate_limited(exc) is expected


def test_every_error_is_recoverable_quiz_error():
    for cls in (InvalidFileType, MalformedQuestionShape, GenerationFailed, EvaluationFailed):
        assert issubclass(cls, QuizError)


def test_default_user_messages():
    assert InvalidFileType().user_message == "This does not appear to be a valid PDF file."
    assert "Expected 4 choices" in MalformedQuestionShape().user_message


def test_rate_limited_generation_message():
    e = GenerationFailed("429", rate_limited=True)
    assert e.rate_limited
    assert e.user_message.startswith("API rate limit exceeded while generating questions")
    assert str(e) == "429"


def test_plain_generation_message():
    e = GenerationFailed("model offline")
    assert e.user_message == "Failed to generate questions: model offline. Please try again."


def test_technical_detail_stays_out_of_user_message():
    e = InvalidFileType("Bad PDF signature: 504b0304")
    assert str(e) == "Bad PDF signature: 504b0304"
    assert e.user_message == "This does not appear to be a valid PDF file."
    assert InvalidFileType("x", user_message="Pick a PDF.").user_message == "Pick a PDF."
