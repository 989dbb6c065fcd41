import pytest

from services import llm_client
from services.answer_evaluator import evaluate_answer, is_numeric_score
from services.errors import EvaluationFailed, InvalidEvaluationResponse, LLMServiceError


def answer_with(monkeypatch, reply=None, exc=None):
    seen = {}

    def fake(prompt, model=None, num_predict=None):
        seen.update(prompt=prompt, model=model, num_predict=num_predict)
        if exc:
            raise exc
        return reply

    monkeypatch.setattr(llm_client, "post_ollama", fake)
    return seen


def test_correct_answer(monkeypatch):
    seen = answer_with(monkeypatch, '{"score": 1}')
    out = evaluate_answer("Capital of France?", "Paris", "Paris", "France's capital is Paris.", model="m")
    assert out == {"score": 1}
    assert seen["model"] == "m"
    assert '"Paris"' in seen["prompt"]
    assert "France's capital is Paris." in seen["prompt"]


def test_fractional_score_passes_through(monkeypatch):
    answer_with(monkeypatch, 'Sure! {"score": 0.5}')
    assert evaluate_answer("q", "a", "b", "text") == {"score": 0.5}


@pytest.mark.parametrize("reply", ['{"score": true}', '{"score": "1"}', '{"verdict": "correct"}', "nope", ""])
def test_non_numeric_score_is_invalid(monkeypatch, reply):
    answer_with(monkeypatch, reply)
    with pytest.raises(InvalidEvaluationResponse):
        evaluate_answer("q", "a", "b", "text")


def test_rate_limit(monkeypatch):
    answer_with(monkeypatch, exc=LLMServiceError("Too Many Requests", status_code=429))
    with pytest.raises(EvaluationFailed) as info:
        evaluate_answer("q", "a", "b", "text")
    assert info.value.rate_limited
    assert info.value.user_message.startswith("API rate limit exceeded while evaluating answer")


def test_generic_failure(monkeypatch):
    answer_with(monkeypatch, exc=LLMServiceError("Read timed out"))
    with pytest.raises(EvaluationFailed) as info:
        evaluate_answer("q", "a", "b", "text")
    assert not info.value.rate_limited
    assert info.value.user_message == "Failed to evaluate answer: Read timed out."


@pytest.mark.parametrize("value,expected", [(1, True), (0, True), (0.5, True), (True, False), ("1", False), (None, False)])
def test_is_numeric_score(value, expected):
    assert is_numeric_score(value) is expected
