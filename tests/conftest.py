import functools

import pytest

from services import question_generator
from services.pdf_processor import process_pdf
from services.quiz_controller import QuizController
from services.quiz_session import Question

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Page >> endobj\nThe mitochondria is the powerhouse of the cell.\n%%EOF"


def make_questions(n=3, options=("a", "b", "c", "d"), answer="a"):
    return [Question(f"Question {i + 1}?", tuple(options), answer) for i in range(n)]


class FakeGenerator:
    def __init__(self, questions=None, exc=None, on_call=None):
        self.questions = make_questions() if questions is None else questions
        self.exc = exc
        self.on_call = on_call
        self.calls = []

    def __call__(self, pdf_content, n_questions, model=None):
        self.calls.append((pdf_content, n_questions, model))
        if self.on_call:
            self.on_call()
        if self.exc:
            raise self.exc
        return self.questions


class FakeEvaluator:
    """Scores 1 when the answer matches, 0 otherwise."""

    def __init__(self, exc=None, response=None, on_call=None):
        self.exc = exc
        self.response = response
        self.on_call = on_call
        self.calls = []

    def __call__(self, question, user_answer, correct_answer, pdf_content, model=None):
        self.calls.append(question)
        if self.on_call:
            self.on_call()
        if self.exc:
            raise self.exc
        if self.response is not None:
            return self.response
        return {"score": 1 if user_answer == correct_answer else 0}


@pytest.fixture(autouse=True)
def _empty_question_cache():
    question_generator._cache.clear()
    yield
    question_generator._cache.clear()


@pytest.fixture
def state():
    return {}


@pytest.fixture
def generator():
    return FakeGenerator()


@pytest.fixture
def evaluator():
    return FakeEvaluator()


@pytest.fixture
def ctl(state, generator, evaluator):
    return QuizController(state, generator=generator, evaluator=evaluator,
                          reader=functools.partial(process_pdf, mode="raw"))


@pytest.fixture
def ready_ctl(ctl):
    """Controller with a PDF loaded and 3 questions generated."""
    ctl.upload(PDF_BYTES, file_name="notes.pdf")
    ctl.generate(3)
    return ctl
