# services/quiz_session.py
"""
Quiz session state as one immutable record.

Every change goes through `reduce(session, event)`, which returns a new
`QuizSession`. Events carry the token they were issued under (`session_id`
for file intake, `quiz_id` for generation and evaluation); an event whose
token no longer matches the current session is dropped, so late responses
from a cleared session or an earlier quiz never touch the new state.
"""
from __future__ import annotations
import enum
import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Tuple

logger = logging.getLogger(__name__)

OPTION_COUNT = 4


def new_token() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Question:
    question: str
    options: Tuple[str, ...]
    answer: str

    @property
    def has_valid_options(self) -> bool:
        return len(self.options) == OPTION_COUNT


@dataclass(frozen=True)
class EvaluationResult:
    score: float

    @property
    def is_correct(self) -> bool:
        return self.score == 1


class Phase(enum.Enum):
    EMPTY = "empty"
    FILE_VALIDATING = "file_validating"
    FILE_READY = "file_ready"
    GENERATING = "generating"
    QUESTIONS_READY = "questions_ready"
    COMPLETED = "completed"


@dataclass(frozen=True)
class QuizSession:
    session_id: str = field(default_factory=new_token)
    quiz_id: Optional[str] = None
    file_name: Optional[str] = None
    pdf_content: Optional[str] = None
    pdf_meta: Optional[Dict[str, Any]] = None
    is_pdf_uploaded: bool = False
    reading: bool = False
    generating: bool = False
    questions: Optional[Tuple[Question, ...]] = None
    answers: Tuple[str, ...] = ()
    results: Tuple[Optional[EvaluationResult], ...] = ()
    evaluating: Tuple[bool, ...] = ()
    score: int = 0


# ---- events -----------------------------------------------------------------

@dataclass(frozen=True)
class Cleared:
    pass


@dataclass(frozen=True)
class IntakeStarted:
    session_id: str
    file_name: Optional[str] = None


@dataclass(frozen=True)
class FileAccepted:
    session_id: str
    text: str
    meta: Optional[Dict[str, Any]] = None


@dataclass(frozen=True)
class GenerationStarted:
    quiz_id: str


@dataclass(frozen=True)
class QuestionsGenerated:
    quiz_id: str
    questions: Tuple[Question, ...]


@dataclass(frozen=True)
class GenerationFinished:
    quiz_id: str


@dataclass(frozen=True)
class AnswerSelected:
    quiz_id: str
    index: int
    value: str


@dataclass(frozen=True)
class EvaluationStarted:
    quiz_id: str
    index: int


@dataclass(frozen=True)
class EvaluationSucceeded:
    quiz_id: str
    index: int
    result: EvaluationResult


@dataclass(frozen=True)
class EvaluationFinished:
    quiz_id: str
    index: int


# ---- queries ----------------------------------------------------------------

def question_count(s: QuizSession) -> int:
    return len(s.questions) if s.questions else 0


def in_range(s: QuizSession, index: int) -> bool:
    return 0 <= index < question_count(s)


def all_evaluated(s: QuizSession) -> bool:
    if not s.questions:
        return False
    return all(r is not None for r in s.results)


def can_select(s: QuizSession, index: int) -> bool:
    return (in_range(s, index)
            and s.questions[index].has_valid_options
            and s.results[index] is None
            and not s.evaluating[index])


def can_submit(s: QuizSession, index: int) -> bool:
    return can_select(s, index) and bool(s.pdf_content) and bool(s.answers[index])


def score_percent(s: QuizSession) -> int:
    n = question_count(s)
    if n == 0:
        return 0
    # half up, like toFixed(0)
    return int(math.floor(s.score / n * 100 + 0.5))


def completion_summary(s: QuizSession) -> Tuple[str, str]:
    return (f"You got {s.score} correct answers out of {question_count(s)} questions.",
            f"Overall Score: {score_percent(s)}%")


def phase(s: QuizSession) -> Phase:
    if s.reading:
        return Phase.FILE_VALIDATING
    if s.generating:
        return Phase.GENERATING
    if s.questions:
        return Phase.COMPLETED if all_evaluated(s) else Phase.QUESTIONS_READY
    if s.is_pdf_uploaded:
        return Phase.FILE_READY
    return Phase.EMPTY


# ---- reducer ----------------------------------------------------------------

def _on_cleared(s: QuizSession, e: Cleared) -> QuizSession:
    return QuizSession()


def _on_intake_started(s: QuizSession, e: IntakeStarted) -> QuizSession:
    return QuizSession(session_id=e.session_id, file_name=e.file_name, reading=True)


def _on_file_accepted(s: QuizSession, e: FileAccepted) -> QuizSession:
    if e.session_id != s.session_id or not s.reading:
        return _stale(s, e)
    return replace(s, pdf_content=e.text, pdf_meta=e.meta, is_pdf_uploaded=True, reading=False)


def _on_generation_started(s: QuizSession, e: GenerationStarted) -> QuizSession:
    if not s.pdf_content or s.generating or s.reading:
        logger.debug("Generation start ignored in phase %s", phase(s).value)
        return s
    return replace(s, quiz_id=e.quiz_id, generating=True, questions=None,
                   answers=(), results=(), evaluating=(), score=0)


def _on_questions_generated(s: QuizSession, e: QuestionsGenerated) -> QuizSession:
    if e.quiz_id != s.quiz_id or not s.generating:
        return _stale(s, e)
    n = len(e.questions)
    return replace(s, questions=tuple(e.questions), answers=("",) * n,
                   results=(None,) * n, evaluating=(False,) * n, score=0)


def _on_generation_finished(s: QuizSession, e: GenerationFinished) -> QuizSession:
    if e.quiz_id != s.quiz_id:
        return _stale(s, e)
    return replace(s, generating=False)


def _set(items: tuple, index: int, value) -> tuple:
    return items[:index] + (value,) + items[index + 1:]


def _on_answer_selected(s: QuizSession, e: AnswerSelected) -> QuizSession:
    if e.quiz_id != s.quiz_id:
        return _stale(s, e)
    if not can_select(s, e.index):
        return s
    return replace(s, answers=_set(s.answers, e.index, e.value))


def _on_evaluation_started(s: QuizSession, e: EvaluationStarted) -> QuizSession:
    if e.quiz_id != s.quiz_id:
        return _stale(s, e)
    if not can_submit(s, e.index):
        return s
    return replace(s, evaluating=_set(s.evaluating, e.index, True))


def _on_evaluation_succeeded(s: QuizSession, e: EvaluationSucceeded) -> QuizSession:
    if e.quiz_id != s.quiz_id or not in_range(s, e.index):
        return _stale(s, e)
    if s.results[e.index] is not None:
        # one result per question; a repeat must not count twice
        return s
    score = s.score + 1 if e.result.is_correct else s.score
    if e.result.is_correct:
        logger.info("Score updated: %d -> %d", s.score, score)
    return replace(s, results=_set(s.results, e.index, e.result), score=score)


def _on_evaluation_finished(s: QuizSession, e: EvaluationFinished) -> QuizSession:
    if e.quiz_id != s.quiz_id or not in_range(s, e.index):
        return _stale(s, e)
    return replace(s, evaluating=_set(s.evaluating, e.index, False))


def _stale(s: QuizSession, e: Any) -> QuizSession:
    logger.info("Ignoring stale %s", type(e).__name__)
    return s


_REDUCERS: Dict[type, Callable[[QuizSession, Any], QuizSession]] = {
    Cleared: _on_cleared,
    IntakeStarted: _on_intake_started,
    FileAccepted: _on_file_accepted,
    GenerationStarted: _on_generation_started,
    QuestionsGenerated: _on_questions_generated,
    GenerationFinished: _on_generation_finished,
    AnswerSelected: _on_answer_selected,
    EvaluationStarted: _on_evaluation_started,
    EvaluationSucceeded: _on_evaluation_succeeded,
    EvaluationFinished: _on_evaluation_finished,
}


def reduce(s: QuizSession, event: Any) -> QuizSession:
    try:
        handler = _REDUCERS[type(event)]
    except KeyError:
        raise TypeError(f"Unknown quiz event: {event!r}") from None
    return handler(s, event)
