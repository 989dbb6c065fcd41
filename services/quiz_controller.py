# services/quiz_controller.py
from __future__ import annotations
import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, MutableMapping, Optional

from services import llm_client
from services.answer_evaluator import evaluate_answer, is_numeric_score
from services.errors import (EvaluationFailed, FileReadError, GenerationFailed,
                             InvalidEvaluationResponse, InvalidFileType,
                             QuizError, is_rate_limited)
from services.pdf_processor import process_pdf
from services.question_generator import clamp_question_count, generate_questions
from services.quiz_session import (AnswerSelected, Cleared, EvaluationFinished,
                                   EvaluationResult, EvaluationStarted,
                                   EvaluationSucceeded, FileAccepted,
                                   GenerationFinished, GenerationStarted,
                                   IntakeStarted, QuestionsGenerated,
                                   QuizSession, can_submit, new_token, reduce)

logger = logging.getLogger(__name__)

STATE_KEY = "quiz_session"


@dataclass(frozen=True)
class _EvalRequest:
    quiz_id: str
    index: int
    question: str
    user_answer: str
    correct_answer: str
    pdf_content: str


class QuizController:
    """
    Drives the upload -> generate -> answer -> evaluate pipeline.

    State lives in `state[STATE_KEY]` (Streamlit's session_state in the app, a
    plain dict in tests). Collaborators are injectable so tests can fake the
    model server. Any injected evaluator is held to the same numeric-score
    contract as `evaluate_answer`, so the score is checked again here.
    """

    def __init__(self, state: MutableMapping[str, Any],
                 generator: Callable[..., List[Any]] = generate_questions,
                 evaluator: Callable[..., Dict[str, Any]] = evaluate_answer,
                 reader: Callable[..., Dict[str, Any]] = process_pdf,
                 max_workers: int = llm_client.EVAL_PARALLEL):
        self.state = state
        self.generator = generator
        self.evaluator = evaluator
        self.reader = reader
        self.max_workers = max(1, max_workers)
        if not isinstance(state.get(STATE_KEY), QuizSession):
            state[STATE_KEY] = QuizSession()

    @property
    def session(self) -> QuizSession:
        return self.state[STATE_KEY]

    def dispatch(self, event) -> QuizSession:
        self.state[STATE_KEY] = reduce(self.session, event)
        return self.session

    # ---- intake ------------------------------------------------------------

    def upload(self, pdf_file, file_name: Optional[str] = None) -> QuizSession:
        """Validate and read a new PDF. Any previous quiz is discarded first."""
        token = new_token()
        self.dispatch(IntakeStarted(token, file_name))
        try:
            data = self.reader(pdf_file)
        except (InvalidFileType, FileReadError) as e:
            logger.warning("Upload rejected (%s): %s", type(e).__name__, e)
            self.clear()
            raise
        except Exception as e:
            logger.exception("Error processing PDF")
            self.clear()
            raise FileReadError(f"Error processing PDF file: {e}") from e
        return self.dispatch(FileAccepted(token, data["text"], data.get("meta")))

    # ---- generation --------------------------------------------------------

    def generate(self, question_count: Any, model: Optional[str] = None) -> QuizSession:
        s = self.session
        if not s.pdf_content:
            logger.warning("Generate requested with no PDF loaded")
            return s
        if s.generating:
            logger.warning("Generation already in flight; ignoring request")
            return s

        n = clamp_question_count(question_count)
        quiz_id = new_token()
        self.dispatch(GenerationStarted(quiz_id))
        try:
            try:
                questions = self.generator(s.pdf_content, n, model=model)
            except QuizError:
                raise
            except Exception as e:
                logger.exception("Error generating questions")
                raise GenerationFailed(str(e), rate_limited=is_rate_limited(e)) from e
            if not questions:
                raise GenerationFailed("No questions were generated")
            self.dispatch(QuestionsGenerated(quiz_id, tuple(questions)))
        finally:
            self.dispatch(GenerationFinished(quiz_id))
        return self.session

    # ---- answers -----------------------------------------------------------

    def select_answer(self, index: int, value: str) -> QuizSession:
        return self.dispatch(AnswerSelected(self.session.quiz_id, index, value))

    def _begin_evaluation(self, index: int) -> Optional[_EvalRequest]:
        s = self.session
        if not can_submit(s, index):
            logger.warning("submit_answer: preconditions not met for question %d "
                           "(pdf=%s, questions=%d)", index + 1, bool(s.pdf_content),
                           len(s.questions or ()))
            return None
        q = s.questions[index]
        self.dispatch(EvaluationStarted(s.quiz_id, index))
        return _EvalRequest(s.quiz_id, index, q.question, s.answers[index], q.answer, s.pdf_content)

    def _evaluate(self, req: _EvalRequest, model: Optional[str]) -> EvaluationResult:
        logger.info("Evaluating answer for question %d", req.index + 1)
        try:
            evaluation = self.evaluator(question=req.question, user_answer=req.user_answer,
                                        correct_answer=req.correct_answer,
                                        pdf_content=req.pdf_content, model=model)
        except QuizError:
            raise
        except Exception as e:
            logger.exception("Error evaluating answer for question %d", req.index + 1)
            raise EvaluationFailed(str(e), rate_limited=is_rate_limited(e)) from e

        score = evaluation.get("score") if isinstance(evaluation, dict) else None
        if not is_numeric_score(score):
            raise InvalidEvaluationResponse(f"Invalid evaluation response received: {evaluation!r}")
        logger.info("Question %d scored %s", req.index + 1, score)
        return EvaluationResult(score=score)

    def submit_answer(self, index: int, model: Optional[str] = None) -> Optional[EvaluationResult]:
        """Evaluate one answer. Returns None when the question can't be submitted right now."""
        req = self._begin_evaluation(index)
        if req is None:
            return None
        try:
            result = self._evaluate(req, model)
            self.dispatch(EvaluationSucceeded(req.quiz_id, index, result))
            return result
        finally:
            self.dispatch(EvaluationFinished(req.quiz_id, index))

    def submit_all(self, model: Optional[str] = None) -> Dict[int, QuizError]:
        """
        Evaluate every answered, unevaluated question in parallel.
        Model calls run on worker threads; state changes stay on this thread.
        Returns the errors keyed by question index.
        """
        s = self.session
        reqs = []
        for i in range(len(s.questions or ())):
            # unanswered questions are skipped quietly
            if can_submit(s, i):
                reqs.append(self._begin_evaluation(i))
        errors: Dict[int, QuizError] = {}
        if not reqs:
            return errors

        pending = {r.index: r for r in reqs}
        try:
            with ThreadPoolExecutor(max_workers=min(self.max_workers, len(reqs))) as ex:
                futs = {ex.submit(self._evaluate, r, model): r for r in reqs}
                for fut in as_completed(futs):
                    req = futs[fut]
                    try:
                        self.dispatch(EvaluationSucceeded(req.quiz_id, req.index, fut.result()))
                    except QuizError as e:
                        errors[req.index] = e
                    finally:
                        self.dispatch(EvaluationFinished(req.quiz_id, req.index))
                        pending.pop(req.index, None)
        finally:
            for req in pending.values():
                self.dispatch(EvaluationFinished(req.quiz_id, req.index))
        return errors

    # ---- reset -------------------------------------------------------------

    def clear(self) -> QuizSession:
        logger.info("Clearing all state...")
        return self.dispatch(Cleared())
