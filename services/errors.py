# services/errors.py
from __future__ import annotations
from typing import Optional

RATE_LIMIT_MARKERS = ("429", "Too Many Requests", "QuotaFailure")


class QuizError(Exception):
    """Base for every failure the UI recovers from. `user_message` is what we show."""

    default_message = "Something went wrong."

    def __init__(self, message: str = "", user_message: Optional[str] = None):
        super().__init__(message or self.default_message)
        # the technical message goes to logs; users see the class text
        self.user_message = user_message or self.default_message


class InvalidFileType(QuizError):
    default_message = "This does not appear to be a valid PDF file."


class FileReadError(QuizError):
    default_message = "Error reading PDF file."


class MalformedQuestionShape(QuizError):
    default_message = "Error: Invalid question options received. Expected 4 choices."


class InvalidEvaluationResponse(QuizError):
    default_message = "Invalid evaluation response received."


class _RateAwareError(QuizError):
    rate_limit_message = ""

    def __init__(self, message: str = "", rate_limited: bool = False):
        self.rate_limited = rate_limited
        super().__init__(message, self.rate_limit_message if rate_limited else None)


class GenerationFailed(_RateAwareError):
    default_message = "No questions were generated."
    rate_limit_message = ("API rate limit exceeded while generating questions. "
                          "Please wait a moment and try again, or reduce the number of questions.")

    def __init__(self, message: str = "", rate_limited: bool = False):
        super().__init__(message, rate_limited)
        if not rate_limited:
            self.user_message = f"Failed to generate questions: {self}. Please try again."


class EvaluationFailed(_RateAwareError):
    default_message = "Evaluation failed."
    rate_limit_message = ("API rate limit exceeded while evaluating answer. "
                          "Please wait a moment and try again.")

    def __init__(self, message: str = "", rate_limited: bool = False):
        super().__init__(message, rate_limited)
        if not rate_limited:
            self.user_message = f"Failed to evaluate answer: {self}."


class LLMServiceError(Exception):
    """Transport or HTTP failure talking to the model server."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def is_rate_limited(exc: BaseException) -> bool:
    """Structured 429 first; fall back to the message heuristic for servers that only say it in text."""
    if getattr(exc, "status_code", None) == 429:
        return True
    msg = str(exc)
    return any(marker in msg for marker in RATE_LIMIT_MARKERS)
