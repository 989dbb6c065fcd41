from __future__ import annotations
import json
import logging
import numbers
from typing import Any, Dict, Optional

from services import llm_client
from services.errors import (EvaluationFailed, InvalidEvaluationResponse,
                             LLMServiceError, is_rate_limited)

logger = logging.getLogger(__name__)

EVAL_NUM_PREDICT = 60  # a single {"score": n} object


def _prompt(question: str, user_answer: str, correct_answer: str, pdf_content: str) -> str:
    return f"""You grade multiple-choice answers.

Decide whether the student's answer is correct for the question, using the
reference answer and the document text. Score 1 if correct, 0 otherwise.

Return ONLY valid JSON: {{"score": 0}} or {{"score": 1}}

Question: {json.dumps(question, ensure_ascii=False)}
Student answer: {json.dumps(user_answer, ensure_ascii=False)}
Reference answer: {json.dumps(correct_answer, ensure_ascii=False)}

Document text:
{json.dumps(llm_client.clip(pdf_content), ensure_ascii=False)}
"""


def is_numeric_score(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def evaluate_answer(question: str, user_answer: str, correct_answer: str,
                    pdf_content: str, model: Optional[str] = None) -> Dict[str, Any]:
    """
    Returns {"score": number}; 1 means correct.
    Raises EvaluationFailed on transport errors, InvalidEvaluationResponse when
    the model's reply has no numeric score.
    """
    prompt = _prompt(question, user_answer, correct_answer, pdf_content)
    try:
        raw = llm_client.post_ollama(prompt, model=model, num_predict=EVAL_NUM_PREDICT)
    except LLMServiceError as e:
        logger.error("Error evaluating answer: %s", e)
        raise EvaluationFailed(str(e), rate_limited=is_rate_limited(e)) from e

    obj = llm_client.extract_json(raw)
    score = obj.get("score")
    if not is_numeric_score(score):
        raise InvalidEvaluationResponse(f"Invalid evaluation response received: {raw[:200]!r}")
    return {"score": score}
