# services/question_generator.py
from __future__ import annotations
import hashlib
import json
import logging
from typing import Any, Dict, List, Optional

from services import llm_client
from services.errors import GenerationFailed, LLMServiceError, is_rate_limited
from services.quiz_session import Question

logger = logging.getLogger(__name__)

MIN_QUESTIONS = 1
MAX_QUESTIONS = 20   # safety cap
DEFAULT_QUESTIONS = 5
_LETTERS = "ABCD"


def clamp_question_count(value: Any) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        return MIN_QUESTIONS
    return max(MIN_QUESTIONS, min(n, MAX_QUESTIONS))


def _hash_key(text: str, model: str, n_q: int) -> str:
    h = hashlib.sha1()
    h.update(text.encode("utf-8", errors="ignore"))
    h.update(f"|{model}|{n_q}".encode())
    return h.hexdigest()[:16]

_cache: Dict[str, List[Question]] = {}


def _prompt(pdf_content: str, n_questions: int) -> str:
    return f"""You are an exam item writer.

Generate exactly {n_questions} multiple-choice questions from the document text below.
Each question must have exactly 4 options and one correct answer.
Questions must be answerable from the text alone. Vary the stems; keep options plausible.

Return ONLY valid JSON in this exact schema:
{{
  "questions": [
    {{
      "question": "string",
      "options": ["string", "string", "string", "string"],
      "answer": "the exact text of the correct option"
    }}
  ]
}}

Document text:
{json.dumps(llm_client.clip(pdf_content), ensure_ascii=False)}
"""


def _resolve_answer(q: Dict[str, Any], opts: List[str]) -> str:
    ans = q.get("answer")
    if isinstance(ans, str):
        ans = ans.strip()
        if ans in opts:
            return ans
        # "B" or "B. text" style answers
        letter = ans[:1].upper()
        if letter and letter in _LETTERS and (len(ans) == 1 or ans[1] in ".):") and _LETTERS.index(letter) < len(opts):
            return opts[_LETTERS.index(letter)]
        return ans
    ai = q.get("answer_index")
    if isinstance(ai, int) and not isinstance(ai, bool) and 0 <= ai < len(opts):
        return opts[ai]
    return ""


def _normalize_items(obj: Dict[str, Any]) -> List[Question]:
    out: List[Question] = []
    qs = obj.get("questions") if isinstance(obj, dict) else None
    if not isinstance(qs, list):
        return out
    for q in qs:
        if not isinstance(q, dict):
            continue
        stem = str(q.get("question") or q.get("stem") or "").strip()
        opts = q.get("options")
        if not stem or not isinstance(opts, list):
            continue
        opts = [str(o).strip() for o in opts]
        # wrong option counts are kept; the quiz card reports them per question
        out.append(Question(question=stem, options=tuple(opts), answer=_resolve_answer(q, opts)))
    return out


def generate_questions(pdf_content: str,
                       n_questions: int = DEFAULT_QUESTIONS,
                       model: Optional[str] = None) -> List[Question]:
    """Ask the model for `n_questions` MCQs about `pdf_content`. Raises GenerationFailed."""
    n_questions = clamp_question_count(n_questions)
    model = model or llm_client.DEFAULT_MODEL
    cache_key = _hash_key(pdf_content or "", model, n_questions)
    if cache_key in _cache:
        logger.debug("Question cache hit %s", cache_key)
        return list(_cache[cache_key])

    logger.info("Generating %d multiple-choice questions with %s.", n_questions, model)
    try:
        raw = llm_client.post_ollama(_prompt(pdf_content or "", n_questions), model=model)
    except LLMServiceError as e:
        logger.error("Error generating questions: %s", e)
        raise GenerationFailed(str(e), rate_limited=is_rate_limited(e)) from e

    questions = _normalize_items(llm_client.extract_json(raw))[:n_questions]
    if not questions:
        raise GenerationFailed(
            "No questions were generated. The PDF might be empty, contain only images, "
            "or the content might not be suitable for question generation")

    logger.info("Received %d question(s).", len(questions))
    _cache[cache_key] = questions
    return list(questions)
