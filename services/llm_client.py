# services/llm_client.py
from __future__ import annotations
import json
import logging
import os
import re
from typing import Any, Dict, Optional

import requests

from services.errors import LLMServiceError

logger = logging.getLogger(__name__)

# ---- TUNE HERE (env overrides) ------------------------------------------------
OLLAMA_URL = os.getenv("OLLAMA_URL", "http://localhost:11434/api/generate")
DEFAULT_MODEL = os.getenv("OLLAMA_MODEL", "llama3.2:3b-instruct")
TIMEOUT_S = float(os.getenv("OLLAMA_TIMEOUT_S", "60"))     # per request timeout
NUM_CTX = int(os.getenv("OLLAMA_NUM_CTX", "4096"))         # room for the PDF text
NUM_PREDICT = int(os.getenv("OLLAMA_NUM_PREDICT", "1200"))  # enough for 20 questions
TEMPERATURE = float(os.getenv("OLLAMA_TEMPERATURE", "0.2"))
EVAL_PARALLEL = int(os.getenv("EVAL_PARALLEL", "4"))        # submit-all worker threads
MAX_PROMPT_CHARS = 12000                                    # truncate PDF text in prompts
# -----------------------------------------------------------------------------

_FENCE = re.compile(r"```(?:json)?", flags=re.IGNORECASE)


def post_ollama(prompt: str, model: Optional[str] = None,
                num_predict: Optional[int] = None) -> str:
    """POST a non-streaming JSON-mode generate request; returns the raw `response` text."""
    payload = {
        "model": model or DEFAULT_MODEL,
        "prompt": prompt,
        "stream": False,
        "options": {
            "temperature": TEMPERATURE,
            "num_ctx": NUM_CTX,
            "num_predict": num_predict or NUM_PREDICT,
        },
        "format": "json",  # many models honor this; we still robust-parse below
    }
    try:
        r = requests.post(OLLAMA_URL, json=payload, timeout=TIMEOUT_S)
        r.raise_for_status()
    except requests.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        body = e.response.text[:200] if e.response is not None else ""
        raise LLMServiceError(f"{e} {body}".strip(), status_code=status) from e
    except requests.RequestException as e:
        raise LLMServiceError(str(e)) from e

    data = r.json()
    if data.get("error"):
        raise LLMServiceError(str(data["error"]))
    return data.get("response", "")


def extract_json(s: str) -> Dict[str, Any]:
    """Parse model output as JSON, tolerating code fences and chatter around the object."""
    if not s:
        return {}
    try:
        obj = json.loads(s)
    except ValueError:
        obj = None
    if isinstance(obj, dict):
        return obj
    if isinstance(obj, list):
        return {"questions": obj}

    cleaned = _FENCE.sub("", s).strip()
    cleaned = cleaned.replace("“", '"').replace("”", '"')
    # whichever bracket opens first is the outermost value
    openings = [(cleaned.find(o), c) for o, c in (("{", "}"), ("[", "]")) if o in cleaned]
    for start, close in sorted(openings):
        end = cleaned.rfind(close)
        if end <= start:
            continue
        try:
            obj = json.loads(cleaned[start:end + 1])
        except ValueError:
            continue
        if isinstance(obj, dict):
            return obj
        if isinstance(obj, list):
            return {"questions": obj}
    logger.warning("Could not recover JSON from model output (%d chars)", len(s))
    return {}


def clip(text: str, limit: int = MAX_PROMPT_CHARS) -> str:
    return text if len(text) <= limit else text[:limit]
