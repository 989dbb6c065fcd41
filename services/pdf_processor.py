from __future__ import annotations
import logging
import os
import re
from typing import Dict

import fitz  # PyMuPDF

from services.errors import FileReadError, InvalidFileType

logger = logging.getLogger(__name__)

PDF_MAGIC = b"\x25\x50\x44\x46"  # %PDF
MIN_TEXT_CHARS = 10
# "raw" reads the byte stream as text (what a browser text read gives you);
# "pymupdf" does real per-page extraction.
TEXT_MODE = os.getenv("PDF_TEXT_MODE", "raw")

_PAGE_OBJ = re.compile(rb"/Type\s*/Page(?!s)")


def _to_bytes(pdf_file) -> bytes:
    """Streamlit's uploader gives a file-like. Ensure we read bytes from start."""
    if isinstance(pdf_file, (bytes, bytearray)):
        return bytes(pdf_file)
    if not hasattr(pdf_file, "read"):
        raise FileReadError(f"Expected a file-like object or bytes, got {type(pdf_file).__name__}")
    try:
        if hasattr(pdf_file, "seek"):
            pdf_file.seek(0)
        data = pdf_file.read()
    except OSError as e:
        raise FileReadError(f"Error reading PDF file: {e}") from e
    # if read() returned a str (rare), encode
    if isinstance(data, str):
        data = data.encode("utf-8", errors="ignore")
    return data


def has_pdf_signature(data: bytes) -> bool:
    return data[:4] == PDF_MAGIC


def _raw_text(data: bytes) -> Dict:
    return {
        "text": data.decode("utf-8", errors="replace"),
        "pages": len(_PAGE_OBJ.findall(data)) or None,
    }


def _pymupdf_text(data: bytes) -> Dict:
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        raise FileReadError(f"Error reading PDF file as text: {e}") from e
    with doc:
        parts = [page.get_text("text") or "" for page in doc]
        return {"text": "\n".join(parts), "pages": len(doc)}


def process_pdf(pdf_file, mode: str | None = None) -> Dict:
    """
    Validate the PDF signature and read the document's text.
    Returns:
        {
          "text": str,
          "meta": {"pages": int|None, "bytes": int, "mode": str, "note": str|None}
        }
    Raises InvalidFileType when the first 4 bytes are not %PDF, FileReadError
    when the upload can't be read.
    """
    mode = mode or TEXT_MODE
    data = _to_bytes(pdf_file)
    if not has_pdf_signature(data):
        logger.info("Rejected upload: header %r is not %%PDF", data[:4])
        raise InvalidFileType(f"Bad PDF signature: {data[:4].hex() or 'empty file'}")

    if mode == "pymupdf":
        extracted = _pymupdf_text(data)
    elif mode == "raw":
        extracted = _raw_text(data)
    else:
        raise ValueError(f"Unknown PDF text mode: {mode!r}")

    text = extracted["text"]
    note = None
    if len(text.strip()) < MIN_TEXT_CHARS:
        logger.warning("Extracted text content seems very short or empty (%d chars).", len(text.strip()))
        note = "Very little text was found in this PDF. It may be scanned or image-only."

    logger.info("Read PDF: %d bytes, %s page(s), %d chars via %s",
                len(data), extracted["pages"] or "?", len(text), mode)
    return {
        "text": text,
        "meta": {
            "pages": extracted["pages"],
            "bytes": len(data),
            "mode": mode,
            "note": note,
        },
    }
