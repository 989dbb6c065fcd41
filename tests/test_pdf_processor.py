import io
import logging

import fitz
import pytest

from services.errors import FileReadError, InvalidFileType
from services.pdf_processor import has_pdf_signature, process_pdf
from conftest import PDF_BYTES


def test_signature_check():
    assert has_pdf_signature(b"%PDF-1.7")
    assert has_pdf_signature(bytes([0x25, 0x50, 0x44, 0x46]))
    assert not has_pdf_signature(b"%PD")
    assert not has_pdf_signature(b"\x00%PDF")


def test_raw_mode_reads_bytes_as_text():
    out = process_pdf(PDF_BYTES, mode="raw")
    assert "The mitochondria is the powerhouse of the cell." in out["text"]
    assert out["meta"]["pages"] == 1
    assert out["meta"]["bytes"] == len(PDF_BYTES)
    assert out["meta"]["note"] is None


def test_raw_mode_page_count_skips_pages_tree():
    data = b"%PDF-1.4\n<< /Type /Pages /Kids [] >>\n<< /Type/Page >>\n<< /Type /Page >>\nsome text here"
    assert process_pdf(data, mode="raw")["meta"]["pages"] == 2


def test_raw_mode_is_lossy_not_fatal():
    data = b"%PDF-1.5\n\xff\xfe\x00 binary stream then words words words"
    out = process_pdf(data, mode="raw")
    assert "�" in out["text"]
    assert "words words" in out["text"]


def test_short_text_warns_but_succeeds(caplog):
    with caplog.at_level(logging.WARNING, logger="services.pdf_processor"):
        out = process_pdf(b"%PDF", mode="raw")
    assert out["text"] == "%PDF"
    assert out["meta"]["note"]
    assert "very short" in caplog.text


@pytest.mark.parametrize("data", [b"", b"GIF89a", b"%PS-Adobe", b" %PDF-1.4"])
def test_rejects_wrong_magic(data):
    with pytest.raises(InvalidFileType):
        process_pdf(data, mode="raw")


def test_reads_file_like_from_start():
    f = io.BytesIO(PDF_BYTES)
    f.read()
    assert "powerhouse" in process_pdf(f, mode="raw")["text"]


def test_str_returning_reader():
    class TextIO:
        def read(self):
            return PDF_BYTES.decode()

    assert "powerhouse" in process_pdf(TextIO(), mode="raw")["text"]


def test_rejects_unreadable_input():
    with pytest.raises(FileReadError):
        process_pdf(12345)


def test_pymupdf_mode_extracts_page_text():
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "Photosynthesis converts light into chemical energy.")
    data = doc.tobytes()
    doc.close()

    out = process_pdf(data, mode="pymupdf")
    assert "Photosynthesis converts light" in out["text"]
    assert out["meta"]["pages"] == 1
    assert out["meta"]["mode"] == "pymupdf"


def test_unknown_mode():
    with pytest.raises(ValueError):
        process_pdf(PDF_BYTES, mode="ocr")
