# components/upload_pdf.py
import streamlit as st

from services.errors import QuizError
from services.quiz_controller import QuizController


def reset_uploader():
    """A new widget key is the only way to empty st.file_uploader."""
    ss = st.session_state
    ss["uploader_nonce"] = ss.get("uploader_nonce", 0) + 1
    ss["last_upload_id"] = None


def _upload_id(uploaded) -> str:
    return getattr(uploaded, "file_id", None) or f"{uploaded.name}:{uploaded.size}"


def upload_pdf_section(ctl: QuizController):
    st.header("Step 1: Upload Your Study Material")
    ss = st.session_state
    s = ctl.session
    uploaded = st.file_uploader(
        "Upload a text-based PDF",
        type=["pdf"],
        key=f"pdf_uploader_{ss.get('uploader_nonce', 0)}",
        disabled=s.generating,
    )

    # reruns hand us the same file again; only a new one resets the quiz
    if uploaded is not None and _upload_id(uploaded) != ss.get("last_upload_id"):
        ss["last_upload_id"] = _upload_id(uploaded)
        with st.spinner("Reading PDF..."):
            try:
                s = ctl.upload(uploaded, file_name=uploaded.name)
            except QuizError as e:
                st.error(e.user_message)
                reset_uploader()
                return

    if s.is_pdf_uploaded:
        meta = s.pdf_meta or {}
        st.success(f"Loaded '{s.file_name or 'PDF'}': {meta.get('pages') or '?'} page(s), "
                   f"{len(s.pdf_content or '')} characters.")
        if meta.get("note"):
            st.warning(meta["note"])
