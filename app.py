import logging
import os

import streamlit as st

from components.upload_pdf import upload_pdf_section
from components.quiz import quiz_section
from services import llm_client
from services.question_generator import DEFAULT_QUESTIONS
from services.quiz_controller import QuizController

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)

MODELS = ["llama3.2:3b-instruct", "qwen2.5:3b-instruct", "phi3:mini", "mistral"]


def ensure_state():
    ss = st.session_state
    ss.setdefault("question_count_pref", DEFAULT_QUESTIONS)
    ss.setdefault("uploader_nonce", 0)
    ss.setdefault("last_upload_id", None)
    ss.setdefault("quiz_flash", [])


def main():
    ensure_state()
    st.set_page_config(page_title="PDF Quiz Generator", layout="centered")
    st.title("PDF Quiz Generator")
    st.caption("Upload a text-based PDF file to generate a multiple-choice quiz.")

    models = MODELS if llm_client.DEFAULT_MODEL in MODELS else [llm_client.DEFAULT_MODEL] + MODELS
    model = st.sidebar.selectbox("LLM model (Ollama)", models,
                                 index=models.index(llm_client.DEFAULT_MODEL))

    ctl = QuizController(st.session_state)
    upload_pdf_section(ctl)
    quiz_section(ctl, model=model)

if __name__ == "__main__":
    main()
