import streamlit as st

from components.upload_pdf import reset_uploader
from services.errors import MalformedQuestionShape, QuizError
from services.question_generator import DEFAULT_QUESTIONS, MAX_QUESTIONS, MIN_QUESTIONS
from services.quiz_controller import QuizController
from services.quiz_session import (all_evaluated, can_select, can_submit,
                                   completion_summary)


def _flash(level: str, msg: str):
    st.session_state.setdefault("quiz_flash", []).append((level, msg))


def _show_flash():
    for level, msg in st.session_state.get("quiz_flash", []):
        getattr(st, level)(msg)
    st.session_state["quiz_flash"] = []


# ---- callbacks (run before the next rerun renders) ----------------------------

def _on_generate(ctl: QuizController, model):
    try:
        with st.spinner("Generating questions..."):
            ctl.generate(st.session_state.get("question_count_pref", DEFAULT_QUESTIONS), model=model)
    except QuizError as e:
        _flash("error", e.user_message)


def _on_count_change():
    st.session_state["question_count_pref"] = st.session_state["question_count"]


def _on_clear(ctl: QuizController):
    ctl.clear()
    reset_uploader()


def _on_pick(ctl: QuizController, index: int, key: str):
    value = st.session_state.get(key)
    if value is not None:
        ctl.select_answer(index, value)


def _on_submit(ctl: QuizController, index: int, model):
    try:
        ctl.submit_answer(index, model=model)
    except QuizError as e:
        _flash("error", f"Question {index + 1}: {e.user_message}")


def _on_submit_all(ctl: QuizController, model):
    errors = ctl.submit_all(model=model)
    for index in sorted(errors):
        _flash("error", f"Question {index + 1}: {errors[index].user_message}")


# ---- rendering ---------------------------------------------------------------

def _question_card(ctl: QuizController, index: int, model):
    s = ctl.session
    q = s.questions[index]
    with st.container(border=True):
        st.subheader(f"Question {index + 1}")
        st.markdown(q.question)

        if not q.has_valid_options:
            st.error(MalformedQuestionShape().user_message)
            return

        key = f"answer_{s.quiz_id}_{index}"
        current = s.answers[index]
        st.radio(
            "Choose an answer:",
            q.options,
            index=q.options.index(current) if current in q.options else None,
            key=key,
            disabled=not can_select(s, index),
            on_change=_on_pick,
            args=(ctl, index, key),
        )
        st.button(
            "Evaluating..." if s.evaluating[index] else "Submit Answer",
            key=f"submit_{s.quiz_id}_{index}",
            disabled=not can_submit(s, index),
            on_click=_on_submit,
            args=(ctl, index, model),
        )

        result = s.results[index]
        if result is not None:
            if current:
                color = "green" if result.is_correct else "red"
                st.markdown(f"Your Answer: :{color}[{current}]")
            else:
                st.markdown("Your Answer: _(Not answered)_")
            if not result.is_correct:
                st.markdown(f"Correct Answer: :green[{q.answer}]")
            st.write("Score: Correct ✅" if result.is_correct else "Score: Incorrect ❌")


def _summary(ctl: QuizController):
    st.header("Quiz Completed!")
    got, overall = completion_summary(ctl.session)
    st.markdown(f"{got}\n\n**{overall}**")
    st.button("Start New Quiz", on_click=_on_clear, args=(ctl,))


def quiz_section(ctl: QuizController, model=None):
    s = ctl.session
    _show_flash()
    if not s.is_pdf_uploaded:
        st.info("Upload a PDF to get started.")
        return

    st.header("Step 2: Quiz Time!")
    ss = st.session_state
    # the widget's own key is dropped whenever the input isn't rendered (after Clear)
    if "question_count" not in ss:
        ss["question_count"] = ss.get("question_count_pref", DEFAULT_QUESTIONS)
    st.number_input(
        "Number of Questions",
        min_value=MIN_QUESTIONS,
        max_value=MAX_QUESTIONS,
        step=1,
        key="question_count",
        disabled=s.generating or s.questions is not None,
        on_change=_on_count_change,
    )
    c1, c2 = st.columns(2)
    with c1:
        st.button("Generating..." if s.generating else "Generate Questions",
                  disabled=s.generating, use_container_width=True,
                  on_click=_on_generate, args=(ctl, model))
    with c2:
        st.button("Clear", disabled=s.generating, use_container_width=True,
                  on_click=_on_clear, args=(ctl,))

    if not s.questions:
        st.info("Click **Generate Questions** to start.")
        return

    for index in range(len(s.questions)):
        _question_card(ctl, index, model)

    s = ctl.session
    ready = sum(1 for i in range(len(s.questions)) if can_submit(s, i))
    if ready > 1:
        st.button(f"Submit all {ready} answers", on_click=_on_submit_all, args=(ctl, model))

    if all_evaluated(s):
        _summary(ctl)
