"""Nodey — Streamlit UI over the same orchestrator as the terminal session."""

import json
from pathlib import Path

import streamlit as st

from nodey.config import get_config, missing_credentials
from nodey.dispatcher import Dispatcher
from nodey.events import Cancel, RequestHistory, SelectIndex, StartOver, Submit
from nodey.history import (
    confirm_selection,
    list_saved_diagrams,
    open_in_viewer,
    read_rendering,
    rendering_path,
)
from nodey.orchestrator import Orchestrator
from nodey.utils.render import activity, artifact_link, current_question, input_prompt, log_window

POLL_SECONDS = 0.5

st.set_page_config(page_title="Nodey", layout="wide")
st.title("Nodey")
st.markdown(
    "Turns a plain-language description of a process into an interactive flowchart. "
    "An **Analyst** checks the request, a **Researcher** gathers context, an **Architect** "
    "drafts the flow and a panel of **Judges** reviews it before the HTML artifact is written."
)

missing = missing_credentials()
if missing:
    st.error(f"Missing environment variable(s): {', '.join(missing)}. Add them to .env and reload.")
    st.stop()

config = get_config()
output_dir = config.get("output_dir", ".")

if "orchestrator" not in st.session_state:
    st.session_state["orchestrator"] = Orchestrator(Dispatcher())
orchestrator: Orchestrator = st.session_state["orchestrator"]


def _send(event) -> None:
    """Feed one event and redraw the page."""
    orchestrator.handle(event)
    st.rerun()


# ---------------------------------------------------------------------------
# Trace log
# ---------------------------------------------------------------------------

with st.sidebar:
    st.subheader("Activity")
    entries = log_window(orchestrator.session["log"], config.get("log_window", 10))
    if not entries:
        st.caption("Nothing yet.")
    for entry in entries:
        st.markdown(f"- {entry}".replace("\n", "  \n  "))


# ---------------------------------------------------------------------------
# Mode views
# ---------------------------------------------------------------------------


def _render_input(session) -> None:
    if session["last_error"]:
        st.error(session["last_error"])
    request = st.text_area(input_prompt(session), height=150, key="request_text")
    left, right = st.columns(2)
    if left.button("Generate flowchart", type="primary"):
        if not request.strip():
            st.warning("Please enter a non-empty request.")
        else:
            _send(Submit(request))
    if right.button("Load saved flowchart"):
        _send(RequestHistory(files=list_saved_diagrams(output_dir)))


def _render_history(session) -> None:
    files = session["history_files"]
    choice = st.radio(
        "Select a file to load:",
        range(len(files)),
        index=session["history_cursor"],
        format_func=lambda i: Path(files[i]).name,
    )
    edit, view, cancel = st.columns(3)
    if edit.button("Edit flow", type="primary"):
        orchestrator.handle(SelectIndex(choice))
        _send(confirm_selection(orchestrator.session))
    if view.button("Open in browser"):
        open_in_viewer(rendering_path(files[choice]))
    if cancel.button("Cancel"):
        _send(Cancel())


def _render_answer(session) -> None:
    st.info(input_prompt(session))
    with st.form("answer_form", clear_on_submit=True):
        answer = st.text_input(current_question(session))
        submitted = st.form_submit_button("Submit answer", type="primary")
    if submitted and answer.strip():
        _send(Submit(answer))


def _render_busy(session) -> None:
    with st.status(activity(session), expanded=False):
        st.caption("Text entry is disabled while a step is running.")
        while orchestrator.pump(timeout=POLL_SECONDS) is None:
            pass
    st.rerun()


def _render_done(session) -> None:
    if session["forced_approval"]:
        st.warning(
            f"Approval was forced after {session['revision_count']} rejected revisions. "
            "Review the flow before relying on it."
        )
    else:
        st.success("Flowchart approved and generated.")

    html_path = Path(session["artifact_path"])
    st.markdown(f"File saved to: `{artifact_link(session)}`")

    html = read_rendering(html_path)
    if html is None:
        st.warning(f"{html_path.name} was moved or deleted; only the JSON is available.")

    open_col, html_col, json_col, restart_col = st.columns(4)
    if html is not None:
        if open_col.button("Open in browser", type="primary"):
            open_in_viewer(html_path)
        html_col.download_button(
            "Download HTML",
            data=html,
            file_name=html_path.name,
            mime="text/html",
        )
    json_col.download_button(
        "Download JSON",
        data=json.dumps(session["diagram"], indent=2),
        file_name=html_path.with_suffix(".json").name,
        mime="application/json",
    )
    if restart_col.button("New flowchart"):
        _send(StartOver())

    with st.expander("View diagram (JSON)"):
        st.json(session["diagram"])


session = orchestrator.session
mode = session["mode"]

if orchestrator.busy:
    _render_busy(session)
elif mode == "awaiting_input":
    _render_input(session)
elif mode == "awaiting_history_selection":
    _render_history(session)
elif mode == "awaiting_answer":
    _render_answer(session)
elif mode == "done":
    _render_done(session)
