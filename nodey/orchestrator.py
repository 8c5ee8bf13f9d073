"""Workflow orchestrator — the state machine that sequences the agents around the user.

transition() is pure: it takes the current session and one event and returns
the next session plus at most one StepCall to issue. Events that the current
mode does not expect are ignored. Every change of mode appends exactly one
entry to the session log.

Orchestrator wraps transition() with a Dispatcher so that issued calls run on
a worker and their results are fed back in arrival order.
"""

import json

from nodey.config import get_config
from nodey.events import (
    AnalysisReady,
    Cancel,
    ConfirmSelection,
    DraftReady,
    EmitReady,
    MoveCursor,
    RequestHistory,
    ResearchReady,
    ReviewReady,
    SelectIndex,
    StartOver,
    StepCall,
    Submit,
)
from nodey.state import BUSY_MODES, SessionState, new_session
from nodey.utils.diagram import MIN_NODES
from nodey.utils.validator import validate_input

REVISION_CAP = 3

# Per-request fields cleared on every new submission
_FRESH_REQUEST_FIELDS = {
    "open_questions": [],
    "answer_index": 0,
    "collected_answers": [],
    "requirements_summary": "",
    "research_report": "",
    "critique": "",
    "diagram": None,
    "revision_count": 0,
    "forced_approval": False,
    "artifact_path": "",
}


def revision_cap() -> int:
    """Return the configured number of rejections tolerated before forced approval."""
    return get_config().get("max_revisions", REVISION_CAP)


def route_after_review(approved: bool, revision_count: int, cap: int) -> str:
    """Decide what follows a review.

    revision_count is the number of rejections before this ruling. Returns
    "approve", "revise" (count stays within the cap after this rejection)
    or "force" (the cap is exceeded and the draft is accepted as-is).
    """
    if approved:
        return "approve"
    if revision_count + 1 > cap:
        return "force"
    return "revise"


def augmented_request(session: SessionState) -> str:
    """The request followed by every clarification answer."""
    return " ".join([session["request"], *session["collected_answers"]]).strip()


def draft_requirements(session: SessionState) -> str:
    """Requirements for the next Draft: the augmented request, analyst summary and any critique."""
    requirements = f"{augmented_request(session)} {session['requirements_summary']}".strip()
    if session["critique"]:
        requirements = f"{requirements}. Feedback: {session['critique']}"
    return requirements


def _advance(session: SessionState, entry: str, **updates) -> SessionState:
    """Return a new session with updates applied and one log entry appended."""
    return {**session, **updates, "log": session["log"] + [entry]}


def _research_call(session: SessionState) -> StepCall:
    return StepCall("research", (augmented_request(session), tuple(session["log"])))


def _draft_call(session: SessionState) -> StepCall:
    return StepCall(
        "draft",
        (draft_requirements(session), session["research_report"], session["baseline"]),
    )


# --- Per-mode handlers ---

def _on_awaiting_input(session, event):
    if isinstance(event, Submit):
        try:
            text = validate_input(event.text)
        except ValueError:
            return session, None
        session = _advance(
            session, f"User: {text}",
            **_FRESH_REQUEST_FIELDS, mode="analyzing", request=text, last_error="",
        )
        return session, StepCall("analyze", (text, tuple(session["log"])))

    if isinstance(event, RequestHistory):
        if not event.files:
            return _advance(session, "System: No saved flowcharts found."), None
        return _advance(
            session, f"System: Found {len(event.files)} saved flowchart(s). Choose one to edit.",
            mode="awaiting_history_selection",
            history_files=list(event.files),
            history_cursor=0,
        ), None

    return session, None


def _on_awaiting_history_selection(session, event):
    last = len(session["history_files"]) - 1
    if isinstance(event, MoveCursor):
        cursor = min(max(session["history_cursor"] + event.delta, 0), last)
        return {**session, "history_cursor": cursor}, None

    if isinstance(event, SelectIndex):
        if 0 <= event.index <= last:
            return {**session, "history_cursor": event.index}, None
        return session, None

    if isinstance(event, ConfirmSelection):
        if event.baseline is None:
            error = f"Failed to load {event.path}: {event.error or 'unknown error'}"
            return _advance(
                session, f"System: {error}", mode="awaiting_input", last_error=error,
            ), None
        return _advance(
            session, f"System: Loaded {event.path}. Describe the changes you want.",
            mode="awaiting_input",
            baseline=event.baseline,
            baseline_path=event.path,
            last_error="",
        ), None

    if isinstance(event, Cancel):
        return _advance(session, "System: History selection cancelled.", mode="awaiting_input"), None

    return session, None


def _on_analyzing(session, event):
    if not isinstance(event, AnalysisReady):
        return session, None

    if event.error or event.verdict is None:
        error = f"Analyst failed: {event.error or 'no verdict'}"
        return _advance(session, f"Error: {error}", mode="awaiting_input", last_error=error), None

    verdict = event.verdict
    if verdict["status"] == "valid" or (
        verdict["status"] == "needs_info" and not verdict["questions"]
    ):
        session = _advance(
            session, f"Analyst: Request is valid. {verdict['summary']}".strip(),
            mode="researching", requirements_summary=verdict["summary"], last_error="",
        )
        return session, _research_call(session)

    if verdict["status"] == "needs_info":
        return _advance(
            session, f"Analyst: Need info - {verdict['reason']}",
            mode="awaiting_answer",
            open_questions=list(verdict["questions"]),
            answer_index=0,
            collected_answers=[],
            requirements_summary=verdict["summary"],
            last_error="",
        ), None

    error = f"Analyst rejected: {verdict['reason']}"
    return _advance(
        session, f"Analyst: Rejected - {verdict['reason']}", mode="awaiting_input", last_error=error,
    ), None


def _on_awaiting_answer(session, event):
    if not isinstance(event, Submit):
        return session, None
    try:
        answer = validate_input(event.text, what="Answer")
    except ValueError:
        return session, None

    question = session["open_questions"][session["answer_index"]]
    index = session["answer_index"] + 1
    answers = session["collected_answers"] + [answer]
    entry = f"Q: {question}\nA: {answer}"

    if index < len(session["open_questions"]):
        return _advance(session, entry, answer_index=index, collected_answers=answers), None

    session = _advance(
        session, entry, mode="researching", answer_index=index, collected_answers=answers,
    )
    return session, _research_call(session)


def _on_researching(session, event):
    if not isinstance(event, ResearchReady):
        return session, None
    if event.error:
        entry = f"Researcher: Research failed ({event.error}); continuing without it."
    else:
        entry = "Researcher: Found relevant patterns and data."
    session = _advance(
        session, entry, mode="drafting", research_report=event.report, last_error="",
    )
    return session, _draft_call(session)


def _on_drafting(session, event):
    if not isinstance(event, DraftReady):
        return session, None

    if event.error or event.diagram is None:
        error = f"Architect failed: {event.error or 'no diagram'}"
        return _advance(session, f"Error: {error}", mode="awaiting_input", last_error=error), None

    count = len(event.diagram["nodes"])
    if count < MIN_NODES:
        error = (
            f"Structural violation: draft has {count} node(s); "
            f"at least {MIN_NODES} are required."
        )
        return _advance(
            session, f"Architect: {error}", mode="awaiting_input", last_error=error,
        ), None

    prefix = f"Architect (revision {session['revision_count']})" if session["revision_count"] else "Architect"
    session = _advance(
        session, f"{prefix}: Drafted flow with {count} nodes.",
        mode="reviewing", diagram=event.diagram, last_error="",
    )
    review_requirements = f"{augmented_request(session)} {session['requirements_summary']}".strip()
    return session, StepCall("review", (json.dumps(session["diagram"]), review_requirements))


def _on_reviewing(session, event):
    if not isinstance(event, ReviewReady):
        return session, None

    ruling = event.ruling
    route = route_after_review(ruling["approved"], session["revision_count"], revision_cap())

    if route == "approve":
        if event.error:
            entry = f"Judges: Review unavailable ({event.error}); approving draft."
        else:
            entry = "Judges: Unanimous approval."
        session = _advance(session, entry, mode="emitting", last_error="")
        return session, StepCall("emit", (session["diagram"],))

    count = session["revision_count"] + 1
    if route == "force":
        session = _advance(
            session, f"Judges: Forced approval after {count} rejected revisions.",
            mode="emitting", revision_count=count, forced_approval=True, last_error="",
        )
        return session, StepCall("emit", (session["diagram"],))

    critique = f"{ruling['critique']} {ruling['dissent']}".strip()
    session = _advance(
        session, f"Judges: Critique - {ruling['critique']}. Sending back to Architect.",
        mode="drafting", revision_count=count, critique=critique, last_error="",
    )
    return session, _draft_call(session)


def _on_emitting(session, event):
    if not isinstance(event, EmitReady):
        return session, None
    if event.error or not event.path:
        error = f"Generator failed: {event.error or 'no output path'}"
        return _advance(session, f"Error: {error}", mode="awaiting_input", last_error=error), None
    return _advance(
        session, f"Generator: Success! Saved to {event.path}",
        mode="done", artifact_path=event.path, last_error="",
    ), None


def _on_done(session, event):
    if isinstance(event, StartOver):
        return {**new_session(), "log": session["log"] + ["System: Starting a new flowchart."]}, None
    return session, None


_HANDLERS = {
    "awaiting_input": _on_awaiting_input,
    "awaiting_history_selection": _on_awaiting_history_selection,
    "analyzing": _on_analyzing,
    "awaiting_answer": _on_awaiting_answer,
    "researching": _on_researching,
    "drafting": _on_drafting,
    "reviewing": _on_reviewing,
    "emitting": _on_emitting,
    "done": _on_done,
}


def transition(session: SessionState, event) -> tuple[SessionState, StepCall | None]:
    """Apply one event to the session.

    Returns the next session and the step call to issue, if any. The input
    session is never modified.
    """
    return _HANDLERS[session["mode"]](session, event)


class Orchestrator:
    """Owns the session and feeds it events, dispatching any step call a transition issues."""

    def __init__(self, dispatcher, session: SessionState | None = None):
        self.dispatcher = dispatcher
        self.session = session if session is not None else new_session()

    @property
    def busy(self) -> bool:
        return self.session["mode"] in BUSY_MODES

    @property
    def accepts_text(self) -> bool:
        return self.session["mode"] in ("awaiting_input", "awaiting_answer")

    def handle(self, event) -> None:
        self.session, call = transition(self.session, event)
        if call is not None:
            self.dispatcher.submit(call)

    def pump(self, timeout: float | None = None):
        """Wait up to timeout for a step result and apply it. Returns the event or None."""
        event = self.dispatcher.poll(timeout)
        if event is not None:
            self.handle(event)
        return event

    def run_until_idle(self, timeout: float | None = None) -> SessionState:
        """Apply step results until no call is outstanding. Blocks while steps run."""
        while self.dispatcher.busy:
            self.pump(timeout)
        return self.session
