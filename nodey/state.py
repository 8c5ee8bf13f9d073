"""Nodey state — the diagram schema and the single session record owned by the orchestrator."""

from typing import Literal, TypedDict

Mode = Literal[
    "awaiting_input",
    "awaiting_history_selection",
    "analyzing",
    "awaiting_answer",
    "researching",
    "drafting",
    "reviewing",
    "emitting",
    "done",
]

# Modes with an outstanding step call; text entry is disabled while in one of these.
BUSY_MODES = frozenset({"analyzing", "researching", "drafting", "reviewing", "emitting"})


class Overview(TypedDict):
    title: str
    summary: str


class Node(TypedDict):
    id: str
    type: str  # Node kind: start | trigger | action | decision | end
    x: int
    y: int
    title: str
    notes: str


# "from" is a keyword, so Connection uses the functional syntax.
Connection = TypedDict("Connection", {"from": str, "to": str, "type": str})


class Diagram(TypedDict):
    overview: Overview
    nodes: list[Node]
    connections: list[Connection]


class Verdict(TypedDict):
    status: Literal["valid", "needs_info", "invalid"]
    reason: str
    questions: list[str]
    summary: str


class Ruling(TypedDict):
    approved: bool
    critique: str
    dissent: str


class SessionState(TypedDict):
    mode: Mode
    request: str  # Most recent natural-language input.
    log: list[str]  # Append-only trace, windowed only when rendered.
    open_questions: list[str]
    answer_index: int
    collected_answers: list[str]
    requirements_summary: str
    research_report: str
    critique: str  # Reviewer critique + dissent folded into the next Draft.
    diagram: Diagram | None  # Replaced wholesale on each successful Draft.
    baseline: Diagram | None  # Read-only once loaded.
    baseline_path: str
    revision_count: int
    forced_approval: bool
    history_files: list[str]
    history_cursor: int
    artifact_path: str
    last_error: str


def new_session() -> SessionState:
    """Return a fresh session waiting for the first request."""
    return {
        "mode": "awaiting_input",
        "request": "",
        "log": [],
        "open_questions": [],
        "answer_index": 0,
        "collected_answers": [],
        "requirements_summary": "",
        "research_report": "",
        "critique": "",
        "diagram": None,
        "baseline": None,
        "baseline_path": "",
        "revision_count": 0,
        "forced_approval": False,
        "history_files": [],
        "history_cursor": 0,
        "artifact_path": "",
        "last_error": "",
    }
