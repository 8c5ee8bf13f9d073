"""Text rendering helpers shared by the terminal session and the dashboard."""

from pathlib import Path

from nodey.state import SessionState

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

_ACTIVITY = {
    "analyzing": "Analyst is thinking...",
    "researching": "Researcher is gathering data...",
    "reviewing": "Judges are reviewing the draft...",
    "emitting": "Generating HTML artifact...",
}


def log_window(log: list[str], size: int = 10) -> list[str]:
    """Return the trailing entries of the log shown on screen."""
    if size <= 0:
        return []
    return log[-size:]


def activity(session: SessionState) -> str:
    """Describe what the outstanding step is doing, or '' when nothing runs."""
    mode = session["mode"]
    if mode == "drafting":
        prefix = "Architect"
        if session["revision_count"]:
            prefix = f"Architect (Revision {session['revision_count']})"
        return f"{prefix} is designing the layout..."
    return _ACTIVITY.get(mode, "")


def spinner_frame(tick: int) -> str:
    return SPINNER_FRAMES[tick % len(SPINNER_FRAMES)]


def current_question(session: SessionState) -> str:
    """The open clarification question with its progress, e.g. 'What triggers it? (1/2)'."""
    questions = session["open_questions"]
    index = session["answer_index"]
    if session["mode"] != "awaiting_answer" or index >= len(questions):
        return ""
    return f"{questions[index]} ({index + 1}/{len(questions)})"


def history_lines(session: SessionState) -> list[str]:
    """Saved flowcharts with a '>' marker on the highlighted entry."""
    lines = []
    for i, path in enumerate(session["history_files"]):
        marker = ">" if i == session["history_cursor"] else " "
        lines.append(f"{marker} {i + 1}. {Path(path).name}")
    return lines


def artifact_link(session: SessionState) -> str:
    """file:// link to the emitted rendering, or '' before one exists."""
    if not session["artifact_path"]:
        return ""
    return Path(session["artifact_path"]).resolve().as_uri()


def input_prompt(session: SessionState) -> str:
    """The instruction shown above the text entry for the current mode."""
    mode = session["mode"]
    if mode == "awaiting_input":
        if session["baseline"] is not None:
            return f"[Editing {Path(session['baseline_path']).name}] What changes do you want to make?"
        return "Describe the flow you need (e.g. 'User Login Process'), or :load to edit a saved one."
    if mode == "awaiting_answer":
        return "Agent needs clarification:"
    if mode == "awaiting_history_selection":
        return "Select a file to load (j/k to move, number to jump, Enter to edit, o to open, esc to cancel):"
    if mode == "done":
        return "Process complete! Press o to open the result, n to start a new flowchart, :q to quit."
    return ""
