"""History store — discovers saved diagrams so an earlier flow can be loaded as a baseline."""

import json
import webbrowser
from pathlib import Path

from nodey.events import ConfirmSelection
from nodey.state import Diagram, SessionState
from nodey.utils.diagram import normalize_diagram

SAVED_SUFFIX = "_flow.json"
LEGACY_NAME = "flowchart.json"


def list_saved_diagrams(directory: Path | str = ".") -> list[str]:
    """Return saved diagram files in the directory, sorted by name.

    Matches the *_flow.json convention plus the legacy flowchart.json
    (case-insensitive). A missing directory yields an empty list.
    """
    root = Path(directory)
    if not root.is_dir():
        return []
    found = [
        path for path in root.iterdir()
        if path.is_file()
        and (path.name.endswith(SAVED_SUFFIX) or path.name.lower() == LEGACY_NAME)
    ]
    return [str(path) for path in sorted(found, key=lambda p: p.name)]


def load_diagram(path: Path | str) -> Diagram:
    """Read and validate a saved diagram.

    Raises OSError if unreadable, json.JSONDecodeError or ValueError if the
    content is not a valid Diagram.
    """
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    return normalize_diagram(data)


def rendering_path(path: Path | str) -> Path:
    """Return the HTML rendering that sits beside a saved diagram."""
    return Path(path).with_suffix(".html")


def open_in_viewer(path: Path | str) -> bool:
    """Open a file in the system's default browser. Returns False if none could be launched."""
    return webbrowser.open(Path(path).resolve().as_uri())


def confirm_selection(session: SessionState) -> ConfirmSelection:
    """Load the highlighted history entry and wrap the outcome in a ConfirmSelection event."""
    path = session["history_files"][session["history_cursor"]]
    try:
        return ConfirmSelection(path=path, baseline=load_diagram(path))
    except (OSError, ValueError) as exc:
        # json.JSONDecodeError is a ValueError
        return ConfirmSelection(path=path, error=str(exc))


def read_rendering(path: Path | str) -> str | None:
    """Return the HTML page at path, or None if it has been moved or deleted."""
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
