"""Artifact Emitter — writes the approved diagram as canonical JSON plus an interactive HTML page."""

import re
from datetime import datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from nodey.config import get_config
from nodey.state import Diagram
from nodey.utils.diagram import diagram_to_json

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
TEMPLATE_NAME = "flow.html.j2"
FLOW_SUFFIX = "_flow"

_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")

_env = Environment(
    loader=FileSystemLoader(TEMPLATE_DIR),
    autoescape=select_autoescape(["html", "j2"]),
)


def safe_title(title: str) -> str:
    """Replace every non-alphanumeric character with an underscore."""
    return _UNSAFE_RE.sub("_", title.strip()) if title.strip() else "untitled_flow"


def render_html(diagram: Diagram) -> str:
    """Render the self-contained interactive page for a diagram."""
    template = _env.get_template(TEMPLATE_NAME)
    return template.render(
        title=diagram["overview"]["title"] or "Nodey",
        summary=diagram["overview"]["summary"],
        diagram=diagram,
    )


def _output_dir(directory: Path | str | None) -> Path:
    if directory is None:
        directory = get_config().get("output_dir", ".")
    path = Path(directory)
    path.mkdir(parents=True, exist_ok=True)
    return path


def emit(diagram: Diagram, directory: Path | str | None = None, now: datetime | None = None) -> Path:
    """Write <SafeTitle>_<timestamp>_flow.json and its sibling .html.

    Returns the Path of the HTML rendering. Filesystem errors propagate.
    """
    output_dir = _output_dir(directory)
    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    stem = f"{safe_title(diagram['overview']['title'])}_{timestamp}"

    # Find a non-conflicting filename
    json_path = output_dir / f"{stem}{FLOW_SUFFIX}.json"
    counter = 1
    while json_path.exists():
        counter += 1
        json_path = output_dir / f"{stem}_{counter}{FLOW_SUFFIX}.json"
    html_path = json_path.with_suffix(".html")

    json_path.write_text(diagram_to_json(diagram), encoding="utf-8")
    html_path.write_text(render_html(diagram), encoding="utf-8")
    return html_path
