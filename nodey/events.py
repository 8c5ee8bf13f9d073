"""Events fed to the orchestrator and the step calls it issues.

User events come from an interaction surface. Step result events come back
from the dispatcher; each carries either a value or an error string, and the
orchestrator tells them apart by type only.
"""

from dataclasses import dataclass, field
from typing import Any, Literal

from nodey.state import Diagram, Ruling, Verdict

StepName = Literal["analyze", "research", "draft", "review", "emit"]


# --- User events ---

@dataclass(frozen=True)
class Submit:
    text: str


@dataclass(frozen=True)
class RequestHistory:
    files: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class MoveCursor:
    delta: int


@dataclass(frozen=True)
class SelectIndex:
    index: int


@dataclass(frozen=True)
class ConfirmSelection:
    path: str
    baseline: Diagram | None = None
    error: str = ""


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class StartOver:
    pass


# --- Step result events ---

@dataclass(frozen=True)
class AnalysisReady:
    verdict: Verdict | None = None
    error: str = ""


@dataclass(frozen=True)
class ResearchReady:
    report: str
    error: str = ""  # Set when the report is a placeholder.


@dataclass(frozen=True)
class DraftReady:
    diagram: Diagram | None = None
    error: str = ""


@dataclass(frozen=True)
class ReviewReady:
    ruling: Ruling
    error: str = ""  # Set when the ruling is a fail-open approval.


@dataclass(frozen=True)
class EmitReady:
    path: str = ""
    error: str = ""


@dataclass(frozen=True)
class StepCall:
    """A request to run one step contract with positional arguments."""

    step: StepName
    args: tuple[Any, ...]
