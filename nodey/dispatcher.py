"""Step dispatch — runs one step call at a time off the event loop and reports back through a queue.

Failure handling for every step lives in STEP_POLICIES rather than at the
call sites, so run_step() never raises for an ordinary step failure: it
always returns the typed result event the orchestrator is waiting for.
"""

import queue
import sys
import threading
from dataclasses import dataclass
from typing import Callable

from nodey.events import (
    AnalysisReady,
    DraftReady,
    EmitReady,
    ResearchReady,
    ReviewReady,
    StepCall,
)

FAIL_FAST = "fail_fast"  # Surface the error; the orchestrator returns to the user.
DEGRADE = "degrade"  # Substitute a placeholder result and continue.
FAIL_OPEN = "fail_open"  # Treat the failure as the permissive outcome.

STEP_POLICIES = {
    "analyze": FAIL_FAST,
    "research": DEGRADE,
    "draft": FAIL_FAST,
    "review": FAIL_OPEN,
    "emit": FAIL_FAST,
}

RESEARCH_PLACEHOLDER = "Research unavailable. Rely on general knowledge of this process."
FAIL_OPEN_RULING = {"approved": True, "critique": "", "dissent": ""}


@dataclass
class StepSet:
    """The step contract implementations the dispatcher calls."""

    analyze: Callable
    research: Callable
    draft: Callable
    review: Callable
    emit: Callable


def default_steps() -> StepSet:
    """Bind the LLM agents and the artifact emitter."""
    from nodey.agents.analyst import analyze
    from nodey.agents.architect import draft
    from nodey.agents.researcher import research
    from nodey.agents.reviewer import review
    from nodey.utils.emitter import emit

    return StepSet(analyze=analyze, research=research, draft=draft, review=review, emit=emit)


def _wrap(step: str, value):
    if step == "analyze":
        return AnalysisReady(verdict=value)
    if step == "research":
        return ResearchReady(report=value)
    if step == "draft":
        return DraftReady(diagram=value)
    if step == "review":
        return ReviewReady(ruling=value)
    return EmitReady(path=str(value))


def _on_failure(step: str, error: str):
    policy = STEP_POLICIES[step]
    if policy == DEGRADE:
        return ResearchReady(report=RESEARCH_PLACEHOLDER, error=error)
    if policy == FAIL_OPEN:
        return ReviewReady(ruling=dict(FAIL_OPEN_RULING), error=error)
    if step == "analyze":
        return AnalysisReady(error=error)
    if step == "draft":
        return DraftReady(error=error)
    return EmitReady(error=error)


def run_step(call: StepCall, steps: StepSet):
    """Execute a step call and return its result event, applying the step's failure policy."""
    fn = getattr(steps, call.step)
    try:
        value = fn(*call.args)
    except Exception as exc:
        error = str(exc) or type(exc).__name__
        print(
            f"[Nodey] Step '{call.step}' failed ({STEP_POLICIES[call.step]}): {exc!r}",
            file=sys.stderr,
        )
        return _on_failure(call.step, error)
    return _wrap(call.step, value)


class Dispatcher:
    """Runs at most one step call at a time on a daemon worker thread.

    Results are put on a queue and handed out by poll() in arrival order.
    Worker threads are daemons, so quitting never waits on a hung call.
    """

    def __init__(self, steps: StepSet | None = None):
        self.steps = steps or default_steps()
        self.events: queue.Queue = queue.Queue()
        self._outstanding: StepCall | None = None

    @property
    def busy(self) -> bool:
        return self._outstanding is not None

    @property
    def outstanding(self) -> StepCall | None:
        return self._outstanding

    def submit(self, call: StepCall) -> None:
        """Start a step call. Raises RuntimeError if another call is outstanding."""
        if self._outstanding is not None:
            raise RuntimeError(
                f"Cannot start '{call.step}': '{self._outstanding.step}' is still running."
            )
        self._outstanding = call
        worker = threading.Thread(
            target=self._work,
            args=(call,),
            name=f"nodey-{call.step}",
            daemon=True,
        )
        worker.start()

    def _work(self, call: StepCall) -> None:
        # A result must always arrive, or the call stays outstanding forever
        try:
            event = run_step(call, self.steps)
        except BaseException as exc:
            print(f"[Nodey] Step '{call.step}' aborted: {exc!r}", file=sys.stderr)
            event = _on_failure(call.step, f"step aborted ({type(exc).__name__})")
        self.events.put(event)

    def poll(self, timeout: float | None = None):
        """Return the next result event, or None if nothing arrives within timeout."""
        try:
            event = self.events.get(timeout=timeout) if timeout != 0 else self.events.get_nowait()
        except queue.Empty:
            return None
        self._outstanding = None
        return event
