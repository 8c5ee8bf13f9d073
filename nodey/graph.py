"""LangGraph StateGraph for headless runs — the whole workflow without a human in the loop.

Used by `nodey --no-hitl`. Clarification questions cannot be answered here,
so they are logged and the run continues on the analyst's summary. Step
failures follow the same policy table as the interactive session and the
revision loop uses the same cap and routing rule.
"""

import json
from typing import Literal, TypedDict

from langgraph.graph import END, StateGraph

from nodey.dispatcher import StepSet, default_steps, run_step
from nodey.events import StepCall
from nodey.orchestrator import revision_cap, route_after_review
from nodey.state import Diagram
from nodey.utils.diagram import MIN_NODES


class PipelineState(TypedDict):
    request: str  # Immutable after init.
    baseline: Diagram | None
    log: list[str]
    summary: str
    report: str
    diagram: Diagram | None
    revision_count: int
    critique: str
    approved: bool
    forced_approval: bool
    artifact_path: str
    status: Literal["running", "rejected", "failed", "done"]
    error: str


def initial_state(request: str, baseline: Diagram | None = None) -> PipelineState:
    return {
        "request": request,
        "baseline": baseline,
        "log": [f"User: {request}"],
        "summary": "",
        "report": "",
        "diagram": None,
        "revision_count": 0,
        "critique": "",
        "approved": False,
        "forced_approval": False,
        "artifact_path": "",
        "status": "running",
        "error": "",
    }


def _requirements(state: PipelineState) -> str:
    requirements = f"{state['request']} {state['summary']}".strip()
    if state["critique"]:
        requirements = f"{requirements}. Feedback: {state['critique']}"
    return requirements


def build_graph(steps: StepSet | None = None):
    """Build and compile the headless pipeline around the given step implementations."""
    steps = steps or default_steps()

    def analyze_node(state: PipelineState) -> dict:
        event = run_step(StepCall("analyze", (state["request"], tuple(state["log"]))), steps)
        if event.error:
            return {
                "status": "failed",
                "error": f"Analyst failed: {event.error}",
                "log": state["log"] + [f"Error: Analyst failed: {event.error}"],
            }
        verdict = event.verdict
        if verdict["status"] == "invalid":
            return {
                "status": "rejected",
                "error": f"Analyst rejected: {verdict['reason']}",
                "log": state["log"] + [f"Analyst: Rejected - {verdict['reason']}"],
            }
        entries = [f"Analyst: Request is valid. {verdict['summary']}".strip()]
        if verdict["questions"]:
            entries = [
                f"Analyst: Need info - {verdict['reason']} "
                f"(unanswered in headless mode: {'; '.join(verdict['questions'])})"
            ]
        return {"summary": verdict["summary"], "log": state["log"] + entries}

    def research_node(state: PipelineState) -> dict:
        event = run_step(StepCall("research", (state["request"], tuple(state["log"]))), steps)
        if event.error:
            entry = f"Researcher: Research failed ({event.error}); continuing without it."
        else:
            entry = "Researcher: Found relevant patterns and data."
        return {"report": event.report, "log": state["log"] + [entry]}

    def draft_node(state: PipelineState) -> dict:
        call = StepCall("draft", (_requirements(state), state["report"], state["baseline"]))
        event = run_step(call, steps)
        if event.error or event.diagram is None:
            error = f"Architect failed: {event.error or 'no diagram'}"
        elif len(event.diagram["nodes"]) < MIN_NODES:
            error = (
                f"Structural violation: draft has {len(event.diagram['nodes'])} node(s); "
                f"at least {MIN_NODES} are required."
            )
        else:
            count = len(event.diagram["nodes"])
            return {
                "diagram": event.diagram,
                "log": state["log"] + [f"Architect: Drafted flow with {count} nodes."],
            }
        return {"status": "failed", "error": error, "log": state["log"] + [f"Error: {error}"]}

    def review_node(state: PipelineState) -> dict:
        requirements = f"{state['request']} {state['summary']}".strip()
        call = StepCall("review", (json.dumps(state["diagram"]), requirements))
        event = run_step(call, steps)
        ruling = event.ruling
        route = route_after_review(ruling["approved"], state["revision_count"], revision_cap())

        if route == "approve":
            entry = (
                f"Judges: Review unavailable ({event.error}); approving draft."
                if event.error else "Judges: Unanimous approval."
            )
            return {"approved": True, "log": state["log"] + [entry]}

        count = state["revision_count"] + 1
        if route == "force":
            return {
                "approved": True,
                "forced_approval": True,
                "revision_count": count,
                "log": state["log"] + [f"Judges: Forced approval after {count} rejected revisions."],
            }
        return {
            "approved": False,
            "revision_count": count,
            "critique": f"{ruling['critique']} {ruling['dissent']}".strip(),
            "log": state["log"] + [f"Judges: Critique - {ruling['critique']}. Sending back to Architect."],
        }

    def emit_node(state: PipelineState) -> dict:
        event = run_step(StepCall("emit", (state["diagram"],)), steps)
        if event.error:
            error = f"Generator failed: {event.error}"
            return {"status": "failed", "error": error, "log": state["log"] + [f"Error: {error}"]}
        return {
            "status": "done",
            "artifact_path": event.path,
            "log": state["log"] + [f"Generator: Success! Saved to {event.path}"],
        }

    workflow = StateGraph(PipelineState)

    workflow.add_node("analyze", analyze_node)
    workflow.add_node("research", research_node)
    workflow.add_node("draft", draft_node)
    workflow.add_node("review", review_node)
    workflow.add_node("emit", emit_node)

    workflow.set_entry_point("analyze")

    workflow.add_conditional_edges(
        "analyze", _route_on_status, {"continue": "research", "end": END},
    )
    workflow.add_edge("research", "draft")
    workflow.add_conditional_edges(
        "draft", _route_on_status, {"continue": "review", "end": END},
    )
    workflow.add_conditional_edges(
        "review", _route_after_review, {"emit": "emit", "draft": "draft"},
    )
    workflow.add_edge("emit", END)

    return workflow.compile()


def _route_on_status(state: PipelineState) -> str:
    """Conditional edge: stop the run once a step has failed or rejected the request."""
    return "continue" if state["status"] == "running" else "end"


def _route_after_review(state: PipelineState) -> str:
    """Conditional edge: emit an approved (or force-approved) draft, otherwise revise."""
    return "emit" if state["approved"] else "draft"


def run_headless(request: str, baseline: Diagram | None = None, steps: StepSet | None = None) -> PipelineState:
    """Run the full pipeline for one request and return the final state."""
    graph = build_graph(steps)
    return graph.invoke(initial_state(request, baseline))
