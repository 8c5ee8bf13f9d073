"""Tests for the headless LangGraph pipeline with stubbed steps."""

from unittest.mock import MagicMock, patch

from nodey.dispatcher import RESEARCH_PLACEHOLDER
from nodey.graph import _route_after_review, _route_on_status, initial_state, run_headless


class TestRouting:
    def test_running_continues(self):
        assert _route_on_status(initial_state("x")) == "continue"

    def test_failed_or_rejected_ends(self):
        for status in ("failed", "rejected"):
            assert _route_on_status({**initial_state("x"), "status": status}) == "end"

    def test_approved_emits(self):
        assert _route_after_review({**initial_state("x"), "approved": True}) == "emit"

    def test_unapproved_redrafts(self):
        assert _route_after_review(initial_state("x")) == "draft"


class TestInitialState:
    def test_log_starts_with_request(self):
        state = initial_state("Order flow")
        assert state["log"] == ["User: Order flow"]
        assert state["status"] == "running"
        assert state["baseline"] is None


@patch("nodey.orchestrator.get_config", return_value={"max_revisions": 3})
class TestRunHeadless:
    def test_happy_path(self, _gc, make_steps):
        steps = make_steps()
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "done"
        assert final["artifact_path"] == "Order_Flow_20250101_120000_flow.html"
        assert final["revision_count"] == 0
        assert final["log"][-1] == "Generator: Success! Saved to Order_Flow_20250101_120000_flow.html"
        steps.review.assert_called_once()

    def test_invalid_request_stops_before_research(self, _gc, make_steps, invalid_verdict):
        steps = make_steps(analyze=MagicMock(return_value=invalid_verdict))
        final = run_headless("Hello", steps=steps)

        assert final["status"] == "rejected"
        assert final["error"] == "Analyst rejected: Not a process"
        steps.research.assert_not_called()
        steps.draft.assert_not_called()

    def test_questions_are_logged_and_run_continues(self, _gc, make_steps, needs_info_verdict):
        steps = make_steps(analyze=MagicMock(return_value=needs_info_verdict))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "done"
        assert any("unanswered in headless mode" in entry for entry in final["log"])

    def test_persistent_rejection_forces_approval(self, _gc, make_steps, rejecting_ruling):
        steps = make_steps(review=MagicMock(return_value=rejecting_ruling))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "done"
        assert final["forced_approval"] is True
        assert final["revision_count"] == 4
        assert steps.draft.call_count == 4
        assert steps.review.call_count == 4

    def test_critique_reaches_next_draft(self, _gc, make_steps, rejecting_ruling, approving_ruling):
        steps = make_steps(review=MagicMock(side_effect=[rejecting_ruling, approving_ruling]))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "done"
        assert final["revision_count"] == 1
        second_requirements = steps.draft.call_args_list[1][0][0]
        assert "Feedback: Missing end node Judge 2 disagrees" in second_requirements

    def test_research_failure_degrades(self, _gc, make_steps):
        steps = make_steps(research=MagicMock(side_effect=RuntimeError("search down")))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "done"
        assert steps.draft.call_args[0][1] == RESEARCH_PLACEHOLDER

    def test_single_node_draft_fails(self, _gc, make_steps, sample_diagram):
        lone = {**sample_diagram, "nodes": sample_diagram["nodes"][:1], "connections": []}
        steps = make_steps(draft=MagicMock(return_value=lone))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "failed"
        assert "Structural violation" in final["error"]
        steps.review.assert_not_called()

    def test_missing_draft_fails(self, _gc, make_steps):
        steps = make_steps(draft=MagicMock(return_value=None))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "failed"
        assert final["error"] == "Architect failed: no diagram"
        steps.review.assert_not_called()

    def test_emit_failure_fails(self, _gc, make_steps):
        steps = make_steps(emit=MagicMock(side_effect=OSError("read-only file system")))
        final = run_headless("Order flow", steps=steps)

        assert final["status"] == "failed"
        assert final["error"] == "Generator failed: read-only file system"

    def test_baseline_is_passed_to_draft(self, _gc, make_steps, sample_diagram):
        steps = make_steps()
        run_headless("Add refunds", baseline=sample_diagram, steps=steps)

        assert steps.draft.call_args[0][2] == sample_diagram
