"""Shared fixtures for the Nodey test suite."""

from unittest.mock import MagicMock, patch

import pytest

from nodey.dispatcher import StepSet
from nodey.state import new_session


@pytest.fixture
def base_session():
    """Fresh session waiting for input."""
    return new_session()


@pytest.fixture
def sample_diagram():
    """A valid three-node diagram as the Architect would return it."""
    return {
        "overview": {"title": "Order Flow", "summary": "Customer places an order."},
        "nodes": [
            {"id": "1", "type": "start", "x": 100, "y": 300, "title": "Order Placed", "notes": "POST /orders"},
            {"id": "2", "type": "action", "x": 400, "y": 300, "title": "Charge Card", "notes": "Stripe charge"},
            {"id": "3", "type": "end", "x": 700, "y": 300, "title": "Done", "notes": ""},
        ],
        "connections": [
            {"from": "1", "to": "2", "type": "out"},
            {"from": "2", "to": "3", "type": "out"},
        ],
    }


@pytest.fixture
def valid_verdict():
    return {"status": "valid", "reason": "Clear", "questions": [], "summary": "An order process."}


@pytest.fixture
def needs_info_verdict():
    return {
        "status": "needs_info",
        "reason": "Too vague",
        "questions": ["What triggers the order?", "Are there approval steps?"],
        "summary": "User wants an order process.",
    }


@pytest.fixture
def invalid_verdict():
    return {"status": "invalid", "reason": "Not a process", "questions": [], "summary": ""}


@pytest.fixture
def approving_ruling():
    return {"approved": True, "critique": "", "dissent": ""}


@pytest.fixture
def rejecting_ruling():
    return {"approved": False, "critique": "Missing end node", "dissent": "Judge 2 disagrees"}


@pytest.fixture
def make_steps(valid_verdict, sample_diagram, approving_ruling):
    """Build a StepSet of mocks; pass keyword overrides to replace any step."""

    def _make(**overrides):
        steps = {
            "analyze": MagicMock(return_value=valid_verdict),
            "research": MagicMock(return_value="Orders are placed, paid and shipped."),
            "draft": MagicMock(return_value=sample_diagram),
            "review": MagicMock(return_value=approving_ruling),
            "emit": MagicMock(return_value="Order_Flow_20250101_120000_flow.html"),
        }
        steps.update(overrides)
        return StepSet(**steps)

    return _make


@pytest.fixture
def mock_config():
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "analyst_model": "gemini-test",
        "researcher_model": "gemini-test",
        "architect_model": "gemini-test",
        "reviewer_model": "claude-test",
        "max_revisions": 3,
        "llm_max_retries": 3,
        "step_timeout_seconds": 5,
        "output_dir": ".",
        "log_window": 10,
        "guidance_enabled": True,
        "required_env": ["GOOGLE_API_KEY", "ANTHROPIC_API_KEY"],
    }
    with patch("nodey.config._config", test_config):
        yield test_config
