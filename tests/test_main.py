"""Tests for the CLI: line translation, the interactive loop and main() exits."""

from unittest.mock import MagicMock, patch

import pytest

from nodey.dispatcher import Dispatcher
from nodey.events import Cancel, ConfirmSelection, MoveCursor, RequestHistory, SelectIndex, StartOver, Submit
from nodey.main import QUIT, line_to_event, main, run_batch, run_interactive
from nodey.orchestrator import Orchestrator


@pytest.fixture
def selecting(base_session):
    return {
        **base_session,
        "mode": "awaiting_history_selection",
        "history_files": ["out/a_flow.json", "out/b_flow.json"],
        "history_cursor": 1,
    }


class TestLineToEvent:
    @pytest.mark.parametrize("mode", ["awaiting_input", "awaiting_answer", "done", "analyzing"])
    def test_quit_anywhere(self, base_session, mode):
        assert line_to_event(":q", {**base_session, "mode": mode}) is QUIT

    def test_text_submits(self, base_session):
        assert line_to_event("Order flow", base_session) == Submit("Order flow")

    def test_answer_submits(self, base_session):
        assert line_to_event("web form", {**base_session, "mode": "awaiting_answer"}) == Submit("web form")

    @patch("nodey.main.list_saved_diagrams", return_value=["a_flow.json"])
    def test_load_lists_history(self, mock_list, base_session):
        assert line_to_event(":load", base_session, "out") == RequestHistory(files=["a_flow.json"])
        mock_list.assert_called_once_with("out")

    @pytest.mark.parametrize("line,event", [
        ("j", MoveCursor(1)),
        ("down", MoveCursor(1)),
        ("k", MoveCursor(-1)),
        ("esc", Cancel()),
        ("2", SelectIndex(1)),
    ])
    def test_history_keys(self, selecting, line, event):
        assert line_to_event(line, selecting) == event

    @patch("nodey.main.confirm_selection")
    def test_enter_confirms(self, mock_confirm, selecting):
        mock_confirm.return_value = ConfirmSelection("out/b_flow.json", error="x")
        assert line_to_event("", selecting) == mock_confirm.return_value
        mock_confirm.assert_called_once_with(selecting)

    @patch("nodey.main.open_in_viewer")
    def test_o_opens_highlighted_rendering(self, mock_open, selecting):
        assert line_to_event("o", selecting) is None
        assert str(mock_open.call_args[0][0]).endswith("b_flow.html")

    @patch("nodey.main.open_in_viewer")
    def test_done_keys(self, mock_open, base_session):
        done = {**base_session, "mode": "done", "artifact_path": "a_flow.html"}
        assert line_to_event("n", done) == StartOver()
        assert line_to_event("o", done) is None
        mock_open.assert_called_once_with("a_flow.html")

    def test_text_while_busy_is_dropped(self, base_session):
        assert line_to_event("hello", {**base_session, "mode": "reviewing"}) is None


@patch("nodey.orchestrator.get_config", return_value={"max_revisions": 3})
class TestRunInteractive:
    @patch("builtins.input", side_effect=["Order flow", ":q"])
    def test_request_runs_to_done(self, _input, _gc, make_steps, capsys):
        orchestrator = Orchestrator(Dispatcher(make_steps()))

        assert run_interactive(orchestrator) == 0

        assert orchestrator.session["mode"] == "done"
        out = capsys.readouterr().out
        assert "• User: Order flow" in out
        assert "• Generator: Success! Saved to Order_Flow_20250101_120000_flow.html" in out

    @patch("builtins.input", side_effect=EOFError)
    def test_eof_exits_cleanly(self, _input, _gc, make_steps):
        assert run_interactive(Orchestrator(Dispatcher(make_steps()))) == 0


@patch("nodey.orchestrator.get_config", return_value={"max_revisions": 3})
class TestRunBatch:
    def test_success_returns_zero(self, _gc, make_steps, capsys):
        with patch("nodey.graph.default_steps", return_value=make_steps()):
            assert run_batch("Order flow") == 0
        assert "[Nodey] Status: done" in capsys.readouterr().out

    def test_rejection_returns_one(self, _gc, make_steps, invalid_verdict, capsys):
        steps = make_steps(analyze=MagicMock(return_value=invalid_verdict))
        with patch("nodey.graph.default_steps", return_value=steps):
            assert run_batch("Hello") == 1
        assert "Analyst rejected" in capsys.readouterr().err

    def test_blank_request_raises(self, _gc):
        with pytest.raises(ValueError):
            run_batch("   ")


class TestMain:
    @patch("nodey.main.missing_credentials", return_value=["GOOGLE_API_KEY"])
    def test_missing_credentials_exit_one(self, _mc, capsys):
        with patch("sys.argv", ["nodey"]), pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
        assert "GOOGLE_API_KEY" in capsys.readouterr().err

    @patch("nodey.main.missing_credentials", return_value=[])
    def test_edit_without_path_exits_one(self, _mc):
        with patch("sys.argv", ["nodey", "--edit"]), pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1

    @patch("nodey.main.run_batch", return_value=0)
    @patch("nodey.main.missing_credentials", return_value=[])
    def test_headless_joins_arguments(self, _mc, mock_batch):
        with patch("sys.argv", ["nodey", "--no-hitl", "Password", "reset"]), pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 0
        mock_batch.assert_called_once_with("Password reset", None)

    @patch("nodey.main.missing_credentials", return_value=[])
    def test_headless_bad_edit_file_exits_one(self, _mc, tmp_path, capsys):
        argv = ["nodey", "--no-hitl", "--edit", str(tmp_path / "gone_flow.json"), "Add refunds"]
        with patch("sys.argv", argv), pytest.raises(SystemExit) as exc:
            main()
        assert exc.value.code == 1
        assert capsys.readouterr().err.startswith("Error:")
