"""Entry point: interactive flowchart session, or a headless run with --no-hitl."""

import sys

from nodey.config import get_config, missing_credentials
from nodey.dispatcher import Dispatcher
from nodey.events import Cancel, MoveCursor, RequestHistory, SelectIndex, StartOver, Submit
from nodey.graph import run_headless
from nodey.history import (
    confirm_selection,
    list_saved_diagrams,
    load_diagram,
    open_in_viewer,
    rendering_path,
)
from nodey.orchestrator import Orchestrator
from nodey.utils.render import (
    activity,
    artifact_link,
    current_question,
    history_lines,
    input_prompt,
    spinner_frame,
)
from nodey.utils.validator import validate_input

QUIT = object()
SPINNER_INTERVAL = 0.1


def line_to_event(line: str, session, directory: str = "."):
    """Translate one line of user input into an orchestrator event.

    Returns QUIT for the quit command, None when the line only has a side
    effect (opening a file) or means nothing in the current mode.
    """
    command = line.strip()
    lowered = command.lower()
    if lowered in (":q", ":quit"):
        return QUIT

    mode = session["mode"]
    if mode == "awaiting_input":
        if lowered == ":load":
            return RequestHistory(files=list_saved_diagrams(directory))
        return Submit(line)

    if mode == "awaiting_answer":
        return Submit(line)

    if mode == "awaiting_history_selection":
        if lowered in ("k", "up"):
            return MoveCursor(-1)
        if lowered in ("j", "down"):
            return MoveCursor(1)
        if lowered in ("esc", ":cancel"):
            return Cancel()
        if command.isdigit():
            return SelectIndex(int(command) - 1)
        if lowered == "o":
            open_in_viewer(rendering_path(session["history_files"][session["history_cursor"]]))
            return None
        if not command:
            return confirm_selection(session)
        return None

    if mode == "done":
        if lowered == "o":
            open_in_viewer(session["artifact_path"])
            return None
        if lowered == "n":
            return StartOver()

    return None


def _print_prompt(session) -> None:
    mode = session["mode"]
    if mode == "awaiting_input" and session["last_error"]:
        print(f"! {session['last_error']}")
    print(f"\n{input_prompt(session)}")
    if mode == "awaiting_answer":
        print(current_question(session))
    elif mode == "awaiting_history_selection":
        print("\n".join(history_lines(session)))
    elif mode == "done":
        print(artifact_link(session))


def run_interactive(orchestrator: Orchestrator, directory: str = ".") -> int:
    """Drive the orchestrator from stdin until the user quits. Returns the exit code."""
    print(" Nodey ")
    shown = 0
    tick = 0

    while True:
        session = orchestrator.session
        for entry in session["log"][shown:]:
            print(f"• {entry}")
        shown = len(session["log"])

        if orchestrator.busy:
            event = orchestrator.pump(timeout=SPINNER_INTERVAL)
            if event is None:
                tick += 1
                print(f"\r{spinner_frame(tick)} {activity(session)}", end="", flush=True)
            else:
                print("\r\033[K", end="")
            continue

        _print_prompt(session)
        try:
            line = input("> ")
        except EOFError:
            return 0

        event = line_to_event(line, session, directory)
        if event is QUIT:
            return 0
        if event is not None:
            orchestrator.handle(event)


def run_batch(request: str, edit_path: str | None = None) -> int:
    """Run the headless pipeline once and report the outcome. Returns the exit code."""
    validated = validate_input(request)
    baseline = load_diagram(edit_path) if edit_path else None

    final_state = run_headless(validated, baseline=baseline)

    for entry in final_state["log"]:
        print(f"[Nodey] {entry}")
    print(f"[Nodey] Status: {final_state['status']}")
    print(f"[Nodey] Revisions: {final_state['revision_count']}")
    if final_state["forced_approval"]:
        print("[Nodey] Approval was forced after the revision cap.")
    if final_state["status"] != "done":
        print(f"[Nodey] {final_state['error']}", file=sys.stderr)
        return 1
    print(f"[Nodey] Output written to: {final_state['artifact_path']}")
    return 0


def main() -> None:
    """CLI entry point — interactive by default; --no-hitl takes the request as argument or stdin."""
    args = sys.argv[1:]
    headless = False
    edit_path = None

    if "--no-hitl" in args:
        headless = True
        args.remove("--no-hitl")

    if "--edit" in args:
        index = args.index("--edit")
        if index + 1 >= len(args):
            print("Error: --edit requires a path to a saved *_flow.json file.", file=sys.stderr)
            sys.exit(1)
        edit_path = args[index + 1]
        del args[index:index + 2]

    missing = missing_credentials()
    if missing:
        print(f"Error: {', '.join(missing)} environment variable(s) not set.", file=sys.stderr)
        print("Please export them or add them to a .env file in the project root.", file=sys.stderr)
        sys.exit(1)

    if headless:
        if args:
            request = " ".join(args)
        else:
            print("Enter your request (Ctrl+D / Ctrl+Z to submit):")
            request = sys.stdin.read()
        try:
            sys.exit(run_batch(request, edit_path))
        except (OSError, ValueError) as exc:
            print(f"Error: {exc}", file=sys.stderr)
            sys.exit(1)

    directory = get_config().get("output_dir", ".")
    orchestrator = Orchestrator(Dispatcher())
    if edit_path:
        orchestrator.handle(RequestHistory(files=[edit_path]))
        orchestrator.handle(confirm_selection(orchestrator.session))
    try:
        code = run_interactive(orchestrator, directory)
    except KeyboardInterrupt:
        code = 0
    print()
    sys.exit(code)


if __name__ == "__main__":
    main()
