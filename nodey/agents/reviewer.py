"""Reviewer Agent — a panel of judges that stress-tests the Architect's draft.

Required output schema:
{
  "approved": true | false,
  "critique": "string (constructive, required when approved is false)",
  "dissent": "string (why the panel disagreed, may be empty)"
}
"""

import json
import sys

from langchain_anthropic import ChatAnthropic

from nodey.config import get_config
from nodey.state import Ruling
from nodey.utils.diagram import check_diagram, normalize_diagram
from nodey.utils.guidance import load_guidance
from nodey.utils.parsing import invoke_with_retry, parse_json_object, response_text

SYSTEM_PROMPT = """\
You are a panel of 3 Senior Software Architects acting as Judges.

Review the provided Flowchart JSON against the Requirements. Vote on whether it is \
valid, complete, and technically sound.

You MUST respond with valid JSON matching this exact schema:
{
  "approved": true or false,
  "critique": "string — constructive, actionable feedback for the Architect",
  "dissent": "string — the reasons any judge voted against, empty if unanimous"
}

Checks:
- The flow MUST have a 'start' (or 'trigger') node and an 'end' node.
- The logic flows correctly from entry to every end; no dead ends or orphan nodes.
- Decision nodes have both a 'yes' and a 'no' branch.
- Nodes do not overlap (check coordinates).
- Every requirement is represented by at least one node.

If UNANIMOUS APPROVAL: return "approved": true.
If ANY DISAGREEMENT or MAJOR ISSUES: return "approved": false with "critique" and "dissent".
Respond ONLY with the JSON object. No markdown fences, no commentary.
"""


def _coerce_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    raise ValueError(f"Reviewer 'approved' must be a boolean, got {value!r}.")


def _validate_response(data: dict) -> Ruling:
    """Validate the Reviewer response and return a normalized Ruling."""
    if "approved" not in data:
        raise ValueError("Reviewer response missing 'approved' field.")

    ruling = {
        "approved": _coerce_bool(data["approved"]),
        "critique": str(data.get("critique") or "").strip(),
        "dissent": str(data.get("dissent") or "").strip(),
    }

    if not ruling["approved"] and not ruling["critique"]:
        print(
            "[Nodey] Warning: Reviewer rejected the draft without a critique. "
            "The Architect will revise without feedback.",
            file=sys.stderr,
        )
    return ruling


def _structural_findings(diagram_json: str) -> list[str]:
    """Run the deterministic checks on the draft under review, if it parses."""
    try:
        return check_diagram(normalize_diagram(json.loads(diagram_json), min_nodes=0))
    except (json.JSONDecodeError, ValueError) as exc:
        return [f"Draft does not match the diagram schema: {exc}"]


def review(diagram_json: str, requirements: str) -> Ruling:
    """Review a serialized Diagram against the requirements and return a Ruling."""
    config = get_config()
    llm = ChatAnthropic(
        model=config["reviewer_model"],
        temperature=0,
        timeout=config.get("step_timeout_seconds"),
    )

    system_content = SYSTEM_PROMPT
    guidance = load_guidance()
    if guidance:
        system_content += (
            "\n\n## Flow Design Guidelines (Reference)\n"
            "The Architect was asked to follow these guidelines. Only flag a violation "
            "when it makes the flow wrong or hard to follow.\n\n"
            f"{guidance}"
        )

    user_prompt = f"## Requirements\n{requirements}\n\n## Flowchart JSON\n```json\n{diagram_json}\n```"
    findings = _structural_findings(diagram_json)
    if findings:
        user_prompt += "\n\n## Automated Structural Checks\n" + "\n".join(f"- {f}" for f in findings)

    messages = [
        {"role": "system", "content": system_content},
        {"role": "user", "content": user_prompt},
    ]

    response = invoke_with_retry(llm, messages, "Judges")
    data = parse_json_object(response_text(response))
    return _validate_response(data)
