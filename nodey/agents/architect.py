"""Architect Agent — drafts a new flow diagram or modifies a baseline to meet the requirements.

The Architect outputs a Diagram JSON object: overview (title + summary), nodes
(id, type, x, y, title, notes) and connections (from, to, type). Replies are
validated at the boundary with normalize_diagram(); a reply that does not
match the schema is re-prompted once before the call fails.
"""

import json
import sys

from langchain_google_genai import ChatGoogleGenerativeAI

from nodey.config import get_config
from nodey.state import Diagram
from nodey.utils.diagram import check_diagram, normalize_diagram
from nodey.utils.guidance import load_guidance
from nodey.utils.parsing import invoke_with_retry, parse_json_object, response_text

SYSTEM_PROMPT = """\
You are the Flow Architect. Generate or modify a JSON flowchart based on the requirements.

You MUST respond with valid JSON matching this exact schema:
{
  "overview": {"title": "string (short flow name)", "summary": "string (one paragraph)"},
  "nodes": [
    {
      "id": "string (unique)",
      "type": "one of: start | trigger | action | decision | end",
      "x": integer,
      "y": integer,
      "title": "short display name (e.g. User Clicks Login)",
      "notes": "technical details (e.g. POST /v1/auth with email + password)"
    }
  ],
  "connections": [
    {"from": "node id", "to": "node id", "type": "one of: out | yes | no"}
  ]
}

Node types:
- "start": the entry point of the flow.
- "trigger": the event that initiates the process logic.
- "action": a process step.
- "decision": a branching point. Requires exactly one "yes" and one "no" connection.
- "end": a final step.

Rules:
- Coordinates start at (100, 300). Flow vertically or horizontally. Avoid overlapping nodes.
- Every connection must reference existing node ids.
- If an Existing Flowchart is provided, MODIFY it to meet the new requirements. Do not start \
over unless asked. Preserve existing ids.
- You MUST generate at least 2 nodes.
- Respond ONLY with the JSON object. No markdown fences, no commentary.
"""


def _build_user_prompt(requirements: str, report: str, baseline: Diagram | None) -> str:
    """Construct the user prompt from the requirements, research and optional baseline."""
    parts = [f"## Requirements\n{requirements}", f"\n## Research\n{report}"]
    if baseline is not None:
        parts.append(
            "\n## Existing Flowchart to Modify\n"
            f"```json\n{json.dumps(baseline, indent=2)}\n```"
        )
    return "\n".join(parts)


def _system_prompt() -> str:
    system_content = SYSTEM_PROMPT
    guidance = load_guidance()
    if guidance:
        system_content += f"\n\n## Flow Design Guidelines\n{guidance}"
    return system_content


def _parse(text: str) -> Diagram:
    return normalize_diagram(parse_json_object(text))


def draft(requirements: str, report: str, baseline: Diagram | None = None) -> Diagram:
    """Draft a Diagram for the requirements.

    The baseline is only read, never modified. Raises ValueError (including
    "fewer than 2 nodes") or json.JSONDecodeError when the second attempt
    still does not match the schema.
    """
    config = get_config()
    llm = ChatGoogleGenerativeAI(
        model=config["architect_model"],
        temperature=0,
        timeout=config.get("step_timeout_seconds"),
    )

    messages = [
        {"role": "system", "content": _system_prompt()},
        {"role": "user", "content": _build_user_prompt(requirements, report, baseline)},
    ]

    # First attempt
    response = invoke_with_retry(llm, messages, "Architect")
    text = response_text(response)

    try:
        diagram = _parse(text)
    except (json.JSONDecodeError, ValueError) as exc:
        # Re-prompt once before raising
        messages.append({"role": "assistant", "content": text})
        messages.append({
            "role": "user",
            "content": (
                f"Your response did not match the required JSON schema ({exc}). "
                "Please try again with ONLY the raw JSON object — "
                "no markdown fences, no commentary."
            ),
        })
        response = invoke_with_retry(llm, messages, "Architect")
        diagram = _parse(response_text(response))

    for issue in check_diagram(diagram):
        print(f"[Nodey] Warning: {issue}", file=sys.stderr)

    return diagram
