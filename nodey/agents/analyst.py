"""Analyst Agent — decides whether a request is specific enough to draw a flow from.

Required output schema:
{
  "status": "valid | needs_info | invalid",
  "reason": "string",
  "questions": ["string (0-3 items when needs_info, else empty)"],
  "summary": "string"
}
"""

import sys

from langchain_google_genai import ChatGoogleGenerativeAI

from nodey.config import get_config
from nodey.state import Verdict
from nodey.utils.parsing import invoke_with_retry, parse_json_object, response_text

VALID_STATUSES = {"valid", "needs_info", "invalid"}
MAX_QUESTIONS = 3

# Trace entries sent along with the request for context
HISTORY_ENTRIES_TO_SEND = 10

SYSTEM_PROMPT = """\
You are the Requirements Analyst for a flowchart builder.

Decide whether the user's request is sufficient to build a flowchart of a process.

You MUST respond with valid JSON matching this exact schema:
{
  "status": "valid" (ready to build) or "needs_info" (ambiguous/incomplete) or "invalid" (nonsense or not a process),
  "reason": "short explanation of your decision",
  "questions": ["1-3 specific questions when status is needs_info, otherwise []"],
  "summary": "a professional summary of the requirements understood so far"
}

Example:
Input: "Order flow"
Response: {"status": "needs_info", "reason": "Too vague", "questions": ["What triggers the order?", "Are there approval steps?"], "summary": "User wants an order process."}

Rules:
- Ask at most 3 questions, each answerable in one sentence.
- When the session history shows the user is editing an existing flow, judge only the requested change.
- Respond ONLY with the JSON object. No markdown fences, no commentary.
"""


def _validate_response(data: dict) -> Verdict:
    """Validate the Analyst response and return a normalized Verdict."""
    status = data.get("status")
    if status not in VALID_STATUSES:
        raise ValueError(f"Invalid status '{status}'. Must be one of: {VALID_STATUSES}")

    questions = data.get("questions") or []
    if not isinstance(questions, list):
        raise ValueError("Analyst 'questions' must be a list.")
    questions = [str(q).strip() for q in questions if str(q).strip()]

    # needs_info with no questions proceeds as valid
    if status == "needs_info":
        if len(questions) > MAX_QUESTIONS:
            print(
                f"[Nodey] Warning: Analyst asked {len(questions)} questions "
                f"(expected at most {MAX_QUESTIONS}). Keeping the first {MAX_QUESTIONS}.",
                file=sys.stderr,
            )
            questions = questions[:MAX_QUESTIONS]
    else:
        questions = []

    return {
        "status": status,
        "reason": str(data.get("reason") or "").strip(),
        "questions": questions,
        "summary": str(data.get("summary") or "").strip(),
    }


def _build_user_prompt(request: str, log) -> str:
    parts = [f"User Input: {request}"]
    recent = list(log)[-HISTORY_ENTRIES_TO_SEND:]
    if recent:
        parts.append("\nSession History:")
        parts.extend(f"- {entry}" for entry in recent)
    return "\n".join(parts)


def analyze(request: str, log) -> Verdict:
    """Analyze a request against the session log and return a Verdict.

    Raises json.JSONDecodeError / ValueError when the reply does not match the
    schema, and propagates transport errors after retries.
    """
    config = get_config()
    llm = ChatGoogleGenerativeAI(
        model=config["analyst_model"],
        temperature=0,
        timeout=config.get("step_timeout_seconds"),
    )

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": _build_user_prompt(request, log)},
    ]

    response = invoke_with_retry(llm, messages, "Analyst")
    data = parse_json_object(response_text(response))
    return _validate_response(data)
