"""Researcher Agent — expands a topic into a plain-text report the Architect can draw on."""

from langchain_google_genai import ChatGoogleGenerativeAI

from nodey.config import get_config
from nodey.utils.parsing import invoke_with_retry, response_text

SYSTEM_PROMPT = """\
You are an expert process Researcher.

The user needs detailed information about a topic to build a flowchart. Write a \
research report covering:
- the typical steps of the process, in order;
- decision points and the conditions on each branch;
- edge cases and failure paths (timeouts, rejections, retries);
- common integrations or systems involved, with the technical detail an engineer needs.

Format it as a clear plain-text report with short headed sections. No JSON.
"""


def research(topic: str, log) -> str:
    """Return a research report for the topic.

    Raises ValueError on an empty reply and propagates transport errors after
    retries; the dispatcher degrades either to a placeholder report.
    """
    config = get_config()
    llm = ChatGoogleGenerativeAI(
        model=config["researcher_model"],
        temperature=0.3,
        timeout=config.get("step_timeout_seconds"),
    )

    user_prompt = f"Research Topic: {topic}"
    if log:
        user_prompt += "\n\nConversation so far:\n" + "\n".join(f"- {entry}" for entry in log)

    messages = [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]

    report = response_text(invoke_with_retry(llm, messages, "Researcher")).strip()
    if not report:
        raise ValueError("Researcher returned an empty report.")
    return report
