"""Reply parsing and the retrying LLM call shared by every agent."""

import json
import re
import sys

import httpx
from tenacity import retry, retry_if_exception, stop_after_attempt, stop_after_delay, wait_exponential

from nodey.config import get_config

_FENCE_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)

RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def strip_fences(text: str) -> str:
    """Strip markdown code fences from LLM output if present."""
    match = _FENCE_RE.search(text)
    return match.group(1).strip() if match else text.strip()


def parse_json_object(text: str) -> dict:
    """Parse an LLM reply into a JSON object, tolerating code fences.

    Raises json.JSONDecodeError on malformed JSON and ValueError when the
    payload is valid JSON but not an object.
    """
    data = json.loads(strip_fences(text))
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}.")
    return data


def response_text(response) -> str:
    """Return the text of a chat model response.

    Some providers return content as a list of blocks instead of a string.
    """
    content = response.content
    if isinstance(content, list):
        return "".join(
            block.get("text", "") if isinstance(block, dict) else str(block)
            for block in content
        )
    return content


def _is_transient(exc: BaseException) -> bool:
    """True for network failures and overloaded/rate-limited provider responses."""
    if isinstance(exc, (httpx.TimeoutException, httpx.ConnectError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in RETRYABLE_STATUS
    return False


def invoke_with_retry(llm, messages, label: str = "LLM", max_retries: int = 3):
    """Call llm.invoke(messages), backing off exponentially on transient errors.

    Gives up after llm_max_retries extra attempts, or once step_timeout_seconds
    have passed since the first attempt, whichever comes first. Anything that
    is not transient (auth failures, bad requests) is raised immediately.
    """
    config = get_config()
    retries = config.get("llm_max_retries", max_retries)
    stop = stop_after_attempt(retries + 1)  # first attempt counts
    budget = config.get("step_timeout_seconds")
    if budget:
        stop = stop | stop_after_delay(budget)

    @retry(
        stop=stop,
        wait=wait_exponential(multiplier=1, min=2, max=16),
        retry=retry_if_exception(_is_transient),
        reraise=True,
        before_sleep=lambda state: print(
            f"[Nodey] {label}: transient error {state.outcome.exception()!r}. "
            f"Retrying in {state.next_action.sleep:.0f}s "
            f"(attempt {state.attempt_number}/{retries})...",
            file=sys.stderr,
        ),
    )
    def _invoke():
        return llm.invoke(messages)

    return _invoke()
