"""Distilled flow-design guidance for injection into agent prompts.

Shared by the Architect (as drafting rules) and the Reviewer (as a reference
for what a well-formed flow looks like).
"""

# Imperative rules for LLM consumption. Keep them short; both prompts embed them verbatim.
_GUIDANCE_RULES = """\
- Every flow has exactly one entry ("start" or "trigger") and at least one "end" node; \
every other node is reachable from the entry.
- Decision nodes ask a single yes/no question in their title and have exactly one "yes" \
and one "no" outgoing connection. No other node uses "yes"/"no" labels.
- Titles are short imperative labels (2-5 words); technical detail (endpoints, payloads, \
validation rules, side effects) belongs in notes.
- Model failure paths explicitly: timeouts, rejected input and retries get their own \
nodes or branches instead of being hidden in notes.
- Keep one level of abstraction per diagram. Split sub-processes into a single action \
node whose notes name the sub-flow rather than inlining dozens of steps.
- Lay nodes out on a grid (x/y multiples of 100, main path top-to-bottom) so no two \
nodes overlap.
- When modifying an existing flow, keep the ids of nodes that still exist and only add, \
remove or rewire what the new requirements change.\
"""


def load_guidance() -> str:
    """Return the distilled flow-design rules.

    Returns an empty string if guidance is disabled in config
    (set guidance_enabled to false or remove it).
    """
    from nodey.config import get_config

    config = get_config()
    if not config.get("guidance_enabled", False):
        return ""

    return _GUIDANCE_RULES
