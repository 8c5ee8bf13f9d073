"""Input validation — checks that user-supplied text is usable before it enters the workflow."""


def validate_input(text: str, what: str = "Request") -> str:
    """Validate that the text is a non-empty string.

    Returns the stripped input on success.
    Raises ValueError if input is empty or whitespace-only.
    """
    if not isinstance(text, str) or not text.strip():
        raise ValueError(f"{what} must be a non-empty string.")
    return text.strip()
