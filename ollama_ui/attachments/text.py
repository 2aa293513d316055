"""Length limits shared by every kind of extracted text."""

MAX_TEXT_LENGTH = 50_000
PREVIEW_LENGTH = 300
TRUNCATION_MARKER = "\n\n[Content truncated due to length]"


def truncate_text(text: str) -> tuple[str, bool]:
    """Cap text at MAX_TEXT_LENGTH characters.

    Returns:
        The (possibly truncated) text and whether truncation happened.
    """
    if len(text) <= MAX_TEXT_LENGTH:
        return text, False
    return text[:MAX_TEXT_LENGTH] + TRUNCATION_MARKER, True


def make_preview(text: str) -> str:
    return text[:PREVIEW_LENGTH]
