"""User-facing error notices.

Every failure shown to the user carries a title, an optional detail and an
optional retry action replaying the original send.
"""

from collections.abc import Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from ollama_ui.attachments.errors import AttachmentError
from ollama_ui.client.errors import OllamaError

OFFLINE_NOTICE = "You appear to be offline."


class ErrorNotice(BaseModel):
    """A failure ready for display.

    Attributes:
        title: Short headline.
        detail: Optional detail text, one fact per line.
        retry: Optional coroutine function replaying the failed send.
    """

    title: str
    detail: str | None = None
    retry: Callable[[], Awaitable[Any]] | None = Field(default=None, exclude=True)


def notice_from_error(
    error: Exception,
    offline: bool = False,
    retry: Callable[[], Awaitable[Any]] | None = None,
) -> ErrorNotice:
    """Build the notice for a failed operation.

    Args:
        error: The exception that ended the operation.
        offline: Whether the client reported no network connectivity.
        retry: Optional action replaying the operation.

    Returns:
        ErrorNotice with title, detail, and retry.
    """
    if isinstance(error, OllamaError):
        title = error.title
        detail = "\n".join(part for part in (error.message, error.suggestion) if part)
    elif isinstance(error, AttachmentError):
        title = error.title
        detail = "\n".join(part for part in (error.message, error.hint) if part)
    else:
        title = "Request error"
        detail = str(error) or "Unexpected error"

    if offline:
        detail = f"{detail}\n{OFFLINE_NOTICE}" if detail else OFFLINE_NOTICE

    return ErrorNotice(title=title, detail=detail or None, retry=retry)
