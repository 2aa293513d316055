"""Errors raised while turning an upload into an attachment."""


class AttachmentError(Exception):
    """Base class for attachment failures.

    Attributes:
        message: What went wrong.
        hint: How the user can fix it.
    """

    title = "Attachment error"

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class AttachmentValidationError(AttachmentError):
    """The upload was rejected before its content was read (size, type)."""

    title = "Invalid file"


class AttachmentContentError(AttachmentError):
    """The upload was read but holds no usable content.

    Attributes:
        kind: Machine readable category (password_protected, too_large,
            invalid_pdf, parse_error).
    """

    title = "Could not read document"

    def __init__(self, message: str, kind: str, hint: str | None = None) -> None:
        super().__init__(message, hint)
        self.kind = kind
