"""Turn uploaded files into message attachments.

Validation order is fixed: the declared size is checked before any byte of
the file is read, then the kind is classified (MIME type first, extension
second), then the content is extracted.
"""

import base64
import logging
from dataclasses import dataclass
from typing import BinaryIO

from ollama_ui.attachments.errors import AttachmentContentError, AttachmentValidationError
from ollama_ui.attachments.pdf_parser import MAX_FILE_SIZE, parse_pdf
from ollama_ui.attachments.text import make_preview, truncate_text
from ollama_ui.models.chat import (
    AttachmentKind,
    ImageAttachment,
    MarkdownAttachment,
    Message,
    OtherAttachment,
    PdfAttachment,
    TextAttachment,
)

logger = logging.getLogger(__name__)

MAX_DOCUMENT_SIZE = MAX_FILE_SIZE
MAX_IMAGE_SIZE = 10 * 1024 * 1024  # 10MB
MARKDOWN_EXTENSIONS = (".md", ".markdown")

DocumentAttachment = PdfAttachment | TextAttachment | MarkdownAttachment | OtherAttachment


@dataclass
class FileInput:
    """An uploaded file whose content has not been read yet.

    Attributes:
        name: Original file name.
        size: Declared size in bytes.
        mime_type: Declared MIME type (may be empty).
        content: Readable binary stream.
    """

    name: str
    size: int
    mime_type: str
    content: BinaryIO

    def read(self) -> bytes:
        return self.content.read()


def _format_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.1f}MB"


def _check_size(size: int, limit: int) -> None:
    if size > limit:
        raise AttachmentValidationError(
            f"File size ({_format_mb(size)}) exceeds maximum allowed size "
            f"({limit // (1024 * 1024)}MB)",
            hint="Choose a smaller file",
        )


def is_image(file: FileInput) -> bool:
    return (file.mime_type or "").lower().startswith("image/")


def classify_document(name: str, mime_type: str) -> AttachmentKind:
    """Classify a document by MIME type, then by extension."""
    mime = (mime_type or "").lower()
    lower_name = name.lower()

    if "pdf" in mime:
        return AttachmentKind.PDF
    if mime.startswith("text/"):
        if mime == "text/markdown" or lower_name.endswith(MARKDOWN_EXTENSIONS):
            return AttachmentKind.MARKDOWN
        return AttachmentKind.TEXT

    if lower_name.endswith(".pdf"):
        return AttachmentKind.PDF
    if lower_name.endswith(MARKDOWN_EXTENSIONS):
        return AttachmentKind.MARKDOWN
    if lower_name.endswith(".txt"):
        return AttachmentKind.TEXT
    return AttachmentKind.OTHER


def _decode_text(data: bytes, kind: AttachmentKind) -> str:
    if kind is not AttachmentKind.OTHER:
        return data.decode("utf-8-sig", errors="replace")

    # Unknown type: only accept content that really is text
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise AttachmentValidationError(
            "Unsupported file type",
            hint="Upload a PDF, text or markdown document",
        ) from e
    if "\x00" in text:
        raise AttachmentValidationError(
            "Unsupported file type",
            hint="Upload a PDF, text or markdown document",
        )
    return text


def build_document_attachment(file: FileInput) -> DocumentAttachment:
    """Validate a document upload and extract its text.

    Args:
        file: The uploaded document.

    Returns:
        Attachment variant matching the document kind.

    Raises:
        AttachmentValidationError: Too large or not a supported type.
        AttachmentContentError: No usable text (including PDF failures).
    """
    _check_size(file.size, MAX_DOCUMENT_SIZE)
    kind = classify_document(file.name, file.mime_type)

    data = file.read()
    _check_size(len(data), MAX_DOCUMENT_SIZE)

    if kind is AttachmentKind.PDF:
        content = parse_pdf(data)
        logger.info(f"Attached PDF {file.name} ({content.pages} pages)")
        return PdfAttachment(
            name=file.name,
            byte_size=file.size,
            mime_type=file.mime_type,
            extracted_text=content.text,
            preview=make_preview(content.text),
            page_count=content.pages,
            title=content.metadata.get("title"),
            author=content.metadata.get("author"),
        )

    text = _decode_text(data, kind)
    if not text.strip():
        raise AttachmentContentError("Document contains no text", kind="empty")

    text, _ = truncate_text(text)
    fields = {
        "name": file.name,
        "byte_size": file.size,
        "mime_type": file.mime_type,
        "extracted_text": text,
        "preview": make_preview(text),
    }
    logger.info(f"Attached {kind.value} document {file.name}")
    if kind is AttachmentKind.MARKDOWN:
        return MarkdownAttachment(**fields)
    if kind is AttachmentKind.TEXT:
        return TextAttachment(**fields)
    return OtherAttachment(**fields)


def build_image_attachment(file: FileInput) -> tuple[ImageAttachment, str]:
    """Validate an image upload.

    Returns:
        The attachment and the base64-encoded image for the request.

    Raises:
        AttachmentValidationError: Too large or not an image.
    """
    _check_size(file.size, MAX_IMAGE_SIZE)
    if not is_image(file):
        raise AttachmentValidationError(
            "Please select an image file",
            hint="Supported formats depend on the model, PNG and JPEG are safe choices",
        )

    data = file.read()
    _check_size(len(data), MAX_IMAGE_SIZE)

    attachment = ImageAttachment(name=file.name, byte_size=file.size, mime_type=file.mime_type)
    return attachment, base64.b64encode(data).decode("ascii")


def attachment_message(
    attachment: DocumentAttachment | ImageAttachment, text: str = ""
) -> Message:
    """Build the user message carrying an attachment."""
    if attachment.kind == AttachmentKind.IMAGE:
        content = text.strip() or "Describe the image"
    else:
        content = text.strip() or (
            f"I've uploaded a document ({attachment.name}). Please analyze its content."
        )
    return Message(role="user", content=content, attachment=attachment)
