"""Attachment pipeline for uploaded documents and images.

Transforms uploads into size-bounded text attached to outgoing messages.

Responsibilities:
    - Size ceilings checked before reading (50MB documents, 10MB images)
    - Classification by MIME type, then extension
    - PDF text extraction with pypdf, bounded to 100 pages
    - Text truncation at 50,000 characters with a visible marker
    - Short previews for display
"""

from ollama_ui.attachments.errors import (
    AttachmentContentError,
    AttachmentError,
    AttachmentValidationError,
)
from ollama_ui.attachments.pdf_parser import (
    PDFContent,
    PDFParseError,
    format_pdf_content,
    parse_pdf,
)
from ollama_ui.attachments.pipeline import (
    FileInput,
    attachment_message,
    build_document_attachment,
    build_image_attachment,
    classify_document,
    is_image,
)

__all__ = [
    "AttachmentContentError",
    "AttachmentError",
    "AttachmentValidationError",
    "FileInput",
    "PDFContent",
    "PDFParseError",
    "attachment_message",
    "build_document_attachment",
    "build_image_attachment",
    "classify_document",
    "format_pdf_content",
    "is_image",
    "parse_pdf",
]
