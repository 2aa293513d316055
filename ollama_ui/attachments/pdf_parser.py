"""PDF parsing module using pypdf.

Extracts text content and metadata from PDF files with validation.
Processing is bounded: oversized files and documents with too many pages are
rejected before any text extraction.
"""

import io
import logging

from pydantic import BaseModel, Field
from pypdf import PasswordType, PdfReader
from pypdf.errors import PdfReadError

from ollama_ui.attachments.errors import AttachmentContentError
from ollama_ui.attachments.text import truncate_text

logger = logging.getLogger(__name__)

# Constants
MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
MAX_PAGES = 100
PDF_MAGIC_BYTES = b"%PDF"

# Error categories
INVALID_PDF = "invalid_pdf"
PASSWORD_PROTECTED = "password_protected"
TOO_LARGE = "too_large"
PARSE_ERROR = "parse_error"

METADATA_FIELDS = {
    "title": "/Title",
    "author": "/Author",
    "subject": "/Subject",
    "creator": "/Creator",
    "producer": "/Producer",
    "creation_date": "/CreationDate",
    "modification_date": "/ModDate",
}


class PDFContent(BaseModel):
    """Extracted content from a PDF file.

    Attributes:
        text: Combined text content from all pages, truncated when too long.
        pages: Total number of pages in the document.
        metadata: Document metadata (title, author, etc.).
        truncated: Whether the text was cut at the length limit.
    """

    text: str
    pages: int = Field(ge=1)
    metadata: dict[str, str]
    truncated: bool = False


class PDFParseError(AttachmentContentError):
    """Raised when PDF parsing fails."""

    def __init__(self, message: str, kind: str = PARSE_ERROR, hint: str | None = None) -> None:
        super().__init__(message, kind, hint)


def _validate_pdf_bytes(file_content: bytes) -> None:
    """Validate PDF file content before parsing.

    Args:
        file_content: Raw bytes of the PDF file.

    Raises:
        PDFParseError: If validation fails.
    """
    if not file_content:
        raise PDFParseError("Empty file provided", INVALID_PDF)

    if len(file_content) > MAX_FILE_SIZE:
        size_mb = len(file_content) / (1024 * 1024)
        raise PDFParseError(
            f"File size ({size_mb:.1f}MB) exceeds maximum allowed size (50MB)",
            TOO_LARGE,
        )

    if not file_content.lstrip()[:10].startswith(PDF_MAGIC_BYTES):
        raise PDFParseError("Invalid PDF: file does not start with PDF header", INVALID_PDF)


def _open_reader(file_content: bytes) -> PdfReader:
    try:
        reader = PdfReader(io.BytesIO(file_content))
    except PdfReadError as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}", INVALID_PDF) from e
    except Exception as e:
        raise PDFParseError(f"Failed to read PDF: {e}") from e

    if reader.is_encrypted:
        # Owner-password-only files open with an empty user password
        try:
            unlocked = reader.decrypt("") != PasswordType.NOT_DECRYPTED
        except Exception as e:
            logger.warning(f"Could not decrypt PDF: {e}")
            unlocked = False
        if not unlocked:
            raise PDFParseError(
                "PDF is password protected",
                PASSWORD_PROTECTED,
                hint="Remove the password and upload the document again",
            )

    return reader


def _extract_metadata(reader: PdfReader) -> dict[str, str]:
    """Read the document information dictionary, keeping only fields that are set."""
    try:
        info = reader.metadata
    except Exception as e:
        logger.warning(f"Unreadable PDF metadata: {e}")
        return {}
    if not info:
        return {}

    metadata: dict[str, str] = {}
    for name, key in METADATA_FIELDS.items():
        value = info.get(key)
        if value:
            metadata[name] = str(value)
    return metadata


def parse_pdf(file_content: bytes) -> PDFContent:
    """Parse a PDF file and extract its text content.

    Args:
        file_content: Raw bytes of the PDF file.

    Returns:
        PDFContent with extracted text, page count, and metadata.

    Raises:
        PDFParseError: If the file is invalid, too large, protected, or has no text.
    """
    _validate_pdf_bytes(file_content)
    reader = _open_reader(file_content)

    try:
        pages = len(reader.pages)
    except Exception as e:
        raise PDFParseError(f"Corrupt or invalid PDF: {e}", INVALID_PDF) from e

    if pages == 0:
        raise PDFParseError("PDF contains no pages", INVALID_PDF)

    if pages > MAX_PAGES:
        raise PDFParseError(
            f"PDF has {pages} pages, maximum allowed is {MAX_PAGES} pages",
            TOO_LARGE,
            hint="Split the document and upload the relevant part",
        )

    # Extract text from all pages
    text_parts: list[str] = []
    for i, page in enumerate(reader.pages):
        try:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
        except Exception as e:
            logger.warning(f"Failed to extract text from page {i + 1}: {e}")
            continue

    text = "\n\n".join(text_parts)

    if not text.strip():
        raise PDFParseError(
            "PDF appears to be password protected or contains no text",
            PASSWORD_PROTECTED,
            hint="Scanned documents need OCR before their text can be used",
        )

    text, truncated = truncate_text(text)
    if truncated:
        logger.info(f"Truncated PDF text from {pages} pages")

    return PDFContent(
        text=text,
        pages=pages,
        metadata=_extract_metadata(reader),
        truncated=truncated,
    )


def format_pdf_content(
    text: str,
    pages: int,
    title: str | None = None,
    author: str | None = None,
) -> str:
    """Prefix extracted text with a short metadata header when available."""
    if not title and not author:
        return text

    header = ["---"]
    if title:
        header.append(f"Title: {title}")
    if author:
        header.append(f"Author: {author}")
    header.append(f"Pages: {pages}")
    header.append("---")
    return "\n".join(header) + "\n\n" + text
