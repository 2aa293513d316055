"""PDF text extraction endpoint.

Accepts the raw PDF bytes as the request body, with the original file name
URL-encoded in the ``x-file-name`` header, and returns the extracted text.
"""

import logging
from urllib.parse import unquote

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from ollama_ui.attachments.pdf_parser import (
    MAX_FILE_SIZE,
    TOO_LARGE,
    PDFParseError,
    parse_pdf,
)
from ollama_ui.models.schemas import ErrorResponse, PDFInfo, PDFParseResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["documents"])

DEFAULT_FILE_NAME = "document.pdf"


def _error(status_code: int, error: str, message: str, kind: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message, type=kind).model_dump(
            exclude_none=True
        ),
    )


@router.post(
    "/parse-pdf",
    response_model=PDFParseResponse,
    response_model_by_alias=True,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_413_CONTENT_TOO_LARGE: {"model": ErrorResponse},
    },
)
async def parse_pdf_upload(request: Request) -> PDFParseResponse | JSONResponse:
    """Extract text and metadata from an uploaded PDF.

    Raises:
        400: Not a PDF, empty, corrupt, protected or without text.
        413: Larger than 50MB or longer than 100 pages.
    """
    content_type = request.headers.get("content-type", "")
    if "pdf" not in content_type.lower():
        return _error(
            status.HTTP_400_BAD_REQUEST,
            "Invalid file type",
            "Only PDF files are accepted",
        )

    file_name = unquote(request.headers.get("x-file-name", "")) or DEFAULT_FILE_NAME

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > MAX_FILE_SIZE:
        return _error(
            status.HTTP_413_CONTENT_TOO_LARGE,
            "File too large",
            "File size exceeds maximum allowed size (50MB)",
            TOO_LARGE,
        )

    content = await request.body()
    if not content:
        return _error(status.HTTP_400_BAD_REQUEST, "Empty file", "Empty file provided")

    try:
        pdf_content = parse_pdf(content)
    except PDFParseError as e:
        logger.warning(f"PDF parse error for {file_name}: {e}")
        status_code = (
            status.HTTP_413_CONTENT_TOO_LARGE
            if e.kind == TOO_LARGE
            else status.HTTP_400_BAD_REQUEST
        )
        return _error(status_code, "Failed to parse PDF", e.message, e.kind)

    logger.info(f"Parsed PDF {file_name} ({pdf_content.pages} pages)")
    return PDFParseResponse(
        file_name=file_name,
        text=pdf_content.text,
        pages=pdf_content.pages,
        info=PDFInfo(
            title=pdf_content.metadata.get("title"),
            author=pdf_content.metadata.get("author"),
            subject=pdf_content.metadata.get("subject"),
            creator=pdf_content.metadata.get("creator"),
            producer=pdf_content.metadata.get("producer"),
            creation_date=pdf_content.metadata.get("creation_date"),
            mod_date=pdf_content.metadata.get("modification_date"),
        ),
    )
