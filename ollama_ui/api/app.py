"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
and router registration.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ollama_ui.api.chat import router as chat_router
from ollama_ui.api.models import router as models_router
from ollama_ui.api.parse_pdf import router as parse_pdf_router
from ollama_ui.client import get_ollama_client
from ollama_ui.models.schemas import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application startup and shutdown lifecycle.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    # Startup
    logger.info(f"Starting Ollama Chat API (Ollama at {get_ollama_client().host})")
    yield
    # Shutdown
    logger.info("Shutting down Ollama Chat API...")


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 with the shared error shape."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))

    logger.warning(f"Rejected request to {request.url.path}: {'; '.join(messages)}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(
            error="Invalid request",
            message="; ".join(messages) or "Malformed request body",
        ).model_dump(exclude_none=True),
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Ollama Chat API",
        description=(
            "Chat front-end API for a local Ollama server. Streams generated "
            "replies as plain text, lists installed models and extracts text "
            "from PDF documents for use as conversation context."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["*"],
    )

    application.add_exception_handler(RequestValidationError, validation_error_handler)

    application.include_router(chat_router)
    application.include_router(models_router)
    application.include_router(parse_pdf_router)

    @application.get("/health")
    async def health_check() -> dict[str, str]:
        """Check service health status."""
        return {"status": "healthy", "service": "ollama-chat"}

    return application


app = create_app()
