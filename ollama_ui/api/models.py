"""Model listing and model detail endpoints."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ollama_ui.client import OllamaClient, OllamaError, get_ollama_client
from ollama_ui.models.chat import OllamaModel
from ollama_ui.models.schemas import ErrorResponse, ModelDetailRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["models"])


def _error_response(e: OllamaError) -> JSONResponse:
    return JSONResponse(
        status_code=e.status_code,
        content=e.to_response().model_dump(exclude_none=True),
    )


@router.get(
    "/models",
    response_model=list[OllamaModel],
    responses={status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse}},
)
async def list_models(
    client: OllamaClient = Depends(get_ollama_client),
) -> list[OllamaModel] | JSONResponse:
    """List the models installed on the Ollama server."""
    try:
        return await client.list_models()
    except OllamaError as e:
        return _error_response(e)


@router.post(
    "/modeldetails",
    response_model=None,
    responses={
        status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def model_details(
    request: ModelDetailRequest,
    client: OllamaClient = Depends(get_ollama_client),
) -> dict[str, Any] | JSONResponse:
    """Return the server's details for one model, unchanged.

    Returns:
        The detail payload, or 400 when no model name is given.
    """
    name = (request.name or "").strip()
    if not name:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=ErrorResponse(
                error="Invalid request", message="Model name is required"
            ).model_dump(exclude_none=True),
        )

    try:
        return await client.show_model(name)
    except OllamaError as e:
        return _error_response(e)
