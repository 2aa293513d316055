"""Streaming generate endpoint.

The reply is relayed as a raw UTF-8 text stream. Upstream failures that
happen before the first byte are reported as a JSON error body instead,
since the status line can no longer change once streaming has begun.
"""

import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse, StreamingResponse

from ollama_ui.client import OllamaClient, OllamaError, get_ollama_client
from ollama_ui.models.schemas import ChatBody, ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])


async def _relay(first: bytes, rest: AsyncGenerator[bytes]) -> AsyncGenerator[bytes]:
    try:
        yield first
        async for chunk in rest:
            yield chunk
    except OllamaError as e:
        # Headers are already sent, all we can do is cut the stream
        logger.error(f"Stream interrupted: {e}")
    finally:
        await rest.aclose()


@router.post(
    "/chat",
    response_model=None,
    responses={
        status.HTTP_200_OK: {"content": {"text/plain": {}}},
        status.HTTP_500_INTERNAL_SERVER_ERROR: {"model": ErrorResponse},
    },
)
async def chat(
    body: ChatBody,
    client: OllamaClient = Depends(get_ollama_client),
) -> StreamingResponse | JSONResponse:
    """Generate a reply and stream it as plain text.

    Args:
        body: Model, system prompt, transcript, sampling options and images.
        client: Ollama client (injected).

    Returns:
        StreamingResponse with the reply text, or a 500 JSON error body.
    """
    logger.info(f"Chat request for model {body.model} ({len(body.prompt)} chars)")
    stream = client.stream_generate(body)

    try:
        first = await anext(stream)
    except StopAsyncIteration:
        first = b""
    except OllamaError as e:
        return JSONResponse(
            status_code=e.status_code,
            content=e.to_response().model_dump(exclude_none=True),
        )

    return StreamingResponse(_relay(first, stream), media_type="text/plain; charset=utf-8")
