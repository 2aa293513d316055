"""Ollama HTTP client with streaming support.

Wraps the Ollama REST API behind one interface:

1. **Normalized stream** - ``/api/generate`` answers either with line-delimited
   JSON (one fragment per line, ``done`` on the last) or with a single JSON
   body. Both are exposed as an async generator of UTF-8 encoded fragments so
   callers never care which mode the server used.

2. **Request deadline** - httpx timeouts are per network operation. A long
   generation can trickle bytes forever without tripping them, so every read
   also runs under an absolute deadline computed when the request starts.

3. **Typed errors** - transport failures are translated into the
   ``OllamaError`` family, keeping httpx out of the callers.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Iterator
from contextlib import contextmanager
from typing import Any

import httpx

from ollama_ui.client.errors import (
    OllamaAPIError,
    OllamaConnectionError,
    OllamaTimeoutError,
)
from ollama_ui.config import AppConfig, get_app_config
from ollama_ui.models.chat import OllamaModel
from ollama_ui.models.schemas import ChatBody

logger = logging.getLogger(__name__)


class OllamaClient:
    """Client for a single Ollama server.

    A fresh ``httpx.AsyncClient`` is opened per request, so the instance holds
    no connection state and is safe to share.
    """

    def __init__(
        self,
        config: AppConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            config: Optional configuration. Loads from environment if not provided.
            transport: Optional httpx transport, used to stub the server in tests.
        """
        self._config = config or get_app_config()
        self._transport = transport

    @property
    def host(self) -> str:
        return self._config.ollama_host

    @property
    def config(self) -> AppConfig:
        return self._config

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.host,
            timeout=httpx.Timeout(self._config.request_timeout),
            transport=self._transport,
            headers={
                "Accept": "application/json",
                "Cache-Control": "no-cache",
            },
        )

    @contextmanager
    def _translate_errors(self) -> Iterator[None]:
        """Map httpx and deadline failures onto OllamaError subclasses."""
        try:
            yield
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            logger.error(f"Could not connect to Ollama at {self.host}: {e}")
            raise OllamaConnectionError(self.host) from e
        except (httpx.TimeoutException, TimeoutError) as e:
            logger.error(f"Ollama request exceeded {self._config.request_timeout}s deadline")
            raise OllamaTimeoutError(self._config.request_timeout) from e
        except httpx.TransportError as e:
            logger.error(f"Connection to Ollama at {self.host} failed: {e}")
            raise OllamaConnectionError(self.host, str(e) or type(e).__name__) from e

    def _deadline(self) -> float:
        return asyncio.get_running_loop().time() + self._config.request_timeout

    def _generate_payload(self, body: ChatBody) -> dict[str, Any]:
        temperature = self._config.default_temperature
        if body.options is not None and body.options.temperature is not None:
            temperature = body.options.temperature

        payload: dict[str, Any] = {
            "model": body.model,
            "prompt": body.prompt,
            "system": body.system or self._config.default_system_prompt,
            "options": {"temperature": temperature},
            "stream": self._config.stream,
        }
        if body.images:
            payload["images"] = body.images
        return payload

    async def stream_generate(self, body: ChatBody) -> AsyncGenerator[bytes]:
        """Stream generated text for a prompt.

        Errors surface on the first iteration. Closing the generator early
        (``aclose``) closes the underlying connection.

        Args:
            body: The generate request.

        Yields:
            UTF-8 encoded text fragments in arrival order.

        Raises:
            OllamaConnectionError: The server is unreachable.
            OllamaAPIError: The server answered with an error.
            OllamaTimeoutError: The request deadline passed.
        """
        payload = self._generate_payload(body)
        deadline = self._deadline()

        with self._translate_errors():
            async with (
                self._http_client() as client,
                client.stream("POST", "/api/generate", json=payload) as response,
            ):
                async with asyncio.timeout_at(deadline):
                    await _raise_for_status(response)

                if not payload["stream"] or _is_single_json(response):
                    async with asyncio.timeout_at(deadline):
                        raw = await response.aread()
                    text = _parse_single_response(raw)
                    if text:
                        yield text.encode("utf-8")
                    return

                lines = response.aiter_lines()
                while True:
                    try:
                        async with asyncio.timeout_at(deadline):
                            line = await anext(lines)
                    except StopAsyncIteration:
                        break

                    fragment = _parse_stream_line(line)
                    if fragment is None:
                        continue
                    text, done = fragment
                    if text:
                        yield text.encode("utf-8")
                    if done:
                        break

    async def generate(self, body: ChatBody) -> str:
        """Get the complete response for a prompt.

        Non-streaming alternative for simpler use cases.

        Args:
            body: The generate request.

        Returns:
            Complete response text.
        """
        chunks = [chunk async for chunk in self.stream_generate(body)]
        return b"".join(chunks).decode("utf-8", errors="replace")

    async def _request_json(self, method: str, path: str, **kwargs: Any) -> Any:
        with self._translate_errors():
            async with asyncio.timeout_at(self._deadline()), self._http_client() as client:
                response = await client.request(method, path, **kwargs)
                await _raise_for_status(response)
                try:
                    return response.json()
                except json.JSONDecodeError as e:
                    raise OllamaAPIError(f"Invalid JSON from Ollama {path}") from e

    async def list_models(self) -> list[OllamaModel]:
        """List models installed on the server.

        Returns:
            Model descriptors in server order.
        """
        data = await self._request_json("GET", "/api/tags")
        models = [OllamaModel.model_validate(m) for m in data.get("models") or []]
        logger.info(f"Fetched {len(models)} models from {self.host}")
        return models

    async def show_model(self, name: str) -> dict[str, Any]:
        """Fetch provider specific details for one model.

        Args:
            name: Model name.

        Returns:
            The server's detail payload, unchanged.
        """
        return await self._request_json("POST", "/api/show", json={"name": name})


def _is_single_json(response: httpx.Response) -> bool:
    content_type = response.headers.get("content-type", "")
    return content_type.startswith("application/json")


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        data = None

    if isinstance(data, dict):
        message = data.get("error") or data.get("message")
        if message:
            return str(message)

    text = response.text.strip()
    return text or response.reason_phrase or f"HTTP {response.status_code}"


async def _raise_for_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    await response.aread()
    message = _error_message(response)
    logger.error(f"Ollama API returned an error {response.status_code}: {message}")
    raise OllamaAPIError(message, upstream_status=response.status_code)


def _parse_single_response(raw: bytes) -> str:
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise OllamaAPIError("Ollama returned a response that is not valid JSON") from e

    if not isinstance(data, dict):
        raise OllamaAPIError("Ollama returned an unexpected response")
    if data.get("error"):
        raise OllamaAPIError(str(data["error"]))

    text = data.get("response")
    if text is not None and not isinstance(text, str):
        raise OllamaAPIError("Ollama returned a response without text")
    return text or ""


def _parse_stream_line(line: str) -> tuple[str, bool] | None:
    """Parse one NDJSON line into ``(text, done)``.

    Returns None for blank or malformed lines, which are skipped.
    """
    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line)
    except json.JSONDecodeError:
        logger.warning(f"Skipping malformed stream fragment: {line[:80]!r}")
        return None

    if not isinstance(data, dict):
        logger.warning(f"Skipping unexpected stream fragment: {line[:80]!r}")
        return None
    if data.get("error"):
        raise OllamaAPIError(str(data["error"]))

    text = data.get("response")
    if text is not None and not isinstance(text, str):
        logger.warning(f"Skipping stream fragment without text: {line[:80]!r}")
        return None
    return text or "", bool(data.get("done"))


# Module-level singleton instance
_ollama_client: OllamaClient | None = None


def get_ollama_client() -> OllamaClient:
    """Get or create the global Ollama client.

    Returns:
        The OllamaClient instance.
    """
    global _ollama_client
    if _ollama_client is None:
        _ollama_client = OllamaClient()
    return _ollama_client
