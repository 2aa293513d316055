"""Transport adapter for the Ollama inference server.

Responsibilities:
    - Generate requests with streaming or single JSON responses
    - Model listing and model detail lookups
    - Request deadline enforcement
    - Translation of transport failures into typed errors

Keeps httpx details out of the chat pipeline and the HTTP API.
"""

from ollama_ui.client.errors import (
    OllamaAPIError,
    OllamaConnectionError,
    OllamaError,
    OllamaTimeoutError,
)
from ollama_ui.client.ollama import OllamaClient, get_ollama_client

__all__ = [
    "OllamaAPIError",
    "OllamaClient",
    "OllamaConnectionError",
    "OllamaError",
    "OllamaTimeoutError",
    "get_ollama_client",
]
