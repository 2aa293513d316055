"""Errors raised while talking to the Ollama server."""

from ollama_ui.config import DEFAULT_OLLAMA_HOST
from ollama_ui.models.schemas import ErrorResponse


class OllamaError(Exception):
    """Base class for Ollama transport failures.

    Attributes:
        title: Short error title shown to the user.
        message: Detail text.
        suggestion: Optional remediation hint.
        status_code: HTTP status to report to API callers.
    """

    title = "Ollama error"

    def __init__(
        self,
        message: str,
        suggestion: str | None = None,
        status_code: int = 500,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.suggestion = suggestion
        self.status_code = status_code

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(
            error=self.title,
            message=self.message,
            suggestion=self.suggestion,
        )


class OllamaConnectionError(OllamaError):
    """The server could not be reached.

    Usually caused by a wrong OLLAMA_HOST override.
    """

    title = "Connection Error"

    def __init__(self, host: str, reason: str | None = None) -> None:
        message = f"Could not connect to Ollama at {host}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(
            message,
            suggestion=(
                "If you have set the OLLAMA_HOST environment variable, "
                f"try removing it or setting it to {DEFAULT_OLLAMA_HOST}"
            ),
        )
        self.host = host


class OllamaAPIError(OllamaError):
    """The server was reachable but returned an error payload."""

    title = "Ollama API error"

    def __init__(self, message: str, upstream_status: int | None = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class OllamaTimeoutError(OllamaError):
    """No complete response arrived before the request deadline."""

    title = "Request timed out"

    def __init__(self, timeout: float) -> None:
        super().__init__(
            f"Ollama did not finish responding within {timeout:g} seconds",
            suggestion="Increase API_TIMEOUT or try a smaller model",
        )
        self.timeout = timeout
