"""Application configuration with environment variable loading.

Pydantic-based configuration for the Ollama connection and chat defaults.
Every field can be overridden through the environment (or a .env file) and
falls back to a hardcoded default.
"""

import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_OLLAMA_HOST = "http://127.0.0.1:11434"
_PROJECT_DATA_DIR = Path(__file__).parent.parent / "data"


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class AppConfig(BaseModel):
    """Configuration for the chat front-end.

    Attributes:
        ollama_host: Base URL of the Ollama server.
        default_model: Model used for new conversations.
        default_temperature: Sampling temperature for new conversations.
        default_system_prompt: System prompt used when a request carries none.
        request_timeout: Deadline in seconds for one generate request.
        stream: Ask Ollama for line-delimited streaming instead of one JSON body.
        data_dir: Directory holding persisted conversations, folders and prompts.
    """

    # Defaults come from the environment, so they go through validation too
    model_config = ConfigDict(validate_default=True)

    ollama_host: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_HOST", DEFAULT_OLLAMA_HOST),
        description="Ollama server address",
    )
    default_model: str = Field(
        default_factory=lambda: os.getenv("DEFAULT_MODEL", "llama2:latest"),
        description="Model for new conversations",
    )
    default_temperature: float = Field(
        default_factory=lambda: float(os.getenv("DEFAULT_TEMPERATURE", "1")),
        ge=0.0,
        le=2.0,
        description="Sampling temperature for response generation",
    )
    default_system_prompt: str = Field(
        default_factory=lambda: os.getenv("DEFAULT_SYSTEM_PROMPT", ""),
        description="System prompt used when none is supplied",
    )
    request_timeout: float = Field(
        default_factory=lambda: float(os.getenv("API_TIMEOUT", "600")),
        gt=0,
        description="Request deadline in seconds (default 10 minutes)",
    )
    stream: bool = Field(
        default_factory=lambda: _env_bool("OLLAMA_STREAM", "true"),
        description="Request line-delimited streaming responses",
    )
    data_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("DATA_DIR", str(_PROJECT_DATA_DIR))),
        description="Directory for persisted state",
    )

    @field_validator("ollama_host")
    @classmethod
    def validate_ollama_host(cls, v: str) -> str:
        """Validate that the host is set and drop any trailing slash."""
        if not v or not v.strip():
            raise ValueError(
                "Ollama host required. Set OLLAMA_HOST in .env or unset it to use "
                f"{DEFAULT_OLLAMA_HOST}"
            )
        return v.strip().rstrip("/")


def get_app_config() -> AppConfig:
    """Create application configuration from environment.

    Returns:
        Configured AppConfig instance.

    Raises:
        ValueError: If an environment override is invalid.
    """
    return AppConfig()
