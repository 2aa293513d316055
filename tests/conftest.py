"""Pytest fixtures and shared test configuration.

Provides reusable fixtures for unit and integration tests.

Fixtures:
    - app_config: Configuration pointing at a fake Ollama and a temp data dir
    - fake_ollama: Scriptable Ollama server
    - ollama_client: OllamaClient wired to the fake server
    - storage / store: Persistence and state store in a temp directory
    - async_client: HTTPX client for API testing

No test talks to a real Ollama server.
"""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient

from ollama_ui.api.app import create_app
from ollama_ui.chat import ChatStore, LocalStorage
from ollama_ui.client import OllamaClient, get_ollama_client
from ollama_ui.config import AppConfig
from tests.helpers import FakeOllama

OLLAMA_TEST_HOST = "http://ollama.test:11434"


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    """Return configuration isolated from the environment.

    Args:
        tmp_path: Per-test temporary directory used as data dir.

    Returns:
        AppConfig with explicit values for every field.
    """
    return AppConfig(
        ollama_host=OLLAMA_TEST_HOST,
        default_model="llama3:latest",
        default_temperature=1.0,
        default_system_prompt="You are a helpful assistant.",
        request_timeout=5.0,
        stream=True,
        data_dir=tmp_path / "data",
    )


@pytest.fixture
def fake_ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def ollama_client(app_config: AppConfig, fake_ollama: FakeOllama) -> OllamaClient:
    return OllamaClient(app_config, transport=fake_ollama.transport())


@pytest.fixture
def storage(app_config: AppConfig) -> LocalStorage:
    return LocalStorage(app_config.data_dir)


@pytest.fixture
def store(storage: LocalStorage, app_config: AppConfig) -> ChatStore:
    return ChatStore.load(storage, app_config)


@pytest.fixture
async def async_client(ollama_client: OllamaClient) -> AsyncGenerator[AsyncClient]:
    """Create async HTTP client for API testing.

    The Ollama client dependency is replaced with one wired to the fake server.

    Yields:
        Configured AsyncClient for making test requests.
    """
    app = create_app()
    app.dependency_overrides[get_ollama_client] = lambda: ollama_client
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
