"""Unit tests for the Ollama transport adapter.

The server is replaced with httpx.MockTransport; no network access.
"""

import asyncio
from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_check as check

from ollama_ui.client import (
    OllamaAPIError,
    OllamaClient,
    OllamaConnectionError,
    OllamaTimeoutError,
)
from ollama_ui.config import DEFAULT_OLLAMA_HOST, AppConfig
from ollama_ui.models.schemas import ChatBody, ChatOptions
from tests.conftest import OLLAMA_TEST_HOST
from tests.helpers import FakeOllama, ndjson


def make_body(**overrides: object) -> ChatBody:
    fields: dict[str, object] = {"model": "llama3:latest", "prompt": "User: hi"}
    fields.update(overrides)
    return ChatBody.model_validate(fields)


async def collect(client: OllamaClient, body: ChatBody) -> list[bytes]:
    return [chunk async for chunk in client.stream_generate(body)]


class TestStreamGenerate:
    """Tests for line-delimited streaming."""

    async def test_yields_fragments_in_order(self, ollama_client: OllamaClient) -> None:
        """Each NDJSON line becomes one fragment; empty ones are skipped."""
        chunks = await collect(ollama_client, make_body())

        assert chunks == [b"Hello", b" world"]

    async def test_sends_generate_payload(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Request carries model, prompt, system prompt, temperature and stream flag."""
        await collect(
            ollama_client,
            make_body(system="Answer in French.", options=ChatOptions(temperature=0.2)),
        )

        payload = fake_ollama.last_payload()
        check.equal(fake_ollama.requests[-1].url.path, "/api/generate")
        check.equal(payload["model"], "llama3:latest")
        check.equal(payload["prompt"], "User: hi")
        check.equal(payload["system"], "Answer in French.")
        check.equal(payload["options"], {"temperature": 0.2})
        check.is_true(payload["stream"])
        check.is_not_in("images", payload)

    async def test_applies_config_defaults(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Missing system prompt and temperature fall back to configuration."""
        await collect(ollama_client, make_body())

        payload = fake_ollama.last_payload()
        check.equal(payload["system"], "You are a helpful assistant.")
        check.equal(payload["options"], {"temperature": 1.0})

    async def test_forwards_images(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Base64 images are passed through for multimodal models."""
        await collect(ollama_client, make_body(images=["aGVsbG8="]))

        assert fake_ollama.last_payload()["images"] == ["aGVsbG8="]

    async def test_skips_malformed_lines(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Malformed lines are dropped without ending the stream."""
        fake_ollama.generate_body = (
            ndjson({"response": "a", "done": False})
            + b"{not json\n\n"
            + ndjson({"response": "b", "done": True})
        )

        assert await collect(ollama_client, make_body()) == [b"a", b"b"]

    async def test_skips_fragments_without_text(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """A fragment whose response is not a string is dropped, later text still arrives."""
        fake_ollama.generate_body = ndjson(
            {"response": 5, "done": False},
            {"response": None, "done": False},
            {"response": "ok", "done": True},
        )

        assert await collect(ollama_client, make_body()) == [b"ok"]

    async def test_stops_at_done(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Lines after the done marker are ignored."""
        fake_ollama.generate_body = ndjson(
            {"response": "end", "done": True},
            {"response": "ignored", "done": False},
        )

        assert await collect(ollama_client, make_body()) == [b"end"]

    async def test_error_inside_stream(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """An error object in the stream raises an application error."""
        fake_ollama.generate_body = ndjson(
            {"response": "partial", "done": False},
            {"error": "model runner crashed"},
        )

        chunks: list[bytes] = []
        with pytest.raises(OllamaAPIError, match="model runner crashed"):
            async for chunk in ollama_client.stream_generate(make_body()):
                chunks.append(chunk)
        assert chunks == [b"partial"]

    async def test_encodes_utf8(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Fragments are UTF-8 encoded text."""
        fake_ollama.generate_body = ndjson({"response": "Grüße 👋", "done": True})

        chunks = await collect(ollama_client, make_body())

        assert b"".join(chunks).decode("utf-8") == "Grüße 👋"


class TestSingleJsonResponse:
    """Tests for servers answering with one JSON body."""

    async def test_reads_json_body(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """application/json responses yield their text once."""
        fake_ollama.content_type = "application/json"
        fake_ollama.generate_body = b'{"response": "All at once", "done": true}'

        assert await collect(ollama_client, make_body()) == [b"All at once"]

    async def test_stream_disabled_in_config(
        self, app_config: AppConfig, fake_ollama: FakeOllama
    ) -> None:
        """OLLAMA_STREAM=false asks for and reads a single body."""
        config = app_config.model_copy(update={"stream": False})
        client = OllamaClient(config, transport=fake_ollama.transport())
        fake_ollama.generate_body = b'{"response": "single", "done": true}'

        chunks = await collect(client, make_body())

        check.equal(chunks, [b"single"])
        check.is_false(fake_ollama.last_payload()["stream"])

    async def test_invalid_json_body(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Unparseable single body is an application error."""
        fake_ollama.content_type = "application/json"
        fake_ollama.generate_body = b"<html>oops</html>"

        with pytest.raises(OllamaAPIError):
            await collect(ollama_client, make_body())

    async def test_body_without_text(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """A single body whose response is not a string is an application error."""
        fake_ollama.content_type = "application/json"
        fake_ollama.generate_body = b'{"response": ["a"], "done": true}'

        with pytest.raises(OllamaAPIError, match="without text"):
            await collect(ollama_client, make_body())


class TestErrors:
    """Tests for error translation."""

    async def test_server_error_message(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """500 with {"error": "x"} becomes an application error with message x."""
        fake_ollama.generate_status = 500
        fake_ollama.content_type = "application/json"
        fake_ollama.generate_body = b'{"error": "x"}'

        with pytest.raises(OllamaAPIError) as exc_info:
            await collect(ollama_client, make_body())

        check.equal(exc_info.value.message, "x")
        check.equal(exc_info.value.upstream_status, 500)

    async def test_server_error_plain_text(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Non-JSON error bodies are reported as text."""
        fake_ollama.generate_status = 404
        fake_ollama.content_type = "text/plain"
        fake_ollama.generate_body = b"model 'nope' not found"

        with pytest.raises(OllamaAPIError, match="model 'nope' not found"):
            await collect(ollama_client, make_body())

    async def test_unreachable_host(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Unreachable server gives a connection error naming the host and the reset hint."""
        fake_ollama.fail_with = httpx.ConnectError

        with pytest.raises(OllamaConnectionError) as exc_info:
            await collect(ollama_client, make_body())

        error = exc_info.value
        check.is_in(OLLAMA_TEST_HOST, error.message)
        check.is_in("OLLAMA_HOST", error.suggestion)
        check.is_in(DEFAULT_OLLAMA_HOST, error.suggestion)
        check.equal(error.to_response().error, "Connection Error")

    async def test_deadline_exceeded(
        self, app_config: AppConfig, fake_ollama: FakeOllama
    ) -> None:
        """A stream that outlives the request deadline raises a timeout error."""

        async def trickle() -> AsyncIterator[bytes]:
            yield ndjson({"response": "slow", "done": False})
            await asyncio.sleep(5)
            yield ndjson({"response": "never", "done": True})

        config = app_config.model_copy(update={"request_timeout": 0.2})
        client = OllamaClient(config, transport=fake_ollama.transport())
        fake_ollama.generate_stream = trickle()

        chunks: list[bytes] = []
        with pytest.raises(OllamaTimeoutError):
            async for chunk in client.stream_generate(make_body()):
                chunks.append(chunk)

        check.equal(chunks, [b"slow"])


class TestModels:
    """Tests for model listing and details."""

    async def test_list_models(self, ollama_client: OllamaClient) -> None:
        """Tags are returned as model descriptors in server order."""
        models = await ollama_client.list_models()

        check.equal([m.name for m in models], ["llama3:latest", "llava:latest"])
        check.equal(models[0].size, 4661224676)

    async def test_list_models_unreachable(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Listing models on an unreachable server raises a connection error."""
        fake_ollama.fail_with = httpx.ConnectError

        with pytest.raises(OllamaConnectionError):
            await ollama_client.list_models()

    async def test_show_model(
        self, ollama_client: OllamaClient, fake_ollama: FakeOllama
    ) -> None:
        """Details are passed through unchanged."""
        details = await ollama_client.show_model("llama3:latest")

        check.equal(details, fake_ollama.details)
        check.equal(fake_ollama.last_payload(), {"name": "llama3:latest"})

    async def test_generate_collects_text(self, ollama_client: OllamaClient) -> None:
        """Non-streaming helper returns the whole reply."""
        assert await ollama_client.generate(make_body()) == "Hello world"
