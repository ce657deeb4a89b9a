"""Unit tests for the Ollama HTTP client against a mocked transport."""

from __future__ import annotations

import asyncio

import httpx
import orjson
import pytest

from ollama_gateway.backend import OllamaClient
from ollama_gateway.errors import BackendUnavailableError, GenerationCancelledError
from ollama_gateway.generation import CancelToken


def _ndjson(*chunks: dict) -> bytes:
    return b"\n".join(orjson.dumps(chunk) for chunk in chunks) + b"\n"


def _client(handler) -> OllamaClient:
    transport = httpx.MockTransport(handler)
    http = httpx.AsyncClient(transport=transport, base_url="http://ollama.test")
    return OllamaClient("http://ollama.test/", client=http)


async def _collect(client: OllamaClient, **kwargs) -> list[str]:
    return [chunk async for chunk in client.generate("llama2", "Hi", **kwargs)]


# --- generate ---


def test_generate_yields_response_chunks_until_done() -> None:
    requests: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append({"path": request.url.path, "body": orjson.loads(request.content)})
        body = _ndjson(
            {"response": "Hel", "done": False},
            {"response": "", "done": False},
            {"response": "lo", "done": False},
            {"response": "", "done": True, "eval_count": 2},
        )
        return httpx.Response(200, content=body)

    async def _run() -> None:
        client = _client(handler)
        assert await _collect(client, options={"temperature": 0.1}) == ["Hel", "lo"]
        await client.aclose()

    asyncio.run(_run())

    assert requests == [{
        "path": "/api/generate",
        "body": {"model": "llama2", "prompt": "Hi", "stream": True, "options": {"temperature": 0.1}},
    }]


def test_generate_without_options_omits_them() -> None:
    bodies: list[dict] = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(orjson.loads(request.content))
        return httpx.Response(200, content=_ndjson({"response": "x", "done": True}))

    async def _run() -> None:
        client = _client(handler)
        assert await _collect(client) == ["x"]

    asyncio.run(_run())
    assert "options" not in bodies[0]


def test_generate_http_error_uses_backend_message() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404, json={"error": "model 'llama9' not found"})

    async def _run() -> None:
        with pytest.raises(BackendUnavailableError, match="model 'llama9' not found") as excinfo:
            await _collect(_client(handler))
        assert excinfo.value.status_code == 404

    asyncio.run(_run())


def test_generate_error_chunk_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=_ndjson({"response": "a"}, {"error": "out of memory"}))

    async def _run() -> None:
        with pytest.raises(BackendUnavailableError, match="out of memory"):
            await _collect(_client(handler))

    asyncio.run(_run())


def test_generate_invalid_json_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"not json\n")

    async def _run() -> None:
        with pytest.raises(BackendUnavailableError, match="invalid JSON"):
            await _collect(_client(handler))

    asyncio.run(_run())


def test_generate_stream_without_done_raises() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=_ndjson({"response": "a", "done": False}))

    async def _run() -> None:
        with pytest.raises(BackendUnavailableError, match="without a done chunk"):
            await _collect(_client(handler))

    asyncio.run(_run())


def test_generate_connection_error_raises_unavailable() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def _run() -> None:
        with pytest.raises(BackendUnavailableError, match="unreachable"):
            await _collect(_client(handler))

    asyncio.run(_run())


def test_generate_stops_when_token_is_cancelled() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=_ndjson({"response": "a"}, {"response": "b"}, {"done": True}))

    async def _run() -> None:
        token = CancelToken()
        seen: list[str] = []
        with pytest.raises(GenerationCancelledError):
            async for chunk in _client(handler).generate("llama2", "Hi", token=token):
                seen.append(chunk)
                token.cancel("client_request")
        assert seen == ["a"]

    asyncio.run(_run())


# --- models / ping ---


def test_list_models_returns_tag_entries() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/tags"
        return httpx.Response(200, json={"models": [{"name": "llama2:latest", "size": 1}, "junk"]})

    async def _run() -> None:
        client = _client(handler)
        assert await client.list_models() == [{"name": "llama2:latest", "size": 1}]
        assert await client.ping()

    asyncio.run(_run())


def test_list_models_failure_and_ping() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="boom")

    async def _run() -> None:
        client = _client(handler)
        with pytest.raises(BackendUnavailableError, match="HTTP 500: boom"):
            await client.list_models()
        assert not await client.ping()

    asyncio.run(_run())


# --- cancel token ---


def test_cancel_token_is_one_way() -> None:
    token = CancelToken()
    token.raise_if_cancelled()

    assert token.cancel("disconnect")
    assert not token.cancel("client_request")
    assert token.reason == "disconnect"
    with pytest.raises(GenerationCancelledError):
        token.raise_if_cancelled()
