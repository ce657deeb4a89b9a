"""Async client for the Ollama HTTP API.

Only two endpoints are used:

    POST /api/generate   newline-delimited JSON chunks ``{"response", "done"}``
    GET  /api/tags       installed models

Every transport or protocol failure surfaces as BackendUnavailableError so
callers handle a single exception type.
"""

from __future__ import annotations

import logging
from typing import Any
from collections.abc import AsyncIterator

import httpx
import orjson

from ..state import ServerConfig
from ..errors import BackendUnavailableError
from ..generation.cancel import CancelToken
from ..config.server import OLLAMA_API_URL, OLLAMA_TIMEOUT_S, OLLAMA_CONNECT_TIMEOUT_S

logger = logging.getLogger(__name__)


class OllamaClient:
    """Thin streaming wrapper around ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str = OLLAMA_API_URL,
        *,
        timeout_s: float = OLLAMA_TIMEOUT_S,
        connect_timeout_s: float = OLLAMA_CONNECT_TIMEOUT_S,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(timeout_s, connect=connect_timeout_s),
        )

    @classmethod
    def from_config(cls, config: ServerConfig) -> "OllamaClient":
        return cls(
            config.ollama_url,
            timeout_s=config.backend_timeout_s,
            connect_timeout_s=config.backend_connect_timeout_s,
        )

    async def generate(
        self,
        model: str,
        prompt: str,
        *,
        options: dict[str, Any] | None = None,
        token: CancelToken | None = None,
    ) -> AsyncIterator[str]:
        """Yield response chunks for ``prompt`` until the backend reports done.

        Raises:
            GenerationCancelledError: ``token`` was set between chunks.
            BackendUnavailableError: Connection, HTTP or protocol failure.
        """
        payload: dict[str, Any] = {"model": model, "prompt": prompt, "stream": True}
        if options:
            payload["options"] = options

        try:
            async with self._client.stream("POST", "/api/generate", json=payload) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise BackendUnavailableError(
                        _error_message(body, response.status_code),
                        status_code=response.status_code,
                    )
                async for line in response.aiter_lines():
                    if token is not None:
                        token.raise_if_cancelled()
                    if not line.strip():
                        continue
                    chunk = _decode_chunk(line)
                    text = chunk.get("response")
                    if text:
                        yield text
                    if chunk.get("done"):
                        return
        except httpx.TimeoutException as exc:
            raise BackendUnavailableError(f"ollama request timed out: {exc}") from exc
        except httpx.RequestError as exc:
            raise BackendUnavailableError(f"ollama unreachable at {self.base_url}: {exc}") from exc
        raise BackendUnavailableError("ollama stream ended without a done chunk")

    async def list_models(self) -> list[dict[str, Any]]:
        """Return the ``models`` array from ``/api/tags``."""
        try:
            response = await self._client.get("/api/tags")
        except httpx.RequestError as exc:
            raise BackendUnavailableError(f"ollama unreachable at {self.base_url}: {exc}") from exc
        if response.status_code != 200:
            raise BackendUnavailableError(
                _error_message(response.content, response.status_code),
                status_code=response.status_code,
            )
        try:
            models = response.json().get("models", [])
        except (ValueError, AttributeError) as exc:
            raise BackendUnavailableError("ollama returned an invalid model list") from exc
        return [model for model in models if isinstance(model, dict)]

    async def ping(self) -> bool:
        try:
            await self.list_models()
        except BackendUnavailableError as exc:
            logger.warning("ollama health check failed: %s", exc)
            return False
        return True

    async def aclose(self) -> None:
        await self._client.aclose()


def _decode_chunk(line: str) -> dict[str, Any]:
    try:
        chunk = orjson.loads(line)
    except orjson.JSONDecodeError as exc:
        raise BackendUnavailableError(f"ollama sent invalid JSON: {line[:200]!r}") from exc
    if not isinstance(chunk, dict):
        raise BackendUnavailableError("ollama sent a non-object chunk")
    if chunk.get("error"):
        raise BackendUnavailableError(f"ollama error: {chunk['error']}")
    return chunk


def _error_message(body: bytes, status_code: int) -> str:
    try:
        detail = orjson.loads(body).get("error")
    except (ValueError, AttributeError):
        detail = None
    if not detail:
        detail = body.decode("utf-8", "replace")[:200] or "no body"
    return f"ollama returned HTTP {status_code}: {detail}"


__all__ = ["OllamaClient"]
