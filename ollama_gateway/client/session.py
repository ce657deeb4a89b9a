"""Async Python client for the gateway's WebSocket protocol.

Lifecycle:
    1. Open the socket (retried with backoff, see ``reconnect``)
    2. Wait for ``challenge``, sign it, send ``authenticate``
    3. Start a reader task that answers pings and routes frames
    4. ``generate`` yields tokens until ``stream_end``; ``cancel`` aborts it
    5. ``close`` sends ``end`` and closes the socket

Usage:
    async with GatewayClient(url, client_id=..., private_key=key) as client:
        async for token in client.generate("Why is the sky blue?"):
            print(token, end="")
"""

from __future__ import annotations

import uuid
import asyncio
import logging
import contextlib
from typing import Any
from collections.abc import Callable, AsyncIterator

import orjson
import websockets
from websockets.exceptions import ConnectionClosed

from ..errors import ClientAuthError, ClientRequestError, ConnectionLostError
from ..security.signatures import PrivateKey, sign_message, load_private_key
from ..config.client import (
    GATEWAY_WS_URL,
    CLIENT_RECONNECT_JITTER,
    CLIENT_REQUEST_TIMEOUT_S,
    CLIENT_CHALLENGE_TIMEOUT_S,
    CLIENT_MAX_RECONNECT_DELAY_S,
    CLIENT_MAX_RECONNECT_ATTEMPTS,
    CLIENT_RECONNECT_BASE_DELAY_S,
)
from .reconnect import connect_with_retries

logger = logging.getLogger(__name__)

_STREAM_TYPES = frozenset({"stream_start", "stream_token", "stream_end"})


class GatewayClient:
    """One authenticated session; at most one generation at a time."""

    def __init__(
        self,
        url: str = GATEWAY_WS_URL,
        *,
        client_id: str,
        private_key: PrivateKey | str,
        signature_algorithm: str = "SHA256",
        connect: Callable[[str], Any] | None = None,
        challenge_timeout_s: float = CLIENT_CHALLENGE_TIMEOUT_S,
        request_timeout_s: float = CLIENT_REQUEST_TIMEOUT_S,
        max_attempts: int = CLIENT_MAX_RECONNECT_ATTEMPTS,
        base_delay_s: float = CLIENT_RECONNECT_BASE_DELAY_S,
        max_delay_s: float = CLIENT_MAX_RECONNECT_DELAY_S,
    ) -> None:
        self.url = url
        self.client_id = client_id
        self._private_key = load_private_key(private_key) if isinstance(private_key, str) else private_key
        self._algorithm = signature_algorithm
        self._connect = connect or websockets.connect
        self._challenge_timeout_s = challenge_timeout_s
        self._request_timeout_s = request_timeout_s
        self._max_attempts = max_attempts
        self._base_delay_s = base_delay_s
        self._max_delay_s = max_delay_s

        self._ws: Any = None
        self._reader: asyncio.Task | None = None
        self._stream: asyncio.Queue | None = None
        self._active_request_id: str | None = None
        self._pending_models: tuple[str, asyncio.Future] | None = None

        self.authenticated = False
        self.name: str | None = None
        self.close_reason: str | None = None
        self.last_result: dict[str, Any] | None = None

    async def __aenter__(self) -> "GatewayClient":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    # ============================================================================
    # Connect / close
    # ============================================================================
    async def connect(self) -> dict[str, Any]:
        """Open the socket and complete the handshake.

        Returns:
            The successful ``auth_result`` frame.

        Raises:
            ClientAuthError: The gateway rejected the signature.
            ConnectionLostError: The socket could not be opened or closed early.
            asyncio.TimeoutError: No challenge arrived in time.
        """
        self.close_reason = None
        self._ws = await connect_with_retries(
            lambda: self._connect(self.url),
            max_attempts=self._max_attempts,
            base_delay_s=self._base_delay_s,
            max_delay_s=self._max_delay_s,
            jitter=CLIENT_RECONNECT_JITTER,
        )
        try:
            result = await self._handshake()
        except BaseException:
            with contextlib.suppress(ConnectionClosed, OSError):
                await self._ws.close()
            self._ws = None
            raise
        self._reader = asyncio.create_task(self._read_loop(), name=f"gateway-client-{self.client_id[:8]}")
        return result

    async def close(self) -> None:
        """Send ``end`` and close the socket. Safe to call twice."""
        ws, self._ws = self._ws, None
        if ws is None:
            return
        with contextlib.suppress(ConnectionClosed, OSError):
            await ws.send(orjson.dumps({"type": "end"}).decode("utf-8"))
            await ws.close()
        reader, self._reader = self._reader, None
        if reader is not None:
            reader.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await reader
        self.authenticated = False

    async def _handshake(self) -> dict[str, Any]:
        challenge = await self._wait_for_frame("challenge", self._challenge_timeout_s)
        signature = sign_message(self._private_key, challenge["challenge"], self._algorithm)
        await self._send({"type": "authenticate", "client_id": self.client_id, "signature": signature})

        result = await self._wait_for_frame("auth_result", self._challenge_timeout_s)
        if not result.get("success"):
            raise ClientAuthError(result.get("reason") or "unknown", retry_after=result.get("retry_after"))
        self.authenticated = True
        self.name = result.get("name")
        logger.info("authenticated as %s (%s)", self.name, self.client_id)
        return result

    async def _wait_for_frame(self, frame_type: str, timeout: float) -> dict[str, Any]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while True:
            remaining = deadline - loop.time()
            if remaining <= 0:
                raise asyncio.TimeoutError(f"no {frame_type} within {timeout}s")
            try:
                raw = await asyncio.wait_for(self._ws.recv(), remaining)
            except ConnectionClosed as exc:
                raise ConnectionLostError(self.close_reason or str(exc)) from exc
            frame = orjson.loads(raw)
            if frame.get("type") == frame_type:
                return frame
            await self._handle_frame(frame)

    # ============================================================================
    # Requests
    # ============================================================================
    async def generate(
        self,
        prompt: str,
        *,
        model: str | None = None,
        options: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> AsyncIterator[str]:
        """Yield tokens until the gateway sends ``stream_end``.

        ``last_result`` holds the ``stream_end`` frame afterwards; a cancelled
        generation ends normally with ``last_result["cancelled"]`` set.

        Raises:
            ClientRequestError: The gateway sent an error for this request.
            ConnectionLostError: The connection closed mid-stream.
        """
        self._require_session()
        if self._stream is not None:
            raise ClientRequestError("generation_conflict", "a generation is already running on this client")

        request_id = request_id or uuid.uuid4().hex
        payload: dict[str, Any] = {"type": "generate", "prompt": prompt, "request_id": request_id}
        if model:
            payload["model"] = model
        if options:
            payload["options"] = options

        queue: asyncio.Queue = asyncio.Queue()
        self._stream, self._active_request_id = queue, request_id
        self.last_result = None
        try:
            await self._send(payload)
            while True:
                frame = await asyncio.wait_for(queue.get(), self._request_timeout_s)
                if isinstance(frame, BaseException):
                    raise frame
                frame_type = frame.get("type")
                if frame_type == "stream_token":
                    yield frame.get("token", "")
                elif frame_type == "stream_end":
                    self.last_result = frame
                    return
                elif frame_type == "error":
                    raise ClientRequestError(
                        frame.get("error_code", "error"),
                        frame.get("message", ""),
                        request_id=request_id,
                    )
        finally:
            self._stream = None
            self._active_request_id = None

    async def cancel(self) -> None:
        """Ask the gateway to abort the running generation."""
        self._require_session()
        await self._send({"type": "cancel"})

    async def list_models(self) -> list[dict[str, Any]]:
        """Return the backend's installed models."""
        self._require_session()
        request_id = uuid.uuid4().hex
        future = asyncio.get_running_loop().create_future()
        self._pending_models = (request_id, future)
        try:
            await self._send({"type": "models", "request_id": request_id})
            return await asyncio.wait_for(future, self._request_timeout_s)
        finally:
            self._pending_models = None

    # ============================================================================
    # Reader
    # ============================================================================
    async def _read_loop(self) -> None:
        ws = self._ws
        error: BaseException | None = None
        try:
            while True:
                raw = await ws.recv()
                await self._handle_frame(orjson.loads(raw))
        except ConnectionClosed as exc:
            error = ConnectionLostError(self.close_reason or str(exc))
        except ConnectionLostError as exc:
            error = exc
        except orjson.JSONDecodeError as exc:
            logger.warning("gateway sent invalid JSON; closing")
            error = ConnectionLostError(f"invalid frame: {exc}")
        finally:
            self.authenticated = False
            self._fail_pending(error or ConnectionLostError(self.close_reason))

    async def _handle_frame(self, frame: dict[str, Any]) -> None:
        frame_type = frame.get("type")
        if frame_type == "ping":
            await self._send({"type": "pong"})
        elif frame_type in _STREAM_TYPES:
            self._route_to_stream(frame)
        elif frame_type == "models_result":
            self._resolve_models(frame.get("models") or [])
        elif frame_type == "error":
            self._route_error(frame)
        elif frame_type == "connection_closed":
            self.close_reason = frame.get("reason")
            logger.info("gateway closing connection: %s", self.close_reason)
        else:
            logger.debug("ignoring %s frame", frame_type)

    def _route_to_stream(self, frame: dict[str, Any]) -> None:
        if self._stream is not None and frame.get("request_id") == self._active_request_id:
            self._stream.put_nowait(frame)

    def _route_error(self, frame: dict[str, Any]) -> None:
        request_id = frame.get("request_id")
        if self._pending_models is not None and request_id == self._pending_models[0]:
            _, future = self._pending_models
            if not future.done():
                future.set_exception(
                    ClientRequestError(frame.get("error_code", "error"), frame.get("message", ""), request_id=request_id)
                )
            return
        if self._stream is not None and request_id == self._active_request_id:
            self._stream.put_nowait(frame)
            return
        logger.warning("gateway error %s: %s", frame.get("error_code"), frame.get("message"))

    def _resolve_models(self, models: list[dict[str, Any]]) -> None:
        if self._pending_models is not None and not self._pending_models[1].done():
            self._pending_models[1].set_result(models)

    def _fail_pending(self, error: BaseException) -> None:
        if self._stream is not None:
            self._stream.put_nowait(error)
        if self._pending_models is not None and not self._pending_models[1].done():
            self._pending_models[1].set_exception(error)

    # ============================================================================
    # Helpers
    # ============================================================================
    def _require_session(self) -> None:
        if self._ws is None or not self.authenticated:
            raise ConnectionLostError(self.close_reason or "not connected")

    async def _send(self, payload: dict[str, Any]) -> None:
        if self._ws is None:
            raise ConnectionLostError(self.close_reason or "not connected")
        await self._ws.send(orjson.dumps(payload).decode("utf-8"))


__all__ = ["GatewayClient"]
