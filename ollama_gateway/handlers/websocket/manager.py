"""Primary WebSocket connection handler orchestration.

This module contains the per-connection message loop. It orchestrates:

1. Connection Setup:
   - Register the connection with the SessionManager
   - Issue the authentication challenge (timeout armed by the authenticator)

2. Message Routing:
   - Control messages: ping/pong/end
   - Handshake messages: hello, authenticate
   - Authenticated messages: generate, cancel, models

3. Authorization:
   - Revocation check on every inbound message of an authenticated session

4. Rate Limiting:
   - Per-connection message rate limiting
   - Separate rate limit for cancel messages

5. Cleanup:
   - SessionManager teardown (generation discard, liveness, transport)

Message Types:
    hello        - Re-send the outstanding challenge
    authenticate - Answer the challenge with a signature
    generate     - Start a generation
    cancel/stop  - Abort the active generation
    models       - List backend models
    ping/pong    - Keep-alive heartbeat
    end          - Client-initiated disconnect
"""

from __future__ import annotations

import logging
import contextlib
from typing import TYPE_CHECKING, Any
from collections.abc import Callable, Awaitable

from fastapi import WebSocket, WebSocketDisconnect

from ...state import ClientState, Authenticating, EnhancedClientState
from ...logging import log_context
from ...telemetry import capture_error, session_span
from ...config.limits import (
    WS_CANCEL_WINDOW_SECONDS,
    WS_MAX_CANCELS_PER_WINDOW,
    WS_MAX_MESSAGES_PER_WINDOW,
    WS_MESSAGE_WINDOW_SECONDS,
)
from ...config.websocket import DISCONNECT_CLIENT_CLOSED, WS_CLOSE_CLIENT_REQUEST_CODE
from ...messages.auth import challenge_payload, handle_hello_message, handle_authenticate_message
from ...messages.cancel import handle_cancel_message
from ...messages.models import handle_models_message
from ...messages.generate import handle_generate_message
from ..limits import SlidingWindowRateLimiter
from .disconnects import is_expected_disconnect
from .errors import send_error, build_error_payload
from .limits import consume_limiter, select_rate_limiter
from .parser import parse_client_message

if TYPE_CHECKING:
    from ..gateway import Gateway

logger = logging.getLogger(__name__)

AuthenticatedHandlerFn = Callable[["Gateway", ClientState, dict[str, Any]], Awaitable[None]]

# Handlers that require an authenticated session
_AUTHENTICATED_HANDLERS: dict[str, AuthenticatedHandlerFn] = {
    "generate": handle_generate_message,
    "cancel": handle_cancel_message,
    "models": handle_models_message,
}


def remote_addresses(ws: WebSocket) -> tuple[str, ...]:
    """X-Forwarded-For chain if present, else the socket peer."""
    forwarded = ws.headers.get("x-forwarded-for")
    if forwarded:
        addresses = tuple(part.strip() for part in forwarded.split(",") if part.strip())
        if addresses:
            return addresses
    if ws.client is not None and ws.client.host:
        return (ws.client.host,)
    return ()


async def _handle_control_message(
    gateway: Gateway,
    state: ClientState,
    msg_type: str,
) -> bool:
    """Process ping/pong/end messages; return True if the loop should stop."""
    if msg_type == "ping":
        await gateway.sessions.send(state.connection_id, {"type": "pong"})
        return False
    if msg_type == "pong":
        return False
    if msg_type == "end":
        logger.info("WS recv: end")
        await gateway.sessions.on_disconnect(
            state.connection_id,
            code=WS_CLOSE_CLIENT_REQUEST_CODE,
            reason=DISCONNECT_CLIENT_CLOSED,
        )
        return True
    return False


async def _open_session(gateway: Gateway, ws: WebSocket) -> EnhancedClientState:
    await ws.accept()
    state = gateway.sessions.on_connect(ws, remote_addresses(ws))
    gateway.authenticator.issue_challenge(state)
    if isinstance(state.phase, Authenticating):
        await gateway.sessions.send(state.connection_id, challenge_payload(state.phase))
    return state


async def _dispatch(gateway: Gateway, state: ClientState, msg: dict[str, Any]) -> None:
    msg_type = msg["type"]

    if msg_type == "hello":
        await handle_hello_message(gateway, state)
        return
    if msg_type == "authenticate":
        await handle_authenticate_message(gateway, state, msg)
        return

    handler = _AUTHENTICATED_HANDLERS.get(msg_type)
    if handler is None:
        await send_error_frame(
            gateway,
            state,
            "unknown_message_type",
            f"Message type '{msg_type}' is not supported.",
        )
        return
    if not state.authenticated:
        await send_error_frame(
            gateway,
            state,
            "not_authenticated",
            f"'{msg_type}' requires an authenticated session.",
            request_id=msg.get("request_id"),
        )
        return
    await handler(gateway, state, msg)


async def send_error_frame(
    gateway: Gateway,
    state: ClientState,
    error_code: str,
    message: str,
    *,
    request_id: str | None = None,
) -> None:
    await gateway.sessions.send(
        state.connection_id,
        build_error_payload(error_code, message, request_id=request_id),
    )


async def handle_websocket_connection(ws: WebSocket, gateway: Gateway) -> None:
    """Handle one WebSocket connection from accept to teardown.

    Args:
        ws: The incoming WebSocket connection from FastAPI.
        gateway: Assembled server components.
    """
    state = await _open_session(gateway, ws)
    connection_id = state.connection_id
    message_limiter = SlidingWindowRateLimiter(
        limit=WS_MAX_MESSAGES_PER_WINDOW,
        window_seconds=WS_MESSAGE_WINDOW_SECONDS,
    )
    cancel_limiter = SlidingWindowRateLimiter(
        limit=WS_MAX_CANCELS_PER_WINDOW,
        window_seconds=WS_CANCEL_WINDOW_SECONDS,
    )
    with log_context(connection_id=connection_id), session_span(
        connection_id=connection_id,
        remote_address=state.ip,
    ):
        transport_open = True
        try:
            while gateway.sessions.get(connection_id) is state:
                raw_msg = await ws.receive_text()
                gateway.sessions.touch(connection_id)
                try:
                    msg = parse_client_message(raw_msg)
                except ValueError as exc:
                    await send_error(ws, error_code="invalid_message", message=str(exc))
                    continue

                msg_type = msg["type"]
                limiter, label = select_rate_limiter(msg_type, message_limiter, cancel_limiter)
                if limiter and not await consume_limiter(ws, limiter, label, request_id=msg.get("request_id")):
                    continue

                if await _handle_control_message(gateway, state, msg_type):
                    break

                if state.authenticated:
                    if not await gateway.sessions.ensure_authorized(state):
                        break
                    with log_context(client_id=state.client_id):
                        await _dispatch(gateway, state, msg)
                    continue

                await _dispatch(gateway, state, msg)
        except WebSocketDisconnect:
            transport_open = False
        except Exception as exc:  # noqa: BLE001
            if is_expected_disconnect(exc):
                transport_open = False
            else:
                logger.exception("WebSocket error")
                capture_error(exc, connection_id=connection_id)
                with contextlib.suppress(Exception):
                    await send_error(ws, error_code="internal_error", message="internal server error")
        finally:
            await gateway.sessions.on_disconnect(
                connection_id,
                code=WS_CLOSE_CLIENT_REQUEST_CODE,
                reason=DISCONNECT_CLIENT_CLOSED,
                notify=transport_open,
            )


__all__ = ["handle_websocket_connection", "remote_addresses"]
