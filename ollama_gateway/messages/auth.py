"""Handshake message handlers (``hello`` and ``authenticate``).

A failed verification ends the connection with close code 1008 after the
``auth_result`` frame has been sent. The caller detects this by the session
having disappeared from the SessionManager.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from ..state import Authenticating, EnhancedClientState
from ..errors import AuthRejectedError, ValidationError
from ..config.auth import AUTH_REASON_REPLAYED_CHALLENGE
from ..config.websocket import DISCONNECT_AUTH_FAILED, WS_CLOSE_UNAUTHORIZED_CODE
from ..handlers.websocket.errors import build_error_payload
from .validators import validate_authenticate_message

if TYPE_CHECKING:
    from ..handlers.gateway import Gateway

logger = logging.getLogger(__name__)


def challenge_payload(phase: Authenticating) -> dict[str, Any]:
    remaining = max(0.0, phase.deadline - asyncio.get_running_loop().time())
    return {
        "type": "challenge",
        "challenge": phase.challenge,
        "expires_in_ms": int(remaining * 1000),
    }


def auth_failure_payload(exc: AuthRejectedError) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": "auth_result", "success": False, "reason": exc.reason}
    if exc.retry_after:
        payload["retry_after"] = exc.retry_after
    if exc.remaining_attempts is not None:
        payload["remaining_attempts"] = exc.remaining_attempts
    return payload


async def handle_hello_message(gateway: Gateway, state: EnhancedClientState) -> None:
    """Re-send the outstanding challenge."""
    phase = state.phase
    if isinstance(phase, Authenticating):
        await gateway.sessions.send(state.connection_id, challenge_payload(phase))
        return
    await gateway.sessions.send(
        state.connection_id,
        build_error_payload("no_outstanding_challenge", "No challenge is outstanding for this connection."),
    )


async def handle_authenticate_message(
    gateway: Gateway,
    state: EnhancedClientState,
    msg: dict[str, Any],
) -> bool:
    """Verify a signed challenge.

    Returns:
        True when the session is now authenticated.
    """
    connection_id = state.connection_id
    if state.authenticated:
        await gateway.sessions.send(
            connection_id,
            build_error_payload(AUTH_REASON_REPLAYED_CHALLENGE, "Session is already authenticated."),
        )
        return False

    try:
        client_id, signature = validate_authenticate_message(msg)
    except ValidationError as err:
        await gateway.sessions.send(connection_id, build_error_payload(err.error_code, err.message))
        return False

    try:
        phase = gateway.authenticator.verify(state, client_id, signature)
    except AuthRejectedError as exc:
        await gateway.sessions.send(connection_id, auth_failure_payload(exc))
        await gateway.sessions.on_disconnect(
            connection_id,
            code=WS_CLOSE_UNAUTHORIZED_CODE,
            reason=DISCONNECT_AUTH_FAILED,
        )
        return False

    identity = gateway.registry.get(phase.client_id)
    await gateway.sessions.send(connection_id, {
        "type": "auth_result",
        "success": True,
        "client_id": phase.client_id,
        "name": identity.name if identity else None,
    })
    gateway.sessions.start_liveness(connection_id)
    logger.info("session authenticated client=%s ip=%s", phase.client_id, state.ip)
    return True


__all__ = [
    "challenge_payload",
    "auth_failure_payload",
    "handle_hello_message",
    "handle_authenticate_message",
]
