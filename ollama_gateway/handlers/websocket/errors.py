"""Structured error frames for WebSocket clients.

Every error frame has the shape:

    {
        "type": "error",
        "error_code": "generation_conflict",   # machine-readable
        "message": "Human-readable description",
        "request_id": "...",                   # when the error concerns one
        ...extra fields
    }

Error codes used by the gateway:
    - invalid_message: Malformed JSON or missing type
    - unknown_message_type: Unrecognized message type
    - validation_error: Invalid field values
    - not_authenticated: Message requires an authenticated session
    - auth_timeout: Challenge not answered in time
    - generation_conflict: A generation is already active
    - no_active_generation: Cancel with nothing to cancel
    - generation_failed: Backend failure
    - message_rate_limited / cancel_rate_limited: Too many frames per window
    - internal_error: Unexpected server error
"""

from __future__ import annotations

from typing import Any

from fastapi import WebSocket

from .helpers import safe_send_json


def build_error_payload(
    error_code: str,
    message: str,
    *,
    request_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "type": "error",
        "error_code": error_code,
        "message": message,
    }
    if request_id:
        payload["request_id"] = request_id
    if extra:
        payload.update(extra)
    return payload


async def send_error(
    ws: WebSocket,
    *,
    error_code: str,
    message: str,
    request_id: str | None = None,
    extra: dict[str, Any] | None = None,
) -> bool:
    """Send a structured error message to the client."""
    return await safe_send_json(
        ws,
        build_error_payload(error_code, message, request_id=request_id, extra=extra),
    )


__all__ = ["build_error_payload", "send_error"]
