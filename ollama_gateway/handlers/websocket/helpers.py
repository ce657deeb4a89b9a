"""Best-effort JSON sends over a WebSocket."""

from __future__ import annotations

import logging
from typing import Any

import orjson
from fastapi import WebSocket

from .disconnects import is_expected_disconnect

logger = logging.getLogger(__name__)


def encode_frame(payload: dict[str, Any]) -> str:
    return orjson.dumps(payload).decode("utf-8")


async def safe_send_text(ws: WebSocket, text: str) -> bool:
    """Send text to the client, returning False if the socket is gone."""
    try:
        await ws.send_text(text)
    except Exception as exc:
        if not is_expected_disconnect(exc):
            raise
        logger.info("WebSocket disconnected while sending %s bytes", len(text))
        return False
    return True


async def safe_send_json(ws: WebSocket, payload: dict[str, Any]) -> bool:
    """Send a JSON payload, swallowing client disconnects."""
    return await safe_send_text(ws, encode_frame(payload))


__all__ = ["encode_frame", "safe_send_text", "safe_send_json"]
