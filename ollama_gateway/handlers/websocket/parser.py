"""Client payload parsing for the WebSocket handler."""

from __future__ import annotations

from typing import Any

import orjson

from ...config.websocket import WS_CANCEL_SENTINEL, WS_END_SENTINEL

# "stop" is the older name for "cancel"
_TYPE_ALIASES = {"stop": "cancel"}


def parse_client_message(raw: str) -> dict[str, Any]:
    """Decode one text frame into a message dict with a normalized ``type``.

    Raises:
        ValueError: The frame is empty, not JSON, not an object or untyped.
    """
    text = (raw or "").strip()
    if not text:
        raise ValueError("Empty message.")

    if text == WS_CANCEL_SENTINEL:
        return {"type": "cancel"}
    if text == WS_END_SENTINEL:
        return {"type": "end"}

    try:
        data = orjson.loads(text)
    except orjson.JSONDecodeError as exc:
        raise ValueError("Message must be valid JSON or a sentinel string.") from exc

    if not isinstance(data, dict):
        raise ValueError("Message must be a JSON object.")

    msg_type = data.get("type")
    if not msg_type:
        raise ValueError("Missing 'type' in message.")

    msg_type = str(msg_type).strip().lower()
    data["type"] = _TYPE_ALIASES.get(msg_type, msg_type)
    if data.get("request_id") is not None:
        data["request_id"] = str(data["request_id"])
    return data


__all__ = ["parse_client_message"]
