"""Unit tests for websocket error payload building."""

from __future__ import annotations

import asyncio

from ollama_gateway.handlers.websocket import send_error, build_error_payload

from tests.helpers.fakes import FakeWebSocket


def test_build_error_payload_basic() -> None:
    result = build_error_payload("invalid_message", "something went wrong")
    assert result == {"type": "error", "error_code": "invalid_message", "message": "something went wrong"}


def test_build_error_payload_with_request_id_and_extra() -> None:
    result = build_error_payload(
        "generation_conflict",
        "msg",
        request_id="r2",
        extra={"active_request_id": "r1"},
    )
    assert result["request_id"] == "r2"
    assert result["active_request_id"] == "r1"


def test_build_error_payload_omits_empty_request_id() -> None:
    result = build_error_payload("err", "msg", request_id="")
    assert "request_id" not in result


def test_send_error_after_close_reports_false() -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        await ws.close(code=1000, reason="done")

        assert not await send_error(ws, error_code="internal_error", message="boom")
        assert ws.sent == []

    asyncio.run(_run())
