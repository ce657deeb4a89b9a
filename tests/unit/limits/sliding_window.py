"""Unit tests for sliding window rate limiter."""

from __future__ import annotations

import asyncio

import pytest

from ollama_gateway.errors import RateLimitError
from ollama_gateway.handlers.limits import SlidingWindowRateLimiter
from ollama_gateway.handlers.websocket.limits import consume_limiter, select_rate_limiter

from tests.helpers.fakes import FakeWebSocket


def test_consume_under_limit_succeeds() -> None:
    t = 0.0

    def now_fn() -> float:
        return t

    limiter = SlidingWindowRateLimiter(limit=3, window_seconds=10.0, now_fn=now_fn)
    limiter.consume()
    limiter.consume()
    # Two consumes under a limit of 3 pass


def test_consume_at_limit_raises() -> None:
    t = 0.0

    def now_fn() -> float:
        return t

    limiter = SlidingWindowRateLimiter(limit=2, window_seconds=10.0, now_fn=now_fn)
    limiter.consume()
    limiter.consume()
    with pytest.raises(RateLimitError) as exc_info:
        limiter.consume()
    assert exc_info.value.limit == 2
    assert exc_info.value.window_seconds == 10.0
    assert exc_info.value.retry_in >= 0.0


def test_rate_limit_error_has_correct_metadata() -> None:
    clock = [0.0]

    def now_fn() -> float:
        return clock[0]

    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=5.0, now_fn=now_fn)
    limiter.consume()
    clock[0] = 1.0
    with pytest.raises(RateLimitError) as exc_info:
        limiter.consume()
    err = exc_info.value
    assert err.limit == 1
    assert err.window_seconds == 5.0
    assert err.retry_in == pytest.approx(4.0, abs=0.1)


def test_consume_after_window_expires() -> None:
    clock = [0.0]

    def now_fn() -> float:
        return clock[0]

    limiter = SlidingWindowRateLimiter(limit=1, window_seconds=5.0, now_fn=now_fn)
    limiter.consume()
    # Advance past window
    clock[0] = 6.0
    limiter.consume()  # Should succeed


def test_disabled_limiter_limit_zero() -> None:
    limiter = SlidingWindowRateLimiter(limit=0, window_seconds=10.0)
    for _ in range(100):
        limiter.consume()  # Never raises


def test_disabled_limiter_window_zero() -> None:
    limiter = SlidingWindowRateLimiter(limit=10, window_seconds=0.0)
    for _ in range(100):
        limiter.consume()  # Never raises


# --- per-connection frame limits ---


def test_select_rate_limiter_routes_by_type() -> None:
    messages = SlidingWindowRateLimiter(limit=5, window_seconds=1.0)
    cancels = SlidingWindowRateLimiter(limit=5, window_seconds=1.0)

    assert select_rate_limiter("generate", messages, cancels) == (messages, "message")
    assert select_rate_limiter("models", messages, cancels) == (messages, "message")
    assert select_rate_limiter("cancel", messages, cancels) == (cancels, "cancel")
    for exempt in ("ping", "pong", "end", "hello", "authenticate"):
        assert select_rate_limiter(exempt, messages, cancels) == (None, "")


def test_consume_limiter_sends_error_with_retry_in() -> None:
    async def _run() -> None:
        ws = FakeWebSocket()
        limiter = SlidingWindowRateLimiter(limit=1, window_seconds=10.0, now_fn=lambda: 0.0)

        assert await consume_limiter(ws, limiter, "message", request_id="r1")
        assert not await consume_limiter(ws, limiter, "message", request_id="r2")

        [error] = ws.of_type("error")
        assert error["error_code"] == "message_rate_limited"
        assert error["request_id"] == "r2"
        assert error["retry_in"] == 10

    asyncio.run(_run())
