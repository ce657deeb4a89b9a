"""Opening-handshake retries with exponential backoff and jitter."""

from __future__ import annotations

import random
import asyncio
import logging
from typing import Any
from collections.abc import Callable, Awaitable

from websockets.exceptions import InvalidHandshake

from ..errors import ConnectionLostError
from ..config.client import (
    CLIENT_RECONNECT_JITTER,
    CLIENT_MAX_RECONNECT_DELAY_S,
    CLIENT_MAX_RECONNECT_ATTEMPTS,
    CLIENT_RECONNECT_BASE_DELAY_S,
)

logger = logging.getLogger(__name__)

_RETRYABLE = (OSError, asyncio.TimeoutError, InvalidHandshake)


def reconnect_delay(
    attempt: int,
    *,
    base_delay_s: float = CLIENT_RECONNECT_BASE_DELAY_S,
    max_delay_s: float = CLIENT_MAX_RECONNECT_DELAY_S,
    jitter: float = CLIENT_RECONNECT_JITTER,
    rand: Callable[[], float] = random.random,
) -> float:
    """Delay before retry number ``attempt`` (1-based)."""
    delay = min(max_delay_s, base_delay_s * 2 ** (attempt - 1))
    spread = delay * jitter
    return max(0.0, delay - spread + rand() * spread * 2)


async def connect_with_retries(
    factory: Callable[[], Awaitable[Any]],
    *,
    max_attempts: int = CLIENT_MAX_RECONNECT_ATTEMPTS,
    base_delay_s: float = CLIENT_RECONNECT_BASE_DELAY_S,
    max_delay_s: float = CLIENT_MAX_RECONNECT_DELAY_S,
    jitter: float = CLIENT_RECONNECT_JITTER,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Any:
    """Await ``factory()`` until it succeeds or ``max_attempts`` is reached.

    ``factory`` must open a fresh connection on every call.

    Raises:
        ConnectionLostError: Every attempt failed.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await factory()
        except _RETRYABLE as exc:
            if attempt >= max(1, max_attempts):
                raise ConnectionLostError(f"giving up after {attempt} attempts: {exc}") from exc
            delay = reconnect_delay(
                attempt,
                base_delay_s=base_delay_s,
                max_delay_s=max_delay_s,
                jitter=jitter,
            )
            logger.warning("connect attempt %s/%s failed (%s); retrying in %.2fs", attempt, max_attempts, exc, delay)
            await sleep(delay)


__all__ = ["reconnect_delay", "connect_with_retries"]
