"""Rate limit selection and consumption for inbound WebSocket frames.

- Regular messages share one bucket.
- Cancel messages get their own bucket so cancel bursts cannot starve
  regular traffic.
- Control frames (ping/pong/end) and the handshake are exempt.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

from .errors import send_error
from ..limits import RateLimitError, SlidingWindowRateLimiter
from ...telemetry import get_metrics

if TYPE_CHECKING:
    from fastapi import WebSocket

_EXEMPT_TYPES = frozenset({"ping", "pong", "end", "hello", "authenticate"})


def select_rate_limiter(
    msg_type: str,
    message_limiter: SlidingWindowRateLimiter,
    cancel_limiter: SlidingWindowRateLimiter,
) -> tuple[SlidingWindowRateLimiter | None, str]:
    """Pick which limiter applies to the message type (if any)."""
    if msg_type == "cancel":
        return cancel_limiter, "cancel"
    if msg_type in _EXEMPT_TYPES:
        return None, ""
    return message_limiter, "message"


async def consume_limiter(
    ws: WebSocket,
    limiter: SlidingWindowRateLimiter,
    label: str,
    *,
    request_id: str | None = None,
) -> bool:
    """Attempt to consume a limiter token, sending an error on failure."""
    try:
        limiter.consume()
    except RateLimitError as err:
        retry_in = int(max(1, math.ceil(err.retry_in)))
        get_metrics().rate_limit_violations_total.add(1, {"kind": label})
        await send_error(
            ws,
            error_code=f"{label}_rate_limited",
            message=(
                f"{label} rate limit: at most {limiter.limit} per "
                f"{int(limiter.window_seconds)} seconds; retry in {retry_in} seconds"
            ),
            request_id=request_id,
            extra={"retry_in": retry_in},
        )
        return False
    return True


__all__ = ["select_rate_limiter", "consume_limiter"]
