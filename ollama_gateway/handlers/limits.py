"""Sliding-window rate limiter for per-connection message traffic.

The limiter keeps timestamps of recent events in a deque. On each event:

    1. Drop timestamps older than (now - window_seconds).
    2. If the remaining count is at the limit, raise RateLimitError with the
       time until the oldest event expires.
    3. Otherwise record the event.

A limit or window of zero disables the limiter.
"""

from __future__ import annotations

import time
import collections
from collections.abc import Callable

from ..errors import RateLimitError

TimeFn = Callable[[], float]


class SlidingWindowRateLimiter:
    """Track events over a rolling window."""

    def __init__(
        self,
        *,
        limit: int,
        window_seconds: float,
        now_fn: TimeFn | None = None,
    ) -> None:
        self.limit = max(0, int(limit))
        self.window_seconds = max(0.0, float(window_seconds))
        self._now = now_fn or time.monotonic
        self._events: collections.deque[float] = collections.deque()
        self._enabled = self.limit > 0 and self.window_seconds > 0

    def consume(self) -> None:
        """Record an event or raise RateLimitError if the window is saturated."""
        if not self._enabled:
            return

        now = self._now()
        cutoff = now - self.window_seconds
        events = self._events
        while events and events[0] <= cutoff:
            events.popleft()

        if len(events) >= self.limit:
            raise RateLimitError(
                retry_in=max(0.0, (events[0] + self.window_seconds) - now),
                limit=self.limit,
                window_seconds=self.window_seconds,
            )
        events.append(now)


__all__ = ["RateLimitError", "SlidingWindowRateLimiter"]
