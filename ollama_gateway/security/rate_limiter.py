"""Failed-authentication backoff keyed by ``ip:client_id``.

Unlike the per-connection SlidingWindowRateLimiter, this limiter survives
reconnects: a client that keeps presenting bad signatures is blocked for
2^(failures-1) seconds (capped) once it reaches ``max_attempts`` consecutive
failures inside ``window_s``. A success clears the record.
"""

from __future__ import annotations

import math
import time
import logging
from dataclasses import dataclass
from collections.abc import Callable

from ..config.auth import (
    AUTH_WINDOW_S,
    MAX_AUTH_ATTEMPTS,
    MAX_BACKOFF_SECONDS,
    AUTH_RECORD_EXPIRY_S,
)

logger = logging.getLogger(__name__)

TimeFn = Callable[[], float]

_PRUNE_INTERVAL_S = 60 * 60


@dataclass(slots=True)
class _AttemptRecord:
    consecutive_failures: int = 0
    last_attempt: float = 0.0
    blocked_until: float = 0.0


class AuthRateLimiter:
    """Exponential backoff on consecutive authentication failures."""

    def __init__(
        self,
        *,
        max_attempts: int = MAX_AUTH_ATTEMPTS,
        window_s: float = AUTH_WINDOW_S,
        max_backoff_s: int = MAX_BACKOFF_SECONDS,
        record_expiry_s: float = AUTH_RECORD_EXPIRY_S,
        now_fn: TimeFn | None = None,
    ) -> None:
        self.max_attempts = max(1, int(max_attempts))
        self.window_s = max(0.0, float(window_s))
        self.max_backoff_s = max(1, int(max_backoff_s))
        self._record_expiry_s = float(record_expiry_s)
        self._now = now_fn or time.monotonic
        self._records: dict[str, _AttemptRecord] = {}
        self._last_prune = self._now()

    @staticmethod
    def key(ip: str, client_id: str) -> str:
        return f"{ip}:{client_id}"

    def check(self, key: str) -> int:
        """Return seconds the key is still blocked for, or 0 when allowed."""
        now = self._now()
        self._maybe_prune(now)
        record = self._records.get(key)
        if record is None:
            self._records[key] = _AttemptRecord(last_attempt=now)
            return 0
        if record.blocked_until > now:
            return max(1, math.ceil(record.blocked_until - now))
        if now - record.last_attempt > self.window_s:
            record.consecutive_failures = 0
        record.last_attempt = now
        return 0

    def record_failure(self, key: str) -> int:
        """Count a failure; return the block duration in seconds (0 if not blocked)."""
        now = self._now()
        record = self._records.setdefault(key, _AttemptRecord(last_attempt=now))
        record.consecutive_failures += 1
        record.last_attempt = now
        if record.consecutive_failures < self.max_attempts:
            return 0
        backoff = min(2 ** (record.consecutive_failures - 1), self.max_backoff_s)
        record.blocked_until = now + backoff
        logger.warning(
            "auth key %s blocked for %ss after %s failed attempts",
            key,
            backoff,
            record.consecutive_failures,
        )
        return backoff

    def record_success(self, key: str) -> None:
        self._records.pop(key, None)

    def remaining_attempts(self, key: str) -> int:
        record = self._records.get(key)
        if record is None:
            return self.max_attempts
        return max(0, self.max_attempts - record.consecutive_failures)

    def _maybe_prune(self, now: float) -> None:
        if now - self._last_prune < _PRUNE_INTERVAL_S:
            return
        self._last_prune = now
        expired = [
            key
            for key, record in self._records.items()
            if now - record.last_attempt > self._record_expiry_s and record.blocked_until < now
        ]
        for key in expired:
            del self._records[key]
        if expired:
            logger.info("pruned %s expired auth rate limit records", len(expired))

    def __len__(self) -> int:
        return len(self._records)


__all__ = ["AuthRateLimiter"]
