"""Per-connection liveness monitoring (ping/pong).

Each authenticated connection gets a LivenessMonitor that:

1. Sends a ``ping`` frame every ``interval_s`` seconds.
2. Treats any inbound frame as the answer (``touch()``).
3. Declares the connection dead when a ping is still unanswered at the next
   tick, and hands it to ``on_timeout``.

Before each ping the ``on_tick`` callback runs; it returns False when the
session should stop (for example because its client was revoked).

Usage:
    monitor = LivenessMonitor(send_ping=..., on_timeout=..., on_tick=..., interval_s=30)
    monitor.start()
    monitor.touch()       # in the message loop
    await monitor.stop()  # on teardown
"""

from __future__ import annotations

import time
import asyncio
import logging
import contextlib
from collections.abc import Callable, Awaitable

from ...config.websocket import PING_INTERVAL_S

logger = logging.getLogger(__name__)


class LivenessMonitor:
    """Ping loop for one connection."""

    def __init__(
        self,
        *,
        send_ping: Callable[[], Awaitable[bool]],
        on_timeout: Callable[[], Awaitable[None]],
        on_tick: Callable[[], Awaitable[bool]] | None = None,
        interval_s: float = PING_INTERVAL_S,
    ) -> None:
        self._send_ping = send_ping
        self._on_timeout = on_timeout
        self._on_tick = on_tick
        self._interval_s = float(interval_s)
        self._awaiting_pong = False
        self._last_activity = time.monotonic()
        self._timed_out = False
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    def touch(self) -> None:
        """Record inbound activity; answers any outstanding ping."""
        self._awaiting_pong = False
        self._last_activity = time.monotonic()

    @property
    def awaiting_pong(self) -> bool:
        return self._awaiting_pong

    def timed_out(self) -> bool:
        return self._timed_out

    def start(self) -> asyncio.Task:
        """Start the ping task (idempotent)."""
        if self._task is None:
            self._task = asyncio.create_task(self._ping_loop())
        return self._task

    async def stop(self) -> None:
        """Stop the ping task; safe to call from inside the task itself."""
        self._stop_event.set()
        task, self._task = self._task, None
        if task is None or task is asyncio.current_task():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _ping_loop(self) -> None:
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            if self._on_tick is not None and not await self._on_tick():
                break
            if self._awaiting_pong:
                idle = time.monotonic() - self._last_activity
                logger.info("ping unanswered for %.1fs; closing connection", idle)
                self._timed_out = True
                await self._on_timeout()
                break
            self._awaiting_pong = True
            if not await self._send_ping():
                break


__all__ = ["LivenessMonitor"]
