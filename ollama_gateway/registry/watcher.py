"""Background task that re-reads the registry written by other processes."""

from __future__ import annotations

import asyncio
import logging
import contextlib

from .client_registry import ClientRegistry

logger = logging.getLogger(__name__)


class RegistryWatcher:
    """Poll ``registry.refresh()`` every ``interval_s`` seconds.

    The refresh runs in a worker thread so file IO never blocks the event
    loop. An interval of zero disables polling.
    """

    def __init__(self, registry: ClientRegistry, interval_s: float) -> None:
        self._registry = registry
        self._interval_s = max(0.0, float(interval_s))
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task | None:
        if self._interval_s <= 0:
            logger.info("registry watcher disabled")
            return None
        if self._task is None:
            self._task = asyncio.create_task(self._poll_loop())
        return self._task

    async def stop(self) -> None:
        self._stop_event.set()
        if self._task is None:
            return
        self._task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._task
        self._task = None

    async def _poll_loop(self) -> None:
        logger.info("registry watcher started interval=%ss", self._interval_s)
        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self._interval_s)
            except asyncio.TimeoutError:
                pass
            if self._stop_event.is_set():
                break
            try:
                await asyncio.to_thread(self._registry.refresh)
            except Exception:  # noqa: BLE001
                logger.exception("registry refresh failed; retrying in %ss", self._interval_s)


__all__ = ["RegistryWatcher"]
