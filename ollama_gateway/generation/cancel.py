"""Cooperative cancellation token shared by the tracker and the backend."""

from __future__ import annotations

from ..errors import GenerationCancelledError


class CancelToken:
    """One-way flag checked by the backend stream between chunks.

    Setting the token never blocks and is safe to call repeatedly; the
    tracker also cancels the owning asyncio task so a stream blocked on the
    network is interrupted too.
    """

    __slots__ = ("_cancelled", "reason")

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "cancelled") -> bool:
        """Set the token; return False when it was already set."""
        if self._cancelled:
            return False
        self._cancelled = True
        self.reason = reason
        return True

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise GenerationCancelledError(self.reason or "cancelled")


__all__ = ["CancelToken"]
