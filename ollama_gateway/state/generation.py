"""Generation tracking dataclasses."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..generation.cancel import CancelToken


@dataclass(frozen=True, slots=True)
class GenerationHandle:
    """Returned to callers of start/cancel; identity is the connection id."""

    connection_id: str
    request_id: str
    model: str


@dataclass(slots=True)
class ActiveGeneration:
    """The single in-flight generation of a session.

    Attributes:
        connection_id: Owning connection.
        request_id: Client-provided or generated id echoed in every frame.
        model: Backend model name actually used.
        prompt: Prompt text forwarded to the backend.
        options: Backend sampling options, forwarded untouched.
        token: Cooperative cancellation token checked between chunks.
        start_time: Monotonic start timestamp.
        task: asyncio task driving the backend stream.
        tokens_sent: Chunks forwarded to the client so far.
    """

    connection_id: str
    request_id: str
    model: str
    prompt: str
    token: CancelToken
    options: dict[str, Any] = field(default_factory=dict)
    start_time: float = field(default_factory=time.monotonic)
    task: asyncio.Task | None = None
    tokens_sent: int = 0

    @property
    def handle(self) -> GenerationHandle:
        return GenerationHandle(self.connection_id, self.request_id, self.model)

    @property
    def elapsed_ms(self) -> int:
        return int((time.monotonic() - self.start_time) * 1000)


# Kept under the name used by the wire protocol documentation.
GenerationState = ActiveGeneration


__all__ = ["ActiveGeneration", "GenerationHandle", "GenerationState"]
