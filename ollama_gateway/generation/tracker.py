"""At-most-one generation per session, with cancellation.

Ownership of a generation's terminal result is decided by a claim: removing
the entry from ``_active`` (and from the session state) in one synchronous
step. Whoever claims first delivers the outcome:

    completion  -> stream_end {cancelled: false}, or an error frame
    cancel()    -> stream_end {cancelled: true}
    discard()   -> nothing (the connection is going away)

Claims never straddle an ``await``, so exactly one result is delivered.
"""

from __future__ import annotations

import uuid
import time
import asyncio
import logging
from contextlib import aclosing
from typing import TYPE_CHECKING, Any

from ..state import ActiveGeneration, GenerationHandle
from ..errors import (
    BackendUnavailableError,
    GenerationConflictError,
    GenerationNotFoundError,
    GenerationCancelledError,
    GenerationUnauthenticatedError,
    classify_error,
)
from ..logging import log_context
from ..telemetry import get_metrics, capture_error, generation_span
from ..config.server import OLLAMA_DEFAULT_MODEL
from .cancel import CancelToken

if TYPE_CHECKING:
    from ..backend import OllamaClient
    from ..state import ClientState
    from ..handlers.session import SessionManager

logger = logging.getLogger(__name__)


class GenerationTracker:
    """Maps each connection to its single in-flight backend call."""

    def __init__(
        self,
        sessions: SessionManager,
        backend: OllamaClient,
        *,
        default_model: str = OLLAMA_DEFAULT_MODEL,
    ) -> None:
        self._sessions = sessions
        self._backend = backend
        self._default_model = default_model
        self._active: dict[str, ActiveGeneration] = {}

    @property
    def active_count(self) -> int:
        return len(self._active)

    def get(self, connection_id: str) -> ActiveGeneration | None:
        return self._active.get(connection_id)

    # ============================================================================
    # Start
    # ============================================================================
    def start(
        self,
        connection_id: str,
        *,
        prompt: str,
        model: str | None = None,
        options: dict[str, Any] | None = None,
        request_id: str | None = None,
    ) -> GenerationHandle:
        """Record a generation for the session and launch the backend call.

        Raises:
            GenerationUnauthenticatedError: Unknown or unauthenticated session.
            GenerationConflictError: The session already has a generation.
        """
        state = self._sessions.get(connection_id)
        if state is None or not state.authenticated:
            raise GenerationUnauthenticatedError(connection_id)

        generation = ActiveGeneration(
            connection_id=connection_id,
            request_id=request_id or uuid.uuid4().hex,
            model=model or self._default_model,
            prompt=prompt,
            token=CancelToken(),
            options=dict(options or {}),
        )
        try:
            state.attach_generation(generation)
        except GenerationConflictError:
            get_metrics().conflicts_total.add(1)
            raise
        self._active[connection_id] = generation
        generation.task = asyncio.create_task(
            self._run(state, generation),
            name=f"generation-{generation.request_id}",
        )

        metrics = get_metrics()
        metrics.generations_total.add(1, {"model": generation.model})
        metrics.active_generations.add(1)
        logger.info(
            "generation started request_id=%s model=%s prompt_chars=%s",
            generation.request_id,
            generation.model,
            len(prompt),
        )
        return generation.handle

    # ============================================================================
    # Cancel / discard
    # ============================================================================
    async def cancel(self, connection_id: str, *, reason: str = "client_request") -> GenerationHandle:
        """Abort the active generation and tell the client it was cancelled.

        Raises:
            GenerationNotFoundError: Nothing is active; no side effect.
        """
        generation = self._active.get(connection_id)
        if generation is None or not self._claim(generation):
            raise GenerationNotFoundError(connection_id)

        await self._abort(generation, reason)
        get_metrics().cancellation_total.add(1, {"reason": reason})
        logger.info(
            "generation cancelled request_id=%s tokens=%s reason=%s",
            generation.request_id,
            generation.tokens_sent,
            reason,
        )
        await self._sessions.send(connection_id, {
            "type": "stream_end",
            "request_id": generation.request_id,
            "total_tokens": generation.tokens_sent,
            "elapsed_ms": generation.elapsed_ms,
            "cancelled": True,
        })
        return generation.handle

    async def discard(self, connection_id: str) -> GenerationHandle | None:
        """Abort and forget the generation without notifying the session."""
        generation = self._active.get(connection_id)
        if generation is None or not self._claim(generation):
            return None
        await self._abort(generation, "disconnect")
        logger.info("generation discarded request_id=%s", generation.request_id)
        return generation.handle

    async def on_session_closed(self, state: ClientState) -> None:
        await self.discard(state.connection_id)

    async def shutdown(self) -> None:
        """Best-effort cancellation of every active generation."""
        generations = [g for g in list(self._active.values()) if self._claim(g)]
        for generation in generations:
            generation.token.cancel("server_shutdown")
            if generation.task is not None:
                generation.task.cancel()
        tasks = [g.task for g in generations if g.task is not None]
        if tasks:
            await asyncio.wait(tasks)
        if generations:
            logger.info("cancelled %s generations on shutdown", len(generations))

    def _claim(self, generation: ActiveGeneration) -> bool:
        if self._active.get(generation.connection_id) is not generation:
            return False
        del self._active[generation.connection_id]
        state = self._sessions.get(generation.connection_id)
        if state is not None:
            state.detach_generation(generation)
        get_metrics().active_generations.add(-1)
        return True

    async def _abort(self, generation: ActiveGeneration, reason: str) -> None:
        generation.token.cancel(reason)
        task = generation.task
        if task is None or task.done():
            return
        task.cancel()
        if task is not asyncio.current_task():
            await asyncio.wait({task})

    # ============================================================================
    # Backend stream
    # ============================================================================
    async def _run(self, state: ClientState, generation: ActiveGeneration) -> None:
        connection_id = generation.connection_id
        request_id = generation.request_id
        with log_context(connection_id=connection_id, request_id=request_id, client_id=state.client_id):
            with generation_span(request_id=request_id, model=generation.model) as span:
                try:
                    await self._stream(generation)
                except GenerationCancelledError:
                    # cancel()/discard() claimed the generation and owns the outcome
                    return
                except asyncio.CancelledError:
                    self._claim(generation)
                    raise
                except BackendUnavailableError as exc:
                    await self._fail(generation, "generation_failed", str(exc), exc)
                    return
                except Exception as exc:  # noqa: BLE001
                    logger.exception("generation crashed request_id=%s", request_id)
                    capture_error(exc, connection_id=connection_id, request_id=request_id)
                    await self._fail(generation, "internal_error", "generation failed", exc)
                    return
                finally:
                    span.set_attribute("tokens", generation.tokens_sent)

                if not self._claim(generation):
                    return
                elapsed = time.monotonic() - generation.start_time
                get_metrics().generation_latency.record(elapsed, {"model": generation.model})
                logger.info(
                    "generation completed tokens=%s elapsed=%.2fs",
                    generation.tokens_sent,
                    elapsed,
                )
                await self._sessions.send(connection_id, {
                    "type": "stream_end",
                    "request_id": request_id,
                    "total_tokens": generation.tokens_sent,
                    "elapsed_ms": generation.elapsed_ms,
                    "cancelled": False,
                })

    async def _stream(self, generation: ActiveGeneration) -> None:
        connection_id = generation.connection_id
        await self._sessions.send(connection_id, {
            "type": "stream_start",
            "request_id": generation.request_id,
            "model": generation.model,
        })
        metrics = get_metrics()
        stream = self._backend.generate(
            generation.model,
            generation.prompt,
            options=generation.options,
            token=generation.token,
        )
        async with aclosing(stream):
            async for chunk in stream:
                generation.token.raise_if_cancelled()
                if generation.tokens_sent == 0:
                    metrics.ttft.record(time.monotonic() - generation.start_time, {"model": generation.model})
                generation.tokens_sent += 1
                metrics.tokens_streamed_total.add(1)
                await self._sessions.send(connection_id, {
                    "type": "stream_token",
                    "request_id": generation.request_id,
                    "token": chunk,
                })

    async def _fail(
        self,
        generation: ActiveGeneration,
        error_code: str,
        message: str,
        exc: BaseException,
    ) -> None:
        if not self._claim(generation):
            return
        get_metrics().errors_total.add(1, {"error_type": classify_error(exc)})
        logger.warning("generation failed request_id=%s: %s", generation.request_id, message)
        await self._sessions.send(generation.connection_id, {
            "type": "error",
            "error_code": error_code,
            "message": message,
            "request_id": generation.request_id,
        })


__all__ = ["GenerationTracker"]
