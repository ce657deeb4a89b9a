"""Spans for WebSocket sessions and the backend generations they start."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager

from opentelemetry import trace

from ..logging import current_log_context
from ..config.telemetry import SPAN_SESSION, SPAN_GENERATION, OTEL_SERVICE_NAME


@contextmanager
def _span(name: str, attributes: dict[str, str]) -> Iterator[trace.Span]:
    tracer = trace.get_tracer(OTEL_SERVICE_NAME)
    with tracer.start_as_current_span(name, attributes=attributes) as span:
        yield span


def session_span(*, connection_id: str, remote_address: str):
    """Span covering one WebSocket connection from accept to close."""
    return _span(SPAN_SESSION, {"gateway.connection_id": connection_id, "net.peer.ip": remote_address})


def generation_span(*, request_id: str, model: str):
    """Span around the backend call; the owning client comes from the log context."""
    return _span(SPAN_GENERATION, {
        "gateway.request_id": request_id,
        "gateway.client_id": current_log_context()["client_id"],
        "gen_ai.request.model": model,
    })


__all__ = ["session_span", "generation_span"]
