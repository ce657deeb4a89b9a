"""OTel instruments recorded by the gateway, grouped by the component that owns them."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from opentelemetry import metrics

from ..config.telemetry import (
    METRIC_TTFT,
    OTEL_SERVICE_NAME,
    METRIC_ERRORS_TOTAL,
    METRIC_AUTH_LATENCY,
    METRIC_CONFLICTS_TOTAL,
    METRIC_GENERATIONS_TOTAL,
    METRIC_DISCONNECTS_TOTAL,
    METRIC_ACTIVE_CONNECTIONS,
    METRIC_ACTIVE_GENERATIONS,
    METRIC_CANCELLATION_TOTAL,
    METRIC_GENERATION_LATENCY,
    METRIC_AUTH_ATTEMPTS_TOTAL,
    METRIC_CONNECTION_DURATION,
    METRIC_TOKENS_STREAMED_TOTAL,
    METRIC_RATE_LIMIT_VIOLATIONS_TOTAL,
)

logger = logging.getLogger(__name__)

MetricSpec = tuple[str, str, str]


@dataclass(frozen=True, slots=True)
class MetricInstruments:
    # SessionManager
    active_connections: metrics.UpDownCounter
    connection_duration: metrics.Histogram
    disconnects_total: metrics.Counter
    # ChallengeAuthenticator
    auth_attempts_total: metrics.Counter
    auth_latency: metrics.Histogram
    # GenerationTracker
    generations_total: metrics.Counter
    active_generations: metrics.UpDownCounter
    conflicts_total: metrics.Counter
    cancellation_total: metrics.Counter
    tokens_streamed_total: metrics.Counter
    ttft: metrics.Histogram
    generation_latency: metrics.Histogram
    errors_total: metrics.Counter
    # Inbound message limits
    rate_limit_violations_total: metrics.Counter

    @classmethod
    def from_meter(cls, meter: metrics.Meter) -> "MetricInstruments":
        def counter(spec: MetricSpec) -> metrics.Counter:
            name, unit, description = spec
            return meter.create_counter(name, unit=unit, description=description)

        def gauge(spec: MetricSpec) -> metrics.UpDownCounter:
            name, unit, description = spec
            return meter.create_up_down_counter(name, unit=unit, description=description)

        def histogram(spec: MetricSpec) -> metrics.Histogram:
            name, unit, description = spec
            return meter.create_histogram(name, unit=unit, description=description)

        return cls(
            active_connections=gauge(METRIC_ACTIVE_CONNECTIONS),
            connection_duration=histogram(METRIC_CONNECTION_DURATION),
            disconnects_total=counter(METRIC_DISCONNECTS_TOTAL),
            auth_attempts_total=counter(METRIC_AUTH_ATTEMPTS_TOTAL),
            auth_latency=histogram(METRIC_AUTH_LATENCY),
            generations_total=counter(METRIC_GENERATIONS_TOTAL),
            active_generations=gauge(METRIC_ACTIVE_GENERATIONS),
            conflicts_total=counter(METRIC_CONFLICTS_TOTAL),
            cancellation_total=counter(METRIC_CANCELLATION_TOTAL),
            tokens_streamed_total=counter(METRIC_TOKENS_STREAMED_TOTAL),
            ttft=histogram(METRIC_TTFT),
            generation_latency=histogram(METRIC_GENERATION_LATENCY),
            errors_total=counter(METRIC_ERRORS_TOTAL),
            rate_limit_violations_total=counter(METRIC_RATE_LIMIT_VIOLATIONS_TOTAL),
        )


_instruments: MetricInstruments | None = None


def get_metrics() -> MetricInstruments:
    """Instruments bound to the global meter; no-op until OTel is initialized."""
    global _instruments  # noqa: PLW0603
    if _instruments is None:
        _instruments = MetricInstruments.from_meter(metrics.get_meter(OTEL_SERVICE_NAME))
    return _instruments


def initialize_metrics() -> None:
    """Rebind the instruments after a real MeterProvider was installed."""
    global _instruments  # noqa: PLW0603
    _instruments = MetricInstruments.from_meter(metrics.get_meter(OTEL_SERVICE_NAME))
    logger.debug("metric instruments bound to %s", OTEL_SERVICE_NAME)


__all__ = ["MetricInstruments", "get_metrics", "initialize_metrics"]
