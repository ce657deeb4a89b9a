"""OpenTelemetry providers exporting gateway traces and metrics over OTLP/HTTP."""

from __future__ import annotations

import socket
import logging

from opentelemetry import trace, metrics
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter

from ..config.telemetry import (
    OTEL_ENVIRONMENT,
    OTEL_SERVICE_NAME,
    OTEL_EXPORTER_TOKEN,
    OTEL_EXPORTER_ENDPOINT,
    OTEL_TRACES_BATCH_SIZE,
    OTEL_TRACES_EXPORT_INTERVAL_MS,
    OTEL_METRICS_EXPORT_INTERVAL_MS,
)

logger = logging.getLogger(__name__)

_providers: tuple[TracerProvider, MeterProvider] | None = None


def _endpoint(signal: str) -> str:
    return f"{OTEL_EXPORTER_ENDPOINT.rstrip('/')}/v1/{signal}"


def _headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {OTEL_EXPORTER_TOKEN}"} if OTEL_EXPORTER_TOKEN else {}


def _tracer_provider(resource: Resource) -> TracerProvider:
    provider = TracerProvider(resource=resource)
    provider.add_span_processor(
        BatchSpanProcessor(
            OTLPSpanExporter(endpoint=_endpoint("traces"), headers=_headers()),
            max_export_batch_size=OTEL_TRACES_BATCH_SIZE,
            schedule_delay_millis=OTEL_TRACES_EXPORT_INTERVAL_MS,
        )
    )
    return provider


def _meter_provider(resource: Resource) -> MeterProvider:
    reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=_endpoint("metrics"), headers=_headers()),
        export_interval_millis=OTEL_METRICS_EXPORT_INTERVAL_MS,
    )
    return MeterProvider(resource=resource, metric_readers=[reader])


def init_otel() -> None:
    """Install global tracer and meter providers once per process."""
    global _providers  # noqa: PLW0603
    if _providers is not None:
        return

    resource = Resource.create({
        "service.name": OTEL_SERVICE_NAME,
        "deployment.environment": OTEL_ENVIRONMENT,
        "host.name": socket.gethostname(),
    })
    tracer_provider = _tracer_provider(resource)
    meter_provider = _meter_provider(resource)
    trace.set_tracer_provider(tracer_provider)
    metrics.set_meter_provider(meter_provider)
    _providers = (tracer_provider, meter_provider)
    logger.info("OTel exporting to %s", OTEL_EXPORTER_ENDPOINT)


def shutdown_otel() -> None:
    """Flush pending spans and metrics, then drop the providers."""
    global _providers  # noqa: PLW0603
    if _providers is None:
        return
    for provider in _providers:
        provider.force_flush()
        provider.shutdown()
    _providers = None


__all__ = ["init_otel", "shutdown_otel"]
