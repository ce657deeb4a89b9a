"""Start and stop the telemetry backends around the server lifecycle."""

from __future__ import annotations

import logging

from .otel import init_otel, shutdown_otel
from .sentry import init_sentry, shutdown_sentry
from .instruments import initialize_metrics
from ..config.telemetry import SENTRY_DSN, OTEL_EXPORTER_ENDPOINT

logger = logging.getLogger(__name__)


def init_telemetry() -> None:
    """Enable whichever of OTel and Sentry is configured; both are optional."""
    enabled = []
    if OTEL_EXPORTER_ENDPOINT:
        init_otel()
        initialize_metrics()
        enabled.append("otel")
    if SENTRY_DSN:
        init_sentry()
        enabled.append("sentry")
    logger.info("telemetry: %s", ", ".join(enabled) or "disabled")


def shutdown_telemetry() -> None:
    shutdown_sentry()
    shutdown_otel()


__all__ = ["init_telemetry", "shutdown_telemetry"]
