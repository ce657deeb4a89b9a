"""Telemetry configuration: env vars, metric specs, span names, Sentry constants."""

import os

# ---------------------------------------------------------------------------
# Sentry
# ---------------------------------------------------------------------------
SENTRY_DSN: str = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT: str = os.getenv("SENTRY_ENVIRONMENT", "production")
SENTRY_RELEASE: str = os.getenv("SENTRY_RELEASE", "")
SENTRY_SAMPLE_RATE: float = float(os.getenv("SENTRY_SAMPLE_RATE", "1.0"))

# ---------------------------------------------------------------------------
# OTLP / OTel
# ---------------------------------------------------------------------------
OTEL_EXPORTER_ENDPOINT: str = os.getenv("OTEL_EXPORTER_ENDPOINT", "")
OTEL_EXPORTER_TOKEN: str = os.getenv("OTEL_EXPORTER_TOKEN", "")
OTEL_ENVIRONMENT: str = os.getenv("OTEL_ENVIRONMENT", "production")
OTEL_SERVICE_NAME: str = os.getenv("OTEL_SERVICE_NAME", "ollama-gateway")
OTEL_TRACES_EXPORT_INTERVAL_MS: int = int(os.getenv("OTEL_TRACES_EXPORT_INTERVAL_MS", "5000"))
OTEL_METRICS_EXPORT_INTERVAL_MS: int = int(os.getenv("OTEL_METRICS_EXPORT_INTERVAL_MS", "15000"))
OTEL_TRACES_BATCH_SIZE: int = int(os.getenv("OTEL_TRACES_BATCH_SIZE", "512"))

# ---------------------------------------------------------------------------
# Metric spec tuples: (name, unit, description)
# ---------------------------------------------------------------------------

# Histograms
METRIC_TTFT = ("gateway.ttft", "s", "Time to first backend token")
METRIC_GENERATION_LATENCY = ("gateway.generation_latency", "s", "End-to-end generation latency")
METRIC_CONNECTION_DURATION = ("gateway.connection_duration", "s", "WebSocket session duration")
METRIC_AUTH_LATENCY = ("gateway.auth_latency", "s", "Challenge issue to verification")

# Counters
METRIC_AUTH_ATTEMPTS_TOTAL = ("gateway.auth_attempts_total", "{attempt}", "Authentication attempts by outcome")
METRIC_GENERATIONS_TOTAL = ("gateway.generations_total", "{request}", "Generations started")
METRIC_TOKENS_STREAMED_TOTAL = ("gateway.tokens_streamed_total", "{token}", "Backend chunks forwarded")
METRIC_CANCELLATION_TOTAL = ("gateway.cancellation_total", "{request}", "Generations cancelled")
METRIC_CONFLICTS_TOTAL = ("gateway.generation_conflicts_total", "{request}", "Rejected concurrent generations")
METRIC_DISCONNECTS_TOTAL = ("gateway.disconnects_total", "{connection}", "Server-initiated disconnects by reason")
METRIC_ERRORS_TOTAL = ("gateway.errors_total", "{error}", "Unhandled errors")
METRIC_RATE_LIMIT_VIOLATIONS_TOTAL = (
    "gateway.rate_limit_violations_total",
    "{violation}",
    "Rate limit hits",
)

# UpDown counters
METRIC_ACTIVE_CONNECTIONS = ("gateway.active_connections", "{connection}", "Current WebSocket connections")
METRIC_ACTIVE_GENERATIONS = ("gateway.active_generations", "{generation}", "Currently running generations")

# ---------------------------------------------------------------------------
# Span names
# ---------------------------------------------------------------------------
SPAN_SESSION = "gateway.session"
SPAN_GENERATION = "gateway.generation"

# ---------------------------------------------------------------------------
# Sentry constants
# ---------------------------------------------------------------------------
SENTRY_RATE_LIMIT_S: float = 10.0
# Event extras never forwarded to Sentry
SENTRY_SCRUBBED_KEYS = frozenset({"signature", "public_key", "publicKey", "challenge", "prompt"})


__all__ = [
    # Sentry env
    "SENTRY_DSN",
    "SENTRY_ENVIRONMENT",
    "SENTRY_RELEASE",
    "SENTRY_SAMPLE_RATE",
    # OTel env
    "OTEL_EXPORTER_ENDPOINT",
    "OTEL_EXPORTER_TOKEN",
    "OTEL_ENVIRONMENT",
    "OTEL_SERVICE_NAME",
    "OTEL_TRACES_EXPORT_INTERVAL_MS",
    "OTEL_METRICS_EXPORT_INTERVAL_MS",
    "OTEL_TRACES_BATCH_SIZE",
    # Histograms
    "METRIC_TTFT",
    "METRIC_GENERATION_LATENCY",
    "METRIC_CONNECTION_DURATION",
    "METRIC_AUTH_LATENCY",
    # Counters
    "METRIC_AUTH_ATTEMPTS_TOTAL",
    "METRIC_GENERATIONS_TOTAL",
    "METRIC_TOKENS_STREAMED_TOTAL",
    "METRIC_CANCELLATION_TOTAL",
    "METRIC_CONFLICTS_TOTAL",
    "METRIC_DISCONNECTS_TOTAL",
    "METRIC_ERRORS_TOTAL",
    "METRIC_RATE_LIMIT_VIOLATIONS_TOTAL",
    # UpDown counters
    "METRIC_ACTIVE_CONNECTIONS",
    "METRIC_ACTIVE_GENERATIONS",
    # Span names
    "SPAN_SESSION",
    "SPAN_GENERATION",
    # Sentry constants
    "SENTRY_RATE_LIMIT_S",
    "SENTRY_SCRUBBED_KEYS",
]
