"""Sentry error reporting for the gateway.

Events are tagged with the connection, request and client ids bound in the
logging context. At most one event per exception class is sent every
``SENTRY_RATE_LIMIT_S`` seconds so a flapping backend cannot flood the
project. Challenge signatures and public keys are dropped from event extras.
"""

from __future__ import annotations

import time
import logging
from typing import Any

from ..logging import current_log_context
from ..config.telemetry import (
    SENTRY_DSN,
    SENTRY_RELEASE,
    SENTRY_ENVIRONMENT,
    SENTRY_SAMPLE_RATE,
    SENTRY_RATE_LIMIT_S,
    SENTRY_SCRUBBED_KEYS,
)

logger = logging.getLogger(__name__)

_last_sent: dict[str, float] = {}
_enabled = False


def _scrub(event: dict[str, Any], _hint: dict[str, Any]) -> dict[str, Any]:
    extra = event.get("extra")
    if isinstance(extra, dict):
        for key in SENTRY_SCRUBBED_KEYS.intersection(extra):
            extra[key] = "[scrubbed]"
    return event


def _throttled(error: BaseException) -> bool:
    key = f"{type(error).__module__}.{type(error).__qualname__}"
    now = time.monotonic()
    if now - _last_sent.get(key, float("-inf")) < SENTRY_RATE_LIMIT_S:
        return True
    _last_sent[key] = now
    return False


def init_sentry() -> None:
    """Initialize the Sentry SDK once."""
    global _enabled  # noqa: PLW0603
    if _enabled:
        return
    import sentry_sdk

    sentry_sdk.init(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        release=SENTRY_RELEASE or None,
        sample_rate=SENTRY_SAMPLE_RATE,
        traces_sample_rate=0.0,
        send_default_pii=False,
        before_send=_scrub,
    )
    _enabled = True
    logger.info("Sentry enabled (environment=%s)", SENTRY_ENVIRONMENT)


def shutdown_sentry() -> None:
    global _enabled  # noqa: PLW0603
    if not _enabled:
        return
    import sentry_sdk

    sentry_sdk.flush(timeout=2.0)
    _enabled = False


def capture_error(error: BaseException, *, extra: dict[str, Any] | None = None, **tags: str | None) -> None:
    """Report ``error`` tagged with the current log context.

    Keyword ``tags`` override context values (e.g. ``request_id=...`` from a
    task that never bound one). No-op until ``init_sentry`` ran.
    """
    if not _enabled or _throttled(error):
        return
    import sentry_sdk

    context = current_log_context()
    context.update({name: value for name, value in tags.items() if value is not None})
    with sentry_sdk.new_scope() as scope:
        for name, value in context.items():
            scope.set_tag(name, value)
        for name, value in (extra or {}).items():
            scope.set_extra(name, value)
        sentry_sdk.capture_exception(error)


def add_breadcrumb(message: str, *, category: str, level: str = "info", data: dict[str, Any] | None = None) -> None:
    """Record an auth or session event for the next reported error."""
    if not _enabled:
        return
    import sentry_sdk

    sentry_sdk.add_breadcrumb(message=message, category=category, level=level, data=data or {})


__all__ = ["init_sentry", "shutdown_sentry", "capture_error", "add_breadcrumb"]
