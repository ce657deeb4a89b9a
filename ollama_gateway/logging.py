"""Per-connection logging fields carried through context variables.

Every log line emitted while serving a connection carries the connection,
request and client ids. The WebSocket loop binds ``connection_id``, the
handshake adds ``client_id`` and the generation task adds ``request_id``;
Sentry reads the same values through ``current_log_context``.
"""

from __future__ import annotations

import logging
import contextlib
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import Token, ContextVar

LOG_FIELDS = ("connection_id", "request_id", "client_id")

_UNSET = "-"
_VARS: dict[str, ContextVar[str]] = {name: ContextVar(name, default=_UNSET) for name in LOG_FIELDS}


def current_log_context() -> dict[str, str]:
    """Snapshot of the bound fields; unbound ones read as ``-``."""
    return {name: var.get() for name, var in _VARS.items()}


@contextmanager
def log_context(**fields: str | None) -> Iterator[None]:
    """Bind log fields for the duration of a block.

    ``None`` values leave the current binding untouched, so nested blocks
    only need to name what they add.
    """
    unknown = set(fields) - set(_VARS)
    if unknown:
        raise TypeError(f"unknown log fields: {sorted(unknown)}")

    bound: list[tuple[ContextVar[str], Token[str]]] = [
        (_VARS[name], _VARS[name].set(value)) for name, value in fields.items() if value is not None
    ]
    try:
        yield
    finally:
        for var, token in reversed(bound):
            var.reset(token)


def _install_record_factory() -> None:
    if getattr(_install_record_factory, "installed", False):
        return
    base_factory = logging.getLogRecordFactory()

    def factory(*args, **kwargs) -> logging.LogRecord:
        record = base_factory(*args, **kwargs)
        for name, var in _VARS.items():
            setattr(record, name, var.get())
        return record

    logging.setLogRecordFactory(factory)
    _install_record_factory.installed = True  # type: ignore[attr-defined]


def configure_logging() -> None:
    """Apply APP_LOG_* settings to the root logger. Safe to call repeatedly."""
    from .config.logging import APP_LOG_LEVEL, APP_LOG_FORMAT, APP_LOG_DATEFMT  # noqa: PLC0415

    _install_record_factory()
    root = logging.getLogger()
    if root.handlers:
        # uvicorn or pytest installed handlers already; restyle them in place
        formatter = logging.Formatter(APP_LOG_FORMAT, datefmt=APP_LOG_DATEFMT)
        root.setLevel(APP_LOG_LEVEL)
        for handler in root.handlers:
            with contextlib.suppress(ValueError, TypeError):
                handler.setFormatter(formatter)
    else:
        logging.basicConfig(level=APP_LOG_LEVEL, format=APP_LOG_FORMAT, datefmt=APP_LOG_DATEFMT)

    logging.getLogger("ollama_gateway").setLevel(APP_LOG_LEVEL)
    logging.getLogger("httpx").setLevel(logging.WARNING)


__all__ = ["LOG_FIELDS", "log_context", "current_log_context", "configure_logging"]
