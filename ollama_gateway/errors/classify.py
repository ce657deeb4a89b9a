"""Map exceptions to telemetry error-type labels."""

from __future__ import annotations

from .limits import RateLimitError
from .validation import ValidationError
from .auth import AuthRejectedError, AuthTimeoutError
from .registry import RegistryCorruptError, RegistryUnrecoverableError
from .generation import (
    BackendUnavailableError,
    GenerationConflictError,
    GenerationCancelledError,
)

ERROR_TYPE_LABELS: tuple[tuple[type[BaseException], str], ...] = (
    (ValidationError, "validation"),
    (RateLimitError, "rate_limit"),
    (AuthTimeoutError, "auth_timeout"),
    (AuthRejectedError, "auth_rejected"),
    (RegistryCorruptError, "registry_corrupt"),
    (RegistryUnrecoverableError, "registry_unrecoverable"),
    (GenerationConflictError, "generation_conflict"),
    (GenerationCancelledError, "cancelled"),
    (BackendUnavailableError, "backend_unavailable"),
    (TimeoutError, "timeout"),
    (ConnectionError, "connection"),
)


def classify_error(exc: BaseException) -> str:
    """Return the telemetry error type label for an exception."""

    for exception_type, label in ERROR_TYPE_LABELS:
        if isinstance(exc, exception_type):
            return label
    return "unknown"


__all__ = ["classify_error"]
