"""Unit tests for exception-to-metric classification."""

from __future__ import annotations

from ollama_gateway.errors import (
    RateLimitError,
    ValidationError,
    AuthRejectedError,
    AuthTimeoutError,
    RegistryCorruptError,
    BackendUnavailableError,
    GenerationConflictError,
    GenerationCancelledError,
    RegistryUnrecoverableError,
    classify_error,
)


def test_classify_error_known_categories() -> None:
    assert classify_error(ValidationError("missing_prompt", "bad payload")) == "validation"
    assert classify_error(RateLimitError(retry_in=1.0, limit=10, window_seconds=1.0)) == "rate_limit"
    assert classify_error(AuthTimeoutError()) == "auth_timeout"
    assert classify_error(AuthRejectedError("bad_signature")) == "auth_rejected"
    assert classify_error(RegistryCorruptError("clients.json", "truncated")) == "registry_corrupt"
    assert classify_error(RegistryUnrecoverableError()) == "registry_unrecoverable"
    assert classify_error(GenerationConflictError("c1", "r1")) == "generation_conflict"
    assert classify_error(GenerationCancelledError()) == "cancelled"
    assert classify_error(BackendUnavailableError("refused")) == "backend_unavailable"
    assert classify_error(TimeoutError("deadline exceeded")) == "timeout"
    assert classify_error(ConnectionError("socket closed")) == "connection"


def test_classify_error_defaults_to_unknown() -> None:
    assert classify_error(RuntimeError("boom")) == "unknown"
