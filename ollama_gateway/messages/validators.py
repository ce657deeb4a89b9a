"""Shared validation helpers for message handlers."""

from __future__ import annotations

from typing import Any
from dataclasses import dataclass

from ..errors import ValidationError
from ..config.limits import (
    PROMPT_MAX_CHARS,
    MODEL_NAME_MAX_CHARS,
    REQUEST_ID_MAX_CHARS,
)


@dataclass(frozen=True, slots=True)
class GenerateRequest:
    prompt: str
    model: str | None
    options: dict[str, Any]
    request_id: str | None


def require_string(
    raw: Any,
    *,
    field_label: str,
    missing_error_code: str,
    max_chars: int,
) -> str:
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        raise ValidationError(missing_error_code, f"{field_label} is required and cannot be empty")
    if not isinstance(raw, str):
        raise ValidationError("validation_error", f"{field_label} must be a string")
    if len(raw) > max_chars:
        raise ValidationError(
            "validation_error",
            f"{field_label} must be at most {max_chars} characters",
        )
    return raw


def optional_string(raw: Any, *, field_label: str, max_chars: int) -> str | None:
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str):
        raise ValidationError("validation_error", f"{field_label} must be a string")
    value = raw.strip()
    if len(value) > max_chars:
        raise ValidationError(
            "validation_error",
            f"{field_label} must be at most {max_chars} characters",
        )
    return value or None


def validate_options(raw: Any) -> dict[str, Any]:
    """Backend options are forwarded untouched; only the shape is checked."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ValidationError("validation_error", "options must be a JSON object")
    return dict(raw)


def validate_generate_message(msg: dict[str, Any]) -> GenerateRequest:
    """Validate a ``generate`` frame.

    Raises:
        ValidationError: ``missing_prompt`` or ``validation_error``.
    """
    prompt = require_string(
        msg.get("prompt"),
        field_label="prompt",
        missing_error_code="missing_prompt",
        max_chars=PROMPT_MAX_CHARS,
    )
    return GenerateRequest(
        prompt=prompt,
        model=optional_string(msg.get("model"), field_label="model", max_chars=MODEL_NAME_MAX_CHARS),
        options=validate_options(msg.get("options")),
        request_id=optional_string(
            msg.get("request_id"),
            field_label="request_id",
            max_chars=REQUEST_ID_MAX_CHARS,
        ),
    )


def validate_authenticate_message(msg: dict[str, Any]) -> tuple[str, str]:
    """Return ``(client_id, signature)`` from an ``authenticate`` frame."""
    client_id = msg.get("client_id", msg.get("clientId"))
    signature = msg.get("signature")
    if not isinstance(client_id, str) or not client_id.strip():
        raise ValidationError("missing_client_id", "authenticate requires 'client_id'")
    if not isinstance(signature, str) or not signature.strip():
        raise ValidationError("missing_signature", "authenticate requires 'signature'")
    return client_id.strip(), signature.strip()


__all__ = [
    "GenerateRequest",
    "require_string",
    "optional_string",
    "validate_options",
    "validate_generate_message",
    "validate_authenticate_message",
]
