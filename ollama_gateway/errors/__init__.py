"""Centralized exception classes for the gateway.

This module re-exports all domain-specific exceptions from their respective
modules, providing a single import point for error handling.

Organization:
    - auth.py: Challenge-response failures (timeout, rejection reasons)
    - registry.py: Client registry persistence and lookup errors
    - generation.py: Generation admission, cancellation and backend errors
    - limits.py: Rate limiting errors with retry info
    - validation.py: Input validation errors with error codes
    - client.py: Failures seen by the bundled Python client
    - classify.py: Exception-to-telemetry label mapping
"""

from .limits import RateLimitError
from .classify import classify_error
from .validation import ValidationError
from .client import (
    ClientAuthError,
    GatewayClientError,
    ClientRequestError,
    ConnectionLostError,
)
from .auth import AuthRejectedError, AuthTimeoutError
from .registry import (
    ClientExistsError,
    ClientNotFoundError,
    RegistryCorruptError,
    InvalidPublicKeyError,
    RegistryUnrecoverableError,
)
from .generation import (
    BackendUnavailableError,
    GenerationConflictError,
    GenerationNotFoundError,
    GenerationCancelledError,
    GenerationUnauthenticatedError,
)

__all__ = [
    # Authentication
    "AuthTimeoutError",
    "AuthRejectedError",
    # Registry
    "RegistryCorruptError",
    "RegistryUnrecoverableError",
    "ClientNotFoundError",
    "ClientExistsError",
    "InvalidPublicKeyError",
    # Generation
    "GenerationConflictError",
    "GenerationUnauthenticatedError",
    "GenerationNotFoundError",
    "GenerationCancelledError",
    "BackendUnavailableError",
    # Rate limiting
    "RateLimitError",
    # Validation
    "ValidationError",
    # Client
    "GatewayClientError",
    "ClientAuthError",
    "ClientRequestError",
    "ConnectionLostError",
    # Classification
    "classify_error",
]
