"""Generation tracking exceptions.

Cancellation is a normal terminal outcome; GenerationCancelledError exists
so the backend stream can tell callers apart from real failures.
"""


class GenerationConflictError(Exception):
    """Raised when a session already has an active generation."""

    def __init__(self, connection_id: str, active_request_id: str) -> None:
        super().__init__(f"generation {active_request_id} already active")
        self.connection_id = connection_id
        self.active_request_id = active_request_id


class GenerationUnauthenticatedError(Exception):
    """Raised when an unauthenticated session asks for a generation."""


class GenerationNotFoundError(LookupError):
    """Raised when cancelling a session that has no active generation."""


class GenerationCancelledError(Exception):
    """Raised inside the backend stream when its cancel token fires."""


class BackendUnavailableError(Exception):
    """Raised when the inference backend cannot serve a request.

    Attributes:
        status_code: HTTP status returned by the backend, if any.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


__all__ = [
    "GenerationConflictError",
    "GenerationUnauthenticatedError",
    "GenerationNotFoundError",
    "GenerationCancelledError",
    "BackendUnavailableError",
]
