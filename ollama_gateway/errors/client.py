"""Exceptions raised by the bundled gateway client."""


class GatewayClientError(Exception):
    """Base class for client-side failures."""


class ClientAuthError(GatewayClientError):
    """The gateway refused the challenge response.

    Attributes:
        reason: The ``reason`` from the ``auth_result`` frame.
        retry_after: Seconds the gateway asked the client to wait, if any.
    """

    def __init__(self, reason: str, *, retry_after: int | None = None) -> None:
        message = f"authentication failed: {reason}"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message)
        self.reason = reason
        self.retry_after = retry_after


class ClientRequestError(GatewayClientError):
    """The gateway answered a request with an ``error`` frame."""

    def __init__(self, error_code: str, message: str, *, request_id: str | None = None) -> None:
        super().__init__(f"{error_code}: {message}")
        self.error_code = error_code
        self.request_id = request_id


class ConnectionLostError(GatewayClientError):
    """The connection closed while a request was outstanding."""

    def __init__(self, reason: str | None = None) -> None:
        super().__init__(f"connection closed: {reason or 'unknown'}")
        self.reason = reason


__all__ = ["GatewayClientError", "ClientAuthError", "ClientRequestError", "ConnectionLostError"]
