"""Authentication exceptions.

AuthRejectedError carries a machine-readable reason which is forwarded to
the client verbatim in the ``auth_result`` frame. Reasons are defined in
``ollama_gateway.config.auth``.
"""


class AuthTimeoutError(Exception):
    """Raised when a challenge was not answered before its deadline."""


class AuthRejectedError(Exception):
    """Raised when a challenge response cannot be accepted.

    Attributes:
        reason: One of unknown_client, revoked, bad_signature,
            replayed_challenge, rate_limited, registry_unavailable, timeout.
        retry_after: Seconds before another attempt is allowed; zero unless
            the ip/client pair is blocked.
        remaining_attempts: Failures left before blocking, when known.
    """

    def __init__(
        self,
        reason: str,
        message: str | None = None,
        *,
        retry_after: int = 0,
        remaining_attempts: int | None = None,
    ) -> None:
        super().__init__(message or f"authentication rejected: {reason}")
        self.reason = reason
        self.retry_after = max(0, int(retry_after))
        self.remaining_attempts = remaining_attempts


__all__ = ["AuthTimeoutError", "AuthRejectedError"]
