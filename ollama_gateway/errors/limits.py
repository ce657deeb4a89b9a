"""Rate limiting exception carrying retry metadata."""


class RateLimitError(Exception):
    """Raised when a per-connection message limiter rejects a frame.

    Attributes:
        retry_in: Seconds until the oldest event leaves the window.
        limit: Events allowed per window.
        window_seconds: Window length.
    """

    def __init__(
        self,
        *,
        retry_in: float,
        limit: int,
        window_seconds: float,
        message: str | None = None,
    ) -> None:
        super().__init__(message or "rate limit exceeded")
        self.retry_in = max(0.0, float(retry_in))
        self.limit = max(0, int(limit))
        self.window_seconds = max(0.0, float(window_seconds))


__all__ = ["RateLimitError"]
