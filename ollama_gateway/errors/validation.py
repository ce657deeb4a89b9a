"""Inbound frame validation errors."""


class ValidationError(Exception):
    """A client frame or REST body failed validation.

    ``error_code`` is sent to the client in the ``error`` frame (or the
    400 body) next to the human-readable ``message``.
    """

    def __init__(self, error_code: str, message: str) -> None:
        super().__init__(message)
        self.error_code = error_code
        self.message = message


__all__ = ["ValidationError"]
