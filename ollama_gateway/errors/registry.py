"""Authorized client registry exceptions."""


class RegistryCorruptError(Exception):
    """Raised when a registry file cannot be parsed.

    Recoverable: the registry falls back to the newest valid backup.
    """

    def __init__(self, path: str, detail: str) -> None:
        super().__init__(f"registry file {path} is corrupt: {detail}")
        self.path = path
        self.detail = detail


class RegistryUnrecoverableError(Exception):
    """Raised when neither the primary file nor any backup can be loaded."""


class ClientNotFoundError(LookupError):
    """Raised when a client id (or name) is not registered."""

    def __init__(self, client_id: str) -> None:
        super().__init__(f"client not found: {client_id}")
        self.client_id = client_id


class ClientExistsError(Exception):
    """Raised when adding an identity whose id is already registered."""

    def __init__(self, client_id: str) -> None:
        super().__init__(f"client already registered: {client_id}")
        self.client_id = client_id


class InvalidPublicKeyError(ValueError):
    """Raised when a public key or signature algorithm is unusable."""


__all__ = [
    "RegistryCorruptError",
    "RegistryUnrecoverableError",
    "ClientNotFoundError",
    "ClientExistsError",
    "InvalidPublicKeyError",
]
