"""Authorized client registry: persistence, backups, revocation."""

from .watcher import RegistryWatcher
from .client_registry import ClientRegistry, RevocationListener
from .backups import list_backups, create_backup, rotate_backups

__all__ = [
    "ClientRegistry",
    "RegistryWatcher",
    "RevocationListener",
    "create_backup",
    "list_backups",
    "rotate_backups",
]
