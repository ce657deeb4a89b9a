"""On-disk layout of the authorized client registry."""

import os


CLIENTS_FILE = "authorized_clients.json"
BACKUPS_DIR = "backups"
REVOKED_DIR = "revoked"
# Advisory lock shared by every process that writes the registry
LOCK_FILE = ".registry.lock"

DEFAULT_MAX_BACKUPS = int(os.getenv("DEFAULT_MAX_BACKUPS", "10"))

BACKUP_PREFIX = "clients_"
BACKUP_META_SUFFIX = ".meta.json"
BACKUP_HASH_CHARS = 8

# How often the server re-reads revocations written by the admin CLI
REGISTRY_POLL_INTERVAL_S = float(os.getenv("REGISTRY_POLL_INTERVAL_S", "5"))

DEFAULT_REVOCATION_REASON = "Manual revocation"


__all__ = [
    "CLIENTS_FILE",
    "BACKUPS_DIR",
    "REVOKED_DIR",
    "LOCK_FILE",
    "DEFAULT_MAX_BACKUPS",
    "BACKUP_PREFIX",
    "BACKUP_META_SUFFIX",
    "BACKUP_HASH_CHARS",
    "REGISTRY_POLL_INTERVAL_S",
    "DEFAULT_REVOCATION_REASON",
]
