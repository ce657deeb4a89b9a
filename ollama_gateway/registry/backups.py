"""Rotating backups of the primary registry file.

Each backup is a byte copy of the primary file named
``clients_<timestamp>_<hash8>.json`` with a ``.meta.json`` sidecar:

    {
        "id": "<hash8>",
        "timestamp": "2026-01-01T00:00:00.000000Z",
        "sourceFile": "/data/authorized_clients.json",
        "backupFile": "/data/backups/clients_...json",
        "clientCount": 3,
        "contentHash": "<sha256>"
    }

Timestamps in file names sort chronologically, so rotation works on names
alone and never depends on filesystem mtimes.
"""

from __future__ import annotations

import json
import logging
import contextlib
from datetime import datetime, timezone
from pathlib import Path

from ..helpers.io import content_hash, write_json_atomic, write_text_atomic
from ..config.registry import BACKUP_PREFIX, BACKUP_HASH_CHARS, BACKUP_META_SUFFIX

logger = logging.getLogger(__name__)

_BACKUP_TS_FORMAT = "%Y-%m-%dT%H-%M-%S-%fZ"


def meta_path_for(backup: Path) -> Path:
    return backup.with_name(backup.stem + BACKUP_META_SUFFIX)


def list_backups(backups_dir: Path) -> list[Path]:
    """Return backup files newest first."""
    if not backups_dir.is_dir():
        return []
    backups = [
        path
        for path in backups_dir.glob(f"{BACKUP_PREFIX}*.json")
        if not path.name.endswith(BACKUP_META_SUFFIX)
    ]
    return sorted(backups, key=lambda path: path.name, reverse=True)


def _unique_backup_path(backups_dir: Path, stamp: str, digest: str) -> Path:
    candidate = backups_dir / f"{BACKUP_PREFIX}{stamp}_{digest}.json"
    suffix = 1
    while candidate.exists():
        candidate = backups_dir / f"{BACKUP_PREFIX}{stamp}_{digest}-{suffix}.json"
        suffix += 1
    return candidate


def create_backup(source: Path, backups_dir: Path, *, max_backups: int) -> Path | None:
    """Copy ``source`` into ``backups_dir`` and rotate old backups.

    Returns the new backup path, or None when there is no primary file yet.
    """
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None

    now = datetime.now(timezone.utc)
    full_hash = content_hash(text)
    digest = full_hash[:BACKUP_HASH_CHARS]
    backups_dir.mkdir(parents=True, exist_ok=True)
    backup_path = _unique_backup_path(backups_dir, now.strftime(_BACKUP_TS_FORMAT), digest)

    write_text_atomic(backup_path, text)
    write_json_atomic(
        meta_path_for(backup_path),
        {
            "id": digest,
            "timestamp": now.isoformat().replace("+00:00", "Z"),
            "sourceFile": str(source),
            "backupFile": str(backup_path),
            "clientCount": _count_entries(text),
            "contentHash": full_hash,
        },
    )
    logger.info("registry backup created: %s", backup_path.name)
    rotate_backups(backups_dir, max_backups)
    return backup_path


def rotate_backups(backups_dir: Path, max_backups: int) -> list[Path]:
    """Delete the oldest backups (and sidecars) beyond ``max_backups``."""
    keep = max(1, int(max_backups))
    removed = list_backups(backups_dir)[keep:]
    for backup in removed:
        backup.unlink(missing_ok=True)
        meta_path_for(backup).unlink(missing_ok=True)
        logger.debug("registry backup rotated out: %s", backup.name)
    return removed


def _count_entries(text: str) -> int:
    with contextlib.suppress(json.JSONDecodeError):
        data = json.loads(text)
        if isinstance(data, list):
            return len(data)
    return 0


__all__ = ["create_backup", "list_backups", "rotate_backups", "meta_path_for"]
