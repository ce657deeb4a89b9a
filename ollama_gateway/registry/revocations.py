"""Append-only revocation records, one JSON file per revocation."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from ..state import RevocationRecord
from ..helpers.io import write_json_atomic

logger = logging.getLogger(__name__)


def record_path(revoked_dir: Path, record: RevocationRecord) -> Path:
    stamp = record.revoked_at_dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
    return revoked_dir / f"{record.client_id}_{stamp}.json"


def write_revocation(revoked_dir: Path, record: RevocationRecord) -> Path:
    """Persist ``record``; existing records are never overwritten."""
    path = record_path(revoked_dir, record)
    if path.exists():
        raise FileExistsError(f"revocation record already exists: {path}")
    write_json_atomic(path, record.to_dict())
    return path


def load_revocations(revoked_dir: Path) -> dict[str, RevocationRecord]:
    """Return the newest revocation record per client id.

    Unreadable files are logged and skipped; the identity they describe has
    already been removed from the primary file.
    """
    records: dict[str, RevocationRecord] = {}
    if not revoked_dir.is_dir():
        return records
    for path in sorted(revoked_dir.glob("*.json")):
        try:
            record = RevocationRecord.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError) as exc:
            logger.warning("skipping unreadable revocation record %s: %s", path.name, exc)
            continue
        current = records.get(record.client_id)
        if current is None or record.revoked_at_dt > current.revoked_at_dt:
            records[record.client_id] = record
    return records


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


__all__ = ["write_revocation", "load_revocations", "record_path", "now_utc"]
