"""Durable JSON file helpers shared by the registry and the admin CLI."""

from __future__ import annotations

import os
import json
import fcntl
import hashlib
import logging
import contextlib
from typing import Any
from pathlib import Path
from collections.abc import Iterator

logger = logging.getLogger(__name__)

JsonValue = Any
PathLike = str | os.PathLike[str]


def _coerce_path(path: PathLike) -> Path:
    return path if isinstance(path, Path) else Path(path)


def dump_json(data: JsonValue) -> str:
    """Serialize ``data`` the way every registry file is written."""
    return json.dumps(data, ensure_ascii=True, indent=2) + "\n"


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


@contextlib.contextmanager
def exclusive_lock(path: PathLike) -> Iterator[None]:
    """Hold an exclusive advisory lock on ``path`` until the block exits.

    Blocks while another process (or another handle in this process) holds
    the lock. The lock file itself is never written.
    """
    resolved = _coerce_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    with resolved.open("a+", encoding="utf-8") as lock_file:
        fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)


def write_text_atomic(path: PathLike, text: str, *, encoding: str = "utf-8") -> None:
    """Write ``text`` to a sibling temp file, fsync it and rename it into place.

    Readers never observe a partially written file. Errors propagate to the
    caller after the temp file is removed.
    """
    resolved = _coerce_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = resolved.with_name(f".{resolved.name}.{os.getpid()}.tmp")

    try:
        with tmp_path.open("w", encoding=encoding) as fh:
            fh.write(text)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_path, resolved)
    except OSError:
        with contextlib.suppress(OSError):
            os.remove(tmp_path)
        raise
    _fsync_dir(resolved.parent)


def write_json_atomic(path: PathLike, data: JsonValue) -> str:
    """Atomically write ``data`` as JSON and return the serialized text."""
    text = dump_json(data)
    write_text_atomic(path, text)
    return text


def _fsync_dir(directory: Path) -> None:
    # Directory fsync makes the rename durable; unsupported on some platforms.
    try:
        fd = os.open(directory, os.O_RDONLY)
    except OSError:
        return
    try:
        os.fsync(fd)
    except OSError as exc:
        logger.debug("directory fsync unsupported for %s: %s", directory, exc)
    finally:
        os.close(fd)


__all__ = [
    "dump_json",
    "content_hash",
    "exclusive_lock",
    "write_text_atomic",
    "write_json_atomic",
]
