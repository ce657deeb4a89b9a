"""Parsing and serialization of the primary registry file."""

from __future__ import annotations

import json
from pathlib import Path

from ..state import ClientIdentity
from ..errors import RegistryCorruptError
from ..helpers.io import content_hash, write_json_atomic


def parse_identities(text: str, *, source: Path) -> tuple[ClientIdentity, ...]:
    """Parse registry file contents into identities.

    Raises:
        RegistryCorruptError: The text is not a JSON list of valid records or
            contains duplicate ids.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise RegistryCorruptError(str(source), f"invalid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise RegistryCorruptError(str(source), "top-level value must be a list")

    identities: list[ClientIdentity] = []
    seen: set[str] = set()
    for index, raw in enumerate(data):
        if not isinstance(raw, dict):
            raise RegistryCorruptError(str(source), f"entry {index} is not an object")
        try:
            identity = ClientIdentity.from_dict(raw)
        except ValueError as exc:
            raise RegistryCorruptError(str(source), f"entry {index}: {exc}") from exc
        if identity.client_id in seen:
            raise RegistryCorruptError(str(source), f"duplicate client id {identity.client_id}")
        seen.add(identity.client_id)
        identities.append(identity)
    return tuple(identities)


def read_identities(path: Path) -> tuple[tuple[ClientIdentity, ...], str]:
    """Read ``path`` and return (identities, content hash).

    Raises:
        FileNotFoundError: The file does not exist.
        RegistryCorruptError: The file is not UTF-8 or cannot be parsed.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise RegistryCorruptError(str(path), f"not valid UTF-8: {exc}") from exc
    return parse_identities(text, source=path), content_hash(text)


def write_identities(path: Path, identities: tuple[ClientIdentity, ...]) -> str:
    """Atomically persist ``identities`` and return the new content hash."""
    text = write_json_atomic(path, [identity.to_dict() for identity in identities])
    return content_hash(text)


__all__ = ["parse_identities", "read_identities", "write_identities"]
