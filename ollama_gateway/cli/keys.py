"""Client key pair generation for the admin CLI."""

from __future__ import annotations

import os
from pathlib import Path
from dataclasses import dataclass

from ..security import (
    key_fingerprint,
    public_key_pem,
    private_key_pem,
    generate_private_key,
)


@dataclass(frozen=True, slots=True)
class KeyPairPaths:
    private_key: Path
    public_key: Path
    fingerprint: str


def _safe_stem(name: str) -> str:
    stem = "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in name.strip())
    return stem or "client"


def write_key_pair(
    name: str,
    output_dir: str | Path,
    *,
    key_type: str = "rsa",
    bits: int = 2048,
    overwrite: bool = False,
) -> KeyPairPaths:
    """Generate a key pair and write ``<name>_private.pem`` / ``<name>_public.pem``.

    The private key file is created with mode 0600.

    Raises:
        FileExistsError: A key file already exists and ``overwrite`` is False.
    """
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    stem = _safe_stem(name)
    private_path = directory / f"{stem}_private.pem"
    public_path = directory / f"{stem}_public.pem"
    if not overwrite:
        for path in (private_path, public_path):
            if path.exists():
                raise FileExistsError(f"{path} already exists")

    key = generate_private_key(key_type, bits=bits)
    public_pem = public_key_pem(key)

    flags = os.O_WRONLY | os.O_CREAT | os.O_TRUNC
    fd = os.open(private_path, flags, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(private_key_pem(key))
    public_path.write_text(public_pem, encoding="utf-8")

    return KeyPairPaths(
        private_key=private_path,
        public_key=public_path,
        fingerprint=key_fingerprint(public_pem),
    )


__all__ = ["KeyPairPaths", "write_key_pair"]
