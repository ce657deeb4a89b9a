#!/usr/bin/env python3
"""Administrative CLI for the authorized client registry.

Commands operate directly on the registry files under ``--data-dir``. A
running server picks up revocations through its registry watcher.

    register-client   add a client from a PEM public key file
    revoke-client     revoke a client by id or name
    list-clients      print registered (and optionally revoked) clients
    backup-clients    snapshot the registry file and rotate old backups
    generate-keys     create a key pair for a new client
"""

from __future__ import annotations

import sys
import argparse
from pathlib import Path

from ..errors import (
    ClientExistsError,
    ClientNotFoundError,
    InvalidPublicKeyError,
    RegistryUnrecoverableError,
)
from ..registry import ClientRegistry
from ..security import key_fingerprint
from ..helpers.settings import load_config
from ..config.registry import DEFAULT_REVOCATION_REASON
from .keys import write_key_pair

_PREFIX = "[clients]"


def _open_registry(args: argparse.Namespace) -> ClientRegistry:
    config = load_config(data_dir=args.data_dir, max_backups=getattr(args, "max_backups", None))
    return ClientRegistry.from_config(config).load()


def _short_date(value: str | None) -> str:
    if not value:
        return "never"
    return value.replace("T", " ")[:19]


def _print_table(rows: list[list[str]]) -> None:
    widths = [max(len(row[i]) for row in rows) for i in range(len(rows[0]))]
    for index, row in enumerate(rows):
        print("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
        if index == 0:
            print("  ".join("-" * width for width in widths))


# ============================================================================
# Commands
# ============================================================================


def cmd_register(args: argparse.Namespace) -> int:
    key_path = Path(args.public_key)
    if not key_path.is_file():
        print(f"{_PREFIX} public key file not found: {key_path}", file=sys.stderr)
        return 1
    registry = _open_registry(args)
    try:
        identity = registry.register(args.name, key_path.read_text(encoding="utf-8"), args.algorithm)
    except (InvalidPublicKeyError, ClientExistsError) as exc:
        print(f"{_PREFIX} registration failed: {exc}", file=sys.stderr)
        return 1
    print(f"{_PREFIX} registered {identity.name}")
    print(f"  client id:   {identity.client_id}")
    print(f"  algorithm:   {identity.signature_algorithm}")
    print(f"  fingerprint: {key_fingerprint(identity.public_key)}")
    return 0


def cmd_revoke(args: argparse.Namespace) -> int:
    registry = _open_registry(args)
    try:
        identity = registry.find(args.client)
        record = registry.revoke(identity.client_id, args.reason)
    except ClientNotFoundError:
        print(f"{_PREFIX} no active client matches {args.client!r}", file=sys.stderr)
        return 1
    print(f"{_PREFIX} revoked {identity.name} ({identity.client_id}) at {record.revoked_at}")
    print(f"  reason: {record.reason}")
    return 0


def cmd_list(args: argparse.Namespace) -> int:
    registry = _open_registry(args)
    clients = registry.clients()
    print(f"{_PREFIX} registry: {registry.clients_path}")
    if registry.recovered_from is not None:
        print(f"{_PREFIX} warning: registry was recovered from {registry.recovered_from.name}")

    if not clients:
        print(f"{_PREFIX} no clients registered")
    elif args.detailed:
        for identity in clients:
            print(f"\n{identity.name} (ID: {identity.client_id})")
            print(f"  created:     {_short_date(identity.added_at)}")
            print(f"  algorithm:   {identity.signature_algorithm or 'default'}")
            print(f"  fingerprint: {key_fingerprint(identity.public_key)}")
    else:
        rows = [["NAME", "ID", "CREATED", "ALGORITHM"]]
        rows.extend(
            [
                identity.name,
                identity.client_id,
                _short_date(identity.added_at),
                identity.signature_algorithm or "default",
            ]
            for identity in clients
        )
        _print_table(rows)

    if args.revoked:
        records = sorted(registry.revocations(), key=lambda r: r.revoked_at_dt)
        print(f"\n{_PREFIX} revoked clients: {len(records)}")
        for record in records:
            name = record.client.name if record.client else "?"
            print(f"  {record.client_id}  {name}  {_short_date(record.revoked_at)}  {record.reason}")
    return 0


def cmd_backup(args: argparse.Namespace) -> int:
    registry = _open_registry(args)
    path = registry.backup()
    if path is None:
        print(f"{_PREFIX} nothing to back up: {registry.clients_path} does not exist")
        return 1
    print(f"{_PREFIX} backup written: {path}")
    return 0


def cmd_generate_keys(args: argparse.Namespace) -> int:
    try:
        paths = write_key_pair(
            args.name,
            args.output_dir,
            key_type=args.type,
            bits=args.bits,
            overwrite=args.force,
        )
    except FileExistsError as exc:
        print(f"{_PREFIX} {exc}; pass --force to overwrite", file=sys.stderr)
        return 1
    print(f"{_PREFIX} generated {args.type} key pair for {args.name}")
    print(f"  private key: {paths.private_key}")
    print(f"  public key:  {paths.public_key}")
    print(f"  fingerprint: {paths.fingerprint}")
    print(f"\nregister it with: ollama-gateway-admin register-client --name {args.name} "
          f"--public-key {paths.public_key}")
    return 0


# ============================================================================
# CLI
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ollama-gateway-admin",
        description="Manage clients authorized to use the Ollama gateway",
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--data-dir", default=None, help="Registry directory (defaults to DATA_DIR)")

    sub = parser.add_subparsers(dest="command", required=True)

    register = sub.add_parser("register-client", parents=[common], help="Register a client public key")
    register.add_argument("--name", required=True, help="Human-readable client name")
    register.add_argument("--public-key", required=True, help="Path to the client's PEM public key")
    register.add_argument("--algorithm", default=None, help="Signature digest: SHA256, SHA384 or SHA512")
    register.set_defaults(func=cmd_register)

    revoke = sub.add_parser("revoke-client", parents=[common], help="Revoke a client by id or name")
    revoke.add_argument("client", help="Client id or name")
    revoke.add_argument("--reason", default=DEFAULT_REVOCATION_REASON, help="Recorded revocation reason")
    revoke.set_defaults(func=cmd_revoke)

    listing = sub.add_parser("list-clients", parents=[common], help="List registered clients")
    listing.add_argument("--detailed", action="store_true", help="Show key fingerprints")
    listing.add_argument("--revoked", action="store_true", help="Also list revoked clients")
    listing.set_defaults(func=cmd_list)

    backup = sub.add_parser("backup-clients", parents=[common], help="Back up the registry file")
    backup.add_argument("--max-backups", type=int, default=None, help="Backups to keep after rotation")
    backup.set_defaults(func=cmd_backup)

    keys = sub.add_parser("generate-keys", help="Generate a client key pair")
    keys.add_argument("--name", default="client", help="Client name used for the file names")
    keys.add_argument("--output-dir", default="keys", help="Directory for the PEM files")
    keys.add_argument("--type", choices=("rsa", "ec", "ed25519"), default="rsa", help="Key type")
    keys.add_argument("--bits", type=int, default=2048, help="RSA key size")
    keys.add_argument("--force", action="store_true", help="Overwrite existing key files")
    keys.set_defaults(func=cmd_generate_keys)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        return args.func(args)
    except RegistryUnrecoverableError as exc:
        print(f"{_PREFIX} {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
