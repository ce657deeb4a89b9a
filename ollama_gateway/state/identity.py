"""Registry record dataclasses.

Records are stored with the same camelCase keys the registry file has
always used (``id``, ``publicKey``, ``createdAt``), so files written by
older deployments and by the admin CLI load unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def parse_iso(value: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing ``Z``."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True, slots=True)
class ClientIdentity:
    """An authorized client and the public key it signs challenges with.

    Attributes:
        client_id: Stable unique id (32 hex chars when generated here).
        name: Human-readable label used by the admin CLI.
        public_key: PEM-encoded SubjectPublicKeyInfo.
        added_at: ISO-8601 registration time.
        signature_algorithm: Digest name for RSA/ECDSA keys; None means the
            server default.
    """

    client_id: str
    name: str
    public_key: str
    added_at: str
    signature_algorithm: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.client_id,
            "name": self.name,
            "publicKey": self.public_key,
            "createdAt": self.added_at,
        }
        if self.signature_algorithm:
            data["signatureAlgorithm"] = self.signature_algorithm
        return data

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "ClientIdentity":
        client_id = raw.get("id") or raw.get("clientId")
        public_key = raw.get("publicKey")
        if not isinstance(client_id, str) or not client_id:
            raise ValueError("client record is missing 'id'")
        if not isinstance(public_key, str) or not public_key:
            raise ValueError(f"client {client_id} is missing 'publicKey'")
        return cls(
            client_id=client_id,
            name=str(raw.get("name") or client_id),
            public_key=public_key,
            added_at=str(raw.get("createdAt") or utc_now_iso()),
            signature_algorithm=raw.get("signatureAlgorithm") or None,
        )


@dataclass(frozen=True, slots=True)
class RevocationRecord:
    """Append-only audit record written when a client is revoked."""

    client_id: str
    revoked_at: str
    reason: str
    client: ClientIdentity | None = None

    @property
    def revoked_at_dt(self) -> datetime:
        return parse_iso(self.revoked_at)

    def to_dict(self) -> dict[str, Any]:
        return {
            "clientId": self.client_id,
            "client": self.client.to_dict() if self.client else None,
            "revokedAt": self.revoked_at,
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "RevocationRecord":
        client_raw = raw.get("client")
        client = ClientIdentity.from_dict(client_raw) if isinstance(client_raw, dict) else None
        client_id = raw.get("clientId") or (client.client_id if client else None)
        if not client_id:
            raise ValueError("revocation record is missing 'clientId'")
        revoked_at = raw.get("revokedAt")
        if not isinstance(revoked_at, str):
            raise ValueError(f"revocation record for {client_id} is missing 'revokedAt'")
        try:
            parse_iso(revoked_at)
        except ValueError as exc:
            raise ValueError(f"revocation record for {client_id} has bad 'revokedAt': {revoked_at!r}") from exc
        return cls(
            client_id=str(client_id),
            revoked_at=revoked_at,
            reason=str(raw.get("reason") or ""),
            client=client,
        )


__all__ = ["ClientIdentity", "RevocationRecord", "utc_now_iso", "parse_iso"]
