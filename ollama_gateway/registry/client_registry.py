"""Persisted store of authorized client identities.

The registry owns three locations under the data directory:

    authorized_clients.json   JSON list of identities (the primary file)
    backups/                  rotating copies of the primary file
    revoked/                  one append-only record per revocation

Writers hold a thread lock and an advisory lock on ``.registry.lock``, so
the server and the admin CLI never interleave. Every mutation re-reads the
files under both locks before changing them, and is durable before it is
visible: the primary file is replaced atomically and only then is the
in-memory snapshot swapped. Readers never take the locks; they see the last
committed tuple.

A revocation record always wins over the primary file. An identity that has
a record is never served, even when a restored backup still contains it.
"""

from __future__ import annotations

import secrets
import logging
import threading
from datetime import datetime, timezone
from pathlib import Path
from contextlib import contextmanager
from collections.abc import Callable, Iterator

from ..state import ClientIdentity, RevocationRecord, ServerConfig
from ..config.registry import (
    LOCK_FILE,
    BACKUPS_DIR,
    REVOKED_DIR,
    CLIENTS_FILE,
    DEFAULT_MAX_BACKUPS,
    DEFAULT_REVOCATION_REASON,
)
from ..config.auth import DEFAULT_SIGNATURE_ALGORITHM
from ..errors import (
    ClientExistsError,
    ClientNotFoundError,
    RegistryCorruptError,
    RegistryUnrecoverableError,
)
from ..security.signatures import load_public_key, normalize_algorithm
from ..helpers.io import exclusive_lock
from .store import read_identities, write_identities
from .backups import list_backups, create_backup
from .revocations import now_utc, write_revocation, load_revocations

logger = logging.getLogger(__name__)

RevocationListener = Callable[[RevocationRecord], None]


class ClientRegistry:
    """Authorized client identities with backups and revocation.

    Attributes:
        recovered_from: Backup the primary file was restored from during the
            last load or refresh, if any.
    """

    def __init__(
        self,
        data_dir: str | Path,
        *,
        max_backups: int = DEFAULT_MAX_BACKUPS,
        default_signature_algorithm: str = DEFAULT_SIGNATURE_ALGORITHM,
    ) -> None:
        self.data_dir = Path(data_dir)
        self.clients_path = self.data_dir / CLIENTS_FILE
        self.backups_dir = self.data_dir / BACKUPS_DIR
        self.revoked_dir = self.data_dir / REVOKED_DIR
        self.lock_path = self.data_dir / LOCK_FILE
        self.max_backups = max(1, int(max_backups))
        self.default_signature_algorithm = normalize_algorithm(default_signature_algorithm)
        self.recovered_from: Path | None = None

        self._lock = threading.Lock()
        self._identities: tuple[ClientIdentity, ...] = ()
        self._revocations: dict[str, RevocationRecord] = {}
        self._primary_hash: str | None = None
        self._available = False
        self._listeners: list[RevocationListener] = []
        self._pending: tuple[RevocationRecord, ...] = ()

    @classmethod
    def from_config(cls, config: ServerConfig) -> "ClientRegistry":
        return cls(
            config.data_dir,
            max_backups=config.max_backups,
            default_signature_algorithm=config.default_signature_algorithm,
        )

    @contextmanager
    def _writing(self) -> Iterator[None]:
        """Hold both writer locks; notify listeners once they are released."""
        try:
            with self._lock, exclusive_lock(self.lock_path):
                yield
        finally:
            pending, self._pending = self._pending, ()
            self._notify(pending)

    # ============================================================================
    # Loading and recovery
    # ============================================================================
    def load(self) -> "ClientRegistry":
        """Load the registry from disk, recovering from backups if needed.

        Raises:
            RegistryUnrecoverableError: The primary file is missing or corrupt
                and no backup can be loaded.
        """
        with self._writing():
            self._revocations = load_revocations(self.revoked_dir)
            try:
                identities, digest = read_identities(self.clients_path)
            except FileNotFoundError:
                if list_backups(self.backups_dir):
                    logger.warning("registry primary file %s is missing", self.clients_path)
                    identities, digest = self._recover_locked()
                else:
                    logger.info("creating empty registry at %s", self.clients_path)
                    identities = ()
                    digest = write_identities(self.clients_path, identities)
            except RegistryCorruptError as exc:
                logger.warning("%s", exc)
                identities, digest = self._recover_locked()
            self._commit_locked(identities, digest)
            self._available = True
        logger.info(
            "registry loaded: %s clients, %s revocations",
            len(self._identities),
            len(self._revocations),
        )
        return self

    def _recover_locked(self) -> tuple[tuple[ClientIdentity, ...], str]:
        for backup in list_backups(self.backups_dir):
            try:
                identities, _ = read_identities(backup)
            except (OSError, RegistryCorruptError) as exc:
                logger.warning("registry backup %s unusable: %s", backup.name, exc)
                continue
            self._quarantine_primary()
            digest = write_identities(self.clients_path, identities)
            self.recovered_from = backup
            logger.warning(
                "registry recovered from backup %s (%s clients)",
                backup.name,
                len(identities),
            )
            return identities, digest
        raise RegistryUnrecoverableError(
            f"registry {self.clients_path} cannot be loaded and no valid backup exists "
            f"in {self.backups_dir}"
        )

    def _quarantine_primary(self) -> None:
        if not self.clients_path.exists():
            return
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
        target = self.clients_path.with_name(f"{self.clients_path.name}.corrupt-{stamp}")
        self.clients_path.replace(target)
        logger.warning("corrupt registry file moved to %s", target)

    def _commit_locked(self, identities: tuple[ClientIdentity, ...], digest: str) -> None:
        revoked = [identity for identity in identities if identity.client_id in self._revocations]
        for identity in revoked:
            logger.warning(
                "registry file lists revoked client %s; it will not be served",
                identity.client_id,
            )
        self._identities = identities
        self._primary_hash = digest

    @property
    def available(self) -> bool:
        """False until loaded, and while a runtime reload cannot be recovered."""
        return self._available

    # ============================================================================
    # Reads (lock-free on the committed snapshot)
    # ============================================================================
    def clients(self) -> tuple[ClientIdentity, ...]:
        """Return every non-revoked identity."""
        revocations = self._revocations
        return tuple(i for i in self._identities if i.client_id not in revocations)

    def get(self, client_id: str) -> ClientIdentity | None:
        if client_id in self._revocations:
            return None
        for identity in self._identities:
            if identity.client_id == client_id:
                return identity
        return None

    def lookup(self, client_id: str) -> ClientIdentity:
        identity = self.get(client_id)
        if identity is None:
            raise ClientNotFoundError(client_id)
        return identity

    def find(self, identifier: str) -> ClientIdentity:
        """Match by id first, then by case-insensitive name."""
        identity = self.get(identifier)
        if identity is not None:
            return identity
        wanted = identifier.casefold()
        for candidate in self.clients():
            if candidate.name.casefold() == wanted:
                return candidate
        raise ClientNotFoundError(identifier)

    def is_revoked(self, client_id: str) -> bool:
        return client_id in self._revocations

    def revocation(self, client_id: str) -> RevocationRecord | None:
        return self._revocations.get(client_id)

    def revoked_at(self, client_id: str) -> datetime | None:
        record = self._revocations.get(client_id)
        return record.revoked_at_dt if record else None

    def revocations(self) -> tuple[RevocationRecord, ...]:
        return tuple(self._revocations.values())

    # ============================================================================
    # Mutations
    # ============================================================================
    def add(self, identity: ClientIdentity) -> ClientIdentity:
        """Persist a new identity.

        Raises:
            ClientExistsError: The id is registered or was revoked.
            RegistryUnrecoverableError: The registry on disk cannot be loaded.
        """
        with self._writing():
            self._sync_locked()
            if identity.client_id in self._revocations or any(
                existing.client_id == identity.client_id for existing in self._identities
            ):
                raise ClientExistsError(identity.client_id)
            updated = self._identities + (identity,)
            create_backup(self.clients_path, self.backups_dir, max_backups=self.max_backups)
            digest = write_identities(self.clients_path, updated)
            self._commit_locked(updated, digest)
        logger.info("client registered: %s (%s)", identity.client_id, identity.name)
        return identity

    def register(
        self,
        name: str,
        public_key: str,
        signature_algorithm: str | None = None,
    ) -> ClientIdentity:
        """Validate key material, allocate an id and add the identity.

        Raises:
            InvalidPublicKeyError: The key or algorithm is unusable.
        """
        load_public_key(public_key)
        algorithm = normalize_algorithm(signature_algorithm, self.default_signature_algorithm)
        identity = ClientIdentity(
            client_id=secrets.token_hex(16),
            name=name.strip() or "client",
            public_key=public_key.strip() + "\n",
            added_at=now_utc().isoformat().replace("+00:00", "Z"),
            signature_algorithm=algorithm,
        )
        return self.add(identity)

    def revoke(self, client_id: str, reason: str = DEFAULT_REVOCATION_REASON) -> RevocationRecord:
        """Revoke ``client_id`` and notify listeners after the commit.

        The revocation record is written before the primary file so a crash
        between the two steps still leaves the client revoked.

        Raises:
            ClientNotFoundError: No active identity has this id.
            RegistryUnrecoverableError: The registry on disk cannot be loaded.
        """
        with self._writing():
            self._sync_locked()
            identity = next(
                (i for i in self._identities if i.client_id == client_id),
                None,
            )
            if identity is None or client_id in self._revocations:
                raise ClientNotFoundError(client_id)
            record = RevocationRecord(
                client_id=client_id,
                revoked_at=now_utc().isoformat().replace("+00:00", "Z"),
                reason=reason or DEFAULT_REVOCATION_REASON,
                client=identity,
            )
            path = write_revocation(self.revoked_dir, record)
            revocations = dict(self._revocations)
            revocations[client_id] = record
            self._revocations = revocations

            updated = tuple(i for i in self._identities if i.client_id != client_id)
            create_backup(self.clients_path, self.backups_dir, max_backups=self.max_backups)
            digest = write_identities(self.clients_path, updated)
            self._commit_locked(updated, digest)
            self._pending += (record,)
            logger.warning("client revoked: %s reason=%s record=%s", client_id, record.reason, path.name)
        return record

    def backup(self) -> Path | None:
        """Create an explicit backup of the primary file and rotate.

        Raises:
            RegistryUnrecoverableError: The registry on disk cannot be loaded.
        """
        with self._writing():
            self._sync_locked()
            return create_backup(self.clients_path, self.backups_dir, max_backups=self.max_backups)

    def refresh(self) -> tuple[RevocationRecord, ...]:
        """Pick up changes written by other processes (the admin CLI).

        Returns the revocation records seen for the first time; listeners are
        notified of each after the snapshot is swapped.
        """
        with self._writing():
            fresh = self._merge_revocations_locked()
            self._reload_primary_locked()
        return fresh

    def _sync_locked(self) -> None:
        self._merge_revocations_locked()
        self._reload_primary_locked()
        if not self._available:
            raise RegistryUnrecoverableError(
                f"registry {self.clients_path} is unavailable; refusing to write"
            )

    def _merge_revocations_locked(self) -> tuple[RevocationRecord, ...]:
        on_disk = load_revocations(self.revoked_dir)
        fresh = tuple(
            record
            for client_id, record in on_disk.items()
            if client_id not in self._revocations
            or record.revoked_at_dt > self._revocations[client_id].revoked_at_dt
        )
        if fresh:
            merged = dict(self._revocations)
            merged.update({record.client_id: record for record in fresh})
            self._revocations = merged
            self._pending += fresh
        for record in fresh:
            logger.warning("revocation picked up from disk: %s", record.client_id)
        return fresh

    def _reload_primary_locked(self) -> None:
        try:
            try:
                identities, digest = read_identities(self.clients_path)
            except FileNotFoundError:
                identities, digest = self._recover_locked()
            except RegistryCorruptError as exc:
                logger.warning("%s", exc)
                identities, digest = self._recover_locked()
        except RegistryUnrecoverableError:
            if self._available:
                logger.error("registry unavailable; new authentications will be rejected")
            self._available = False
            return
        if self._available and digest == self._primary_hash:
            return
        self._commit_locked(identities, digest)
        if not self._available:
            logger.info("registry available again")
        self._available = True

    # ============================================================================
    # Revocation listeners
    # ============================================================================
    def subscribe(self, listener: RevocationListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: RevocationListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _notify(self, records: tuple[RevocationRecord, ...]) -> None:
        for record in records:
            for listener in list(self._listeners):
                try:
                    listener(record)
                except Exception:  # noqa: BLE001
                    logger.exception("revocation listener failed for %s", record.client_id)


__all__ = ["ClientRegistry", "RevocationListener"]
