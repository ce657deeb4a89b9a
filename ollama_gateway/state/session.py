"""Per-connection session state.

The authentication progress of a connection is an explicit tagged variant
rather than a bag of nullable fields:

    Unauthenticated -> Authenticating(challenge, deadline)
                    -> Authenticated(client_id, authenticated_at)
                    -> Rejected(reason)

An ActiveGeneration can only be attached while the phase is Authenticated.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

from ..errors import GenerationConflictError, GenerationUnauthenticatedError

if TYPE_CHECKING:
    from .generation import ActiveGeneration


@dataclass(frozen=True, slots=True)
class Unauthenticated:
    """Connection accepted, no challenge issued yet."""


@dataclass(frozen=True, slots=True)
class Authenticating:
    """Challenge outstanding until ``deadline`` (monotonic seconds)."""

    challenge: str
    deadline: float
    issued_at: float = field(default_factory=time.monotonic)


@dataclass(frozen=True, slots=True)
class Authenticated:
    """Challenge answered by a registered, non-revoked client."""

    client_id: str
    authenticated_at: datetime


@dataclass(frozen=True, slots=True)
class Rejected:
    """Terminal failure; the connection is being closed."""

    reason: str


SessionPhase = Unauthenticated | Authenticating | Authenticated | Rejected


@dataclass
class ClientState:
    """Mutable state owned by the SessionManager for one live connection.

    Attributes:
        connection_id: Unique id of the transport connection.
        connected_at: Wall-clock time the connection was accepted.
        phase: Authentication progress (see module docstring).
        generation: The single in-flight generation, if any.
        auth_timer: Pending challenge timeout, cancelled on verification.
        last_activity: Monotonic timestamp of the last inbound frame.
    """

    connection_id: str
    connected_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    phase: SessionPhase = field(default_factory=Unauthenticated)
    generation: ActiveGeneration | None = None
    auth_timer: asyncio.TimerHandle | None = None
    last_activity: float = field(default_factory=time.monotonic)
    liveness: Any = None

    @property
    def authenticated(self) -> bool:
        return isinstance(self.phase, Authenticated)

    @property
    def client_id(self) -> str | None:
        return self.phase.client_id if isinstance(self.phase, Authenticated) else None

    @property
    def challenge(self) -> str | None:
        return self.phase.challenge if isinstance(self.phase, Authenticating) else None

    def touch(self) -> None:
        self.last_activity = time.monotonic()

    def attach_generation(self, generation: ActiveGeneration) -> None:
        """Record ``generation`` as the session's single active generation."""
        if not self.authenticated:
            raise GenerationUnauthenticatedError(self.connection_id)
        if self.generation is not None:
            raise GenerationConflictError(self.connection_id, self.generation.request_id)
        self.generation = generation

    def detach_generation(self, generation: ActiveGeneration) -> bool:
        """Clear ``generation`` if it is still the active one.

        Returns True for exactly one caller per generation; whoever gets True
        owns delivery of the terminal result.
        """
        if self.generation is not generation:
            return False
        self.generation = None
        return True


@dataclass
class EnhancedClientState(ClientState):
    """ClientState plus remote addresses, used for rate limiting and audit."""

    remote_addresses: tuple[str, ...] = ()

    @property
    def ip(self) -> str:
        return self.remote_addresses[0] if self.remote_addresses else "unknown"


__all__ = [
    "Unauthenticated",
    "Authenticating",
    "Authenticated",
    "Rejected",
    "SessionPhase",
    "ClientState",
    "EnhancedClientState",
]
