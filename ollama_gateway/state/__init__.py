"""Centralized state dataclasses for the gateway.

This module re-exports all state definitions from their respective modules,
providing a single import point for state types.
"""

from .config import ServerConfig
from .identity import ClientIdentity, RevocationRecord
from .generation import ActiveGeneration, GenerationHandle, GenerationState
from .session import (
    Rejected,
    ClientState,
    SessionPhase,
    Authenticated,
    Authenticating,
    Unauthenticated,
    EnhancedClientState,
)

__all__ = [
    "ActiveGeneration",
    "Authenticated",
    "Authenticating",
    "ClientIdentity",
    "ClientState",
    "EnhancedClientState",
    "GenerationHandle",
    "GenerationState",
    "Rejected",
    "RevocationRecord",
    "ServerConfig",
    "SessionPhase",
    "Unauthenticated",
]
