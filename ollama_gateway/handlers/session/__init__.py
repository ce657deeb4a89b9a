"""Session management: live connections, teardown and liveness."""

from .manager import SessionManager, TeardownHook

__all__ = ["SessionManager", "TeardownHook"]
