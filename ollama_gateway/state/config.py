"""Immutable process-wide configuration passed into every component."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class ServerConfig:
    """Server settings resolved once at startup.

    Components receive this object at construction time instead of reading
    module-level config, so tests can build one with short timeouts and a
    temporary data directory.
    """

    port: int = 3000
    host: str = "127.0.0.1"
    ollama_url: str = "http://localhost:11434"
    default_model: str = "llama2"
    data_dir: Path = Path("data")
    auth_timeout_s: float = 30.0
    ping_interval_s: float = 30.0
    max_backups: int = 10
    max_auth_attempts: int = 5
    auth_window_s: float = 600.0
    max_backoff_s: int = 1800
    default_signature_algorithm: str = "SHA256"
    backend_timeout_s: float = 300.0
    backend_connect_timeout_s: float = 5.0
    registry_poll_interval_s: float = 5.0


__all__ = ["ServerConfig"]
