"""Build and validate the immutable ServerConfig from config modules."""

from __future__ import annotations

from pathlib import Path

from ..state import ServerConfig
from ..config import (
    PORT,
    HOST,
    DATA_DIR,
    AUTH_WINDOW_S,
    AUTH_TIMEOUT_S,
    OLLAMA_API_URL,
    PING_INTERVAL_S,
    MAX_AUTH_ATTEMPTS,
    OLLAMA_TIMEOUT_S,
    DEFAULT_MAX_BACKUPS,
    MAX_BACKOFF_SECONDS,
    OLLAMA_DEFAULT_MODEL,
    REGISTRY_POLL_INTERVAL_S,
    OLLAMA_CONNECT_TIMEOUT_S,
    DEFAULT_SIGNATURE_ALGORITHM,
    SUPPORTED_SIGNATURE_ALGORITHMS,
)


def load_config(**overrides) -> ServerConfig:
    """Return a ServerConfig built from environment-derived settings.

    Keyword overrides win over the environment (used by the CLI flags).
    """
    values = {
        "port": PORT,
        "host": HOST,
        "ollama_url": OLLAMA_API_URL.rstrip("/"),
        "default_model": OLLAMA_DEFAULT_MODEL,
        "data_dir": Path(DATA_DIR),
        "auth_timeout_s": AUTH_TIMEOUT_S,
        "ping_interval_s": PING_INTERVAL_S,
        "max_backups": DEFAULT_MAX_BACKUPS,
        "max_auth_attempts": MAX_AUTH_ATTEMPTS,
        "auth_window_s": AUTH_WINDOW_S,
        "max_backoff_s": MAX_BACKOFF_SECONDS,
        "default_signature_algorithm": DEFAULT_SIGNATURE_ALGORITHM.upper(),
        "backend_timeout_s": OLLAMA_TIMEOUT_S,
        "backend_connect_timeout_s": OLLAMA_CONNECT_TIMEOUT_S,
        "registry_poll_interval_s": REGISTRY_POLL_INTERVAL_S,
    }
    values.update({key: value for key, value in overrides.items() if value is not None})
    if not isinstance(values["data_dir"], Path):
        values["data_dir"] = Path(values["data_dir"])
    return ServerConfig(**values)


def validate_config(config: ServerConfig) -> None:
    """Validate configuration once during startup."""
    errors: list[str] = []

    if not 0 < config.port < 65536:
        errors.append(f"PORT must be between 1 and 65535, got: {config.port}")
    if not config.ollama_url.startswith(("http://", "https://")):
        errors.append(f"OLLAMA_API_URL must be an http(s) URL, got: {config.ollama_url}")
    if not config.default_model:
        errors.append("OLLAMA_DEFAULT_MODEL must not be empty")
    if config.auth_timeout_s <= 0:
        errors.append("AUTH_TIMEOUT_MS must be positive")
    if config.ping_interval_s <= 0:
        errors.append("PING_INTERVAL_MS must be positive")
    if config.max_backups < 1:
        errors.append("DEFAULT_MAX_BACKUPS must be at least 1")
    if config.max_auth_attempts < 1:
        errors.append("MAX_AUTH_ATTEMPTS must be at least 1")
    if config.default_signature_algorithm not in SUPPORTED_SIGNATURE_ALGORITHMS:
        errors.append(
            f"DEFAULT_SIGNATURE_ALGORITHM must be one of {SUPPORTED_SIGNATURE_ALGORITHMS}, "
            f"got: {config.default_signature_algorithm}"
        )
    if config.registry_poll_interval_s < 0:
        errors.append("REGISTRY_POLL_INTERVAL_S must not be negative")

    if errors:
        raise ValueError("Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors))


__all__ = ["load_config", "validate_config"]
