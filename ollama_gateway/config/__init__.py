"""Aggregator of configuration modules.

This module re-exports the config API from smaller modules:
- server: bind address, backend URL and default model, data directory
- auth: challenge timeout, signature algorithms, failed-attempt backoff
- registry: on-disk layout and backup rotation
- websocket: liveness cadence, close codes, disconnect reasons
- limits: payload sizes and message rate limits
- client: defaults for the bundled Python client (imported directly by
  ollama_gateway.client, not re-exported)

Functions live in ollama_gateway/helpers/.
"""

from .server import (
    PORT,
    HOST,
    OLLAMA_API_URL,
    OLLAMA_DEFAULT_MODEL,
    OLLAMA_TIMEOUT_S,
    OLLAMA_CONNECT_TIMEOUT_S,
    DATA_DIR,
)
from .auth import (
    AUTH_TIMEOUT_MS,
    AUTH_TIMEOUT_S,
    CHALLENGE_BYTES,
    DEFAULT_SIGNATURE_ALGORITHM,
    SUPPORTED_SIGNATURE_ALGORITHMS,
    MAX_AUTH_ATTEMPTS,
    AUTH_WINDOW_S,
    MAX_BACKOFF_SECONDS,
    AUTH_RECORD_EXPIRY_S,
)
from .registry import (
    CLIENTS_FILE,
    BACKUPS_DIR,
    REVOKED_DIR,
    DEFAULT_MAX_BACKUPS,
    REGISTRY_POLL_INTERVAL_S,
    DEFAULT_REVOCATION_REASON,
)
from .websocket import (
    PING_INTERVAL_MS,
    PING_INTERVAL_S,
    WS_CLOSE_CLIENT_REQUEST_CODE,
    WS_CLOSE_SHUTDOWN_CODE,
    WS_CLOSE_UNAUTHORIZED_CODE,
    WS_CLOSE_AUTH_TIMEOUT_CODE,
    WS_CLOSE_PING_TIMEOUT_CODE,
    WS_CLOSE_REVOKED_CODE,
)
from .limits import (
    PROMPT_MAX_CHARS,
    REQUEST_ID_MAX_CHARS,
    MODEL_NAME_MAX_CHARS,
    WS_MESSAGE_WINDOW_SECONDS,
    WS_MAX_MESSAGES_PER_WINDOW,
    WS_CANCEL_WINDOW_SECONDS,
    WS_MAX_CANCELS_PER_WINDOW,
)

__all__ = [
    # server
    "PORT",
    "HOST",
    "OLLAMA_API_URL",
    "OLLAMA_DEFAULT_MODEL",
    "OLLAMA_TIMEOUT_S",
    "OLLAMA_CONNECT_TIMEOUT_S",
    "DATA_DIR",
    # auth
    "AUTH_TIMEOUT_MS",
    "AUTH_TIMEOUT_S",
    "CHALLENGE_BYTES",
    "DEFAULT_SIGNATURE_ALGORITHM",
    "SUPPORTED_SIGNATURE_ALGORITHMS",
    "MAX_AUTH_ATTEMPTS",
    "AUTH_WINDOW_S",
    "MAX_BACKOFF_SECONDS",
    "AUTH_RECORD_EXPIRY_S",
    # registry
    "CLIENTS_FILE",
    "BACKUPS_DIR",
    "REVOKED_DIR",
    "DEFAULT_MAX_BACKUPS",
    "REGISTRY_POLL_INTERVAL_S",
    "DEFAULT_REVOCATION_REASON",
    # websocket
    "PING_INTERVAL_MS",
    "PING_INTERVAL_S",
    "WS_CLOSE_CLIENT_REQUEST_CODE",
    "WS_CLOSE_SHUTDOWN_CODE",
    "WS_CLOSE_UNAUTHORIZED_CODE",
    "WS_CLOSE_AUTH_TIMEOUT_CODE",
    "WS_CLOSE_PING_TIMEOUT_CODE",
    "WS_CLOSE_REVOKED_CODE",
    # limits
    "PROMPT_MAX_CHARS",
    "REQUEST_ID_MAX_CHARS",
    "MODEL_NAME_MAX_CHARS",
    "WS_MESSAGE_WINDOW_SECONDS",
    "WS_MAX_MESSAGES_PER_WINDOW",
    "WS_CANCEL_WINDOW_SECONDS",
    "WS_MAX_CANCELS_PER_WINDOW",
]
