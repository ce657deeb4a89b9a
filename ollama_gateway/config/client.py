"""Defaults for the bundled Python client.

Reconnection:
    The opening handshake is retried with exponential backoff:
    delay = min(MAX_DELAY, BASE_DELAY * 2^(attempt-1)) with +/- JITTER.
"""

from __future__ import annotations

import os

GATEWAY_WS_URL = os.getenv("GATEWAY_WS_URL", "ws://127.0.0.1:3000/ws")

CLIENT_CHALLENGE_TIMEOUT_S = float(os.getenv("CLIENT_CHALLENGE_TIMEOUT_S", "10"))
CLIENT_REQUEST_TIMEOUT_S = float(os.getenv("CLIENT_REQUEST_TIMEOUT_S", "60"))

# ============================================================================
# Reconnection
# ============================================================================

CLIENT_MAX_RECONNECT_ATTEMPTS = int(os.getenv("CLIENT_MAX_RECONNECT_ATTEMPTS", "5"))
CLIENT_RECONNECT_BASE_DELAY_S = float(os.getenv("CLIENT_RECONNECT_BASE_DELAY_S", "1.0"))
CLIENT_MAX_RECONNECT_DELAY_S = float(os.getenv("CLIENT_MAX_RECONNECT_DELAY_S", "30"))
CLIENT_RECONNECT_JITTER = float(os.getenv("CLIENT_RECONNECT_JITTER", "0.2"))

__all__ = [
    "GATEWAY_WS_URL",
    "CLIENT_CHALLENGE_TIMEOUT_S",
    "CLIENT_REQUEST_TIMEOUT_S",
    "CLIENT_MAX_RECONNECT_ATTEMPTS",
    "CLIENT_RECONNECT_BASE_DELAY_S",
    "CLIENT_MAX_RECONNECT_DELAY_S",
    "CLIENT_RECONNECT_JITTER",
]
