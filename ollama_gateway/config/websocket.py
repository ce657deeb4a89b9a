"""WebSocket-specific runtime configuration values.

Liveness:
    PING_INTERVAL_MS: Authenticated sessions receive a ping this often. A ping
        left unanswered for one more interval counts as a disconnect.

Close Codes (RFC 6455):
    1000: Normal closure (client requested)
    1001: Going away (server shutdown)
    1008: Policy violation (auth failure)
    4000+: Application-defined (timeouts, revocation)

Sentinel Values:
    Special string values that can be sent instead of JSON to trigger
    specific actions (cancel current generation, end session).
"""

from __future__ import annotations

import os

# ============================================================================
# Liveness
# ============================================================================

PING_INTERVAL_MS = int(os.getenv("PING_INTERVAL_MS", "30000"))
PING_INTERVAL_S = PING_INTERVAL_MS / 1000.0

# ============================================================================
# WebSocket Close Codes
# ============================================================================

WS_CLOSE_CLIENT_REQUEST_CODE = int(os.getenv("WS_CLOSE_CLIENT_REQUEST_CODE", "1000"))  # Normal
WS_CLOSE_SHUTDOWN_CODE = int(os.getenv("WS_CLOSE_SHUTDOWN_CODE", "1001"))  # Going away
WS_CLOSE_UNAUTHORIZED_CODE = int(os.getenv("WS_CLOSE_UNAUTHORIZED_CODE", "1008"))  # Policy violation
WS_CLOSE_AUTH_TIMEOUT_CODE = int(os.getenv("WS_CLOSE_AUTH_TIMEOUT_CODE", "4001"))
WS_CLOSE_PING_TIMEOUT_CODE = int(os.getenv("WS_CLOSE_PING_TIMEOUT_CODE", "4002"))
WS_CLOSE_REVOKED_CODE = int(os.getenv("WS_CLOSE_REVOKED_CODE", "4003"))

# ============================================================================
# Disconnect Reasons
# ============================================================================

DISCONNECT_AUTH_TIMEOUT = "authentication_timeout"
DISCONNECT_AUTH_FAILED = "authentication_failed"
DISCONNECT_PING_TIMEOUT = "ping_timeout"
DISCONNECT_REVOKED = "client_revoked"
DISCONNECT_CLIENT_CLOSED = "client_closed_connection"
DISCONNECT_SERVER_SHUTDOWN = "server_shutdown"

# ============================================================================
# Sentinel Values
# ============================================================================

WS_END_SENTINEL = os.getenv("WS_END_SENTINEL", "__END__")  # Close session
WS_CANCEL_SENTINEL = os.getenv("WS_CANCEL_SENTINEL", "__CANCEL__")  # Cancel generation

__all__ = [
    "PING_INTERVAL_MS",
    "PING_INTERVAL_S",
    "WS_CLOSE_CLIENT_REQUEST_CODE",
    "WS_CLOSE_SHUTDOWN_CODE",
    "WS_CLOSE_UNAUTHORIZED_CODE",
    "WS_CLOSE_AUTH_TIMEOUT_CODE",
    "WS_CLOSE_PING_TIMEOUT_CODE",
    "WS_CLOSE_REVOKED_CODE",
    "DISCONNECT_AUTH_TIMEOUT",
    "DISCONNECT_AUTH_FAILED",
    "DISCONNECT_PING_TIMEOUT",
    "DISCONNECT_REVOKED",
    "DISCONNECT_CLIENT_CLOSED",
    "DISCONNECT_SERVER_SHUTDOWN",
    "WS_END_SENTINEL",
    "WS_CANCEL_SENTINEL",
]
