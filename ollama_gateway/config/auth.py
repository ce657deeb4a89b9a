"""Challenge-response authentication settings.

Timeouts are configured in milliseconds to stay compatible with existing
deployments and exposed in seconds for asyncio.
"""

import os


AUTH_TIMEOUT_MS = int(os.getenv("AUTH_TIMEOUT_MS", "30000"))
AUTH_TIMEOUT_S = AUTH_TIMEOUT_MS / 1000.0

# Random bytes per challenge (hex encoded on the wire)
CHALLENGE_BYTES = int(os.getenv("CHALLENGE_BYTES", "32"))

DEFAULT_SIGNATURE_ALGORITHM = os.getenv("DEFAULT_SIGNATURE_ALGORITHM", "SHA256")
SUPPORTED_SIGNATURE_ALGORITHMS = ("SHA256", "SHA384", "SHA512")

# Failed-attempt backoff keyed by ip:client_id
MAX_AUTH_ATTEMPTS = int(os.getenv("MAX_AUTH_ATTEMPTS", "5"))
AUTH_WINDOW_MS = int(os.getenv("AUTH_WINDOW_MS", str(10 * 60 * 1000)))
AUTH_WINDOW_S = AUTH_WINDOW_MS / 1000.0
MAX_BACKOFF_SECONDS = int(os.getenv("MAX_BACKOFF_SECONDS", "1800"))
AUTH_RECORD_EXPIRY_S = float(os.getenv("AUTH_RECORD_EXPIRY_S", str(24 * 60 * 60)))

# Authentication reasons sent back in auth_result frames
AUTH_REASON_UNKNOWN_CLIENT = "unknown_client"
AUTH_REASON_REVOKED = "revoked"
AUTH_REASON_BAD_SIGNATURE = "bad_signature"
AUTH_REASON_REPLAYED_CHALLENGE = "replayed_challenge"
AUTH_REASON_RATE_LIMITED = "rate_limited"
AUTH_REASON_REGISTRY_UNAVAILABLE = "registry_unavailable"
AUTH_REASON_TIMEOUT = "timeout"


__all__ = [
    "AUTH_TIMEOUT_MS",
    "AUTH_TIMEOUT_S",
    "CHALLENGE_BYTES",
    "DEFAULT_SIGNATURE_ALGORITHM",
    "SUPPORTED_SIGNATURE_ALGORITHMS",
    "MAX_AUTH_ATTEMPTS",
    "AUTH_WINDOW_MS",
    "AUTH_WINDOW_S",
    "MAX_BACKOFF_SECONDS",
    "AUTH_RECORD_EXPIRY_S",
    "AUTH_REASON_UNKNOWN_CLIENT",
    "AUTH_REASON_REVOKED",
    "AUTH_REASON_BAD_SIGNATURE",
    "AUTH_REASON_REPLAYED_CHALLENGE",
    "AUTH_REASON_RATE_LIMITED",
    "AUTH_REASON_REGISTRY_UNAVAILABLE",
    "AUTH_REASON_TIMEOUT",
]
