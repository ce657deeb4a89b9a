"""Challenge-response authentication and key handling."""

from .rate_limiter import AuthRateLimiter
from .authenticator import TimeoutCallback, ChallengeAuthenticator
from .signatures import (
    sign_message,
    public_key_pem,
    load_public_key,
    load_private_key,
    private_key_pem,
    verify_signature,
    normalize_algorithm,
    key_fingerprint,
    generate_private_key,
)

__all__ = [
    "AuthRateLimiter",
    "ChallengeAuthenticator",
    "TimeoutCallback",
    "generate_private_key",
    "key_fingerprint",
    "load_public_key",
    "load_private_key",
    "normalize_algorithm",
    "private_key_pem",
    "public_key_pem",
    "sign_message",
    "verify_signature",
]
