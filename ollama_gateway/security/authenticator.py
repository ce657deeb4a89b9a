"""Challenge-response authentication.

State machine per connection:

    Unauthenticated --issue_challenge--> Authenticating(challenge, deadline)
    Authenticating  --verify ok-------> Authenticated(client_id, now)
    Authenticating  --verify fails----> Rejected(reason)
    Authenticating  --deadline--------> Rejected(timeout)

A challenge is consumed by the first verification attempt whatever its
outcome. ``verify`` is synchronous, so checking and consuming the challenge
happen in one step on the event loop and cannot race the timeout.
"""

from __future__ import annotations

import time
import asyncio
import secrets
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING, NoReturn
from collections.abc import Callable, Awaitable

from ..state import (
    Rejected,
    ClientState,
    Authenticated,
    Authenticating,
    Unauthenticated,
    EnhancedClientState,
)
from ..errors import AuthRejectedError, InvalidPublicKeyError
from ..config.auth import (
    CHALLENGE_BYTES,
    AUTH_TIMEOUT_S,
    AUTH_REASON_REVOKED,
    AUTH_REASON_TIMEOUT,
    AUTH_REASON_RATE_LIMITED,
    AUTH_REASON_BAD_SIGNATURE,
    AUTH_REASON_UNKNOWN_CLIENT,
    AUTH_REASON_REPLAYED_CHALLENGE,
    AUTH_REASON_REGISTRY_UNAVAILABLE,
)
from ..telemetry import get_metrics, add_breadcrumb
from .signatures import verify_signature
from .rate_limiter import AuthRateLimiter

if TYPE_CHECKING:
    from ..registry import ClientRegistry

logger = logging.getLogger(__name__)

TimeoutCallback = Callable[[ClientState], Awaitable[None]]


class ChallengeAuthenticator:
    """Issues per-connection challenges and verifies signed responses.

    This is the only component that moves a session into the Authenticated
    phase.
    """

    def __init__(
        self,
        registry: ClientRegistry,
        *,
        timeout_s: float = AUTH_TIMEOUT_S,
        rate_limiter: AuthRateLimiter | None = None,
        on_timeout: TimeoutCallback | None = None,
    ) -> None:
        self._registry = registry
        self._timeout_s = float(timeout_s)
        self._rate_limiter = rate_limiter or AuthRateLimiter()
        self._on_timeout = on_timeout
        self._timeout_tasks: set[asyncio.Task] = set()

    @property
    def timeout_s(self) -> float:
        return self._timeout_s

    def set_timeout_callback(self, callback: TimeoutCallback) -> None:
        self._on_timeout = callback

    # ============================================================================
    # Challenge issue / expiry
    # ============================================================================
    def issue_challenge(self, state: ClientState) -> str:
        """Start the handshake for ``state`` and arm its timeout.

        Raises:
            RuntimeError: The session is not in the Unauthenticated phase.
        """
        if not isinstance(state.phase, Unauthenticated):
            raise RuntimeError(
                f"cannot issue challenge in phase {type(state.phase).__name__}"
            )
        loop = asyncio.get_running_loop()
        challenge = secrets.token_hex(CHALLENGE_BYTES)
        state.phase = Authenticating(challenge=challenge, deadline=loop.time() + self._timeout_s)
        state.auth_timer = loop.call_later(self._timeout_s, self._expire, state, challenge)
        logger.debug("challenge issued timeout=%ss", self._timeout_s)
        return challenge

    def cancel_timer(self, state: ClientState) -> None:
        if state.auth_timer is not None:
            state.auth_timer.cancel()
            state.auth_timer = None

    def _expire(self, state: ClientState, challenge: str) -> None:
        state.auth_timer = None
        phase = state.phase
        if not isinstance(phase, Authenticating) or phase.challenge != challenge:
            return
        state.phase = Rejected(AUTH_REASON_TIMEOUT)
        get_metrics().auth_attempts_total.add(1, {"outcome": AUTH_REASON_TIMEOUT})
        logger.info("authentication timed out connection=%s", state.connection_id)
        if self._on_timeout is None:
            return
        task = asyncio.get_running_loop().create_task(self._on_timeout(state))
        self._timeout_tasks.add(task)
        task.add_done_callback(self._timeout_tasks.discard)

    # ============================================================================
    # Verification
    # ============================================================================
    def verify(self, state: ClientState, client_id: str, signature: str) -> Authenticated:
        """Verify a signed challenge and authenticate ``state``.

        Raises:
            AuthRejectedError: With the rejection reason; ``state`` is left in
                the Rejected phase.
        """
        phase = state.phase
        if not isinstance(phase, Authenticating):
            # No outstanding challenge: it was already consumed (or never issued).
            self._log_outcome(client_id, AUTH_REASON_REPLAYED_CHALLENGE)
            raise AuthRejectedError(AUTH_REASON_REPLAYED_CHALLENGE, "no outstanding challenge")

        # Consume before any check so the challenge can never be reused.
        self.cancel_timer(state)
        challenge = phase.challenge
        state.phase = Unauthenticated()

        try:
            identity_phase = self._check(state, phase, client_id, signature, challenge)
        except AuthRejectedError as exc:
            state.phase = Rejected(exc.reason)
            self._log_outcome(client_id, exc.reason)
            raise

        state.phase = identity_phase
        self._log_outcome(client_id, "success")
        get_metrics().auth_latency.record(time.monotonic() - phase.issued_at)
        return identity_phase

    def _check(
        self,
        state: ClientState,
        phase: Authenticating,
        client_id: str,
        signature: str,
        challenge: str,
    ) -> Authenticated:
        if asyncio.get_running_loop().time() > phase.deadline:
            raise AuthRejectedError(AUTH_REASON_TIMEOUT, "challenge expired")

        ip = state.ip if isinstance(state, EnhancedClientState) else "unknown"
        key = self._rate_limiter.key(ip, client_id)
        blocked_for = self._rate_limiter.check(key)
        if blocked_for:
            raise AuthRejectedError(
                AUTH_REASON_RATE_LIMITED,
                f"too many authentication attempts; retry in {blocked_for} seconds",
                retry_after=blocked_for,
            )

        if not self._registry.available:
            raise AuthRejectedError(AUTH_REASON_REGISTRY_UNAVAILABLE, "client registry unavailable")

        if self._registry.is_revoked(client_id):
            self._fail(key, AUTH_REASON_REVOKED)

        identity = self._registry.get(client_id)
        if identity is None:
            self._fail(key, AUTH_REASON_UNKNOWN_CLIENT)

        algorithm = identity.signature_algorithm or self._registry.default_signature_algorithm
        try:
            valid = verify_signature(identity.public_key, challenge, signature, algorithm)
        except InvalidPublicKeyError as exc:
            logger.error("stored public key for %s is unusable: %s", client_id, exc)
            valid = False
        if not valid:
            self._fail(key, AUTH_REASON_BAD_SIGNATURE)

        self._rate_limiter.record_success(key)
        return Authenticated(client_id=client_id, authenticated_at=datetime.now(timezone.utc))

    def _fail(self, key: str, reason: str) -> NoReturn:
        blocked_for = self._rate_limiter.record_failure(key)
        raise AuthRejectedError(
            reason,
            retry_after=blocked_for,
            remaining_attempts=self._rate_limiter.remaining_attempts(key),
        )

    def _log_outcome(self, client_id: str, outcome: str) -> None:
        get_metrics().auth_attempts_total.add(1, {"outcome": outcome})
        add_breadcrumb(
            f"auth {outcome}",
            category="auth",
            data={"client_id": client_id},
        )
        if outcome == "success":
            logger.info("client %s authenticated", client_id)
        else:
            logger.warning("authentication failed client=%s reason=%s", client_id, outcome)


__all__ = ["ChallengeAuthenticator", "TimeoutCallback"]
