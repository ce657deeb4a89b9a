"""Live connection registry and session lifecycle.

SessionManager owns every ClientState. It is responsible for:

1. Connection bookkeeping:
   - allocating a state with a fresh connection id on connect
   - idempotent teardown on disconnect (timer, liveness, hooks, transport)

2. Liveness:
   - one LivenessMonitor per authenticated session

3. Authorization upkeep:
   - ``ensure_authorized`` on every inbound message and liveness tick
   - immediate disconnect of sessions whose client is revoked

Teardown hooks (the GenerationTracker registers one) run exactly once per
connection, after the state has been removed, so they never race a second
teardown.
"""

from __future__ import annotations

import time
import uuid
import asyncio
import logging
import contextlib
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from collections.abc import Callable, Iterator, Awaitable

from fastapi import WebSocket

from ...state import ClientState, EnhancedClientState, RevocationRecord
from ...config.websocket import (
    PING_INTERVAL_S,
    DISCONNECT_REVOKED,
    WS_CLOSE_REVOKED_CODE,
    WS_CLOSE_SHUTDOWN_CODE,
    DISCONNECT_AUTH_TIMEOUT,
    DISCONNECT_PING_TIMEOUT,
    DISCONNECT_CLIENT_CLOSED,
    WS_CLOSE_AUTH_TIMEOUT_CODE,
    WS_CLOSE_PING_TIMEOUT_CODE,
    DISCONNECT_SERVER_SHUTDOWN,
    WS_CLOSE_CLIENT_REQUEST_CODE,
)
from ...telemetry import get_metrics, add_breadcrumb
from ..websocket.helpers import safe_send_json
from ..websocket.lifecycle import LivenessMonitor

if TYPE_CHECKING:
    from ...registry import ClientRegistry

logger = logging.getLogger(__name__)

TeardownHook = Callable[[ClientState], Awaitable[None]]


class SessionManager:
    """Owns the set of live connections and their authentication state."""

    def __init__(
        self,
        registry: ClientRegistry,
        *,
        ping_interval_s: float = PING_INTERVAL_S,
    ) -> None:
        self._registry = registry
        self._ping_interval_s = float(ping_interval_s)
        self._states: dict[str, EnhancedClientState] = {}
        self._sockets: dict[str, WebSocket] = {}
        self._teardown_hooks: list[TeardownHook] = []
        self._loop: asyncio.AbstractEventLoop | None = None
        self._background: set[asyncio.Task] = set()

    # ============================================================================
    # Setup
    # ============================================================================
    def start(self) -> None:
        """Bind to the running loop and follow registry revocations."""
        self._loop = asyncio.get_running_loop()
        self._registry.subscribe(self._on_revocation)

    def add_teardown_hook(self, hook: TeardownHook) -> None:
        self._teardown_hooks.append(hook)

    # ============================================================================
    # Lookup
    # ============================================================================
    def get(self, connection_id: str) -> EnhancedClientState | None:
        return self._states.get(connection_id)

    def sessions_for(self, client_id: str) -> list[EnhancedClientState]:
        return [state for state in self._states.values() if state.client_id == client_id]

    def __len__(self) -> int:
        return len(self._states)

    def __iter__(self) -> Iterator[EnhancedClientState]:
        return iter(list(self._states.values()))

    # ============================================================================
    # Connect / disconnect
    # ============================================================================
    def on_connect(self, websocket: WebSocket, remote_addresses: tuple[str, ...] = ()) -> EnhancedClientState:
        """Register an accepted connection in the Unauthenticated phase."""
        connection_id = uuid.uuid4().hex
        state = EnhancedClientState(connection_id=connection_id, remote_addresses=tuple(remote_addresses))
        self._states[connection_id] = state
        self._sockets[connection_id] = websocket
        get_metrics().active_connections.add(1)
        logger.info(
            "connection opened connection=%s ip=%s active=%s",
            connection_id,
            state.ip,
            len(self._states),
        )
        return state

    async def on_disconnect(
        self,
        connection_id: str,
        *,
        code: int = WS_CLOSE_CLIENT_REQUEST_CODE,
        reason: str = DISCONNECT_CLIENT_CLOSED,
        notify: bool = True,
    ) -> bool:
        """Tear the connection down once; later calls return False.

        Args:
            connection_id: Connection to remove.
            code: WebSocket close code.
            reason: Machine-readable reason sent in ``connection_closed``.
            notify: Send ``connection_closed`` and close the socket. False when
                the transport is already gone.
        """
        state = self._states.pop(connection_id, None)
        websocket = self._sockets.pop(connection_id, None)
        if state is None:
            return False

        if state.auth_timer is not None:
            state.auth_timer.cancel()
            state.auth_timer = None
        if state.liveness is not None:
            monitor, state.liveness = state.liveness, None
            await monitor.stop()

        for hook in self._teardown_hooks:
            try:
                await hook(state)
            except Exception:  # noqa: BLE001
                logger.exception("teardown hook failed for connection=%s", connection_id)

        if notify and websocket is not None:
            await safe_send_json(websocket, {"type": "connection_closed", "reason": reason})
            with contextlib.suppress(RuntimeError, OSError):
                await websocket.close(code=code, reason=reason)

        metrics = get_metrics()
        metrics.active_connections.add(-1)
        metrics.connection_duration.record(
            (datetime.now(timezone.utc) - state.connected_at).total_seconds()
        )
        if reason != DISCONNECT_CLIENT_CLOSED:
            metrics.disconnects_total.add(1, {"reason": reason})
        logger.info(
            "connection closed connection=%s client=%s reason=%s active=%s",
            connection_id,
            state.client_id or "-",
            reason,
            len(self._states),
        )
        return True

    async def send(self, connection_id: str, payload: dict[str, Any]) -> bool:
        """Best-effort JSON send; False when the connection is gone."""
        websocket = self._sockets.get(connection_id)
        if websocket is None:
            return False
        return await safe_send_json(websocket, payload)

    def touch(self, connection_id: str) -> None:
        state = self._states.get(connection_id)
        if state is None:
            return
        state.touch()
        if state.liveness is not None:
            state.liveness.touch()

    # ============================================================================
    # Liveness
    # ============================================================================
    def start_liveness(self, connection_id: str) -> LivenessMonitor | None:
        state = self._states.get(connection_id)
        if state is None:
            return None
        if state.liveness is None:
            monitor = LivenessMonitor(
                send_ping=lambda: self.send(connection_id, {"type": "ping", "timestamp": int(time.time() * 1000)}),
                on_timeout=lambda: self.on_disconnect(
                    connection_id,
                    code=WS_CLOSE_PING_TIMEOUT_CODE,
                    reason=DISCONNECT_PING_TIMEOUT,
                ),
                on_tick=lambda: self.ensure_authorized(state),
                interval_s=self._ping_interval_s,
            )
            state.liveness = monitor
            monitor.start()
        return state.liveness

    # ============================================================================
    # Authorization upkeep
    # ============================================================================
    async def ensure_authorized(self, state: ClientState) -> bool:
        """Disconnect ``state`` if its client has been revoked.

        Returns True while the session may continue.
        """
        client_id = state.client_id
        if client_id is None or not self._registry.is_revoked(client_id):
            return self._states.get(state.connection_id) is state
        logger.warning("client %s revoked; closing connection=%s", client_id, state.connection_id)
        await self.on_disconnect(
            state.connection_id,
            code=WS_CLOSE_REVOKED_CODE,
            reason=DISCONNECT_REVOKED,
        )
        return False

    async def handle_auth_timeout(self, state: ClientState) -> None:
        """Timeout callback wired into the ChallengeAuthenticator."""
        await self.send(state.connection_id, {
            "type": "error",
            "error_code": "auth_timeout",
            "message": "Authentication timed out",
        })
        await self.on_disconnect(
            state.connection_id,
            code=WS_CLOSE_AUTH_TIMEOUT_CODE,
            reason=DISCONNECT_AUTH_TIMEOUT,
        )

    async def disconnect_client(self, client_id: str, *, code: int, reason: str) -> int:
        """Close every session authenticated as ``client_id``."""
        states = self.sessions_for(client_id)
        for state in states:
            await self.on_disconnect(state.connection_id, code=code, reason=reason)
        return len(states)

    def _on_revocation(self, record: RevocationRecord) -> None:
        # Registry listeners may run on a worker thread (watcher, CLI).
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(self._schedule_revocation_disconnect, record.client_id)

    def _schedule_revocation_disconnect(self, client_id: str) -> None:
        if not self.sessions_for(client_id):
            return
        add_breadcrumb("client revoked", category="auth", data={"client_id": client_id})
        task = asyncio.create_task(
            self.disconnect_client(client_id, code=WS_CLOSE_REVOKED_CODE, reason=DISCONNECT_REVOKED)
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    # ============================================================================
    # Shutdown
    # ============================================================================
    async def shutdown(self) -> None:
        """Close every session with ``server_shutdown``."""
        self._registry.unsubscribe(self._on_revocation)
        for state in list(self._states.values()):
            await self.on_disconnect(
                state.connection_id,
                code=WS_CLOSE_SHUTDOWN_CODE,
                reason=DISCONNECT_SERVER_SHUTDOWN,
            )
        if self._background:
            await asyncio.wait(set(self._background))


__all__ = ["SessionManager", "TeardownHook"]
