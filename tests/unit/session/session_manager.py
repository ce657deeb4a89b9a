"""Unit tests for SessionManager teardown, liveness and revocation."""

from __future__ import annotations

import asyncio

from ollama_gateway.registry import ClientRegistry
from ollama_gateway.handlers.session import SessionManager

from tests.helpers.fakes import FakeWebSocket, make_gateway, settle, authenticate_session


async def _authenticated_session(gateway, ws: FakeWebSocket, name: str = "alice"):
    state, identity, _ = await authenticate_session(gateway, ws, name)
    return state, identity


# --- connect / teardown ---


def test_on_connect_allocates_unauthenticated_state(tmp_path) -> None:
    async def _run() -> None:
        sessions = SessionManager(ClientRegistry(tmp_path).load())
        ws = FakeWebSocket()

        state = sessions.on_connect(ws, ("1.2.3.4", "10.0.0.1"))

        assert len(state.connection_id) == 32
        assert not state.authenticated
        assert state.ip == "1.2.3.4"
        assert sessions.get(state.connection_id) is state
        assert len(sessions) == 1

    asyncio.run(_run())


def test_teardown_runs_once_and_closes_transport(tmp_path) -> None:
    async def _run() -> None:
        sessions = SessionManager(ClientRegistry(tmp_path).load())
        hook_calls: list[str] = []

        async def _hook(state) -> None:
            hook_calls.append(state.connection_id)

        sessions.add_teardown_hook(_hook)
        ws = FakeWebSocket()
        state = sessions.on_connect(ws)

        first = await sessions.on_disconnect(state.connection_id, code=4001, reason="authentication_timeout")
        second = await sessions.on_disconnect(state.connection_id, code=1000, reason="client_closed_connection")

        assert (first, second) == (True, False)
        assert hook_calls == [state.connection_id]
        assert ws.of_type("connection_closed") == [
            {"type": "connection_closed", "reason": "authentication_timeout"}
        ]
        assert ws.close_calls == [(4001, "authentication_timeout")]
        assert sessions.get(state.connection_id) is None

    asyncio.run(_run())


def test_teardown_without_notify_leaves_transport_alone(tmp_path) -> None:
    async def _run() -> None:
        sessions = SessionManager(ClientRegistry(tmp_path).load())
        ws = FakeWebSocket()
        state = sessions.on_connect(ws)

        await sessions.on_disconnect(state.connection_id, notify=False)

        assert ws.sent == []
        assert ws.close_calls == []

    asyncio.run(_run())


def test_failing_teardown_hook_does_not_block_close(tmp_path) -> None:
    async def _run() -> None:
        sessions = SessionManager(ClientRegistry(tmp_path).load())

        async def _broken(_state) -> None:
            raise RuntimeError("boom")

        sessions.add_teardown_hook(_broken)
        ws = FakeWebSocket()
        state = sessions.on_connect(ws)

        assert await sessions.on_disconnect(state.connection_id, code=1000, reason="client_closed_connection")
        assert ws.close_calls == [(1000, "client_closed_connection")]

    asyncio.run(_run())


def test_send_to_unknown_connection_returns_false(tmp_path) -> None:
    async def _run() -> None:
        sessions = SessionManager(ClientRegistry(tmp_path).load())

        assert not await sessions.send("missing", {"type": "ping"})

    asyncio.run(_run())


# --- auth timeout ---


def test_unanswered_challenge_closes_with_auth_timeout(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path, auth_timeout_s=0.02)
        await gateway.start()
        ws = FakeWebSocket()
        state = gateway.sessions.on_connect(ws)
        gateway.authenticator.issue_challenge(state)

        await asyncio.sleep(0.08)

        assert [frame["error_code"] for frame in ws.of_type("error")] == ["auth_timeout"]
        assert ws.close_calls == [(4001, "authentication_timeout")]
        assert gateway.sessions.get(state.connection_id) is None
        await gateway.shutdown()

    asyncio.run(_run())


# --- revocation ---


def test_revocation_disconnects_every_session_of_the_client(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws_a, ws_b, ws_other = FakeWebSocket(), FakeWebSocket(), FakeWebSocket()
        state_a, alice = await _authenticated_session(gateway, ws_a, "alice")
        state_b = gateway.sessions.on_connect(ws_b)
        state_b.phase = state_a.phase
        await _authenticated_session(gateway, ws_other, "bob")

        gateway.registry.revoke(alice.client_id, "compromised")
        await settle(10)

        assert ws_a.close_calls == [(4003, "client_revoked")]
        assert ws_b.close_calls == [(4003, "client_revoked")]
        assert ws_other.close_calls == []
        assert len(gateway.sessions) == 1
        await gateway.shutdown()

    asyncio.run(_run())


def test_ensure_authorized_catches_revocation_without_listener(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        gateway.registry.load()  # sessions.start() not called: no subscription
        ws = FakeWebSocket()
        state, alice = await _authenticated_session(gateway, ws)

        assert await gateway.sessions.ensure_authorized(state)
        gateway.registry.revoke(alice.client_id)

        assert not await gateway.sessions.ensure_authorized(state)
        assert ws.close_calls == [(4003, "client_revoked")]

    asyncio.run(_run())


# --- liveness ---


def test_unanswered_ping_disconnects_after_one_more_interval(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path, ping_interval_s=0.02)
        await gateway.start()
        ws = FakeWebSocket()
        state, _ = await _authenticated_session(gateway, ws)

        gateway.sessions.start_liveness(state.connection_id)
        await asyncio.sleep(0.1)

        assert len(ws.of_type("ping")) == 1
        assert ws.close_calls == [(4002, "ping_timeout")]
        assert gateway.sessions.get(state.connection_id) is None
        await gateway.shutdown()

    asyncio.run(_run())


def test_inbound_traffic_keeps_session_alive(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path, ping_interval_s=0.05)
        await gateway.start()
        ws = FakeWebSocket()
        state, _ = await _authenticated_session(gateway, ws)
        gateway.sessions.start_liveness(state.connection_id)

        for _ in range(20):
            await asyncio.sleep(0.01)
            gateway.sessions.touch(state.connection_id)

        assert ws.close_calls == []
        assert len(ws.of_type("ping")) >= 1
        await gateway.shutdown()
        assert ws.close_calls == [(1001, "server_shutdown")]

    asyncio.run(_run())


def test_liveness_tick_disconnects_revoked_client(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path, ping_interval_s=0.02)
        gateway.registry.load()
        ws = FakeWebSocket()
        state, alice = await _authenticated_session(gateway, ws)
        gateway.sessions.start_liveness(state.connection_id)

        gateway.registry.revoke(alice.client_id)
        await asyncio.sleep(0.05)

        assert ws.close_calls == [(4003, "client_revoked")]
        assert ws.of_type("ping") == []

    asyncio.run(_run())


def test_shutdown_closes_every_session(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        sockets = [FakeWebSocket() for _ in range(3)]
        for ws in sockets:
            gateway.sessions.on_connect(ws)

        await gateway.shutdown()

        assert all(ws.close_calls == [(1001, "server_shutdown")] for ws in sockets)
        assert len(gateway.sessions) == 0

    asyncio.run(_run())
