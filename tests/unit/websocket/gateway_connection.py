"""End-to-end tests of the per-connection loop over an in-memory socket."""

from __future__ import annotations

import asyncio

from ollama_gateway.security import sign_message
from ollama_gateway.handlers.websocket.manager import remote_addresses, handle_websocket_connection

from tests.helpers.fakes import (
    FakeBackend,
    FakeWebSocket,
    make_gateway,
    wait_until,
    register_client,
    new_client_key,
)


async def _connect(gateway, ws: FakeWebSocket) -> tuple[asyncio.Task, str]:
    task = asyncio.create_task(handle_websocket_connection(ws, gateway))
    await wait_until(lambda: ws.of_type("challenge"))
    return task, ws.of_type("challenge")[0]["challenge"]


async def _login(gateway, ws: FakeWebSocket, name: str = "alice") -> asyncio.Task:
    identity, key = register_client(gateway.registry, name)
    task, challenge = await _connect(gateway, ws)
    ws.push({"type": "authenticate", "client_id": identity.client_id, "signature": sign_message(key, challenge)})
    await wait_until(lambda: ws.of_type("auth_result"))
    assert ws.of_type("auth_result")[0]["success"] is True
    return task


async def _close(ws: FakeWebSocket, task: asyncio.Task) -> None:
    ws.push("__END__")
    await asyncio.wait_for(task, timeout=1.0)


# --- handshake ---


def test_connection_receives_challenge_first(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path, auth_timeout_s=30.0)
        await gateway.start()
        ws = FakeWebSocket()

        task, challenge = await _connect(gateway, ws)

        assert ws.accepted
        [frame] = ws.sent
        assert frame["type"] == "challenge"
        assert len(challenge) == 64
        assert 0 < frame["expires_in_ms"] <= 30000
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_successful_authentication_reports_identity(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws = FakeWebSocket()

        task = await _login(gateway, ws, "alice")

        [result] = ws.of_type("auth_result")
        assert result["name"] == "alice"
        assert len(result["client_id"]) == 32
        await _close(ws, task)
        assert ws.close_calls == [(1000, "client_closed_connection")]
        await gateway.shutdown()

    asyncio.run(_run())


def test_bad_signature_closes_with_policy_violation(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        alice, _ = register_client(gateway.registry, "alice")
        ws = FakeWebSocket()
        task, challenge = await _connect(gateway, ws)

        ws.push({
            "type": "authenticate",
            "client_id": alice.client_id,
            "signature": sign_message(new_client_key(), challenge),
        })
        await asyncio.wait_for(task, timeout=1.0)

        [result] = ws.of_type("auth_result")
        assert result == {"type": "auth_result", "success": False, "reason": "bad_signature", "remaining_attempts": 4}
        assert ws.of_type("connection_closed") == [{"type": "connection_closed", "reason": "authentication_failed"}]
        assert ws.close_calls == [(1008, "authentication_failed")]
        assert len(gateway.sessions) == 0
        await gateway.shutdown()

    asyncio.run(_run())


def test_malformed_authenticate_keeps_challenge_outstanding(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        alice, key = register_client(gateway.registry, "alice")
        ws = FakeWebSocket()
        task, challenge = await _connect(gateway, ws)

        ws.push({"type": "authenticate", "client_id": alice.client_id})
        await wait_until(lambda: ws.of_type("error"))
        assert ws.of_type("error")[0]["error_code"] == "missing_signature"

        ws.push({"type": "authenticate", "client_id": alice.client_id, "signature": sign_message(key, challenge)})
        await wait_until(lambda: ws.of_type("auth_result"))
        assert ws.of_type("auth_result")[0]["success"] is True
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_hello_resends_challenge_until_authenticated(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        identity, key = register_client(gateway.registry, "alice")
        ws = FakeWebSocket()
        task, challenge = await _connect(gateway, ws)

        ws.push({"type": "hello"})
        await wait_until(lambda: len(ws.of_type("challenge")) == 2)
        assert ws.of_type("challenge")[1]["challenge"] == challenge

        ws.push({"type": "authenticate", "client_id": identity.client_id, "signature": sign_message(key, challenge)})
        await wait_until(lambda: ws.of_type("auth_result"))
        ws.push({"type": "hello"})
        await wait_until(lambda: ws.of_type("error"))

        assert ws.of_type("error")[0]["error_code"] == "no_outstanding_challenge"
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_second_authenticate_is_rejected_without_closing(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "authenticate", "client_id": "x", "signature": "AAAA"})
        await wait_until(lambda: ws.of_type("error"))

        assert ws.of_type("error")[0]["error_code"] == "replayed_challenge"
        assert ws.close_calls == []
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


# --- routing before authentication ---


def test_generate_before_authentication_is_refused(tmp_path) -> None:
    async def _run() -> None:
        backend = FakeBackend()
        gateway = make_gateway(tmp_path, backend)
        await gateway.start()
        ws = FakeWebSocket()
        task, _ = await _connect(gateway, ws)

        for msg_type in ("generate", "cancel", "models"):
            ws.push({"type": msg_type, "prompt": "hi", "request_id": f"r-{msg_type}"})
        await wait_until(lambda: len(ws.of_type("error")) == 3)

        assert {frame["error_code"] for frame in ws.of_type("error")} == {"not_authenticated"}
        assert backend.calls == []
        assert ws.close_calls == []
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_invalid_and_unknown_frames_get_errors(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws = FakeWebSocket()
        task, _ = await _connect(gateway, ws)

        ws.push("{not json")
        ws.push({"type": "teleport"})
        await wait_until(lambda: len(ws.of_type("error")) == 2)

        codes = [frame["error_code"] for frame in ws.of_type("error")]
        assert codes == ["invalid_message", "unknown_message_type"]
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_ping_gets_pong(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws = FakeWebSocket()
        task, _ = await _connect(gateway, ws)

        ws.push({"type": "ping"})
        await wait_until(lambda: ws.of_type("pong"))

        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


# --- authenticated traffic ---


def test_generate_streams_to_the_socket(tmp_path) -> None:
    async def _run() -> None:
        backend = FakeBackend(["Hel", "lo"])
        gateway = make_gateway(tmp_path, backend, default_model="llama2")
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "generate", "prompt": "Hi", "request_id": "r1", "options": {"temperature": 0}})
        await wait_until(lambda: ws.of_type("stream_end"))

        types = [frame["type"] for frame in ws.sent if frame["type"].startswith("stream_")]
        assert types == ["stream_start", "stream_token", "stream_token", "stream_end"]
        assert ws.of_type("stream_end")[0]["cancelled"] is False
        assert backend.calls == [{"model": "llama2", "prompt": "Hi", "options": {"temperature": 0}}]
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_generate_validation_error_echoes_request_id(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "generate", "request_id": "r1"})
        await wait_until(lambda: ws.of_type("error"))

        [error] = ws.of_type("error")
        assert error["error_code"] == "missing_prompt"
        assert error["request_id"] == "r1"
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_concurrent_generate_is_a_conflict(tmp_path) -> None:
    async def _run() -> None:
        backend = FakeBackend(hold=True)
        gateway = make_gateway(tmp_path, backend)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "generate", "prompt": "one", "request_id": "r1"})
        await wait_until(lambda: ws.of_type("stream_token"))
        ws.push({"type": "generate", "prompt": "two", "request_id": "r2"})
        await wait_until(lambda: ws.of_type("error"))

        [error] = ws.of_type("error")
        assert error["error_code"] == "generation_conflict"
        assert error["request_id"] == "r2"
        assert error["active_request_id"] == "r1"
        backend.release.set()
        await wait_until(lambda: ws.of_type("stream_end"))
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_cancel_sends_cancelled_end_then_ack(tmp_path) -> None:
    async def _run() -> None:
        backend = FakeBackend(hold=True)
        gateway = make_gateway(tmp_path, backend)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "generate", "prompt": "Hi", "request_id": "r1"})
        await wait_until(lambda: ws.of_type("stream_token"))
        ws.push({"type": "cancel"})
        await wait_until(lambda: ws.of_type("ack"))

        tail = [frame["type"] for frame in ws.sent[-2:]]
        assert tail == ["stream_end", "ack"]
        assert ws.of_type("stream_end")[0]["cancelled"] is True
        assert ws.of_type("ack") == [{"type": "ack", "action": "cancel", "request_id": "r1"}]
        assert backend.cancelled == 1
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_cancel_with_nothing_active(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push("__CANCEL__")
        await wait_until(lambda: ws.of_type("error"))

        assert ws.of_type("error")[0]["error_code"] == "no_active_generation"
        assert ws.of_type("stream_end") == []
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_models_lists_backend_models(tmp_path) -> None:
    async def _run() -> None:
        backend = FakeBackend(models=[{"name": "llama2:latest", "size": 3825819519, "modified_at": "2024-01-01"}])
        gateway = make_gateway(tmp_path, backend)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "models"})
        await wait_until(lambda: ws.of_type("models_result"))

        assert ws.of_type("models_result")[0]["models"] == [
            {"name": "llama2:latest", "size": 3825819519, "modified_at": "2024-01-01"}
        ]
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_models_reports_unavailable_backend(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path, FakeBackend(fail_with="connection refused"))
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)

        ws.push({"type": "models", "request_id": "m1"})
        await wait_until(lambda: ws.of_type("error"))

        [error] = ws.of_type("error")
        assert error["error_code"] == "backend_unavailable"
        assert error["request_id"] == "m1"
        await _close(ws, task)
        await gateway.shutdown()

    asyncio.run(_run())


def test_revoked_client_is_closed_on_next_frame(tmp_path) -> None:
    async def _run() -> None:
        gateway = make_gateway(tmp_path)
        gateway.registry.load()  # no revocation listener: the frame check must catch it
        ws = FakeWebSocket()
        task = await _login(gateway, ws)
        [result] = ws.of_type("auth_result")

        gateway.registry.revoke(result["client_id"])
        ws.push({"type": "models"})
        await asyncio.wait_for(task, timeout=1.0)

        assert ws.close_calls == [(4003, "client_revoked")]
        assert ws.of_type("models_result") == []

    asyncio.run(_run())


# --- disconnects ---


def test_client_disconnect_discards_generation(tmp_path) -> None:
    async def _run() -> None:
        backend = FakeBackend(hold=True)
        gateway = make_gateway(tmp_path, backend)
        await gateway.start()
        ws = FakeWebSocket()
        task = await _login(gateway, ws)
        ws.push({"type": "generate", "prompt": "Hi"})
        await wait_until(lambda: ws.of_type("stream_token"))

        ws.disconnect()
        await asyncio.wait_for(task, timeout=1.0)

        assert backend.cancelled == 1
        assert ws.close_calls == []
        assert ws.of_type("stream_end") == []
        assert len(gateway.sessions) == 0
        assert gateway.tracker.active_count == 0
        await gateway.shutdown()

    asyncio.run(_run())


def test_remote_addresses_prefers_forwarded_chain() -> None:
    async def _run() -> None:
        forwarded = FakeWebSocket(host="10.0.0.9", headers={"x-forwarded-for": "1.2.3.4, 10.0.0.2"})
        direct = FakeWebSocket(host="10.0.0.9")

        assert remote_addresses(forwarded) == ("1.2.3.4", "10.0.0.2")
        assert remote_addresses(direct) == ("10.0.0.9",)

    asyncio.run(_run())
