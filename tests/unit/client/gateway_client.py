"""Unit tests for the bundled GatewayClient against a scripted connection."""

from __future__ import annotations

import asyncio

import orjson
import pytest
from websockets.exceptions import ConnectionClosedOK

from ollama_gateway.client import GatewayClient, reconnect_delay, connect_with_retries
from ollama_gateway.errors import ClientAuthError, ClientRequestError, ConnectionLostError
from ollama_gateway.security import private_key_pem, public_key_pem, verify_signature

from tests.helpers.fakes import new_client_key, wait_until

CLIENT_ID = "a" * 32


class ScriptedGateway:
    """Connection object that answers client frames like the gateway does."""

    def __init__(
        self,
        public_pem: str,
        *,
        tokens: tuple[str, ...] = ("Hel", "lo"),
        hold: bool = False,
        generate_error: str | None = None,
    ) -> None:
        self.public_pem = public_pem
        self.tokens = tokens
        self.hold = hold
        self.generate_error = generate_error
        self.challenge = "ab" * 32
        self.received: list[dict] = []
        self.closed = False
        self.request_id: str | None = None
        self._outbound: asyncio.Queue[str | None] = asyncio.Queue()
        self.push({"type": "challenge", "challenge": self.challenge, "expires_in_ms": 30000})

    def push(self, frame: dict | None) -> None:
        self._outbound.put_nowait(None if frame is None else orjson.dumps(frame).decode("utf-8"))

    async def recv(self) -> str:
        item = await self._outbound.get()
        if item is None:
            raise ConnectionClosedOK(None, None)
        return item

    async def send(self, text: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        msg = orjson.loads(text)
        self.received.append(msg)
        handler = getattr(self, f"_on_{msg['type']}", None)
        if handler is not None:
            handler(msg)

    async def close(self) -> None:
        self.closed = True
        self.push(None)

    def _on_authenticate(self, msg: dict) -> None:
        if verify_signature(self.public_pem, self.challenge, msg["signature"], "SHA256"):
            self.push({"type": "auth_result", "success": True, "client_id": msg["client_id"], "name": "alice"})
            return
        self.push({"type": "auth_result", "success": False, "reason": "bad_signature", "remaining_attempts": 4})
        self.push({"type": "connection_closed", "reason": "authentication_failed"})
        self.push(None)

    def _on_generate(self, msg: dict) -> None:
        request_id = self.request_id = msg["request_id"]
        if self.generate_error:
            self.push({"type": "error", "error_code": self.generate_error, "message": "boom", "request_id": request_id})
            return
        self.push({"type": "stream_start", "request_id": request_id, "model": msg.get("model", "llama2")})
        tokens = self.tokens[:1] if self.hold else self.tokens
        for token in tokens:
            self.push({"type": "stream_token", "request_id": request_id, "token": token})
        if not self.hold:
            self._end(cancelled=False, total=len(tokens))

    def _on_cancel(self, msg: dict) -> None:
        self._end(cancelled=True, total=1)
        self.push({"type": "ack", "action": "cancel", "request_id": self.request_id})

    def _on_models(self, msg: dict) -> None:
        self.push({"type": "models_result", "models": [{"name": "llama2:latest", "size": 1, "modified_at": None}]})

    def _on_end(self, msg: dict) -> None:
        self.push(None)

    def _end(self, *, cancelled: bool, total: int) -> None:
        self.push({
            "type": "stream_end",
            "request_id": self.request_id,
            "total_tokens": total,
            "elapsed_ms": 5,
            "cancelled": cancelled,
        })


def _client(gateway: ScriptedGateway, key, **kwargs) -> GatewayClient:
    async def _accept(_url: str) -> ScriptedGateway:
        return gateway

    return GatewayClient("ws://gateway.test/ws", client_id=CLIENT_ID, private_key=key, connect=_accept, **kwargs)


# --- handshake ---


def test_client_authenticates_and_streams() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key))

        async with _client(gateway, key) as client:
            assert client.authenticated
            assert client.name == "alice"
            tokens = [token async for token in client.generate("Hi", model="mistral")]

        assert tokens == ["Hel", "lo"]
        assert client.last_result["cancelled"] is False
        assert [msg["type"] for msg in gateway.received] == ["authenticate", "generate", "end"]
        assert gateway.received[1]["model"] == "mistral"
        assert gateway.closed
        assert not client.authenticated

    asyncio.run(_run())


def test_client_accepts_pem_private_key() -> None:
    async def _run() -> None:
        key = new_client_key("ed25519")
        gateway = ScriptedGateway(public_key_pem(key))

        async with _client(gateway, private_key_pem(key)) as client:
            assert client.authenticated

    asyncio.run(_run())


def test_rejected_signature_raises_auth_error() -> None:
    async def _run() -> None:
        gateway = ScriptedGateway(public_key_pem(new_client_key("ec")))
        client = _client(gateway, new_client_key("ec"))

        with pytest.raises(ClientAuthError) as excinfo:
            await client.connect()

        assert excinfo.value.reason == "bad_signature"
        assert gateway.closed
        assert not client.authenticated

    asyncio.run(_run())


def test_missing_challenge_times_out() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key))
        await gateway.recv()  # swallow the challenge

        with pytest.raises(asyncio.TimeoutError):
            await _client(gateway, key, challenge_timeout_s=0.05).connect()

    asyncio.run(_run())


# --- requests ---


def test_cancel_ends_stream_with_cancelled_result() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key), hold=True)

        async with _client(gateway, key) as client:
            tokens = []
            async for token in client.generate("Hi"):
                tokens.append(token)
                await client.cancel()

            assert tokens == ["Hel"]
            assert client.last_result["cancelled"] is True

    asyncio.run(_run())


def test_error_frame_raises_request_error() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key), generate_error="generation_failed")

        async with _client(gateway, key) as client:
            with pytest.raises(ClientRequestError) as excinfo:
                async for _ in client.generate("Hi", request_id="r1"):
                    pass

        assert excinfo.value.error_code == "generation_failed"
        assert excinfo.value.request_id == "r1"

    asyncio.run(_run())


def test_list_models() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key))

        async with _client(gateway, key) as client:
            models = await client.list_models()

        assert models == [{"name": "llama2:latest", "size": 1, "modified_at": None}]

    asyncio.run(_run())


def test_pings_are_answered() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key))

        async with _client(gateway, key):
            gateway.push({"type": "ping", "timestamp": 1})
            await wait_until(lambda: any(msg["type"] == "pong" for msg in gateway.received))

    asyncio.run(_run())


def test_server_close_mid_stream_raises_connection_lost() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        gateway = ScriptedGateway(public_key_pem(key), hold=True)
        client = _client(gateway, key)
        await client.connect()

        with pytest.raises(ConnectionLostError) as excinfo:
            async for _ in client.generate("Hi"):
                gateway.push({"type": "connection_closed", "reason": "client_revoked"})
                gateway.push(None)

        assert excinfo.value.reason == "client_revoked"
        with pytest.raises(ConnectionLostError):
            await client.list_models()
        await client.close()

    asyncio.run(_run())


def test_requests_require_a_session() -> None:
    async def _run() -> None:
        key = new_client_key("ec")
        client = _client(ScriptedGateway(public_key_pem(key)), key)

        with pytest.raises(ConnectionLostError):
            await client.cancel()
        with pytest.raises(ConnectionLostError):
            async for _ in client.generate("Hi"):
                pass

    asyncio.run(_run())


# --- reconnect ---


def test_reconnect_delay_doubles_and_caps() -> None:
    delays = [reconnect_delay(n, base_delay_s=1.0, max_delay_s=5.0, jitter=0.2, rand=lambda: 0.5) for n in (1, 2, 3, 4)]
    assert delays == [1.0, 2.0, 4.0, 5.0]
    assert reconnect_delay(1, base_delay_s=1.0, max_delay_s=5.0, jitter=0.2, rand=lambda: 0.0) == pytest.approx(0.8)


def test_connect_with_retries_backs_off_then_succeeds() -> None:
    async def _run() -> None:
        attempts: list[int] = []
        sleeps: list[float] = []

        async def _factory() -> str:
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionRefusedError("refused")
            return "connection"

        async def _sleep(delay: float) -> None:
            sleeps.append(delay)

        result = await connect_with_retries(_factory, max_attempts=5, base_delay_s=0.1, jitter=0.0, sleep=_sleep)

        assert result == "connection"
        assert sleeps == [pytest.approx(0.1), pytest.approx(0.2)]

    asyncio.run(_run())


def test_connect_with_retries_gives_up() -> None:
    async def _run() -> None:
        async def _factory() -> None:
            raise OSError("unreachable")

        async def _sleep(_delay: float) -> None:
            return None

        with pytest.raises(ConnectionLostError, match="giving up after 3 attempts"):
            await connect_with_retries(_factory, max_attempts=3, sleep=_sleep)

    asyncio.run(_run())


# --- command line ---


def test_client_cli_requires_prompt_or_models(capsys) -> None:
    from ollama_gateway.client.__main__ import main

    assert main(["--client-id", CLIENT_ID, "--private-key", "missing.pem"]) == 2
    assert "prompt is required" in capsys.readouterr().err
