"""HTTP and WebSocket routes of the FastAPI application."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from ollama_gateway.server import create_app
from ollama_gateway.errors import RegistryUnrecoverableError
from ollama_gateway.security import sign_message, public_key_pem

from tests.helpers.fakes import make_gateway, new_client_key


@pytest.fixture
def client(tmp_path):
    with TestClient(create_app(gateway=make_gateway(tmp_path))) as test_client:
        yield test_client


# --- health ---


def test_healthz_reports_registry_and_counts(client) -> None:
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "registry_available": True,
        "sessions": 0,
        "active_generations": 0,
    }
    assert client.get("/").json()["service"] == "ollama-gateway"


# --- registration ---


def test_register_returns_client_id(client) -> None:
    pem = public_key_pem(new_client_key("ec"))

    response = client.post("/api/auth/register", json={"name": "alice", "public_key": pem})

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "alice"
    assert len(body["client_id"]) == 32
    assert body["clientId"] == body["client_id"]
    assert client.app.state.gateway.registry.get(body["client_id"]) is not None


def test_register_accepts_camel_case_keys(client) -> None:
    pem = public_key_pem(new_client_key("ed25519"))

    response = client.post(
        "/api/auth/register",
        json={"name": "bob", "publicKey": pem, "signatureAlgorithm": "sha512"},
    )

    assert response.status_code == 201


@pytest.mark.parametrize(
    ("body", "error"),
    [
        ({"public_key": "x"}, "missing_name"),
        ({"name": "alice"}, "missing_public_key"),
        ({"name": "alice", "public_key": "not a key"}, "invalid_public_key"),
        (["alice"], "invalid_body"),
    ],
)
def test_register_rejects_bad_bodies(client, body, error) -> None:
    response = client.post("/api/auth/register", json=body)

    assert response.status_code == 400
    assert response.json()["error"] == error


def test_register_rejects_non_json(client) -> None:
    response = client.post("/api/auth/register", content=b"{nope", headers={"content-type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "invalid_body"


def test_register_with_unloadable_registry_returns_503(client) -> None:
    registry = client.app.state.gateway.registry
    registry.clients_path.write_bytes(b"\xff\xfe\x00")
    pem = public_key_pem(new_client_key("ec"))

    response = client.post("/api/auth/register", json={"name": "alice", "public_key": pem})

    assert response.status_code == 503
    assert response.json()["error"] == "registry_unavailable"
    assert not registry.available


# --- websocket ---


def test_websocket_handshake_and_generation(client) -> None:
    key = new_client_key("ec")
    registered = client.post("/api/auth/register", json={"name": "alice", "public_key": public_key_pem(key)}).json()

    with client.websocket_connect("/ws") as ws:
        challenge = ws.receive_json()
        assert challenge["type"] == "challenge"

        ws.send_json({
            "type": "authenticate",
            "client_id": registered["client_id"],
            "signature": sign_message(key, challenge["challenge"]),
        })
        assert ws.receive_json() == {
            "type": "auth_result",
            "success": True,
            "client_id": registered["client_id"],
            "name": "alice",
        }

        ws.send_json({"type": "generate", "prompt": "Hi", "request_id": "r1"})
        frames = [ws.receive_json() for _ in range(4)]
        assert [frame["type"] for frame in frames] == ["stream_start", "stream_token", "stream_token", "stream_end"]
        assert frames[-1]["cancelled"] is False


# --- startup ---


def test_start_fails_on_unrecoverable_registry(tmp_path) -> None:
    (tmp_path / "authorized_clients.json").write_text("{broken", encoding="utf-8")
    gateway = make_gateway(tmp_path)

    with pytest.raises(RegistryUnrecoverableError):
        asyncio.run(gateway.start())
