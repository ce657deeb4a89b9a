"""Main FastAPI server for the Ollama gateway.

This module builds the application that fronts a local Ollama backend. It
provides:

- REST endpoints for health checks (/healthz, /)
- Client self-registration (POST /api/auth/register)
- WebSocket endpoint for authenticated generation sessions (/ws)

Server Lifecycle:
    1. On startup: validate config, start telemetry, load the client
       registry (fatal when unrecoverable), start the registry watcher
    2. Accept WebSocket connections on /ws
    3. Route messages through handlers (authenticate, generate, cancel, ...)
    4. On shutdown: cancel generations, close sessions with
       ``server_shutdown``, release the backend client

Example:
    Run directly with uvicorn:
        $ uvicorn ollama_gateway.server:app --host 127.0.0.1 --port 3000

    Or through the package entry point:
        $ python -m ollama_gateway
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import FastAPI, Request, WebSocket
from fastapi.responses import ORJSONResponse

from .state import ServerConfig
from .errors import ValidationError, InvalidPublicKeyError, RegistryUnrecoverableError
from .logging import configure_logging
from .helpers.settings import load_config, validate_config
from .telemetry import init_telemetry, shutdown_telemetry
from .handlers.gateway import Gateway
from .handlers.websocket.manager import handle_websocket_connection

logger = logging.getLogger(__name__)


def _parse_register_body(body: Any) -> tuple[str, str, str | None]:
    if not isinstance(body, dict):
        raise ValidationError("invalid_body", "request body must be a JSON object")
    name = body.get("name")
    public_key = body.get("public_key", body.get("publicKey"))
    algorithm = body.get("signature_algorithm", body.get("signatureAlgorithm"))
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("missing_name", "'name' is required")
    if not isinstance(public_key, str) or not public_key.strip():
        raise ValidationError("missing_public_key", "'public_key' is required")
    if algorithm is not None and not isinstance(algorithm, str):
        raise ValidationError("invalid_signature_algorithm", "'signature_algorithm' must be a string")
    return name, public_key, algorithm


def create_app(config: ServerConfig | None = None, *, gateway: Gateway | None = None) -> FastAPI:
    """Build the FastAPI application around a Gateway."""
    config = config or (gateway.config if gateway else load_config())
    gateway = gateway or Gateway.build(config)
    app = FastAPI(default_response_class=ORJSONResponse)
    app.state.gateway = gateway

    @app.on_event("startup")
    async def start_gateway() -> None:
        """Load the registry before accepting traffic.

        RegistryUnrecoverableError propagates and aborts startup.
        """
        configure_logging()
        validate_config(config)
        init_telemetry()
        await gateway.start()
        logger.info(
            "gateway ready on %s:%s backend=%s model=%s clients=%s",
            config.host,
            config.port,
            config.ollama_url,
            config.default_model,
            len(gateway.registry.clients()),
        )

    @app.on_event("shutdown")
    async def stop_gateway() -> None:
        """Cancel generations and close every session with server_shutdown."""
        await gateway.shutdown()
        shutdown_telemetry()

    @app.get("/")
    async def root():
        """Root endpoint for load balancer health checks."""
        return {"status": "ok", "service": "ollama-gateway"}

    @app.get("/healthz")
    async def healthz():
        """Health check endpoint (no authentication required)."""
        return {
            "status": "ok" if gateway.registry.available else "degraded",
            "registry_available": gateway.registry.available,
            "sessions": len(gateway.sessions),
            "active_generations": gateway.tracker.active_count,
        }

    @app.get("/favicon.ico", status_code=204)
    async def favicon():
        """Suppress favicon requests from browsers/probes."""
        return None

    @app.post("/api/auth/register")
    async def register_client(request: Request):
        """Register a client public key and return its new id."""
        try:
            body = await request.json()
        except ValueError:
            body = None
        try:
            name, public_key, algorithm = _parse_register_body(body)
            identity = await asyncio.to_thread(gateway.registry.register, name, public_key, algorithm)
        except ValidationError as err:
            return ORJSONResponse({"error": err.error_code, "message": err.message}, status_code=400)
        except InvalidPublicKeyError as exc:
            return ORJSONResponse({"error": "invalid_public_key", "message": str(exc)}, status_code=400)
        except RegistryUnrecoverableError as exc:
            return ORJSONResponse({"error": "registry_unavailable", "message": str(exc)}, status_code=503)
        return ORJSONResponse(
            {"client_id": identity.client_id, "clientId": identity.client_id, "name": identity.name},
            status_code=201,
        )

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """Authenticated generation sessions."""
        await handle_websocket_connection(websocket, gateway)

    return app


app = create_app()


__all__ = ["app", "create_app"]
