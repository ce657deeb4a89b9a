"""WebSocket and session management handlers.

This package provides the infrastructure for handling client connections:

gateway.py:
    Assembles the registry, authenticator, session manager, backend client
    and generation tracker from one ServerConfig.

limits.py:
    Sliding window rate limiter for per-connection message throttling.

session/:
    SessionManager: live connections, idempotent teardown, liveness and
    revocation-driven disconnects.

websocket/:
    WebSocket message routing and lifecycle:
    - Ping/pong liveness monitor (lifecycle.py)
    - Message parsing and validation (parser.py)
    - Error response helpers (errors.py)
    - Send helpers (helpers.py)
    - Main connection handler (manager.py)
"""
