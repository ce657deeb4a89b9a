"""Python client for the gateway's authenticated WebSocket protocol."""

from .session import GatewayClient
from .reconnect import reconnect_delay, connect_with_retries

__all__ = ["GatewayClient", "reconnect_delay", "connect_with_retries"]
