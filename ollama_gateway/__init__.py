"""Ollama WebSocket gateway: challenge-response authenticated sessions,
tracked and cancellable generations, and a persisted client registry."""

__version__ = "1.0.0"
