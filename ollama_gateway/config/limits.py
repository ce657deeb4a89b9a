"""Message size and rate limits configuration."""

import os


# Generate payload limits
PROMPT_MAX_CHARS = int(os.getenv("PROMPT_MAX_CHARS", "200000"))
REQUEST_ID_MAX_CHARS = int(os.getenv("REQUEST_ID_MAX_CHARS", "128"))
MODEL_NAME_MAX_CHARS = int(os.getenv("MODEL_NAME_MAX_CHARS", "256"))

# WebSocket message/cancel rate limits (rolling window)
WS_MESSAGE_WINDOW_SECONDS = float(os.getenv("WS_MESSAGE_WINDOW_SECONDS", "60"))
WS_MAX_MESSAGES_PER_WINDOW = int(os.getenv("WS_MAX_MESSAGES_PER_WINDOW", "60"))
WS_CANCEL_WINDOW_SECONDS = float(os.getenv(
    "WS_CANCEL_WINDOW_SECONDS",
    str(WS_MESSAGE_WINDOW_SECONDS),
))
WS_MAX_CANCELS_PER_WINDOW = int(os.getenv("WS_MAX_CANCELS_PER_WINDOW", str(WS_MAX_MESSAGES_PER_WINDOW)))


__all__ = [
    "PROMPT_MAX_CHARS",
    "REQUEST_ID_MAX_CHARS",
    "MODEL_NAME_MAX_CHARS",
    "WS_MESSAGE_WINDOW_SECONDS",
    "WS_MAX_MESSAGES_PER_WINDOW",
    "WS_CANCEL_WINDOW_SECONDS",
    "WS_MAX_CANCELS_PER_WINDOW",
]
