"""Process-wide server configuration values.

These map one-to-one onto the fields of ``ServerConfig``:

    PORT / HOST:            uvicorn bind address.
    OLLAMA_API_URL:         Base URL of the inference backend.
    OLLAMA_DEFAULT_MODEL:   Model used when a generate request names none.
    OLLAMA_TIMEOUT_S:       Read timeout for a single backend stream.
    DATA_DIR:               Root of the authorized client registry.
"""

import os


PORT = int(os.getenv("PORT", "3000"))
HOST = os.getenv("HOST", "127.0.0.1")

OLLAMA_API_URL = os.getenv("OLLAMA_API_URL", "http://localhost:11434")
OLLAMA_DEFAULT_MODEL = os.getenv("OLLAMA_DEFAULT_MODEL", "llama2")
OLLAMA_TIMEOUT_S = float(os.getenv("OLLAMA_TIMEOUT_S", "300"))
OLLAMA_CONNECT_TIMEOUT_S = float(os.getenv("OLLAMA_CONNECT_TIMEOUT_S", "5"))

DATA_DIR = os.getenv("DATA_DIR", os.path.join(os.getcwd(), "data"))


__all__ = [
    "PORT",
    "HOST",
    "OLLAMA_API_URL",
    "OLLAMA_DEFAULT_MODEL",
    "OLLAMA_TIMEOUT_S",
    "OLLAMA_CONNECT_TIMEOUT_S",
    "DATA_DIR",
]
