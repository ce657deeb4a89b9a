"""WebSocket message type handlers.

auth.py:
    ``hello`` (re-send the outstanding challenge) and ``authenticate``
    (verify a signed challenge; failure closes the connection).

generate.py:
    Validates ``generate`` frames and starts a tracked generation.

cancel.py:
    Aborts the session's active generation (``cancel`` / ``stop``).

models.py:
    Lists the models installed on the backend.

validators.py:
    Field validation shared across handlers.
"""

from .auth import handle_hello_message, handle_authenticate_message
from .cancel import handle_cancel_message
from .models import handle_models_message
from .generate import handle_generate_message

__all__ = [
    "handle_hello_message",
    "handle_authenticate_message",
    "handle_generate_message",
    "handle_cancel_message",
    "handle_models_message",
]
