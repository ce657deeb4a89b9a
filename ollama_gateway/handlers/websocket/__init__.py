"""WebSocket handler exports.

The connection loop itself lives in ``manager.py`` and is imported from
there directly; it depends on the message handlers, which depend on the
helpers exported here.
"""

from .errors import send_error, build_error_payload
from .helpers import encode_frame, safe_send_json, safe_send_text
from .lifecycle import LivenessMonitor

__all__ = [
    "send_error",
    "build_error_payload",
    "encode_frame",
    "safe_send_json",
    "safe_send_text",
    "LivenessMonitor",
]
