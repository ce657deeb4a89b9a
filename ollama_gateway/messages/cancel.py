"""Cancel message handler for aborting the in-flight generation.

The tracker delivers ``stream_end`` with ``cancelled: true`` for the aborted
generation; this handler adds the ``ack``. Cancelling with nothing active is
reported as ``no_active_generation`` and has no other effect.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..state import ClientState
from ..errors import GenerationNotFoundError
from ..handlers.websocket.errors import build_error_payload

if TYPE_CHECKING:
    from ..handlers.gateway import Gateway


async def handle_cancel_message(gateway: Gateway, state: ClientState, msg: dict[str, Any]) -> None:
    connection_id = state.connection_id
    try:
        handle = await gateway.tracker.cancel(connection_id)
    except GenerationNotFoundError:
        await gateway.sessions.send(
            connection_id,
            build_error_payload(
                "no_active_generation",
                "There is no active generation to cancel.",
                request_id=msg.get("request_id"),
            ),
        )
        return
    await gateway.sessions.send(
        connection_id,
        {"type": "ack", "action": "cancel", "request_id": handle.request_id},
    )


__all__ = ["handle_cancel_message"]
