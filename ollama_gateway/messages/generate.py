"""Generate message handler.

Validates the frame and hands it to the GenerationTracker. Streaming
(``stream_start`` / ``stream_token`` / ``stream_end``) happens in the
tracker's task; this handler only reports admission failures.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..state import ClientState
from ..errors import ValidationError, GenerationConflictError, GenerationUnauthenticatedError
from ..handlers.websocket.errors import build_error_payload
from .validators import validate_generate_message

if TYPE_CHECKING:
    from ..handlers.gateway import Gateway

logger = logging.getLogger(__name__)


async def handle_generate_message(gateway: Gateway, state: ClientState, msg: dict[str, Any]) -> None:
    connection_id = state.connection_id
    try:
        request = validate_generate_message(msg)
    except ValidationError as err:
        await gateway.sessions.send(
            connection_id,
            build_error_payload(err.error_code, err.message, request_id=msg.get("request_id")),
        )
        return

    try:
        handle = gateway.tracker.start(
            connection_id,
            prompt=request.prompt,
            model=request.model,
            options=request.options,
            request_id=request.request_id,
        )
    except GenerationConflictError as exc:
        await gateway.sessions.send(
            connection_id,
            build_error_payload(
                "generation_conflict",
                "A generation is already active on this connection; cancel it first.",
                request_id=request.request_id,
                extra={"active_request_id": exc.active_request_id},
            ),
        )
        return
    except GenerationUnauthenticatedError:
        await gateway.sessions.send(
            connection_id,
            build_error_payload("not_authenticated", "Authenticate before generating.", request_id=request.request_id),
        )
        return

    logger.info("WS recv: generate request_id=%s model=%s", handle.request_id, handle.model)


__all__ = ["handle_generate_message"]
