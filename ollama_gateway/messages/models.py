"""Models message handler: lists the models installed on the backend."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..state import ClientState
from ..errors import BackendUnavailableError
from ..handlers.websocket.errors import build_error_payload

if TYPE_CHECKING:
    from ..handlers.gateway import Gateway


async def handle_models_message(gateway: Gateway, state: ClientState, msg: dict[str, Any]) -> None:
    try:
        models = await gateway.backend.list_models()
    except BackendUnavailableError as exc:
        await gateway.sessions.send(
            state.connection_id,
            build_error_payload("backend_unavailable", str(exc), request_id=msg.get("request_id")),
        )
        return
    await gateway.sessions.send(state.connection_id, {
        "type": "models_result",
        "models": [
            {"name": model.get("name"), "size": model.get("size"), "modified_at": model.get("modified_at")}
            for model in models
        ],
    })


__all__ = ["handle_models_message"]
