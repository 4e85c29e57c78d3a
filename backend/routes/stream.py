"""WebSocket endpoint for live sessions.

Client frames (JSON):
  {"type": "join_session", "session_id": "..."}
      Subscribe to the session and replay its full log.
  {"type": "gm_prompt", "session_id": "...", "message": "..."}
      Run a GM turn; new character messages arrive as character_response.
  {"type": "get_status", "session_id": "..."}
      Reply with {"type": "session_status", "data": <snapshot>}.

Server frames: "system" greeting on connect, one frame per replayed
message (type = message kind), "character_response", "session_status",
and {"type": "error", "message": "..."} for anything that goes wrong.

A client that disconnects mid-turn does not interrupt the turn.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from backend.hub import SessionHub, message_frame
from dnd_chat.registry import SessionRegistry
from dnd_chat.session import InactiveSessionError, MalformedInputError, SessionNotFoundError

from .models import SocketFrame

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(message: str) -> dict:
    return {"type": "error", "message": message}


@router.websocket("/ws")
async def session_socket(websocket: WebSocket):
    registry: SessionRegistry = websocket.app.state.registry
    hub: SessionHub = websocket.app.state.hub

    await websocket.accept()
    logger.info("WebSocket connection opened")
    await hub.send(websocket, {"type": "system", "message": "Connected to D&D LLM Chat server"})
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = SocketFrame.model_validate_json(raw)
            except ValidationError:
                await hub.send(websocket, _error("Invalid message format"))
                continue
            await _handle(frame, websocket, registry, hub)
    except WebSocketDisconnect:
        logger.info("WebSocket connection closed")
    finally:
        hub.unsubscribe(websocket)


async def _handle(
    frame: SocketFrame, websocket: WebSocket, registry: SessionRegistry, hub: SessionHub
) -> None:
    if not frame.session_id:
        await hub.send(websocket, _error("Missing session_id"))
        return

    if frame.type == "join_session":
        status = registry.get_status(frame.session_id)
        if status is None:
            await hub.send(websocket, _error("Session not found"))
            return
        hub.subscribe(frame.session_id, websocket)
        for msg in status.log:
            await hub.send(websocket, message_frame(msg))

    elif frame.type == "get_status":
        status = registry.get_status(frame.session_id)
        if status is None:
            await hub.send(websocket, _error("Session not found"))
            return
        await hub.send(websocket, {"type": "session_status", "data": status.model_dump(mode="json")})

    elif frame.type == "gm_prompt":
        if not frame.message:
            await hub.send(websocket, _error("Missing session_id or message"))
            return
        try:
            messages = await registry.submit_prompt(frame.session_id, frame.message)
        except (SessionNotFoundError, InactiveSessionError, MalformedInputError) as e:
            await hub.send(websocket, _error(f"Error processing GM prompt: {e}"))
            return
        # the prompting socket follows the session it drives
        hub.subscribe(frame.session_id, websocket)
        await hub.deliver_turn(frame.session_id, messages)
