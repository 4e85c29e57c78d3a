"""Session lifecycle endpoints: create, status, prompt, end."""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from backend.hub import SessionHub
from dnd_chat.registry import SessionRegistry
from dnd_chat.session import InactiveSessionError, MalformedInputError, SessionNotFoundError

from .deps import get_hub, get_registry
from .models import CreatedSession, CreateSession, PromptBody

router = APIRouter()


@router.post("/sessions", status_code=201, response_model=CreatedSession)
async def create_session(body: CreateSession, registry: SessionRegistry = Depends(get_registry)):
    """Start a session: log the opening prompt and collect introductions."""
    try:
        session_id = await registry.create_session(body.opening_prompt, body.participants)
    except MalformedInputError as e:
        raise HTTPException(400, str(e))
    return {"session_id": session_id}


@router.get("/sessions")
async def list_sessions(registry: SessionRegistry = Depends(get_registry)):
    """List active sessions."""
    return registry.list_active()


@router.get("/sessions/{session_id}")
async def get_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """Full session snapshot including the message log."""
    status = registry.get_status(session_id)
    if status is None:
        raise HTTPException(404, "Session not found")
    return status


@router.post("/sessions/{session_id}/prompt")
async def submit_prompt(
    session_id: str,
    body: PromptBody,
    background: BackgroundTasks,
    registry: SessionRegistry = Depends(get_registry),
    hub: SessionHub = Depends(get_hub),
):
    """Run one GM turn and return the updated snapshot.

    New character messages are also streamed to the session's websocket
    subscribers.
    """
    try:
        messages = await registry.submit_prompt(session_id, body.prompt)
    except SessionNotFoundError:
        raise HTTPException(404, "Session not found")
    except InactiveSessionError as e:
        raise HTTPException(409, str(e))
    except MalformedInputError as e:
        raise HTTPException(400, str(e))
    background.add_task(hub.deliver_turn, session_id, messages)
    return registry.get_status(session_id)


@router.post("/sessions/{session_id}/end")
async def end_session(session_id: str, registry: SessionRegistry = Depends(get_registry)):
    """End a session. Unknown ids are accepted and ignored."""
    registry.end_session(session_id)
    return {"ok": True}
