"""Request-scoped access to the app's registry and websocket hub."""

from fastapi import Request

from backend.hub import SessionHub
from dnd_chat.registry import SessionRegistry


def get_registry(request: Request) -> SessionRegistry:
    return request.app.state.registry


def get_hub(request: Request) -> SessionHub:
    return request.app.state.hub
