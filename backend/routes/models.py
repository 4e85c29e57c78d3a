"""Pydantic request/response models for API endpoints."""

from typing import Literal

from pydantic import AliasChoices, BaseModel, Field

from dnd_chat.models import ParticipantSpec


class CreateSession(BaseModel):
    opening_prompt: str = Field(validation_alias=AliasChoices("opening_prompt", "gmPrompt"))
    participants: list[ParticipantSpec] = Field(
        validation_alias=AliasChoices("participants", "characters")
    )


class CreatedSession(BaseModel):
    session_id: str


class PromptBody(BaseModel):
    prompt: str


class SocketFrame(BaseModel):
    """Client → server websocket frame."""

    type: Literal["join_session", "gm_prompt", "get_status"]
    session_id: str | None = None
    message: str | None = None
