"""Core domain models.

Every session operation and every API response is expressed in these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

MessageKind = Literal["gm", "character", "system"]

GM_SPEAKER = "GM"


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


class Message(BaseModel):
    """A single entry in a session's append-only log."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    speaker: str  # GM_SPEAKER | <participant name> | "system"
    body: str
    kind: MessageKind
    timestamp: datetime = Field(default_factory=_now)


class ParticipantSpec(BaseModel):
    """Input shape for one character at session creation.

    `class` and `personality` are accepted as aliases so the original
    browser client payloads validate unchanged.
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    role: str = Field(default="Adventurer", validation_alias=AliasChoices("role", "class"))
    profile: str = Field(default="", validation_alias=AliasChoices("profile", "personality"))

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("participant name must not be empty")
        return value


class MemoryEntry(BaseModel):
    """One remembered (prompt summary, own output) pair."""

    model_config = ConfigDict(frozen=True)

    prompt_summary: str
    output: str

    def render(self) -> str:
        return f"{self.prompt_summary}: {self.output}"


class ParticipantSummary(BaseModel):
    name: str
    role: str
    profile: str
    memory_size: int


class SessionSnapshot(BaseModel):
    """Read-only copy of a session's full state."""

    id: str
    opening_prompt: str
    participants: list[ParticipantSummary]
    log: list[Message]
    turn_counter: int
    active: bool
    created_at: datetime
