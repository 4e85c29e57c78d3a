"""Session core — turn resolution for one narrative run.

A session owns a fixed party, an append-only message log and a turn
counter. All mutation goes through this class.

Creation:
  1. Append the GM's opening prompt.
  2. Each character, in party order, introduces itself (sequentially).

Turn flow (process_prompt):
  1. Reject if the session has ended; reject an empty prompt.
  2. Append the GM prompt.
  3. Resolve the target: one directly addressed character, or the party.
  4. Direct address — only that character responds, with no party actions.
     Broadcast — every character responds in party order. Each sees the last
     CONTEXT_WINDOW log messages and the actions already taken this turn.
  5. A failed or timed-out reply becomes "*Name seems speechless*"; it is
     still logged and still counts as that character's party action.
  6. Increment the turn counter exactly once.

Turns on the same session are serialised by a per-session asyncio.Lock;
characters within a turn are always called one after another, since each
reply may react to the ones before it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from dnd_chat.addressing import find_addressed
from dnd_chat.llm import LLM
from dnd_chat.models import GM_SPEAKER, Message, MessageKind, ParticipantSpec, SessionSnapshot, new_id
from dnd_chat.participant import Participant

logger = logging.getLogger(__name__)

CONTEXT_WINDOW = 10


class SessionNotFoundError(LookupError):
    """No session exists with the given id."""


class InactiveSessionError(RuntimeError):
    """The session has ended and accepts no more prompts."""


class MalformedInputError(ValueError):
    """A lifecycle call was missing required input; nothing was changed."""


def fallback_text(name: str) -> str:
    return f"*{name} seems speechless*"


def validate_specs(specs: Sequence[ParticipantSpec]) -> None:
    """Reject an empty party or names that collide case-insensitively."""
    if not specs:
        raise MalformedInputError("At least one participant is required")
    seen: set[str] = set()
    for spec in specs:
        key = spec.name.casefold()
        if key in seen:
            raise MalformedInputError(f"Duplicate participant name: {spec.name}")
        seen.add(key)


def _require_text(value: str, what: str) -> str:
    if not value or not value.strip():
        raise MalformedInputError(f"{what} must not be empty")
    return value.strip()


class Session:
    def __init__(
        self,
        opening_prompt: str,
        participants: list[Participant],
        response_timeout: float | None = None,
    ) -> None:
        self.id = new_id()
        self.opening_prompt = opening_prompt
        self.participants = participants
        self.created_at = datetime.now(timezone.utc)
        self.turn_counter = 0
        self.active = True
        self._log: list[Message] = []
        self._response_timeout = response_timeout or None
        self._lock = asyncio.Lock()

    @classmethod
    async def create(
        cls,
        opening_prompt: str,
        specs: Sequence[ParticipantSpec],
        llm: LLM,
        response_timeout: float | None = None,
    ) -> Session:
        """Build a session, log the opening prompt and collect introductions."""
        opening_prompt = _require_text(opening_prompt, "Opening prompt")
        validate_specs(specs)

        participants = [Participant.from_spec(s, llm) for s in specs]
        session = cls(opening_prompt, participants, response_timeout)
        session._append(GM_SPEAKER, opening_prompt, "gm")

        for p in participants:
            text = await session._call(p, p.generate_introduction(opening_prompt))
            session._append(p.name, text, "character")

        logger.info("Session %s created with %d participants", session.id, len(participants))
        return session

    # ------------------------------------------------------------------
    # Log
    # ------------------------------------------------------------------

    @property
    def log(self) -> list[Message]:
        return list(self._log)

    def _append(self, speaker: str, body: str, kind: MessageKind) -> Message:
        msg = Message(speaker=speaker, body=body, kind=kind)
        self._log.append(msg)
        return msg

    def recent_context(self, count: int = CONTEXT_WINDOW) -> str:
        return "\n".join(f"{m.speaker}: {m.body}" for m in self._log[-count:])

    def messages_since(self, index: int) -> list[Message]:
        return self._log[index:]

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    def addressed_participant(self, prompt: str) -> Participant | None:
        name = find_addressed(prompt, [p.name for p in self.participants])
        if name is None:
            return None
        return next(p for p in self.participants if p.name == name)

    async def _call(self, participant: Participant, coro) -> str:
        """Await one character's reply; any failure becomes the fallback line."""
        try:
            if self._response_timeout:
                return await asyncio.wait_for(coro, self._response_timeout)
            return await coro
        except Exception as e:
            logger.warning(
                "Session %s: %s failed to respond (%s: %s)",
                self.id, participant.name, type(e).__name__, e,
            )
            return fallback_text(participant.name)

    async def process_prompt(self, prompt: str) -> list[Message]:
        """Resolve one GM turn. Returns the messages appended, GM prompt first."""
        async with self._lock:
            if not self.active:
                raise InactiveSessionError(f"Session {self.id} has ended")
            prompt = _require_text(prompt, "Prompt")

            start = len(self._log)
            logger.info("Processing GM prompt for session %s: %r", self.id, prompt)
            self._append(GM_SPEAKER, prompt, "gm")

            target = self.addressed_participant(prompt)
            if target is not None:
                logger.info("GM is addressing %s specifically", target.name)
                text = await self._call(
                    target, target.generate_response(prompt, self.recent_context(), [])
                )
                self._append(target.name, text, "character")
            else:
                logger.info("GM is addressing the entire party")
                party_actions: list[str] = []
                for p in self.participants:
                    text = await self._call(
                        p, p.generate_response(prompt, self.recent_context(), list(party_actions))
                    )
                    party_actions.append(f"{p.name}: {text}")
                    self._append(p.name, text, "character")

            self.turn_counter += 1
            logger.info(
                "Turn %d completed for session %s. Total messages: %d",
                self.turn_counter, self.id, len(self._log),
            )
            return self.messages_since(start)

    def end(self) -> None:
        if self.active:
            logger.info("Session %s ended after %d turns", self.id, self.turn_counter)
        self.active = False

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            id=self.id,
            opening_prompt=self.opening_prompt,
            participants=[p.summary() for p in self.participants],
            log=list(self._log),
            turn_counter=self.turn_counter,
            active=self.active,
            created_at=self.created_at,
        )
