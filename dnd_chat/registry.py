"""Session registry — maps session ids to live sessions.

One registry is constructed per app and handed to whatever serves
requests; there is no module-level session map. Sessions live in process
memory only and disappear on restart.

submit_prompt() runs each turn as its own task and waits on it through
asyncio.shield(), so a caller that stops waiting (closed socket, cancelled
request) never interrupts a turn half-way through its appends.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from threading import Lock

from dnd_chat.llm import LLM, llm_status
from dnd_chat.models import Message, ParticipantSpec, SessionSnapshot
from dnd_chat.session import Session, SessionNotFoundError

logger = logging.getLogger(__name__)


class SessionRegistry:
    """In-memory session map. Lookups and inserts are guarded by a lock."""

    def __init__(self, llm: LLM, response_timeout: float | None = None) -> None:
        self.llm = llm
        self._response_timeout = response_timeout
        self._sessions: dict[str, Session] = {}
        self._lock = Lock()
        self._turns: set[asyncio.Task] = set()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    async def create_session(
        self, opening_prompt: str, specs: Sequence[ParticipantSpec]
    ) -> str:
        session = await Session.create(
            opening_prompt, specs, self.llm, response_timeout=self._response_timeout
        )
        with self._lock:
            self._sessions[session.id] = session
        return session.id

    def get(self, session_id: str) -> Session:
        with self._lock:
            session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(f"Session not found: {session_id}")
        return session

    def get_status(self, session_id: str) -> SessionSnapshot | None:
        with self._lock:
            session = self._sessions.get(session_id)
        return session.snapshot() if session else None

    async def submit_prompt(self, session_id: str, prompt: str) -> list[Message]:
        """Run one turn; returns the messages it appended (GM prompt first)."""
        session = self.get(session_id)
        task = asyncio.ensure_future(session.process_prompt(prompt))
        self._turns.add(task)
        task.add_done_callback(self._turns.discard)
        return await asyncio.shield(task)

    def end_session(self, session_id: str) -> None:
        """Mark a session ended. Unknown ids are ignored."""
        with self._lock:
            session = self._sessions.get(session_id)
        if session is not None:
            session.end()

    def list_active(self) -> list[SessionSnapshot]:
        with self._lock:
            sessions = list(self._sessions.values())
        return [s.snapshot() for s in sessions if s.active]

    def llm_status(self) -> dict:
        return llm_status(self.llm)

    async def drain(self) -> None:
        """Wait for turns still running after their callers stopped waiting."""
        if self._turns:
            await asyncio.gather(*list(self._turns), return_exceptions=True)
