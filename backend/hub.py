"""WebSocket fan-out of session messages.

Sockets subscribe to one session at a time. After a turn resolves, every
new character message is sent to that session's subscribers one by one, in
log order, with `pacing` seconds between messages. Sockets that fail to
receive are dropped.
"""

import asyncio
import logging
from collections.abc import Iterable
from typing import Any

from fastapi import WebSocket

from dnd_chat.models import Message

logger = logging.getLogger(__name__)


def message_frame(msg: Message, frame_type: str | None = None) -> dict[str, Any]:
    return {
        "type": frame_type or msg.kind,
        "id": msg.id,
        "speaker": msg.speaker,
        "message": msg.body,
        "timestamp": msg.timestamp.isoformat(),
    }


class SessionHub:
    def __init__(self, pacing: float = 1.0) -> None:
        self.pacing = pacing
        self._subscribers: dict[str, set[WebSocket]] = {}
        self._delivery: dict[str, asyncio.Lock] = {}

    def subscribe(self, session_id: str, ws: WebSocket) -> None:
        self.unsubscribe(ws)
        self._subscribers.setdefault(session_id, set()).add(ws)

    def unsubscribe(self, ws: WebSocket) -> None:
        for session_id in list(self._subscribers):
            subs = self._subscribers[session_id]
            subs.discard(ws)
            if not subs:
                del self._subscribers[session_id]

    def subscriber_count(self, session_id: str | None = None) -> int:
        if session_id is not None:
            return len(self._subscribers.get(session_id, ()))
        return sum(len(s) for s in self._subscribers.values())

    async def send(self, ws: WebSocket, frame: dict[str, Any]) -> bool:
        try:
            await ws.send_json(frame)
            return True
        except Exception as e:
            logger.warning("Dropping websocket after failed send: %s", e)
            self.unsubscribe(ws)
            return False

    async def publish(self, session_id: str, frame: dict[str, Any]) -> None:
        for ws in list(self._subscribers.get(session_id, ())):
            await self.send(ws, frame)

    async def deliver_turn(self, session_id: str, messages: Iterable[Message]) -> None:
        """Stream a turn's character messages to the session's subscribers.

        Deliveries for one session run one at a time, so a turn's messages
        never interleave with the next turn's.
        """
        characters = [m for m in messages if m.kind == "character"]
        lock = self._delivery.setdefault(session_id, asyncio.Lock())
        async with lock:
            for i, msg in enumerate(characters):
                if i and self.pacing > 0:
                    await asyncio.sleep(self.pacing)
                await self.publish(session_id, message_frame(msg, "character_response"))
