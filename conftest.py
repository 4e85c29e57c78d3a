"""Shared fixtures: scripted LLM doubles and ready-made parties."""

import asyncio

import pytest

from dnd_chat.models import ParticipantSpec
from dnd_chat.registry import SessionRegistry


class ScriptedLLM:
    """Answers from a per-character script; records every call.

    `replies` maps a character name to a list of replies consumed in order.
    A reply that is an Exception instance is raised instead of returned.
    Unscripted calls answer "<name> acts." where name is read from the
    prompt's "You are NAME," opening line.
    """

    def __init__(self, replies: dict[str, list] | None = None) -> None:
        self.replies = {k: list(v) for k, v in (replies or {}).items()}
        self.calls: list[tuple[str, str, str]] = []  # (stage, name, prompt)

    @staticmethod
    def name_of(prompt: str) -> str:
        return prompt.split("You are ", 1)[1].split(",", 1)[0]

    async def __call__(self, stage: str, prompt: str) -> str:
        name = self.name_of(prompt)
        self.calls.append((stage, name, prompt))
        queue = self.replies.get(name)
        reply = queue.pop(0) if queue else f"{name} acts."
        if isinstance(reply, BaseException):
            raise reply
        return reply

    def prompts_for(self, name: str, stage: str = "response") -> list[str]:
        return [p for s, n, p in self.calls if n == name and s == stage]


class HangingLLM(ScriptedLLM):
    """Like ScriptedLLM, but never answers for the names in `hang`."""

    def __init__(self, hang: set[str], replies: dict[str, list] | None = None) -> None:
        super().__init__(replies)
        self.hang = hang

    async def __call__(self, stage: str, prompt: str) -> str:
        if self.name_of(prompt) in self.hang:
            await asyncio.Event().wait()
        return await super().__call__(stage, prompt)


@pytest.fixture
def llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def party() -> list[ParticipantSpec]:
    return [
        ParticipantSpec(name="Tharin", role="Fighter", profile="Brave and loyal."),
        ParticipantSpec(name="Lyra", role="Wizard", profile="Curious and analytical."),
        ParticipantSpec(name="Finn", role="Rogue", profile="Witty and sneaky."),
    ]


@pytest.fixture
def registry(llm: ScriptedLLM) -> SessionRegistry:
    return SessionRegistry(llm)


@pytest.fixture
def make_llm():
    """Build a ScriptedLLM (or HangingLLM when `hang` is given)."""

    def _make(replies: dict[str, list] | None = None, hang: set[str] | None = None) -> ScriptedLLM:
        if hang:
            return HangingLLM(hang, replies)
        return ScriptedLLM(replies)

    return _make
