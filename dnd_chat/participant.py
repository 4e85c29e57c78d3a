"""AI-driven party members.

A Participant owns its identity (name, class, personality) and a bounded
memory of what it has said. Each generation call renders a prompt from the
templates in dnd_chat.prompts, delegates to the injected LLM and records the
reply in memory.

Memory: once more than MEMORY_CAP entries accumulate, the oldest are dropped
so that only the most recent MEMORY_RETAIN remain, in original order.

LLM failures propagate; the session decides what a failed reply becomes.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from dnd_chat.llm import LLM
from dnd_chat.models import MemoryEntry, ParticipantSpec, ParticipantSummary
from dnd_chat.prompts import (
    IDENTITY_TEMPLATE,
    INTRODUCTION_TEMPLATE,
    RESPONSE_TEMPLATE,
    render_prompt,
)

logger = logging.getLogger(__name__)

MEMORY_CAP = 10
MEMORY_RETAIN = 8


class Participant:
    def __init__(self, name: str, role: str, profile: str, llm: LLM) -> None:
        self.name = name
        self.role = role
        self.profile = profile
        self._llm = llm
        self._memory: list[MemoryEntry] = []

    @classmethod
    def from_spec(cls, spec: ParticipantSpec, llm: LLM) -> Participant:
        return cls(spec.name, spec.role, spec.profile, llm)

    @property
    def memory(self) -> list[MemoryEntry]:
        return list(self._memory)

    def _base_context(self) -> dict:
        return {
            "name": self.name,
            "role": self.role,
            "role_lower": self.role.lower(),
            "profile": self.profile,
            "memory": [m.render() for m in self._memory],
        }

    def _identity(self) -> str:
        return render_prompt(IDENTITY_TEMPLATE, self._base_context())

    def build_introduction_prompt(self, scenario: str) -> str:
        ctx = self._base_context()
        ctx.update(identity=self._identity(), scenario=scenario)
        return render_prompt(INTRODUCTION_TEMPLATE, ctx)

    def build_response_prompt(
        self,
        gm_prompt: str,
        context: str,
        party_actions: Sequence[str] = (),
    ) -> str:
        ctx = self._base_context()
        ctx.update(
            identity=self._identity(),
            context=context,
            party_actions=list(party_actions),
            party_text="\n".join(party_actions),
            gm_prompt=gm_prompt,
        )
        return render_prompt(RESPONSE_TEMPLATE, ctx)

    def _remember(self, prompt_summary: str, output: str) -> None:
        self._memory.append(MemoryEntry(prompt_summary=prompt_summary, output=output))
        if len(self._memory) > MEMORY_CAP:
            self._memory = self._memory[-MEMORY_RETAIN:]

    async def generate_introduction(self, scenario: str) -> str:
        """Introduce this character to the party, seeded by the opening scenario."""
        prompt = self.build_introduction_prompt(scenario)
        text = await self._llm("introduction", prompt)
        self._remember("Introduction", text)
        return text

    async def generate_response(
        self,
        gm_prompt: str,
        context: str,
        party_actions: Sequence[str] = (),
    ) -> str:
        """Decide this character's action for the GM's prompt.

        `context` is the recent shared conversation; `party_actions` lists
        what teammates already did earlier in this same turn, as
        "Name: action" lines.
        """
        prompt = self.build_response_prompt(gm_prompt, context, party_actions)
        text = await self._llm("response", prompt)
        self._remember(f'Response to "{gm_prompt}"', text)
        logger.debug("%s responded (%d chars, memory=%d)", self.name, len(text), len(self._memory))
        return text

    def summary(self) -> ParticipantSummary:
        return ParticipantSummary(
            name=self.name,
            role=self.role,
            profile=self.profile,
            memory_size=len(self._memory),
        )
