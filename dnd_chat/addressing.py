"""Direct-address detection for GM prompts.

Decides whether a GM utterance speaks to one character by name or to the
whole party. Matching is case-insensitive and heuristic: a missed direct
address simply falls back to a broadcast turn.

Recognised forms (NAME is a participant name):
  "NAME, ..." / "NAME: ..."      — opening vocative
  "... NAME, ..." / "... NAME: " — vocative mid-sentence
  "Hey NAME" / "Hi NAME"         — greeting
  "NAME, what|can|do|roll|cast|use|attack"
  "..., NAME?"                   — trailing vocative

The first name in party order that matches any form wins.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from functools import lru_cache

_ADDRESS_VERBS = ("what", "can", "do", "roll", "cast", "use", "attack")


@lru_cache(maxsize=256)
def _patterns(name: str) -> tuple[re.Pattern[str], ...]:
    """Compile (and cache) the direct-address patterns for one name."""
    n = re.escape(name)
    sources = [
        rf"^{n}[,:]",
        rf"\b{n}[,:]\s",
        rf"^(hey|hi)\s+{n}\b",
        *(rf"\b{n}\s*,\s*{verb}" for verb in _ADDRESS_VERBS),
        rf",\s*{n}\s*[?!.]*$",
    ]
    return tuple(re.compile(s, re.IGNORECASE) for s in sources)


def find_addressed(prompt: str, names: Sequence[str]) -> str | None:
    """Return the name the prompt addresses directly, or None for the whole party.

    >>> find_addressed("Tharin, what do you do?", ["Tharin", "Lyra"])
    'Tharin'
    >>> find_addressed("Everyone, charge!", ["Tharin", "Lyra"]) is None
    True
    """
    text = prompt.strip()
    for name in names:
        if any(p.search(text) for p in _patterns(name)):
            return name
    return None
