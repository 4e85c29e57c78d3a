"""Canned character responses — the offline, deterministic LLM.

CannedLLM classifies a prompt by keyword and answers with a line from a
fixed table. It needs no network and, given a seed, always answers the same
way, so it doubles as the fallback while a real provider is unavailable
and as a reproducible stand-in during development.

Classification (first match wins):
  introduction — introduction stage, or "introduction"/"introduce"
  combat       — combat, fight, battle, attack
  exploration  — explore, search, investigate, examine
  social       — talk, negotiate, persuade, diplomacy
  magic        — spell/magic, only for wizard, sorcerer or cleric classes
  stealth      — sneak/hide/lock, only for rogue or thief classes
  default      — anything else

Combat, exploration and social have "party" variants used when the prompt
already lists teammates' actions for the turn.
"""

from __future__ import annotations

import logging
import random
import re

logger = logging.getLogger(__name__)

PARTY_ACTIONS_MARKER = "PARTY MEMBERS' RECENT ACTIONS:"
GM_PROMPT_MARKER = "GM'S LATEST PROMPT:"

_NAME_RE = re.compile(r"You are ([^,\n]+),")
_CLASS_RE = re.compile(r"Class: ([^\n]+)")
_GM_PROMPT_RE = re.compile(re.escape(GM_PROMPT_MARKER) + r"\s*([^\n]*)")

_KEYWORDS: list[tuple[str, tuple[str, ...]]] = [
    ("introduction", ("introduction", "introduce")),
    ("combat", ("combat", "fight", "battle", "attack")),
    ("exploration", ("explore", "search", "investigate", "examine")),
    ("social", ("talk", "negotiate", "persuade", "diplomacy")),
]

_CASTER_CLASSES = ("wizard", "sorcerer", "cleric")
_SNEAK_CLASSES = ("rogue", "thief")

RESPONSES: dict[str, list[str]] = {
    "introduction": [
        'I stride forward confidently and introduce myself: "Greetings! I am {name}, a {role}. I\'m ready for adventure!"',
        'I step up to the group and extend my hand: "Well met! {name} at your service. My {role_lower} skills are yours to command."',
        'I approach with a friendly smile: "Hello there! I\'m {name}. Let\'s see what adventures await us together!"',
    ],
    "combat": [
        "I draw my weapon and charge toward the nearest enemy, shouting a battle cry!",
        "I cast a spell at the approaching foe, channeling my {role_lower} power!",
        "I move to protect my allies and ready my defenses against the incoming attack!",
        "I attempt to flank the enemy, using my {role_lower} training to find their weak spot!",
        "I leap into action, striking with precision and determination!",
    ],
    "combat_party": [
        "I coordinate with my allies, moving to support their attack while striking at the enemy's weak points!",
        "I cast a spell to enhance my party members' abilities, then ready my weapon for battle!",
        "I position myself to protect my allies while they execute their plans, keeping watch for threats!",
        "I follow up on my ally's attack, combining our efforts to overwhelm the enemy!",
        "I cover my party members' flanks while they engage, ensuring no enemy escapes!",
    ],
    "exploration": [
        "I carefully examine the area, searching for traps, hidden passages, or valuable clues.",
        "I move ahead to scout the path, keeping my senses alert for any dangers.",
        "I investigate the strange markings on the wall, trying to decipher their meaning.",
        "I test the floor ahead with my weapon before proceeding cautiously forward.",
        "I check for secret doors by running my hands along the stone walls.",
    ],
    "exploration_party": [
        "I work with my allies to thoroughly search the area, covering ground they haven't checked yet.",
        "I support my party member's investigation by watching for danger while they examine the details.",
        "I coordinate with my allies to map out the area efficiently, each taking a different section.",
        "I follow up on what my ally discovered, building on their findings with my own expertise.",
        "I position myself to guard my party while they investigate, ready to alert them of any threats.",
    ],
    "social": [
        "I step forward and attempt to negotiate peacefully with them.",
        "I try to charm them with my words, hoping to avoid conflict.",
        "I offer them a deal that could benefit us both.",
        "I listen carefully to their demands and consider our options.",
        "I attempt to intimidate them into backing down.",
    ],
    "social_party": [
        "I support my ally's approach by standing ready to back up their words with action.",
        "I build on what my party member said, adding my own perspective to strengthen our position.",
        "I watch my ally's back while they negotiate, ready to step in if things go badly.",
        "I complement my party member's strategy by taking a different diplomatic angle.",
        "I follow my ally's lead, supporting their negotiation with my own skills.",
    ],
    "magic": [
        "I cast a spell to help our situation, focusing my magical energy!",
        "I prepare an enchantment that might give us an advantage.",
        "I channel my arcane power to create a magical effect.",
        "I weave a spell with careful precision, hoping it will work.",
    ],
    "stealth": [
        "I attempt to sneak around behind them, moving as quietly as possible.",
        "I try to pick the lock on the door while staying hidden.",
        "I move through the shadows, avoiding detection.",
        "I carefully disable the trap I've discovered.",
    ],
    "default": [
        "I take action immediately, using my {role_lower} skills to help the party.",
        "I step forward and do what needs to be done in this situation.",
        "I act quickly, drawing on my training and experience.",
        "I take the initiative and make a bold move to advance our goals.",
        "I spring into action, ready to face whatever challenge this presents.",
    ],
}

_PARTY_AWARE = {"combat", "exploration", "social"}


def classify_prompt(prompt: str, role: str = "") -> str:
    """Return the response category for a prompt (see module docstring)."""
    text = prompt.lower()
    role = role.lower()
    for category, words in _KEYWORDS:
        if any(w in text for w in words):
            return category
    if any(c in role for c in _CASTER_CLASSES) and ("spell" in text or "magic" in text):
        return "magic"
    if any(c in role for c in _SNEAK_CLASSES) and any(w in text for w in ("sneak", "hide", "lock")):
        return "stealth"
    return "default"


def extract_identity(prompt: str) -> tuple[str, str]:
    """Pull (name, class) out of a character prompt, with generic defaults."""
    name = _NAME_RE.search(prompt)
    role = _CLASS_RE.search(prompt)
    return (
        name.group(1).strip() if name else "Character",
        role.group(1).strip() if role else "Adventurer",
    )


def focus_text(prompt: str) -> str:
    """The part of a character prompt worth classifying.

    Character prompts embed fixed coordination rules that mention fighters
    and spells, so only the GM's latest prompt is classified when present.
    """
    match = _GM_PROMPT_RE.search(prompt)
    return match.group(1) if match else prompt


class CannedLLM:
    """Keyword-classified canned responses. No network calls.

    Args:
        seed: Seed for the private random generator; None for a random seed.
        rng:  Explicit generator, overrides `seed`.
    """

    provider = "mock"

    def __init__(self, seed: int | None = None, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random(seed)

    def respond(self, prompt: str, stage: str = "response") -> str:
        name, role = extract_identity(prompt)
        if stage == "introduction":
            category = "introduction"
        else:
            category = classify_prompt(focus_text(prompt), role)
        if category in _PARTY_AWARE and PARTY_ACTIONS_MARKER in prompt:
            category = f"{category}_party"
        line = self._rng.choice(RESPONSES[category])
        return line.format(name=name, role=role, role_lower=role.lower())

    async def __call__(self, stage: str, prompt: str) -> str:
        text = self.respond(prompt, stage)
        logger.debug("CannedLLM stage=%s len=%d", stage, len(text))
        return text
