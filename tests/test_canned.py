"""Tests for dnd_chat.canned — the offline keyword-classified LLM."""

import pytest

from dnd_chat.canned import (
    RESPONSES,
    CannedLLM,
    classify_prompt,
    extract_identity,
    focus_text,
)
from dnd_chat.participant import Participant


def _prompt(gm_prompt: str, name: str = "Finn", role: str = "Rogue", party: bool = False) -> str:
    lines = [f"You are {name}, a {role} in a D&D adventure.", f"- Class: {role}", ""]
    if party:
        lines += ["PARTY MEMBERS' RECENT ACTIONS:", "Tharin: I charge.", ""]
    lines.append(f"GM'S LATEST PROMPT: {gm_prompt}")
    return "\n".join(lines)


def _formatted(category: str, name: str = "Finn", role: str = "Rogue") -> list[str]:
    return [
        line.format(name=name, role=role, role_lower=role.lower())
        for line in RESPONSES[category]
    ]


# ── Classification ───────────────────────────────────────────


@pytest.mark.parametrize("text, expected", [
    ("Please introduce yourselves", "introduction"),
    ("A battle breaks out!", "combat"),
    ("Goblins ATTACK the wagon", "combat"),
    ("You search the room", "exploration"),
    ("The duke wants to negotiate", "social"),
    ("The sky is grey", "default"),
])
def test_classify_keywords(text, expected):
    assert classify_prompt(text) == expected


def test_magic_only_for_casters():
    assert classify_prompt("The air hums with magic", "Wizard") == "magic"
    assert classify_prompt("The air hums with magic", "Fighter") == "default"


def test_stealth_only_for_sneaks():
    assert classify_prompt("The chest has a lock", "Rogue") == "stealth"
    assert classify_prompt("The chest has a lock", "Cleric") == "default"


def test_keywords_checked_before_class_gated_categories():
    assert classify_prompt("Sneak in and attack", "Rogue") == "combat"


# ── Prompt parsing ───────────────────────────────────────────


def test_extract_identity():
    assert extract_identity(_prompt("x", "Lyra", "Wizard")) == ("Lyra", "Wizard")


def test_extract_identity_defaults():
    assert extract_identity("no identity here") == ("Character", "Adventurer")


def test_focus_text_is_gm_line():
    assert focus_text(_prompt("Orcs charge!")) == "Orcs charge!"


def test_focus_text_without_marker_is_whole_prompt():
    assert focus_text("just text") == "just text"


# ── CannedLLM ────────────────────────────────────────────────


def test_respond_uses_category_table():
    llm = CannedLLM(seed=3)
    assert llm.respond(_prompt("A battle begins")) in _formatted("combat")


def test_respond_party_variant():
    llm = CannedLLM(seed=3)
    assert llm.respond(_prompt("A battle begins", party=True)) in _formatted("combat_party")


def test_magic_has_no_party_variant():
    llm = CannedLLM(seed=3)
    reply = llm.respond(_prompt("You sense magic", "Lyra", "Wizard", party=True))
    assert reply in _formatted("magic", "Lyra", "Wizard")


def test_introduction_stage_forces_introduction():
    llm = CannedLLM(seed=3)
    reply = llm.respond(_prompt("A battle begins"), stage="introduction")
    assert reply in _formatted("introduction")


def test_same_seed_same_answers():
    prompts = [_prompt(p) for p in ("A battle", "You search", "Hello", "Talk to him")]
    a, b = CannedLLM(seed=42), CannedLLM(seed=42)
    assert [a.respond(p) for p in prompts] == [b.respond(p) for p in prompts]


async def test_real_participant_prompt_not_misclassified():
    # the fixed coordination rules mention fighters and spells
    llm = CannedLLM(seed=1)
    finn = Participant("Finn", "Rogue", "Witty.", llm)
    reply = await finn.generate_response("The sky is grey", "GM: The sky is grey", [])
    assert reply in _formatted("default")


async def test_introduction_through_participant_uses_name():
    llm = CannedLLM(seed=1)
    tharin = Participant("Tharin", "Fighter", "Brave.", llm)
    reply = await tharin.generate_introduction("A tavern")
    assert reply in _formatted("introduction", "Tharin", "Fighter")
