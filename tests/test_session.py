"""Tests for Session: creation, broadcast and direct-address turns,
failure isolation, turn accounting and end-of-session."""

import asyncio

import pytest

from dnd_chat.llm import LLMError
from dnd_chat.models import GM_SPEAKER, ParticipantSpec
from dnd_chat.participant import Participant
from dnd_chat.session import (
    CONTEXT_WINDOW,
    InactiveSessionError,
    MalformedInputError,
    Session,
    fallback_text,
)

# ── Creation ─────────────────────────────────────────────────


async def test_create_single_participant_scenario(llm):
    session = await Session.create(
        "You enter a tavern", [ParticipantSpec(name="Finn", role="Rogue")], llm
    )
    log = session.snapshot().log
    assert len(log) == 2
    assert log[0].kind == "gm"
    assert log[0].speaker == GM_SPEAKER
    assert log[0].body == "You enter a tavern"
    assert log[1].kind == "character"
    assert log[1].speaker == "Finn"


async def test_create_introductions_in_party_order(llm, party):
    session = await Session.create("A dark cave", party, llm)
    speakers = [m.speaker for m in session.log]
    assert speakers == [GM_SPEAKER, "Tharin", "Lyra", "Finn"]
    assert [c[:2] for c in llm.calls] == [
        ("introduction", "Tharin"), ("introduction", "Lyra"), ("introduction", "Finn"),
    ]


async def test_introductions_do_not_see_each_other(make_llm, party):
    llm = make_llm({"Tharin": ["I am Tharin the bold."]})
    await Session.create("A dark cave", party, llm)
    lyra_intro = llm.prompts_for("Lyra", "introduction")[0]
    assert "Tharin the bold" not in lyra_intro


async def test_create_initial_state(llm, party):
    session = await Session.create("A dark cave", party, llm)
    snap = session.snapshot()
    assert snap.turn_counter == 0
    assert snap.active is True
    assert snap.opening_prompt == "A dark cave"
    assert [p.name for p in snap.participants] == ["Tharin", "Lyra", "Finn"]


async def test_create_rejects_empty_party(llm):
    with pytest.raises(MalformedInputError):
        await Session.create("A dark cave", [], llm)
    assert llm.calls == []


async def test_create_rejects_duplicate_names(llm):
    specs = [ParticipantSpec(name="Finn"), ParticipantSpec(name="finn")]
    with pytest.raises(MalformedInputError, match="Duplicate"):
        await Session.create("A dark cave", specs, llm)
    assert llm.calls == []


@pytest.mark.parametrize("opening", ["", "   "])
async def test_create_rejects_empty_opening(llm, party, opening):
    with pytest.raises(MalformedInputError):
        await Session.create(opening, party, llm)


async def test_failed_introduction_uses_fallback(make_llm, party):
    llm = make_llm({"Lyra": [LLMError("down")]})
    session = await Session.create("A dark cave", party, llm)
    assert session.log[2].speaker == "Lyra"
    assert session.log[2].body == "*Lyra seems speechless*"
    assert session.log[2].kind == "character"


# ── Broadcast turns ──────────────────────────────────────────


async def test_broadcast_turn_log_shape(llm, party):
    session = await Session.create("A dark cave", party, llm)
    new = await session.process_prompt("Orcs charge out of the dark!")
    assert [m.kind for m in new] == ["gm", "character", "character", "character"]
    assert [m.speaker for m in new] == [GM_SPEAKER, "Tharin", "Lyra", "Finn"]
    assert session.turn_counter == 1


async def test_log_length_formula(llm, party):
    session = await Session.create("A dark cave", party, llm)
    turns = 4
    for i in range(turns):
        await session.process_prompt(f"Something happens ({i})")
    p = len(party)
    assert len(session.log) == 1 + p + turns * (1 + p)
    assert session.turn_counter == turns


async def test_later_participants_see_earlier_actions(make_llm, party):
    llm = make_llm({
        "Tharin": ["intro", "I raise my shield."],
        "Lyra": ["intro", "I cast a fireball."],
    })
    session = await Session.create("A dark cave", party, llm)
    await session.process_prompt("Orcs charge!")

    tharin = llm.prompts_for("Tharin")[0]
    lyra = llm.prompts_for("Lyra")[0]
    finn = llm.prompts_for("Finn")[0]
    assert "PARTY MEMBERS' RECENT ACTIONS:" not in tharin
    assert "Tharin: I raise my shield." in lyra
    assert "Lyra: I cast a fireball." not in lyra
    assert "Tharin: I raise my shield.\nLyra: I cast a fireball." in finn


async def test_party_actions_do_not_carry_across_turns(make_llm, party):
    llm = make_llm({"Finn": ["intro", "I sneak left."]})
    session = await Session.create("A dark cave", party, llm)
    await session.process_prompt("Turn one")
    await session.process_prompt("Turn two")
    lyra_turn_two = llm.prompts_for("Lyra")[1]
    section = lyra_turn_two.split("PARTY MEMBERS' RECENT ACTIONS:\n", 1)[1]
    section = section.split("GM'S LATEST PROMPT", 1)[0]
    assert "Tharin: Tharin acts." in section
    assert "I sneak left." not in section


async def test_context_window_is_recent_log(llm, party):
    session = await Session.create("A dark cave", party, llm)
    for i in range(3):
        await session.process_prompt(f"Prompt {i}")
    prompt = llm.prompts_for("Tharin")[-1]
    context = prompt.split("RECENT CONVERSATION:\n", 1)[1].split("\n\n", 1)[0]
    lines = context.split("\n")
    assert len(lines) == CONTEXT_WINDOW
    assert lines[-1] == "GM: Prompt 2"
    assert "GM: A dark cave" not in context


async def test_failure_is_isolated_and_visible(make_llm, party):
    llm = make_llm({"Lyra": ["intro", LLMError("backend down")]})
    session = await Session.create("A dark cave", party, llm)
    new = await session.process_prompt("Orcs charge!")

    characters = [m for m in new if m.kind == "character"]
    assert len(characters) == 3
    assert [m.speaker for m in characters] == ["Tharin", "Lyra", "Finn"]
    assert characters[1].body == fallback_text("Lyra") == "*Lyra seems speechless*"
    assert characters[2].body == "Finn acts."
    assert session.turn_counter == 1

    finn_prompt = llm.prompts_for("Finn")[0]
    assert "Lyra: *Lyra seems speechless*" in finn_prompt


async def test_every_participant_failing_still_completes_turn(make_llm, party):
    llm = make_llm({p.name: ["intro", RuntimeError("boom")] for p in party})
    session = await Session.create("A dark cave", party, llm)
    await session.process_prompt("Orcs charge!")
    assert session.turn_counter == 1
    assert [m.body for m in session.log[-3:]] == [fallback_text(p.name) for p in party]


async def test_hung_participant_times_out_to_fallback(make_llm, party):
    llm = make_llm(hang={"Lyra"})
    session = Session(
        "A dark cave",
        [Participant.from_spec(s, llm) for s in party],
        response_timeout=0.05,
    )
    new = await session.process_prompt("Orcs charge!")
    assert [m.body for m in new[1:]] == ["Tharin acts.", "*Lyra seems speechless*", "Finn acts."]
    assert session.turn_counter == 1


# ── Direct-address turns ─────────────────────────────────────


async def test_direct_address_only_target_responds(make_llm, party):
    llm = make_llm({"Lyra": ["intro", "I read the runes."]})
    session = await Session.create("A dark cave", party, llm)
    calls_before = len(llm.calls)
    new = await session.process_prompt("Hey Lyra, what do the runes say?")

    assert [(m.kind, m.speaker) for m in new] == [("gm", GM_SPEAKER), ("character", "Lyra")]
    assert new[1].body == "I read the runes."
    assert [c[1] for c in llm.calls[calls_before:]] == ["Lyra"]
    assert "PARTY MEMBERS' RECENT ACTIONS:" not in llm.prompts_for("Lyra")[0]
    assert session.turn_counter == 1


async def test_direct_address_failure_uses_fallback(make_llm, party):
    llm = make_llm({"Tharin": ["intro", LLMError("down")]})
    session = await Session.create("A dark cave", party, llm)
    new = await session.process_prompt("Tharin, roll for initiative")
    assert new[-1].speaker == "Tharin"
    assert new[-1].body == "*Tharin seems speechless*"
    assert session.turn_counter == 1


# ── Input validation and end of session ──────────────────────


@pytest.mark.parametrize("prompt", ["", "  \n"])
async def test_empty_prompt_rejected_without_mutation(llm, party, prompt):
    session = await Session.create("A dark cave", party, llm)
    before = session.snapshot()
    with pytest.raises(MalformedInputError):
        await session.process_prompt(prompt)
    after = session.snapshot()
    assert after.log == before.log
    assert after.turn_counter == before.turn_counter


async def test_prompt_after_end_rejected(llm, party):
    session = await Session.create("A dark cave", party, llm)
    await session.process_prompt("Turn one")
    session.end()
    before = session.snapshot()
    with pytest.raises(InactiveSessionError):
        await session.process_prompt("Turn two")
    after = session.snapshot()
    assert after.log == before.log
    assert after.turn_counter == 1
    assert after.active is False


async def test_end_is_idempotent(llm, party):
    session = await Session.create("A dark cave", party, llm)
    session.end()
    session.end()
    assert session.active is False


async def test_snapshot_is_stable_and_detached(llm, party):
    session = await Session.create("A dark cave", party, llm)
    first = session.snapshot()
    second = session.snapshot()
    assert first.log == second.log
    assert first.turn_counter == second.turn_counter

    await session.process_prompt("Turn one")
    assert len(first.log) == 4
    assert len(session.snapshot().log) == 8


async def test_log_is_append_only(llm, party):
    session = await Session.create("A dark cave", party, llm)
    prefix = session.log
    await session.process_prompt("Turn one")
    assert session.log[: len(prefix)] == prefix


async def test_concurrent_prompts_do_not_interleave(llm, party):
    session = await Session.create("A dark cave", party, llm)
    await asyncio.gather(
        session.process_prompt("First"),
        session.process_prompt("Second"),
    )
    kinds = [m.kind for m in session.log[4:]]
    assert kinds == ["gm", "character", "character", "character"] * 2
    assert session.turn_counter == 2
