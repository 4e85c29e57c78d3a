"""Built-in opening scenarios and character rosters.

Scenarios are grouped by category (classic, roleplay, combat, mystery,
humorous, epic). Rosters are ready-made parties; a character's backstory is
folded into its profile text when the roster is turned into
ParticipantSpecs.
"""

from __future__ import annotations

import random

from dnd_chat.models import ParticipantSpec

SCENARIOS: dict[str, list[str]] = {
    "classic": [
        "You find yourselves in the Prancing Pony tavern when a hooded stranger approaches your table with a mysterious map. What do you do?",
        "A dragon has been terrorizing the village of Greenhold. The mayor offers 1000 gold pieces for its defeat. How do you prepare?",
        "You discover an ancient dungeon entrance hidden behind a waterfall. Strange lights flicker from within. Do you enter?",
        "Your party awakens in a dark forest with no memory of how you got there. In the distance, you hear wolves howling. What's your first action?",
    ],
    "roleplay": [
        "You arrive at a grand ball where nobles whisper of political intrigue and a missing heir to the throne. How do you gather information?",
        "Your party must negotiate a peace treaty between two warring goblin tribes who speak different languages. What's your approach?",
        "A magical plague has turned the townspeople into animals. You must find the cure before sunset. Where do you start?",
        "You encounter a group of bandits, but they claim to be Robin Hood-style heroes. How do you determine the truth?",
    ],
    "combat": [
        "Orcs ambush your party on the mountain pass! They're charging with weapons drawn. What do you do?",
        "A massive troll blocks the bridge ahead, demanding a toll of 100 gold pieces or a fight to the death. How do you respond?",
        "The necromancer's skeleton army rises from the graveyard as you approach the cursed cathedral. What's your battle plan?",
        "A gelatinous cube oozes around the corner in the dungeon corridor, blocking your escape route. How do you react?",
    ],
    "mystery": [
        "The innkeeper has been murdered, and all the guests are suspects. You must find the killer before dawn.",
        "Children have been disappearing from the village. The only clue is strange music heard at midnight.",
        "Your party finds a room where time moves differently - some areas age you, others make you younger.",
        "A merchant's caravan has vanished on the road. You find only strange tracks that seem to float in mid-air.",
    ],
    "humorous": [
        "You encounter a group of very polite zombies who insist on having tea before any combat begins.",
        "A wizard's spell has gone wrong, turning all the furniture in the castle into tiny aggressive dogs.",
        "Your party must infiltrate a cooking competition to stop an evil chef from poisoning the king.",
        "A mimic has taken the form of the entire tavern. Everyone inside is very confused about why the walls keep giggling.",
    ],
    "epic": [
        "The ancient seal containing the Demon Lord has begun to crack. You have 7 days to prevent the apocalypse.",
        "Reality itself is unraveling as different planes of existence begin to merge. Up is down, fire freezes, and the dead return to life.",
        "The gods have gone silent. Divine magic fails worldwide, and chaos spreads across the realms.",
        "You discover that your entire world is actually inside a snow globe on a giant's shelf, and the giant is getting ready to shake it.",
    ],
}

# name, class, personality, backstory
ROSTERS: dict[str, list[tuple[str, str, str, str]]] = {
    "default": [
        ("Tharin", "Fighter",
         "Brave and loyal team leader, always ready to protect allies. Takes charge in dangerous situations but listens to his party's input. Acts decisively and coordinates group tactics.",
         "A former city guard who left his post to seek adventure and justice in the wider world."),
        ("Lyra", "Wizard",
         "Curious and analytical team strategist, loves solving puzzles. Uses magic creatively to support the party and overcome obstacles. Observes situations carefully before acting.",
         "A scholar of ancient magic who seeks to unlock the mysteries of forgotten spells."),
        ("Finn", "Rogue",
         "Witty and sneaky team scout, prefers clever solutions. Acts quickly and thinks on their feet. Excellent at reading situations and adapting to what allies need.",
         "A former street thief who now uses their skills for the greater good... usually."),
    ],
    "teamwork": [
        ("Commander Aria", "Paladin",
         "Natural leader who coordinates party tactics. Protects allies and calls out strategic opportunities. Always considers the team's needs before her own.",
         "A former military officer who believes that victory comes through unity and coordination."),
        ("Echo", "Wizard",
         "Supportive spellcaster who specializes in enhancing allies. Watches party dynamics closely and adapts magic to complement their actions.",
         "A mage who learned that magic is most powerful when used to amplify others' strengths."),
        ("Shadow", "Rogue",
         "Team player who sets up opportunities for allies. Scouts ahead and creates advantages for the party rather than seeking personal glory.",
         "A former guild operative who discovered that the best heists require perfect teamwork."),
        ("Harmony", "Bard",
         "Party coordinator who boosts morale and facilitates cooperation. Reads social situations and helps allies work together effectively.",
         "A performer who learned that the best songs are those sung in harmony with others."),
    ],
    "alternative": [
        ("Seraphima", "Cleric", "Compassionate healer with unwavering faith",
         "A devout servant of the light who brings hope to the darkest places."),
        ("Grimjaw", "Barbarian", "Wild and fierce, speaks with actions more than words",
         "A tribal warrior from the frozen north, wielding ancient fury."),
        ("Melody", "Bard", "Charming storyteller who sees adventure in everything",
         "A traveling performer who collects tales and weaves magic through music."),
        ("Shadowmere", "Warlock", "Mysterious and calculating, harbors dark secrets",
         "Bound by an ancient pact, walks the line between light and shadow."),
    ],
    "funny": [
        ("Bob", "Fighter", "Enthusiastic but not very bright, loves hitting things",
         "Bob like adventure! Bob hit bad things with big stick!"),
        ("Professor Whiskers", "Wizard",
         "A former house cat polymorphed into human form, still thinks like a cat",
         "Once a familiar, now seeking the wizard who transformed them permanently."),
        ("Kevin the Accountant", "Rogue",
         "Treats adventuring like a business, very concerned about profit margins",
         "A former bookkeeper who discovered that dungeon delving has better returns than tax preparation."),
    ],
}


def scenario_categories() -> list[str]:
    return list(SCENARIOS)


def random_scenario(category: str = "classic", rng: random.Random | None = None) -> str:
    """Pick a scenario from a category. Raises KeyError for unknown categories."""
    scenarios = SCENARIOS[category]
    return (rng or random).choice(scenarios)


def get_roster(name: str = "default") -> list[ParticipantSpec]:
    """Turn a named roster into ParticipantSpecs. Raises KeyError if unknown."""
    return [
        ParticipantSpec(
            name=char_name,
            role=role,
            profile=f"{personality} Background: {backstory}" if backstory else personality,
        )
        for char_name, role, personality, backstory in ROSTERS[name]
    ]
