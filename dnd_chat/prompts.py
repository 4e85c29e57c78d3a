"""Handlebars prompt rendering for character generation calls.

Three templates make up every character prompt:

  IDENTITY_TEMPLATE      — who the character is, their memory transcript and
                           the party-coordination rules. Prefixes both others.
  INTRODUCTION_TEMPLATE  — opening scenario + "introduce yourself".
  RESPONSE_TEMPLATE      — recent conversation, teammates' actions this turn,
                           the GM's latest prompt + "what do you DO?".

Free text is rendered with triple-stash ({{{ }}}) so quotes and angle
brackets reach the model unescaped.
"""

from collections.abc import Callable
from typing import Any

import pybars


_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def _helper_numbered(this, options, items):
    """{{#numbered items}}...{{/numbered}} — iterate with a 1-based {{index}}."""
    result = []
    for i, item in enumerate(list(items), start=1):
        result.extend(options["fn"]({"index": i, "text": item}))
    return result


_HELPERS: dict[str, Callable] = {
    "numbered": _helper_numbered,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


IDENTITY_TEMPLATE = """\
You are {{{name}}}, a {{{role}}} in a D&D adventure.

CHARACTER DETAILS:
- Name: {{{name}}}
- Class: {{{role}}}
- Personality: {{{profile}}}

CONVERSATION HISTORY:
{{#numbered memory}}{{index}}. {{{text}}}
{{/numbered}}
CRITICAL INSTRUCTIONS - PARTY COORDINATION:
- Always stay in character as {{{name}}}
- WORK AS A TEAM with your party members
- REACT TO and BUILD UPON what other party members are doing
- COORDINATE your actions - don't duplicate what others are already doing
- SUPPORT your allies' actions when appropriate
- Use your {{{role}}} abilities to complement the team
- Respond to your allies' needs (healing, protection, assistance, etc.)
- Take decisive action that advances the party's goals

EXAMPLES OF GOOD COORDINATION:
- If a fighter charges, you might cast a spell to help them or cover their flanks
- If a wizard casts a spell, you might protect them while they're vulnerable
- If a rogue scouts ahead, you might ready an action to support them
- If someone is injured, consider helping them
"""

INTRODUCTION_TEMPLATE = """\
{{{identity}}}
SCENARIO: {{{scenario}}}

Generate a brief introduction for your character. Stay in character and \
introduce yourself to the party. Keep it concise (2-3 sentences).\
"""

RESPONSE_TEMPLATE = """\
{{{identity}}}
RECENT CONVERSATION:
{{{context}}}

{{#if party_actions}}PARTY MEMBERS' RECENT ACTIONS:
{{{party_text}}}

{{/if}}GM'S LATEST PROMPT: {{{gm_prompt}}}

RESPOND WITH ACTION: As {{{name}}} the {{{role}}}, what do you DO in response \
to this situation?
- State your specific action first (I do X, I attempt Y, I cast Z)
- Use your {{{role_lower}}} skills and abilities
- COORDINATE with your party members - support, complement, or build upon their actions
- Don't duplicate what others are already doing
- Keep your response focused on what you're actively doing

Your coordinated action:\
"""
