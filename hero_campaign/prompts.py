"""Handlebars prompt rendering and the built-in prompt templates.

Templates use triple-stash `{{{var}}}` for free text so apostrophes and
markdown reach the model unescaped.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pybars

from hero_campaign.models import Hero

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Templates ────────────────────────────────────────────

CAMPAIGN_PERSONA_PROMPT = """\
You are ONLY {{{hero.name}}}. Do not speak as other characters, do not \
describe what they do, do not act as the Dungeon Master and never call for \
dice rolls.

You are {{{hero.name}}}{{#if hero.race}}, a {{{hero.race}}}{{/if}}\
{{#if hero.hero_class}} {{{hero.hero_class}}}{{/if}}\
{{#if hero.alignment}} ({{{hero.alignment}}}){{/if}}.

BACKGROUND: {{#if hero.backstory}}{{{hero.backstory}}}{{else}}You are an experienced adventurer.{{/if}}

PERSONALITY: {{#if hero.traits}}{{{hero.traits}}}\
{{else}}You are brave and determined.{{/if}} {{{hero.description}}}

APPEARANCE: {{#if hero.appearance}}{{{hero.appearance}}}{{else}}You have a distinctive appearance.{{/if}}

{{{briefing}}}

You are a PLAYER CHARACTER {{{situation}}}. Respond with your own thoughts, \
concerns or tactical suggestions. When others in the party have spoken, build \
on what the previous speaker said. Keep it to 2-3 sentences.\
"""

HERO_CHAT_PROMPT = """\
You are {{{hero.name}}}{{#if hero.race}}, a {{{hero.race}}}{{/if}}\
{{#if hero.hero_class}} {{{hero.hero_class}}}{{/if}} on a dangerous space mission.

BACKGROUND: {{#if hero.backstory}}{{{hero.backstory}}}{{else}}You are an experienced adventurer ready for any challenge.{{/if}}

PERSONALITY: {{#if hero.traits}}{{{hero.traits}}}\
{{else}}You are brave, helpful, and determined.{{/if}}

You are a PLAYER CHARACTER. Respond in character, take initiative and never \
call for dice rolls. Keep responses concise but engaging.\
"""

SUMMARY_PROMPT = """\
Summarize what happened in the area "{{{area_name}}}" of a tabletop RPG \
campaign, based on the conversation below.

List only concrete facts: discoveries, decisions made, characters (NPCs) \
met and threats identified. Write in neutral third person, never "you". \
Use fewer than {{word_limit}} words.

Conversation:
{{#each lines}}
{{{this}}}
{{/each}}\
"""

HERO_GREETING = "Greetings! I'm {{{name}}}. How can I assist you on this mission?"


def hero_context(hero: Hero) -> dict[str, Any]:
    """Template variables for a hero; missing fields render as empty text."""
    ctx = {k: ("" if v is None else v) for k, v in hero.model_dump().items()}
    ctx["traits"] = ", ".join(hero.personality_traits)
    return ctx


def persona_prompt(hero: Hero, briefing: str, situation: str) -> str:
    """Base persona prompt for campaign areas; a hero's own prompt wins."""
    if hero.system_prompt:
        return hero.system_prompt
    return render_prompt(CAMPAIGN_PERSONA_PROMPT, {
        "hero": hero_context(hero),
        "briefing": briefing,
        "situation": situation or "in this situation",
    })


def hero_chat_prompt(hero: Hero) -> str:
    if hero.system_prompt:
        return hero.system_prompt
    return render_prompt(HERO_CHAT_PROMPT, {"hero": hero_context(hero)})


def summary_prompt(area_name: str, lines: list[str], word_limit: int = 100) -> str:
    return render_prompt(SUMMARY_PROMPT, {
        "area_name": area_name,
        "lines": lines,
        "word_limit": str(word_limit),
    })
