"""Tests for hero_campaign.hero_chat: ephemeral one-on-one chats."""

import pytest

from conftest import StubLLM
from hero_campaign.context import CONTEXT_HEADING, CampaignContextBuilder
from hero_campaign.conversation import APOLOGY, AreaBusyError, RoleNotAssignedError
from hero_campaign.definitions import STARSHIP_ESCAPE
from hero_campaign.hero_chat import HeroChat
from hero_campaign.llm import LLMError
from hero_campaign.models import AreaSummary, Hero
from hero_campaign.session import CampaignSession, UnknownHeroError


def test_greeting_is_seeded(aria: Hero) -> None:
    chat = HeroChat(aria, StubLLM())
    [greeting] = chat.log.messages
    assert greeting.speaker == "Aria"
    assert greeting.text == "Greetings! I'm Aria. How can I assist you on this mission?"


async def test_send_returns_reply_with_context(aria: Hero) -> None:
    summaries = {
        "briefing": AreaSummary(area_id="briefing", area_name="Mission Briefing", text="We woke up."),
    }
    llm = StubLLM("Happy to help.")
    chat = HeroChat(aria, llm, CampaignContextBuilder(STARSHIP_ESCAPE, summaries))

    reply = await chat.send("How are you holding up?")

    assert reply.text == "Happy to help."
    assert reply.speaker == "Aria"
    assert [m.sender for m in chat.log] == ["character", "user", "character"]
    stage, messages = llm.calls[0]
    assert stage == "hero_chat"
    assert messages[0].content.startswith("You are Aria")
    assert CONTEXT_HEADING in messages[0].content
    assert "We woke up." in messages[0].content
    assert messages[-1].content == "How are you holding up?"


async def test_failure_becomes_apology(aria: Hero) -> None:
    chat = HeroChat(aria, StubLLM(LLMError("down")))
    reply = await chat.send("Hello?")
    assert reply.text == APOLOGY
    assert reply.error
    assert not chat.log.has_pending


async def test_blank_message_rejected(aria: Hero) -> None:
    with pytest.raises(ValueError):
        await HeroChat(aria, StubLLM()).send("  ")


async def test_no_llm_refuses_before_logging(aria: Hero) -> None:
    chat = HeroChat(aria, None)
    with pytest.raises(RoleNotAssignedError):
        await chat.send("Hello?")
    assert len(chat.log) == 1


async def test_busy_chat_rejects_input(aria: Hero) -> None:
    chat: HeroChat

    class SlowLLM:
        async def __call__(self, stage, messages):
            with pytest.raises(AreaBusyError):
                await chat.send("again")
            return "Done."

    chat = HeroChat(aria, SlowLLM())
    assert (await chat.send("first")).text == "Done."


async def test_session_hero_chats(session: CampaignSession, aria: Hero, kv) -> None:
    await session.resume()
    await session.open_area("briefing", [aria])
    keys_before = kv.keys()

    chat = session.open_hero_chat("aria")
    assert session.open_hero_chat("aria") is chat
    await chat.send("Psst.")
    assert kv.keys() == keys_before

    session.close_hero_chat("aria")
    assert "aria" not in session.hero_chats
    with pytest.raises(UnknownHeroError):
        session.open_hero_chat("thorne")
