"""One-on-one chat with a single hero, outside the campaign graph.

Hero chats are ephemeral: they are never persisted and never restored on
resume. They still carry the campaign context so the hero remembers what
the party has done.
"""

from __future__ import annotations

import logging

from hero_campaign.context import CampaignContextBuilder
from hero_campaign.conversation import (
    APOLOGY,
    AreaBusyError,
    ConversationLog,
    RoleNotAssignedError,
)
from hero_campaign.llm import LLM, LLMError
from hero_campaign.models import ChatMessage, ConversationMessage, Hero
from hero_campaign.prompts import HERO_GREETING, hero_chat_prompt, render_prompt

logger = logging.getLogger(__name__)


class HeroChat:
    def __init__(
        self, hero: Hero, llm: LLM | None, context: CampaignContextBuilder | None = None,
    ) -> None:
        self.hero = hero
        self._llm = llm
        self._context = context
        self.log = ConversationLog(f"hero:{hero.id}")
        self.log.append_character(
            render_prompt(HERO_GREETING, {"name": hero.name}), speaker=hero.name,
        )
        self._busy = False

    def _messages(self) -> list[ChatMessage]:
        system = hero_chat_prompt(self.hero)
        if self._context is not None:
            system = self._context.compose_system_prompt(system)
        messages = [ChatMessage(role="system", content=system)]
        for msg in self.log.finalized():
            role = "user" if msg.sender == "user" else "assistant"
            messages.append(ChatMessage(role=role, content=msg.text))
        return messages

    async def send(self, text: str) -> ConversationMessage:
        """Append the player's line and the hero's reply; returns the reply."""
        text = text.strip()
        if not text:
            raise ValueError("Message must not be empty")
        if self._llm is None:
            raise RoleNotAssignedError("character")
        if self._busy:
            raise AreaBusyError(f"{self.hero.name} is still answering")

        self.log.append_user(text)
        messages = self._messages()
        placeholder = self.log.begin_pending(self.hero.name)
        self._busy = True
        error = False
        try:
            reply = (await self._llm("hero_chat", messages)).strip()
            if not reply:
                raise LLMError("empty response")
        except Exception:
            logger.exception("hero chat failed hero=%s", self.hero.id)
            reply, error = APOLOGY, True
        finally:
            self._busy = False
        return self.log.finalize(placeholder.id, reply, error=error)
