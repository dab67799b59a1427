"""Campaign session: runs one playthrough end-to-end.

Owns the progression graph, the per-area logs, the area summaries and the
campaign's party snapshot, and writes every change through CampaignStore.

Player action flow:
  1. open_area() enters an unlocked, not completed area; seeds its opening
     message on first entry.
  2. submit_message() appends the player's line to the area log.
  3. character_response() or banter(): a hero answers in character. The
     system prompt is the hero persona plus the campaign context block.
  4. attempt_unlock() moves on. Progress is saved first, then every area
     completed by the unlock is summarized and the summaries saved, so a
     crash in between is repaired by resume().

Generation failures never escape: summaries fall back to a templated line
and character responses to an apology message. A session built without a
character LLM refuses to generate replies with RoleNotAssignedError.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import BaseModel

from hero_campaign.banter import Banter
from hero_campaign.context import CampaignContextBuilder
from hero_campaign.conversation import (
    APOLOGY,
    AreaBusyError,
    ConversationLog,
    RoleNotAssignedError,
)
from hero_campaign.definitions import CampaignDefinition
from hero_campaign.graph import (
    CampaignError,
    ProgressionGraph,
    UnlockOutcome,
    UnlockResult,
)
from hero_campaign.health import HeroHealth
from hero_campaign.heroes import HeroStore
from hero_campaign.hero_chat import HeroChat
from hero_campaign.llm import LLM, LLMError
from hero_campaign.models import (
    MAX_PARTY_SIZE,
    AreaSummary,
    ChatMessage,
    ConversationMessage,
    Hero,
    PartyRoster,
)
from hero_campaign.prompts import hero_context, persona_prompt, render_prompt
from hero_campaign.storage import CampaignStore
from hero_campaign.summarizer import AreaSummarizer

logger = logging.getLogger(__name__)

RESET_WARNING = (
    "WARNING: This will permanently erase ALL campaign progress, conversations "
    "and summaries. This action cannot be undone."
)


class PartyFullError(CampaignError):
    """Raised when more heroes than a party can hold are snapshotted."""


class UnknownHeroError(CampaignError, KeyError):
    """Raised for a hero that is not in the campaign party."""

    def __str__(self) -> str:
        return f"Hero {self.args[0]!r} is not in the party"


class ConfirmationRequired(CampaignError):
    """Raised by destructive operations called without explicit confirmation."""


class HeroDownError(CampaignError):
    """Raised when a hero with no hearts left is asked to speak."""


class SessionSettings(BaseModel):
    summary_word_limit: int = 100
    summarize_on_leave: bool = False
    banter_max_turns: int = 3


class CampaignSession:
    def __init__(
        self,
        definition: CampaignDefinition,
        store: CampaignStore,
        llm: LLM | None,
        *,
        summarizer: AreaSummarizer | None = None,
        hero_store: HeroStore | None = None,
        settings: SessionSettings | None = None,
    ) -> None:
        """`llm` voices the heroes; None means no character role is assigned.

        `summarizer` defaults to an AreaSummarizer over the same `llm`.
        """
        self.definition = definition
        self.store = store
        self.settings = settings or SessionSettings()
        self._llm = llm
        self._hero_store = hero_store
        self.graph = ProgressionGraph(definition)
        self.logs: dict[str, ConversationLog] = {
            area_id: ConversationLog(area_id) for area_id in definition.order
        }
        self.summaries: dict[str, AreaSummary] = {}
        self.party = PartyRoster()
        self.health = HeroHealth(store)
        self.context = CampaignContextBuilder(definition, self.summaries)
        self.summarizer = summarizer or AreaSummarizer(
            llm, word_limit=self.settings.summary_word_limit,
        )
        # individual hero chats live only in memory and are never restored
        self.hero_chats: dict[str, HeroChat] = {}
        # area id -> id of the placeholder whose reply is in flight
        self._pending: dict[str, str] = {}

    # ------------------------------------------------------------------
    # Resume
    # ------------------------------------------------------------------

    async def resume(self) -> None:
        """Rebuild in-memory state from the store and repair it."""
        snapshot = self.store.load_progress(self.definition)
        if snapshot is None:
            self.graph.reset()
        else:
            self.graph.restore(snapshot)
        last_active = self.graph.active_area

        for area_id, log in self.logs.items():
            log.replace(self.store.load_area_log(area_id))

        self.summaries.clear()
        for area_id, summary in self.store.load_summaries().items():
            if area_id in self.logs:
                self.summaries[area_id] = summary

        self.party = self._validated_party(self.store.load_party_snapshot())
        self.hero_chats.clear()
        self._pending.clear()

        for area_id in self.definition.order:
            if self.graph.is_completed(area_id) and area_id not in self.summaries:
                await self.summarize_area(area_id)

        self.graph.active_area = self._resume_area(last_active)
        self.store.save_progress(self.graph.snapshot())
        logger.info(
            "resumed campaign=%s active=%s summaries=%d party=%d",
            self.definition.id, self.graph.active_area, len(self.summaries), len(self.party),
        )

    def _validated_party(self, roster: PartyRoster) -> PartyRoster:
        if self._hero_store is None:
            return roster
        kept = [h for h in roster.heroes if self._hero_store.get(h.id) is not None]
        if len(kept) != len(roster):
            dropped = [h.id for h in roster.heroes if h not in kept]
            logger.warning("dropping heroes missing from the hero store: %s", dropped)
            roster = PartyRoster(heroes=kept)
            self.store.save_party_snapshot(roster)
        return roster

    def _resume_area(self, last_active: str | None) -> str | None:
        if last_active is not None and self.graph.can_enter(last_active):
            return last_active
        if self.graph.can_enter(self.definition.root):
            return self.definition.root
        for area_id in self.definition.order:
            if self.graph.can_enter(area_id):
                return area_id
        return None

    # ------------------------------------------------------------------
    # Party
    # ------------------------------------------------------------------

    def snapshot_party(self, heroes: list[Hero]) -> PartyRoster:
        if len({h.id for h in heroes}) > MAX_PARTY_SIZE:
            raise PartyFullError(f"A party holds at most {MAX_PARTY_SIZE} heroes")
        self.party = PartyRoster(heroes=heroes)
        self.store.save_party_snapshot(self.party)
        return self.party

    def _hero(self, hero_id: str) -> Hero:
        hero = self.party.get(hero_id)
        if hero is None:
            raise UnknownHeroError(hero_id)
        return hero

    def hero_hearts(self, hero_id: str) -> int:
        return self.health.hearts(self._hero(hero_id).id)

    def set_hero_hearts(self, hero_id: str, hearts: int) -> int:
        return self.health.set_hearts(self._hero(hero_id).id, hearts)

    def living_heroes(self) -> list[Hero]:
        return [h for h in self.party.heroes if not self.health.is_down(h.id)]

    # ------------------------------------------------------------------
    # Progression
    # ------------------------------------------------------------------

    async def attempt_unlock(self, node_id: str) -> UnlockResult:
        result = self.graph.attempt_unlock(node_id)
        if result.outcome is not UnlockOutcome.UNLOCKED:
            return result

        if self.graph.active_area in result.completed:
            self.graph.active_area = None
        self.store.save_progress(self.graph.snapshot())

        for area_id in result.completed:
            await self.summarize_area(area_id)
        return result

    async def open_area(self, area_id: str, live_party: list[Hero] | None = None) -> ConversationLog:
        """Make `area_id` the active area.

        A non-empty live party is snapshotted into the campaign; otherwise
        the campaign's own snapshot is used.
        """
        self.graph.check_enterable(area_id)
        if live_party:
            self.snapshot_party(live_party)

        previous = self.graph.active_area
        self.graph.mark_active(area_id)
        if self.settings.summarize_on_leave and previous and previous != area_id:
            await self.summarize_area(previous)

        log = self.logs[area_id]
        if not len(log):
            spec = self.definition.area(area_id)
            if spec.opening_text:
                text = render_prompt(spec.opening_text, {
                    "party": [hero_context(h) for h in self.party.heroes],
                })
                log.append_character(text, speaker=spec.opening_speaker)
                self.store.save_area_log(area_id, log.messages)

        self.store.save_progress(self.graph.snapshot())
        return log

    async def summarize_area(self, area_id: str) -> AreaSummary | None:
        """Summarize an area once. Empty logs produce no summary."""
        if area_id in self.summaries:
            return self.summaries[area_id]
        messages = self.logs[area_id].finalized()
        if not messages:
            logger.info("area %s has no conversation, skipping summary", area_id)
            return None
        title = self.definition.area(area_id).title
        summary = await self.summarizer.summarize(area_id, title, messages)
        summary = self.summaries.setdefault(area_id, summary)
        self.store.save_summaries(self.summaries)
        return summary

    def reset_campaign(self, confirm: bool = False) -> None:
        """Wipe progression, logs, summaries and the party snapshot."""
        if not confirm:
            raise ConfirmationRequired(RESET_WARNING)
        self.graph.reset()
        for log in self.logs.values():
            log.clear()
        self.summaries.clear()
        self.party = PartyRoster()
        self.hero_chats.clear()
        self._pending.clear()
        self.store.clear_all()
        self.store.save_progress(self.graph.snapshot())
        logger.info("campaign %s reset", self.definition.id)

    # ------------------------------------------------------------------
    # Conversation
    # ------------------------------------------------------------------

    def is_busy(self, area_id: str) -> bool:
        return area_id in self._pending

    def submit_message(self, area_id: str, text: str) -> ConversationMessage:
        text = text.strip()
        if not text:
            raise ValueError("Message must not be empty")
        self.graph.check_enterable(area_id)
        if self.is_busy(area_id):
            raise AreaBusyError(f"{self.definition.area(area_id).title} is waiting for a response")
        log = self.logs[area_id]
        msg = log.append_user(text)
        self.store.save_area_log(area_id, log.messages)
        return msg

    def clear_area(self, area_id: str) -> None:
        """Clear the log (and summary) of an area that is not completed."""
        self.graph.check_enterable(area_id)
        if self.is_busy(area_id):
            raise AreaBusyError(f"{self.definition.area(area_id).title} is waiting for a response")
        self.logs[area_id].clear()
        self.store.delete_area_log(area_id)
        if self.summaries.pop(area_id, None) is not None:
            self.store.save_summaries(self.summaries)

    def character_messages(self, area_id: str, hero: Hero) -> list[ChatMessage]:
        """Prompt for `hero` speaking in `area_id`: persona + context, then the log."""
        spec = self.definition.area(area_id)
        system = self.context.compose_system_prompt(
            persona_prompt(hero, self.definition.briefing, spec.situation),
        )
        messages = [ChatMessage(role="system", content=system)]
        for msg in self.logs[area_id].finalized():
            if msg.sender == "user":
                messages.append(ChatMessage(role="user", content=msg.text))
            elif msg.speaker and msg.speaker != hero.name:
                messages.append(ChatMessage(role="assistant", content=f"{msg.speaker}: {msg.text}"))
            else:
                messages.append(ChatMessage(role="assistant", content=msg.text))
        return messages

    async def character_response(self, area_id: str, hero_id: str) -> ConversationMessage | None:
        """Generate one in-character reply from `hero_id` in `area_id`.

        Returns None if the area was cleared, reset or completed while the
        reply was being generated; the reply is dropped.
        """
        self.graph.check_enterable(area_id)
        hero = self._hero(hero_id)
        if self.is_busy(area_id):
            raise AreaBusyError(f"{self.definition.area(area_id).title} is waiting for a response")
        if self.health.is_down(hero.id):
            raise HeroDownError(f"{hero.name} is down and cannot respond")
        if self._llm is None:
            raise RoleNotAssignedError("character")

        log = self.logs[area_id]
        messages = self.character_messages(area_id, hero)
        placeholder = log.begin_pending(hero.name)
        self._pending[area_id] = placeholder.id
        error = False
        try:
            text = (await self._llm("character", messages)).strip()
            if not text:
                raise LLMError("empty response")
        except Exception:
            logger.exception("character response failed area=%s hero=%s", area_id, hero_id)
            text, error = APOLOGY, True
        finally:
            # after a reset the area may belong to a newer reply
            if self._pending.get(area_id) == placeholder.id:
                del self._pending[area_id]

        if self.graph.is_completed(area_id):
            log.discard(placeholder.id)
            logger.warning("area %s was completed during generation, dropping reply", area_id)
            return None
        try:
            msg = log.finalize(placeholder.id, text, error=error)
        except KeyError:
            logger.warning("area %s was cleared during generation, dropping reply", area_id)
            return None
        self.store.save_area_log(area_id, log.messages)
        return msg

    async def banter(self, area_id: str, max_turns: int | None = None) -> list[ConversationMessage]:
        """Let the party talk among themselves for a bounded number of turns."""
        if self._llm is None:
            raise RoleNotAssignedError("character")
        banter = Banter(self, area_id, max_turns or self.settings.banter_max_turns)
        banter.schedule(self._next_speaker_index(area_id))
        return await banter.run()

    def _next_speaker_index(self, area_id: str) -> int:
        names = [h.name for h in self.party.heroes]
        for msg in reversed(self.logs[area_id].finalized()):
            if msg.sender == "character" and msg.speaker in names:
                return names.index(msg.speaker) + 1
        return 0

    # ------------------------------------------------------------------
    # Individual hero chat
    # ------------------------------------------------------------------

    def open_hero_chat(self, hero_id: str) -> HeroChat:
        chat = self.hero_chats.get(hero_id)
        if chat is None:
            chat = HeroChat(self._hero(hero_id), self._llm, self.context)
            self.hero_chats[hero_id] = chat
        return chat

    def close_hero_chat(self, hero_id: str) -> None:
        self.hero_chats.pop(hero_id, None)

    # ------------------------------------------------------------------
    # Presentation
    # ------------------------------------------------------------------

    def describe(self) -> dict[str, Any]:
        """Plain-data view of the campaign for the presentation layer."""
        nodes = []
        for area_id, state in self.graph.states().items():
            spec = self.definition.area(area_id)
            nodes.append({
                "id": area_id,
                "title": spec.title,
                "description": spec.description,
                "state": state.value,
                "unlocked": state.unlocked,
                "completed": state.completed,
                "branch_locked_out": state.branch_locked_out,
                "successors": self.definition.successors(area_id),
                "has_summary": area_id in self.summaries,
                "busy": self.is_busy(area_id),
            })
        return {
            "campaign": self.definition.id,
            "title": self.definition.title,
            "active_area": self.graph.active_area,
            "nodes": nodes,
            "party": [
                {**h.model_dump(), "hearts": self.health.hearts(h.id)}
                for h in self.party.heroes
            ],
            "summaries": [s.model_dump() for s in self.summaries.values()],
            "context": self.context.build(),
        }
