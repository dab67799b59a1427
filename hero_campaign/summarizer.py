"""Area summarizer: turns a finished area's log into a short digest.

Summarization must never block progression: any failure of the
text-generation service degrades to a deterministic fallback line.
"""

from __future__ import annotations

import logging

from hero_campaign.llm import LLM
from hero_campaign.models import AreaSummary, ChatMessage, ConversationMessage
from hero_campaign.prompts import summary_prompt

logger = logging.getLogger(__name__)


def fallback_summary(area_name: str, count: int) -> str:
    return f"{area_name} - Conversation completed with {count} messages exchanged."


def transcript_lines(messages: list[ConversationMessage]) -> list[str]:
    lines = []
    for msg in messages:
        if msg.sender == "user":
            lines.append(f"Player: {msg.text}")
        else:
            lines.append(f"{msg.speaker or 'Character'}: {msg.text}")
    return lines


class AreaSummarizer:
    """Summarizes finished areas.

    With `llm=None` (no connection assigned to the summarizer role) every
    summary is the fallback line.
    """

    def __init__(self, llm: LLM | None, word_limit: int = 100) -> None:
        self._llm = llm
        self._word_limit = word_limit

    async def summarize(
        self, area_id: str, area_name: str, messages: list[ConversationMessage],
    ) -> AreaSummary:
        """Summarize `messages`, falling back to a templated line on failure."""
        finished = [m for m in messages if not m.pending]
        text = ""
        if self._llm is None:
            logger.info("no summarizer assigned, using fallback for area=%s", area_id)
        else:
            prompt = summary_prompt(area_name, transcript_lines(finished), self._word_limit)
            try:
                text = await self._llm("summarizer", [ChatMessage(role="user", content=prompt)])
            except Exception:
                logger.exception("summary generation failed for area=%s, using fallback", area_id)
        text = text.strip()
        if not text:
            return AreaSummary(
                area_id=area_id, area_name=area_name,
                text=fallback_summary(area_name, len(finished)), fallback=True,
            )
        logger.debug("summary area=%s words=%d", area_id, len(text.split()))
        return AreaSummary(area_id=area_id, area_name=area_name, text=text)
