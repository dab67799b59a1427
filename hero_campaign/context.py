"""Campaign context: the "what has happened so far" block.

Every character-voice prompt carries this block so characters remember
earlier areas. It is never empty: before any area is summarized it holds an
explicit placeholder.
"""

from __future__ import annotations

from hero_campaign.definitions import CampaignDefinition
from hero_campaign.models import AreaSummary

CONTEXT_HEADING = "**CAMPAIGN HISTORY - WHAT HAS HAPPENED SO FAR:**"
NO_HISTORY = "No areas have been completed yet."


class CampaignContextBuilder:
    def __init__(self, definition: CampaignDefinition, summaries: dict[str, AreaSummary]) -> None:
        self._definition = definition
        # shared with the session; read on every build
        self._summaries = summaries

    def build(self) -> str:
        parts = [CONTEXT_HEADING]
        for area_id in self._definition.order:
            summary = self._summaries.get(area_id)
            if summary is None:
                continue
            parts.append(f"**{self._definition.area(area_id).title}:**\n{summary.text}")
        if len(parts) == 1:
            parts.append(NO_HISTORY)
        return "\n\n".join(parts)

    def compose_system_prompt(self, persona_prompt: str) -> str:
        return f"{persona_prompt}\n\n{self.build()}"
