"""Group banter: party members answering each other without player input.

Each follow-up response is an explicit queued task rather than a timer, so
the chain can be stepped one response at a time and is bounded by
`max_turns`. A response schedules the next party member (round-robin)
until the budget is spent, a generation fails, or the area stops
accepting input.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hero_campaign.graph import CampaignError
from hero_campaign.models import ConversationMessage

if TYPE_CHECKING:
    from hero_campaign.session import CampaignSession

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FollowUp:
    speaker_index: int


class Banter:
    def __init__(self, session: CampaignSession, area_id: str, max_turns: int = 3) -> None:
        self._session = session
        self.area_id = area_id
        self.max_turns = max_turns
        self.turns = 0
        self._queue: deque[FollowUp] = deque()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule(self, speaker_index: int = 0) -> None:
        if self.turns < self.max_turns:
            self._queue.append(FollowUp(speaker_index))

    def cancel(self) -> None:
        self._queue.clear()

    async def step(self) -> ConversationMessage | None:
        """Run the next queued follow-up. Returns None when nothing ran."""
        if not self._queue:
            return None
        task = self._queue.popleft()
        heroes = self._session.party.heroes
        living = {h.id for h in self._session.living_heroes()}
        if not living:
            self.cancel()
            return None

        # downed heroes sit out; their turn passes to the next in line
        index = task.speaker_index
        while heroes[index % len(heroes)].id not in living:
            index += 1
        hero = heroes[index % len(heroes)]
        try:
            msg = await self._session.character_response(self.area_id, hero.id)
        except CampaignError as e:
            logger.info("banter in %s stopped: %s", self.area_id, e)
            self.cancel()
            return None
        self.turns += 1

        if msg is None or msg.error:
            self.cancel()
        elif len(living) > 1:
            self.schedule(index + 1)
        return msg

    async def run(self) -> list[ConversationMessage]:
        produced: list[ConversationMessage] = []
        while self._queue:
            msg = await self.step()
            if msg is not None:
                produced.append(msg)
        return produced
