"""Hero health, counted in hearts.

Every hero starts a campaign with MAX_HEARTS hearts. A hero at zero hearts
is down: it cannot answer in campaign areas and is skipped in banter.
Hearts are stored per campaign, so a campaign reset heals everyone.
"""

from __future__ import annotations

import logging

from hero_campaign.storage import CampaignStore

logger = logging.getLogger(__name__)

MAX_HEARTS = 3


class HeroHealth:
    def __init__(self, store: CampaignStore) -> None:
        self._store = store

    def hearts(self, hero_id: str) -> int:
        stored = self._store.load_hearts(hero_id)
        if stored is None:
            return MAX_HEARTS
        return max(0, min(MAX_HEARTS, stored))

    def set_hearts(self, hero_id: str, hearts: int) -> int:
        """Store `hearts` clamped to 0..MAX_HEARTS; returns the stored value."""
        clamped = max(0, min(MAX_HEARTS, hearts))
        self._store.save_hearts(hero_id, clamped)
        if clamped == 0:
            logger.info("hero %s is down", hero_id)
        return clamped

    def is_down(self, hero_id: str) -> bool:
        return self.hearts(hero_id) == 0
