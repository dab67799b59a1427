import shutil
from pathlib import Path

import pytest

from backend import campaigns, storage
from hero_campaign.definitions import STARSHIP_ESCAPE
from hero_campaign.heroes import MemoryHeroStore
from hero_campaign.models import ChatMessage, Hero
from hero_campaign.session import CampaignSession
from hero_campaign.storage import CampaignStore, MemoryStore

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture(autouse=True)
def clean_test_data():
    """Wipe and re-init data-tests/ before every test."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    storage.init_storage(TEST_DATA_DIR)
    campaigns.reset_sessions()
    yield
    # leave data-tests around after tests for inspection; CI can ignore it


class StubLLM:
    """Scripted LLM: returns queued replies in order, then `default`.

    A queued Exception instance is raised instead of returned. Every call
    is recorded as (stage, messages).
    """

    def __init__(self, *replies: str | Exception, default: str = "Understood.") -> None:
        self.replies = list(replies)
        self.default = default
        self.calls: list[tuple[str, list[ChatMessage]]] = []

    async def __call__(self, stage: str, messages: list[ChatMessage]) -> str:
        self.calls.append((stage, messages))
        reply = self.replies.pop(0) if self.replies else self.default
        if isinstance(reply, Exception):
            raise reply
        return reply

    def stages(self) -> list[str]:
        return [stage for stage, _ in self.calls]


@pytest.fixture
def llm() -> StubLLM:
    return StubLLM()


@pytest.fixture
def kv() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def store(kv: MemoryStore) -> CampaignStore:
    return CampaignStore(kv, STARSHIP_ESCAPE.id)


@pytest.fixture
def aria() -> Hero:
    return Hero(
        id="aria", name="Aria", hero_class="Ranger", race="Elf",
        personality_traits=["curious", "wry"],
    )


@pytest.fixture
def thorne() -> Hero:
    return Hero(id="thorne", name="Thorne", hero_class="Fighter", race="Dwarf")


@pytest.fixture
def hero_store(aria: Hero, thorne: Hero) -> MemoryHeroStore:
    heroes = MemoryHeroStore()
    for hero in (aria, thorne):
        heroes.create("local", hero.model_dump(exclude={"id"}))
    return heroes


@pytest.fixture
def session(store: CampaignStore, llm: StubLLM, hero_store: MemoryHeroStore) -> CampaignSession:
    return CampaignSession(STARSHIP_ESCAPE, store, llm, hero_store=hero_store)
