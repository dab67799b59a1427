"""Create demo heroes for development/testing."""

import shutil

from backend import campaigns, storage

DEMO_USER = "local"

DEMO_HEROES = [
    {
        "name": "Aria Windwhisper",
        "hero_class": "Ranger",
        "race": "Elf",
        "level": 4,
        "alignment": "Chaotic Good",
        "appearance": "Silver-haired, green cloak, a longbow across her back.",
        "backstory": "A scout who signed on as ship's navigator and woke up in a cell.",
        "personality_traits": ["curious", "wry", "protective of the party"],
    },
    {
        "name": "Thorne Ironfist",
        "hero_class": "Fighter",
        "race": "Dwarf",
        "level": 5,
        "alignment": "Lawful Neutral",
        "appearance": "Broad, braided beard, scarred knuckles.",
        "backstory": "Former station security chief with a grudge against whoever froze him.",
        "personality_traits": ["blunt", "steady", "distrusts machines"],
    },
    {
        "name": "Lyra Voss",
        "hero_class": "Wizard",
        "race": "Human",
        "level": 4,
        "alignment": "Neutral Good",
        "appearance": "Ink-stained fingers, goggles pushed up on her forehead.",
        "backstory": "A ship's engineer who treats the reactor like a spellbook.",
        "personality_traits": ["analytical", "talkative"],
    },
]


def create_demo_data() -> list[str]:
    """Wipe stored heroes and campaigns and create the demo heroes.

    Returns the ids of the created heroes.
    """
    for path in (storage.heroes_dir(), storage.campaigns_dir()):
        if path.exists():
            shutil.rmtree(path)
        path.mkdir(parents=True, exist_ok=True)
    campaigns.reset_sessions()

    store = campaigns.hero_store()
    return [store.create(DEMO_USER, fields).id for fields in DEMO_HEROES]
