"""Hero record store.

Heroes are owned and managed outside the campaign; the campaign only reads
identity and persona fields from them. Two stores are provided:

    MemoryHeroStore  in-process dict, for tests.
    JsonHeroStore    a single heroes.json file under a base directory.

Hero ids are slugs of the hero name, suffixed -2, -3, ... on collision.
"""

from __future__ import annotations

import json
import logging
import re
import unicodedata
from pathlib import Path
from typing import Any, Protocol

from hero_campaign.models import Hero

logger = logging.getLogger(__name__)

_UPDATABLE = set(Hero.model_fields) - {"id"}


def slugify(title: str) -> str:
    """Convert a name to a filesystem-safe slug.

    "Aria Windwhisper" → "aria-windwhisper"
    """
    text = unicodedata.normalize("NFKD", title)
    text = text.encode("ascii", "ignore").decode("ascii")
    text = text.lower()
    text = re.sub(r"['\"]", "", text)  # strip apostrophes/quotes before hyphenation
    text = re.sub(r"[^a-z0-9]+", "-", text)
    text = text.strip("-")
    return text or "hero"


class HeroStore(Protocol):
    def list(self, user_id: str) -> list[Hero]: ...

    def get(self, hero_id: str) -> Hero | None: ...

    def create(self, user_id: str, fields: dict[str, Any]) -> Hero: ...

    def update(self, hero_id: str, fields: dict[str, Any]) -> Hero | None: ...

    def delete(self, hero_id: str) -> bool: ...


class MemoryHeroStore:
    def __init__(self) -> None:
        self._records: dict[str, dict[str, Any]] = {}

    # Subclasses persist after every mutation.
    def _load(self) -> dict[str, dict[str, Any]]:
        return self._records

    def _save(self, records: dict[str, dict[str, Any]]) -> None:
        self._records = records

    def list(self, user_id: str) -> list[Hero]:
        return [
            Hero.model_validate(r["hero"])
            for r in self._load().values() if r["user_id"] == user_id
        ]

    def get(self, hero_id: str) -> Hero | None:
        record = self._load().get(hero_id)
        if record is None:
            return None
        return Hero.model_validate(record["hero"])

    def create(self, user_id: str, fields: dict[str, Any]) -> Hero:
        records = self._load()
        base_id = slugify(fields.get("name", ""))
        hero_id = base_id
        counter = 2
        while hero_id in records:
            hero_id = f"{base_id}-{counter}"
            counter += 1
        hero = Hero.model_validate({**fields, "id": hero_id})
        records[hero_id] = {"user_id": user_id, "hero": hero.model_dump()}
        self._save(records)
        return hero

    def update(self, hero_id: str, fields: dict[str, Any]) -> Hero | None:
        records = self._load()
        record = records.get(hero_id)
        if record is None:
            return None
        merged = {**record["hero"], **{k: v for k, v in fields.items() if k in _UPDATABLE}}
        hero = Hero.model_validate(merged)
        record["hero"] = hero.model_dump()
        self._save(records)
        return hero

    def delete(self, hero_id: str) -> bool:
        records = self._load()
        if records.pop(hero_id, None) is None:
            return False
        self._save(records)
        return True


class JsonHeroStore(MemoryHeroStore):
    def __init__(self, base_path: Path) -> None:
        super().__init__()
        base_path.mkdir(parents=True, exist_ok=True)
        self._path = base_path / "heroes.json"

    def _load(self) -> dict[str, dict[str, Any]]:
        if not self._path.is_file():
            return {}
        try:
            records = json.loads(self._path.read_text())
        except json.JSONDecodeError as e:
            logger.warning("Ignoring unparseable hero store %s: %s", self._path, e)
            return {}
        if not isinstance(records, dict):
            logger.warning("Ignoring hero store %s: expected an object", self._path)
            return {}
        return records

    def _save(self, records: dict[str, dict[str, Any]]) -> None:
        self._path.write_text(json.dumps(records, indent=2))
