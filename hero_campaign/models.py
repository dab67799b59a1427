"""Core domain models.

All campaign components and storage functions operate on these types.
Pydantic is used for validation and serialisation at every data boundary.
"""

from __future__ import annotations

import time
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field, field_validator

Sender = Literal["user", "character"]
ChatRole = Literal["system", "user", "assistant"]

MAX_PARTY_SIZE = 3

_last_id = 0


def new_message_id() -> str:
    """Return a unique, strictly increasing, timestamp-derived id.

    Two messages created in the same millisecond still get distinct ids,
    so list diffing on the presentation side stays stable.
    """
    global _last_id
    now = int(time.time() * 1000)
    _last_id = max(now, _last_id + 1)
    return str(_last_id)


class ChatMessage(BaseModel):
    """One turn sent to the text-generation service."""

    role: ChatRole
    content: str


class ConversationMessage(BaseModel):
    """A single entry in an area's append-only conversation log."""

    id: str = Field(default_factory=new_message_id)
    sender: Sender
    speaker: str | None = None  # absent for the human user
    text: str
    pending: bool = False  # "typing…" placeholder, never persisted
    error: bool = False  # apology written in place of a failed generation

    @field_validator("id")
    @classmethod
    def _id_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("message id must not be empty")
        return value


class Hero(BaseModel):
    """A hero as read from the hero record store."""

    id: str
    name: str
    hero_class: str | None = None
    race: str | None = None
    level: int | None = None
    alignment: str | None = None
    appearance: str | None = None
    backstory: str | None = None
    personality_traits: list[str] = Field(default_factory=list)
    description: str | None = None
    system_prompt: str | None = None
    avatar_url: str | None = None


class PartyRoster(BaseModel):
    """The up-to-three heroes travelling with the player."""

    heroes: list[Hero] = Field(default_factory=list)

    @field_validator("heroes")
    @classmethod
    def _cap_and_dedupe(cls, heroes: list[Hero]) -> list[Hero]:
        seen: set[str] = set()
        unique: list[Hero] = []
        for hero in heroes:
            if hero.id in seen:
                continue
            seen.add(hero.id)
            unique.append(hero)
        if len(unique) > MAX_PARTY_SIZE:
            raise ValueError(f"a party holds at most {MAX_PARTY_SIZE} heroes")
        return unique

    def get(self, hero_id: str) -> Hero | None:
        for hero in self.heroes:
            if hero.id == hero_id:
                return hero
        return None

    def __len__(self) -> int:
        return len(self.heroes)


class AreaSummary(BaseModel):
    """Short factual digest of a finished area's conversation."""

    area_id: str
    area_name: str
    text: str
    fallback: bool = False


class NodeState(str, Enum):
    """Tagged state of one campaign node."""

    LOCKED = "locked"
    UNLOCKED = "unlocked"
    COMPLETED = "completed"
    BRANCH_LOCKED_OUT = "branch_locked_out"

    @property
    def unlocked(self) -> bool:
        return self in (NodeState.UNLOCKED, NodeState.COMPLETED)

    @property
    def completed(self) -> bool:
        return self is NodeState.COMPLETED

    @property
    def branch_locked_out(self) -> bool:
        return self is NodeState.BRANCH_LOCKED_OUT


class ProgressSnapshot(BaseModel):
    """Persisted progression state: node states plus the open area."""

    version: int = 1
    nodes: dict[str, NodeState] = Field(default_factory=dict)
    active_area: str | None = None
