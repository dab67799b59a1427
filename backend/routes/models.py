"""Pydantic request models for API endpoints."""

from pydantic import BaseModel


class CreateHero(BaseModel):
    name: str
    user_id: str = "local"
    hero_class: str | None = None
    race: str | None = None
    level: int | None = None
    alignment: str | None = None
    appearance: str | None = None
    backstory: str | None = None
    personality_traits: list[str] = []
    description: str | None = None
    system_prompt: str | None = None
    avatar_url: str | None = None


class UpdateHero(BaseModel):
    name: str | None = None
    hero_class: str | None = None
    race: str | None = None
    level: int | None = None
    alignment: str | None = None
    appearance: str | None = None
    backstory: str | None = None
    personality_traits: list[str] | None = None
    description: str | None = None
    system_prompt: str | None = None
    avatar_url: str | None = None


class UnlockBody(BaseModel):
    node_id: str


class OpenAreaBody(BaseModel):
    hero_ids: list[str] = []


class ChatBody(BaseModel):
    message: str


class RespondBody(BaseModel):
    hero_id: str


class BanterBody(BaseModel):
    max_turns: int | None = None


class ResetBody(BaseModel):
    confirm: bool = False


class HeartsBody(BaseModel):
    hearts: int
