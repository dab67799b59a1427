"""Hero CRUD endpoints."""

from fastapi import APIRouter, HTTPException

from backend import campaigns

from .models import CreateHero, UpdateHero

router = APIRouter()


@router.get("/heroes")
async def list_heroes(user_id: str = "local"):
    """List the heroes owned by a user."""
    return [h.model_dump() for h in campaigns.hero_store().list(user_id)]


@router.post("/heroes", status_code=201)
async def create_hero(body: CreateHero):
    """Create a hero. The id is derived from the name."""
    if not body.name.strip():
        raise HTTPException(400, "Hero name must not be empty")
    fields = body.model_dump(exclude={"user_id"})
    return campaigns.hero_store().create(body.user_id, fields).model_dump()


@router.get("/heroes/{hero_id}")
async def get_hero(hero_id: str):
    """Get a single hero by id."""
    hero = campaigns.hero_store().get(hero_id)
    if not hero:
        raise HTTPException(404, "Hero not found")
    return hero.model_dump()


@router.patch("/heroes/{hero_id}")
async def update_hero(hero_id: str, body: UpdateHero):
    """Update hero fields. Only provided fields change."""
    hero = campaigns.hero_store().update(hero_id, body.model_dump(exclude_unset=True))
    if not hero:
        raise HTTPException(404, "Hero not found")
    return hero.model_dump()


@router.delete("/heroes/{hero_id}")
async def delete_hero(hero_id: str):
    """Delete a hero."""
    if not campaigns.hero_store().delete(hero_id):
        raise HTTPException(404, "Hero not found")
    return {"ok": True}
