"""Campaign progression and conversation endpoints.

Every campaign resource is nested under /api/campaigns/{campaign_id}/.
Campaign errors map to HTTP status codes:

  UnknownNodeError, UnknownHeroError                 404
  AreaLockedError, AreaCompletedError, AreaBusyError 409
  HeroDownError                                      409
  PartyFullError, RoleNotAssignedError, ValueError   400
  ConfirmationRequired                               428
"""

from dataclasses import asdict

from fastapi import APIRouter, HTTPException

from backend import campaigns
from hero_campaign.conversation import AreaBusyError, RoleNotAssignedError
from hero_campaign.definitions import DEFINITIONS
from hero_campaign.graph import (
    AreaCompletedError,
    AreaLockedError,
    CampaignError,
    UnknownNodeError,
)
from hero_campaign.session import (
    CampaignSession,
    ConfirmationRequired,
    HeroDownError,
    PartyFullError,
    UnknownHeroError,
)

from .models import (
    BanterBody,
    ChatBody,
    HeartsBody,
    OpenAreaBody,
    RespondBody,
    ResetBody,
    UnlockBody,
)

router = APIRouter()

_STATUS: list[tuple[type[CampaignError], int]] = [
    (UnknownNodeError, 404),
    (UnknownHeroError, 404),
    (AreaLockedError, 409),
    (AreaCompletedError, 409),
    (AreaBusyError, 409),
    (HeroDownError, 409),
    (PartyFullError, 400),
    (RoleNotAssignedError, 400),
    (ConfirmationRequired, 428),
]


def _http_error(e: CampaignError) -> HTTPException:
    for cls, status in _STATUS:
        if isinstance(e, cls):
            return HTTPException(status, str(e))
    return HTTPException(400, str(e))


async def _session(campaign_id: str) -> CampaignSession:
    session = await campaigns.get_session(campaign_id)
    if session is None:
        raise HTTPException(404, "Campaign not found")
    return session


def _check_area(session: CampaignSession, area_id: str) -> None:
    if area_id not in session.logs:
        raise HTTPException(404, "Area not found")


@router.get("/campaigns")
async def list_campaigns():
    """List the available campaign definitions."""
    return [
        {"id": d.id, "title": d.title, "areas": d.order}
        for d in DEFINITIONS.values()
    ]


@router.get("/campaigns/{campaign_id}")
async def get_campaign(campaign_id: str):
    """Node states, active area, party, summaries and the context block."""
    session = await _session(campaign_id)
    return session.describe()


@router.post("/campaigns/{campaign_id}/unlock")
async def unlock_area(campaign_id: str, body: UnlockBody):
    """Try to unlock a node. A refused unlock is a result, not an error."""
    session = await _session(campaign_id)
    try:
        result = await session.attempt_unlock(body.node_id)
    except CampaignError as e:
        raise _http_error(e)
    return {**asdict(result), "ok": result.ok, "permanent": result.permanent}


@router.post("/campaigns/{campaign_id}/areas/{area_id}/open")
async def open_area(campaign_id: str, area_id: str, body: OpenAreaBody):
    """Enter an area, optionally snapshotting the live party first."""
    session = await _session(campaign_id)
    heroes = []
    store = campaigns.hero_store()
    for hero_id in body.hero_ids:
        hero = store.get(hero_id)
        if hero is None:
            raise HTTPException(404, f"Hero '{hero_id}' not found")
        heroes.append(hero)
    try:
        log = await session.open_area(area_id, heroes)
    except CampaignError as e:
        raise _http_error(e)
    return {"area_id": area_id, "messages": [m.model_dump() for m in log]}


@router.get("/campaigns/{campaign_id}/areas/{area_id}/messages")
async def get_messages(campaign_id: str, area_id: str):
    """Get an area's conversation log."""
    session = await _session(campaign_id)
    _check_area(session, area_id)
    return [m.model_dump() for m in session.logs[area_id]]


@router.post("/campaigns/{campaign_id}/areas/{area_id}/messages", status_code=201)
async def post_message(campaign_id: str, area_id: str, body: ChatBody):
    """Append the player's message to an area's log."""
    session = await _session(campaign_id)
    try:
        msg = session.submit_message(area_id, body.message)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except CampaignError as e:
        raise _http_error(e)
    return msg.model_dump()


@router.delete("/campaigns/{campaign_id}/areas/{area_id}/messages")
async def clear_messages(campaign_id: str, area_id: str):
    """Clear an area's log. Completed areas are read-only."""
    session = await _session(campaign_id)
    try:
        session.clear_area(area_id)
    except CampaignError as e:
        raise _http_error(e)
    return {"ok": True}


@router.post("/campaigns/{campaign_id}/areas/{area_id}/respond")
async def respond(campaign_id: str, area_id: str, body: RespondBody):
    """Generate one in-character reply from a party member."""
    session = await _session(campaign_id)
    try:
        msg = await session.character_response(area_id, body.hero_id)
    except CampaignError as e:
        raise _http_error(e)
    if msg is None:
        raise HTTPException(409, "Area changed while the reply was generated; the reply was dropped")
    return msg.model_dump()


@router.post("/campaigns/{campaign_id}/areas/{area_id}/banter")
async def banter(campaign_id: str, area_id: str, body: BanterBody):
    """Let the party talk among themselves for a bounded number of turns."""
    session = await _session(campaign_id)
    try:
        session.graph.check_enterable(area_id)
        messages = await session.banter(area_id, body.max_turns)
    except CampaignError as e:
        raise _http_error(e)
    return [m.model_dump() for m in messages]


@router.post("/campaigns/{campaign_id}/heroes/{hero_id}/chat")
async def hero_chat(campaign_id: str, hero_id: str, body: ChatBody):
    """Send a message in a one-on-one chat with a party member."""
    session = await _session(campaign_id)
    try:
        chat = session.open_hero_chat(hero_id)
        reply = await chat.send(body.message)
    except ValueError as e:
        raise HTTPException(400, str(e))
    except CampaignError as e:
        raise _http_error(e)
    return reply.model_dump()


@router.get("/campaigns/{campaign_id}/heroes/{hero_id}/chat")
async def get_hero_chat(campaign_id: str, hero_id: str):
    """Get the one-on-one chat log, opening it with a greeting if needed."""
    session = await _session(campaign_id)
    try:
        chat = session.open_hero_chat(hero_id)
    except CampaignError as e:
        raise _http_error(e)
    return [m.model_dump() for m in chat.log]


@router.delete("/campaigns/{campaign_id}/heroes/{hero_id}/chat")
async def close_hero_chat(campaign_id: str, hero_id: str):
    """Close a one-on-one chat. Its history is discarded."""
    session = await _session(campaign_id)
    session.close_hero_chat(hero_id)
    return {"ok": True}


@router.get("/campaigns/{campaign_id}/heroes/{hero_id}/health")
async def get_hero_health(campaign_id: str, hero_id: str):
    """Hearts left for a party member."""
    session = await _session(campaign_id)
    try:
        hearts = session.hero_hearts(hero_id)
    except CampaignError as e:
        raise _http_error(e)
    return {"hero_id": hero_id, "hearts": hearts, "down": hearts == 0}


@router.put("/campaigns/{campaign_id}/heroes/{hero_id}/health")
async def set_hero_health(campaign_id: str, hero_id: str, body: HeartsBody):
    """Set a party member's hearts. Values are clamped to 0..3."""
    session = await _session(campaign_id)
    try:
        hearts = session.set_hero_hearts(hero_id, body.hearts)
    except CampaignError as e:
        raise _http_error(e)
    return {"hero_id": hero_id, "hearts": hearts, "down": hearts == 0}


@router.post("/campaigns/{campaign_id}/reset")
async def reset_campaign(campaign_id: str, body: ResetBody):
    """Erase all progress. Requires {"confirm": true}."""
    session = await _session(campaign_id)
    try:
        session.reset_campaign(confirm=body.confirm)
    except CampaignError as e:
        raise _http_error(e)
    return session.describe()
