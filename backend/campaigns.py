"""Live campaign sessions, one per campaign id, resumed on first use."""

import logging

from backend import storage
from hero_campaign.definitions import DEFINITIONS
from hero_campaign.heroes import JsonHeroStore
from hero_campaign.llm import LLM, HttpLLM
from hero_campaign.session import CampaignSession, SessionSettings
from hero_campaign.storage import CampaignStore, JsonFileStore
from hero_campaign.summarizer import AreaSummarizer

logger = logging.getLogger(__name__)

_sessions: dict[str, CampaignSession] = {}


def reset_sessions() -> None:
    _sessions.clear()


def hero_store() -> JsonHeroStore:
    return JsonHeroStore(storage.heroes_dir())


def build_llm(config: dict, role_name: str) -> LLM | None:
    """LLM client for a role, or None when no connection is assigned to it."""
    conn = storage.resolve_connection(config, role_name)
    if conn is None:
        logger.warning("no LLM connection assigned to role %r", role_name)
        return None
    return HttpLLM(
        conn["provider_url"],
        conn.get("api_key", ""),
        provider_format=conn.get("provider_format", "koboldcpp"),
        model=conn.get("model", ""),
        timeout=float(config["llm_timeout"]),
    )


def settings_from_config(config: dict) -> SessionSettings:
    return SessionSettings(
        summary_word_limit=config["summary_word_limit"],
        summarize_on_leave=config["summarize_on_leave"],
        banter_max_turns=config["banter_max_turns"],
    )


async def get_session(campaign_id: str) -> CampaignSession | None:
    """Return the live session for a campaign, or None for an unknown id."""
    session = _sessions.get(campaign_id)
    if session is not None:
        return session
    definition = DEFINITIONS.get(campaign_id)
    if definition is None:
        return None

    config = storage.get_config()
    settings = settings_from_config(config)
    session = CampaignSession(
        definition,
        CampaignStore(JsonFileStore(storage.campaigns_dir()), campaign_id),
        build_llm(config, "character"),
        summarizer=AreaSummarizer(
            build_llm(config, "summarizer"), word_limit=settings.summary_word_limit,
        ),
        hero_store=hero_store(),
        settings=settings,
    )
    await session.resume()
    _sessions[campaign_id] = session
    return session
