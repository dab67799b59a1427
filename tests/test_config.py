"""Tests for config storage and LLM role resolution."""

from backend import campaigns, storage
from hero_campaign.llm import HttpLLM


def test_get_config_empty():
    """Returns defaults when no config file exists."""
    config = storage.get_config()
    assert config["llm_connections"] == []
    assert config["roles"] == {"character": "", "summarizer": ""}
    assert config["banter_max_turns"] == 3
    assert config["summarize_on_leave"] is False


def test_update_config_roles():
    """Partial role update preserves other roles."""
    storage.update_config({"roles": {"character": "Local"}})
    storage.update_config({"roles": {"summarizer": "Cloud"}})

    config = storage.get_config()
    assert config["roles"] == {"character": "Local", "summarizer": "Cloud"}


def test_update_config_scalars_and_connections():
    conns = [{"name": "Local", "provider_url": "http://localhost:5001", "api_key": ""}]
    storage.update_config({"llm_connections": conns, "banter_max_turns": 5})
    storage.update_config({"llm_timeout": 30})

    config = storage.get_config()
    assert config["llm_connections"] == conns
    assert config["banter_max_turns"] == 5
    assert config["llm_timeout"] == 30


def test_resolve_connection():
    conns = [{"name": "Local", "provider_url": "http://localhost:5001"}]
    config = storage.update_config({"llm_connections": conns, "roles": {"character": "Local"}})
    assert storage.resolve_connection(config, "character") == conns[0]
    assert storage.resolve_connection(config, "summarizer") is None


def test_build_llm_per_role():
    storage.update_config({
        "llm_connections": [{
            "name": "Chat", "provider_url": "http://localhost:8080",
            "provider_format": "openai", "model": "m",
        }],
        "roles": {"character": "Chat"},
    })
    config = storage.get_config()
    assert isinstance(campaigns.build_llm(config, "character"), HttpLLM)
    assert campaigns.build_llm(config, "summarizer") is None


def test_session_settings_from_config():
    config = storage.update_config({"summarize_on_leave": True, "banter_max_turns": 1})
    settings = campaigns.settings_from_config(config)
    assert settings.summarize_on_leave is True
    assert settings.banter_max_turns == 1
