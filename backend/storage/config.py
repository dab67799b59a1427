"""Global app configuration (connections, role assignments, campaign tuning)."""

import json
from pathlib import Path
from typing import Any

from .core import data_dir

_CONFIG_DEFAULTS: dict[str, Any] = {
    "llm_connections": [],
    "roles": {
        "character": "",
        "summarizer": "",
    },
    "banter_max_turns": 3,
    "summarize_on_leave": False,
    "summary_word_limit": 100,
    "llm_timeout": 120,
}

_SCALARS = ("banter_max_turns", "summarize_on_leave", "summary_word_limit", "llm_timeout")


def _config_path() -> Path:
    return data_dir() / "config.json"


def get_config() -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config: dict[str, Any] = {
        "llm_connections": list(_CONFIG_DEFAULTS["llm_connections"]),
        "roles": dict(_CONFIG_DEFAULTS["roles"]),
        **{key: _CONFIG_DEFAULTS[key] for key in _SCALARS},
    }
    path = _config_path()
    if path.is_file():
        stored = json.loads(path.read_text())
        if "llm_connections" in stored:
            config["llm_connections"] = stored["llm_connections"]
        if isinstance(stored.get("roles"), dict):
            config["roles"].update(stored["roles"])
        for key in _SCALARS:
            if key in stored:
                config[key] = stored[key]
    return config


def update_config(fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config."""
    config = get_config()
    if "llm_connections" in fields:
        config["llm_connections"] = fields["llm_connections"]
    if isinstance(fields.get("roles"), dict):
        config["roles"].update(fields["roles"])
    for key in _SCALARS:
        if key in fields:
            config[key] = fields[key]
    _config_path().write_text(json.dumps(config, indent=2))
    return config


def resolve_connection(config: dict, role_name: str) -> dict | None:
    """Find the LLM connection assigned to a role. Returns None if unassigned."""
    conn_name = config["roles"].get(role_name)
    if not conn_name:
        return None
    for conn in config["llm_connections"]:
        if conn.get("name") == conn_name:
            return conn
    return None
