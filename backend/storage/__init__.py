"""File-based storage for the campaign server.

Data layout:
  data/
    config.json          App settings (LLM connections, role assignments, tuning)
    heroes/heroes.json   Hero records, keyed by slug id
    kv/                  Campaign key/value records, one JSON file per key:
      campaigns/<id>/progress.json
      campaigns/<id>/summaries.json
      campaigns/<id>/party.json
      campaigns/<id>/areas/<area>.json
      campaigns/<id>/hearts/<hero>.json

Config: get_config() returns defaults merged with stored values.
update_config() applies partial updates: llm_connections replaced wholesale,
roles merged key-by-key, scalars overwritten.
"""

# Re-export all public symbols so `from backend import storage` keeps working.

from .core import (  # noqa: F401
    campaigns_dir,
    data_dir,
    heroes_dir,
    init_storage,
)

from .config import (  # noqa: F401
    get_config,
    resolve_connection,
    update_config,
)
