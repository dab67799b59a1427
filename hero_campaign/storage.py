"""Durable key/value storage and the campaign persistence layer.

The campaign never talks to a storage medium directly. Everything goes
through a KeyValueStore (get/set/delete of string values by string key,
with no multi-key transactions), so the medium is swappable:

    MemoryStore    : a dict; tests and throwaway sessions.
    JsonFileStore  : one JSON file per key under a base directory.

CampaignStore layers the campaign's records on top of any KeyValueStore:

    campaigns/{campaign_id}/
      progress              ← ProgressSnapshot (node states + active area)
      summaries             ← list of AreaSummary
      party                 ← PartyRoster snapshot
      areas/{area_id}       ← list of ConversationMessage
      hearts/{hero_id}      ← int, 0..3

Reads never raise on bad data. A record that fails to parse is treated as
absent; a message list with malformed entries is cleaned and re-written
immediately.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from pydantic import ValidationError

from hero_campaign.definitions import CampaignDefinition
from hero_campaign.graph import reconcile
from hero_campaign.models import (
    AreaSummary,
    ConversationMessage,
    PartyRoster,
    ProgressSnapshot,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Key/value stores
# ---------------------------------------------------------------------------

class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self, prefix: str = "") -> list[str]: ...


class MemoryStore:
    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self, prefix: str = "") -> list[str]:
        return sorted(k for k in self._data if k.startswith(prefix))


_SEGMENT_RE = re.compile(r"^[A-Za-z0-9_.-]+$")


class JsonFileStore:
    """Stores each key as `{base}/{key}.json`; `/` in keys maps to directories."""

    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._base.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        segments = key.split("/")
        for seg in segments:
            if not _SEGMENT_RE.match(seg) or seg in (".", ".."):
                raise ValueError(f"Invalid storage key {key!r}")
        return self._base.joinpath(*segments[:-1]) / f"{segments[-1]}.json"

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text()

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(value)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def keys(self, prefix: str = "") -> list[str]:
        found = []
        for path in self._base.rglob("*.json"):
            key = path.relative_to(self._base).with_suffix("").as_posix()
            if key.startswith(prefix):
                found.append(key)
        return sorted(found)


# ---------------------------------------------------------------------------
# Campaign persistence layer
# ---------------------------------------------------------------------------

_SENDERS = ("user", "character")


def _valid_message(raw: Any) -> bool:
    if not isinstance(raw, dict):
        return False
    if raw.get("sender") not in _SENDERS:
        return False
    msg_id = raw.get("id")
    text = raw.get("text")
    if not isinstance(msg_id, str) or not msg_id.strip():
        return False
    return isinstance(text, str) and bool(text.strip())


class CampaignStore:
    def __init__(self, kv: KeyValueStore, campaign_id: str) -> None:
        self._kv = kv
        self._prefix = f"campaigns/{campaign_id}"

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _key(self, *parts: str) -> str:
        return "/".join((self._prefix, *parts))

    def _read_json(self, key: str) -> Any:
        """Parsed JSON at `key`, or None when absent or unparseable."""
        raw = self._kv.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            logger.warning("Discarding unparseable record %s: %s", key, e)
            return None

    def _write_json(self, key: str, data: Any) -> None:
        self._kv.set(key, json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Area logs
    # ------------------------------------------------------------------

    def save_area_log(self, area_id: str, messages: list[ConversationMessage]) -> None:
        """Write finished messages; pending placeholders are never persisted."""
        self._write_json(
            self._key("areas", area_id),
            [m.model_dump(exclude={"pending"}) for m in messages if not m.pending],
        )

    def load_area_log(self, area_id: str) -> list[ConversationMessage]:
        key = self._key("areas", area_id)
        data = self._read_json(key)
        if data is None:
            return []
        if not isinstance(data, list):
            logger.warning("Discarding area log %s: expected a list", key)
            self._kv.delete(key)
            return []

        messages: list[ConversationMessage] = []
        dropped = 0
        for raw in data:
            if not _valid_message(raw):
                dropped += 1
                continue
            try:
                messages.append(ConversationMessage.model_validate({**raw, "pending": False}))
            except ValidationError:
                dropped += 1
        if dropped:
            logger.warning("Dropped %d malformed message(s) from %s", dropped, key)
            self.save_area_log(area_id, messages)
        return messages

    def delete_area_log(self, area_id: str) -> None:
        self._kv.delete(self._key("areas", area_id))

    # ------------------------------------------------------------------
    # Progress
    # ------------------------------------------------------------------

    def save_progress(self, snapshot: ProgressSnapshot) -> None:
        self._write_json(self._key("progress"), snapshot.model_dump(mode="json"))

    def load_progress(self, definition: CampaignDefinition) -> ProgressSnapshot | None:
        """Load and reconcile the progress snapshot. None if absent."""
        key = self._key("progress")
        data = self._read_json(key)
        if data is None:
            return None
        try:
            stored = ProgressSnapshot.model_validate(data)
        except ValidationError as e:
            logger.warning("Discarding progress record %s: %s", key, e)
            return None
        repaired = reconcile(definition, stored)
        if repaired != stored:
            self.save_progress(repaired)
        return repaired

    # ------------------------------------------------------------------
    # Summaries
    # ------------------------------------------------------------------

    def save_summaries(self, summaries: dict[str, AreaSummary]) -> None:
        self._write_json(
            self._key("summaries"),
            [s.model_dump() for s in summaries.values()],
        )

    def load_summaries(self) -> dict[str, AreaSummary]:
        data = self._read_json(self._key("summaries"))
        if not isinstance(data, list):
            return {}
        summaries: dict[str, AreaSummary] = {}
        for raw in data:
            try:
                summary = AreaSummary.model_validate(raw)
            except ValidationError:
                logger.warning("Dropping malformed area summary %r", raw)
                continue
            summaries.setdefault(summary.area_id, summary)
        return summaries

    # ------------------------------------------------------------------
    # Party snapshot
    # ------------------------------------------------------------------

    def save_party_snapshot(self, roster: PartyRoster) -> None:
        self._write_json(self._key("party"), roster.model_dump())

    def load_party_snapshot(self) -> PartyRoster:
        key = self._key("party")
        data = self._read_json(key)
        if data is None:
            return PartyRoster()
        try:
            return PartyRoster.model_validate(data)
        except ValidationError as e:
            logger.warning("Discarding party snapshot %s: %s", key, e)
            return PartyRoster()

    # ------------------------------------------------------------------
    # Hero health
    # ------------------------------------------------------------------

    def save_hearts(self, hero_id: str, hearts: int) -> None:
        self._write_json(self._key("hearts", hero_id), hearts)

    def load_hearts(self, hero_id: str) -> int | None:
        key = self._key("hearts", hero_id)
        data = self._read_json(key)
        if data is None:
            return None
        if not isinstance(data, int) or isinstance(data, bool):
            logger.warning("Discarding hearts record %s: expected an integer", key)
            return None
        return data

    # ------------------------------------------------------------------
    # Reset
    # ------------------------------------------------------------------

    def clear_all(self) -> None:
        for key in self._kv.keys(self._prefix + "/"):
            self._kv.delete(key)
