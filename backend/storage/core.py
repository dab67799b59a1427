"""Storage initialization and path helpers."""

from pathlib import Path

_data_dir: Path | None = None


def init_storage(data_dir: Path) -> None:
    global _data_dir
    _data_dir = data_dir
    _data_dir.mkdir(parents=True, exist_ok=True)
    campaigns_dir().mkdir(exist_ok=True)
    heroes_dir().mkdir(exist_ok=True)


def data_dir() -> Path:
    assert _data_dir is not None, "Call init_storage() before using storage"
    return _data_dir


def campaigns_dir() -> Path:
    return data_dir() / "kv"


def heroes_dir() -> Path:
    return data_dir() / "heroes"
