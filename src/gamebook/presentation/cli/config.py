"""CLI configuration helpers for options persistence."""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict

from gamebook.services.save_service import MAX_SAVE_SLOTS

_DEFAULT_LOG_LEVEL = "WARNING"
_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def get_user_data_dir() -> Path:
    """Return the per-user data directory."""
    if os.name == "nt":
        base = os.environ.get("APPDATA")
        if base:
            return Path(base) / "Gamebook"
        return Path.home() / "Gamebook"
    return Path.home() / ".config" / "gamebook"


def get_default_config_path() -> Path:
    """Return the default per-user config path."""
    return get_user_data_dir() / "config.json"


def get_save_path() -> Path:
    """Return the per-user save storage file."""
    return get_user_data_dir() / "saves.json"


def default_config() -> Dict[str, object]:
    return {"log_level": _DEFAULT_LOG_LEVEL, "max_save_slots": MAX_SAVE_SLOTS}


def _normalize(raw: Dict[str, object]) -> Dict[str, object]:
    level = str(raw.get("log_level", _DEFAULT_LOG_LEVEL)).upper()
    slots = raw.get("max_save_slots")
    return {
        "log_level": level if level in _LOG_LEVELS else _DEFAULT_LOG_LEVEL,
        "max_save_slots": slots
        if isinstance(slots, int) and not isinstance(slots, bool) and slots > 0
        else MAX_SAVE_SLOTS,
    }


def load_config(path: Path | None = None) -> Dict[str, object]:
    """Load config from disk or return defaults."""
    config_path = path or get_default_config_path()
    try:
        raw = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return default_config()
    if not isinstance(raw, dict):
        return default_config()
    return _normalize(raw)


def save_config(config: Dict[str, object], path: Path | None = None) -> None:
    """Persist config to disk."""
    config_path = path or get_default_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(_normalize(config), indent=2, sort_keys=True), encoding="utf-8")


def configure_logging(config: Dict[str, object]) -> None:
    """Set up root logging; GAMEBOOK_DEBUG=1 forces DEBUG."""
    level_name = "DEBUG" if os.getenv("GAMEBOOK_DEBUG") == "1" else str(config.get("log_level"))
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
