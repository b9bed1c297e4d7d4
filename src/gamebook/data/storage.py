"""Key/value storage backends for save slots."""
from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Dict, Protocol

from gamebook.data.errors import DataError, DataValidationError
from gamebook.data.json_loader import load_json, write_json

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    """Minimal storage contract: JSON-serializable values under string keys."""

    def get_item(self, key: str) -> object | None: ...

    def set_item(self, key: str, value: object) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    """In-process storage, mostly useful for tests and previews."""

    def __init__(self) -> None:
        self._items: Dict[str, object] = {}

    def get_item(self, key: str) -> object | None:
        value = self._items.get(key)
        return copy.deepcopy(value)

    def set_item(self, key: str, value: object) -> None:
        self._items[key] = copy.deepcopy(value)

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """Stores every key inside one JSON object on disk."""

    def __init__(self, path: Path | str) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get_item(self, key: str) -> object | None:
        return self._read().get(key)

    def set_item(self, key: str, value: object) -> None:
        try:
            payload = self._read()
        except DataError:
            logger.warning("Replacing unreadable storage file %s", self._path)
            payload = {}
        payload[key] = value
        write_json(self._path, payload)

    def remove_item(self, key: str) -> None:
        payload = self._read()
        if key in payload:
            del payload[key]
            write_json(self._path, payload)

    def _read(self) -> Dict[str, object]:
        if not self._path.exists():
            return {}
        raw = load_json(self._path)
        if not isinstance(raw, dict):
            raise DataValidationError(f"Expected top-level object in {self._path}")
        return raw
