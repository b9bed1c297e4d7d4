from __future__ import annotations

import json
from pathlib import Path

import pytest

from gamebook.data import DataLoadError
from gamebook.data.storage import JsonFileStorage, MemoryStorage


def test_memory_storage_returns_copies() -> None:
    storage = MemoryStorage()
    value = {"slots": [1]}
    storage.set_item("k", value)
    value["slots"].append(2)

    stored = storage.get_item("k")
    stored["slots"].append(3)

    assert storage.get_item("k") == {"slots": [1]}
    storage.remove_item("k")
    assert storage.get_item("k") is None


def test_json_file_storage_keeps_other_keys(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    storage = JsonFileStorage(path)

    storage.set_item("a", [1, 2])
    storage.set_item("b", {"x": True})
    storage.remove_item("a")

    assert json.loads(path.read_text(encoding="utf-8")) == {"b": {"x": True}}
    assert storage.get_item("a") is None


def test_json_file_storage_missing_file_is_empty(tmp_path: Path) -> None:
    assert JsonFileStorage(tmp_path / "none.json").get_item("a") is None


def test_unreadable_file_is_replaced_on_write(tmp_path: Path) -> None:
    path = tmp_path / "store.json"
    path.write_text("not json", encoding="utf-8")
    storage = JsonFileStorage(path)

    with pytest.raises(DataLoadError):
        storage.get_item("a")
    storage.set_item("a", 1)

    assert storage.get_item("a") == 1
