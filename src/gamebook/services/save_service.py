"""Save slot snapshots and their storage layout."""
from __future__ import annotations

import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping

from gamebook.core.types import PageId
from gamebook.data.errors import DataError
from gamebook.data.storage import KeyValueStorage
from gamebook.domain.state import DEFAULT_PLAYER_NAME, SaveSlot, SessionState
from gamebook.domain.story import Story
from gamebook.services.errors import SaveLoadError

logger = logging.getLogger(__name__)

SAVE_SLOTS_KEY = "gamebook_save_slots"
MAX_SAVE_SLOTS = 5
PREVIEW_LENGTH = 100

SlotPayload = Dict[str, Any]
_TAG_PATTERN = re.compile(r"<[^>]+>")
_WHITESPACE_PATTERN = re.compile(r"\s+")


def page_preview(text: str, length: int = PREVIEW_LENGTH) -> str:
    """Return a plain-text preview of page text, stripped of markup."""
    plain = _WHITESPACE_PATTERN.sub(" ", _TAG_PATTERN.sub(" ", text)).strip()
    if len(plain) <= length:
        return plain
    return plain[:length].rstrip() + "..."


class SaveService:
    """Converts sessions to/from slot payloads kept under a single storage key."""

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        max_slots: int = MAX_SAVE_SLOTS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._storage = storage
        self._max_slots = max_slots
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    @property
    def max_slots(self) -> int:
        return self._max_slots

    def list_slots(self, story_id: str | None = None) -> List[SaveSlot]:
        """Return stored slots sorted by id; unreadable entries are skipped."""
        try:
            raw = self._storage.get_item(SAVE_SLOTS_KEY)
        except DataError as exc:
            logger.warning("Save storage unreadable: %s", exc)
            return []
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Save storage key '%s' does not hold a list", SAVE_SLOTS_KEY)
            return []
        slots: List[SaveSlot] = []
        for index, entry in enumerate(raw):
            try:
                slots.append(self.deserialize_slot(entry))
            except SaveLoadError as exc:
                logger.warning("Skipping save slot entry %d: %s", index, exc)
        if story_id is not None:
            slots = [slot for slot in slots if slot.story_id == story_id]
        return sorted(slots, key=lambda slot: slot.id)

    def next_slot_id(self) -> int:
        """Lowest unused slot id; slot 1 when every slot is taken."""
        used = {slot.id for slot in self.list_slots()}
        for slot_id in range(1, self._max_slots + 1):
            if slot_id not in used:
                return slot_id
        return 1

    def build_slot(self, slot_id: int, name: str, story: Story, state: SessionState) -> SaveSlot:
        """Capture an independent snapshot of the session."""
        page = story.get_page(state.current_page_id)
        return SaveSlot(
            id=slot_id,
            name=name,
            story_id=story.meta.story_id,
            story_title=story.meta.title,
            current_page_id=state.current_page_id,  # type: ignore[arg-type]
            page_preview=page_preview(page.text) if page else "",
            saved_at=self._clock().isoformat(),
            inventory=list(state.inventory),
            stats=dict(state.stats),
            variables=dict(state.variables),
            history=list(state.history),
            visited_pages=_ordered_visited(state),
            player_name=state.player_name,
            shop_inventories={key: dict(stock) for key, stock in state.shop_inventories.items()},
        )

    def write_slot(self, slot: SaveSlot) -> bool:
        """Store the slot, replacing any slot with the same id.

        Other stored entries are kept as they are, readable or not. Returns False
        and writes nothing when the storage cannot be read.
        """
        entries = self._other_entries(slot.id)
        if entries is None:
            return False
        entries.append(self.serialize_slot(slot))
        self._storage.set_item(SAVE_SLOTS_KEY, entries)
        logger.info("Saved slot %d (%s) at page %r", slot.id, slot.name, slot.current_page_id)
        return True

    def delete_slot(self, slot_id: int) -> bool:
        entries = self._other_entries(slot_id)
        if entries is None:
            return False
        self._storage.set_item(SAVE_SLOTS_KEY, entries)
        logger.info("Deleted slot %d", slot_id)
        return True

    def _other_entries(self, slot_id: int) -> List[object] | None:
        """Raw stored entries whose id differs from ``slot_id``; None when unreadable."""
        try:
            raw = self._storage.get_item(SAVE_SLOTS_KEY)
        except DataError as exc:
            logger.warning("Save storage unreadable, nothing written: %s", exc)
            return None
        if raw is None:
            return []
        if not isinstance(raw, list):
            logger.warning("Save storage key '%s' does not hold a list; starting a new one", SAVE_SLOTS_KEY)
            return []
        return [
            entry
            for entry in raw
            if not (isinstance(entry, Mapping) and _same_id(entry.get("id"), slot_id))
        ]

    @staticmethod
    def restore_state(slot: SaveSlot, story: Story) -> SessionState:
        """Rebuild a session from a slot without re-running any effects."""
        return SessionState(
            current_page_id=slot.current_page_id,
            inventory=list(dict.fromkeys(slot.inventory)),
            stats=dict(slot.stats),
            variables=dict(slot.variables),
            history=list(slot.history),
            visited_pages=set(slot.visited_pages),
            player_name=slot.player_name,
            bookmarks=story.build_bookmarks(),
            shop_inventories={key: dict(stock) for key, stock in slot.shop_inventories.items()},
            character_setup_complete=True,
        )

    @staticmethod
    def serialize_slot(slot: SaveSlot) -> SlotPayload:
        """Return a JSON-serializable payload for storage."""
        return {
            "id": slot.id,
            "name": slot.name,
            "storyId": slot.story_id,
            "storyTitle": slot.story_title,
            "currentPageId": slot.current_page_id,
            "pagePreview": slot.page_preview,
            "savedAt": slot.saved_at,
            "inventory": list(slot.inventory),
            "stats": dict(slot.stats),
            "variables": dict(slot.variables),
            "history": list(slot.history),
            "visitedPages": list(slot.visited_pages),
            "playerName": slot.player_name,
            "shopInventories": {key: dict(stock) for key, stock in slot.shop_inventories.items()},
        }

    def deserialize_slot(self, payload: object) -> SaveSlot:
        if not isinstance(payload, Mapping):
            raise SaveLoadError("Save slot must be a JSON object.")
        slot_id = payload.get("id")
        if isinstance(slot_id, bool) or not isinstance(slot_id, int):
            raise SaveLoadError("slot.id must be an integer.")
        current_page_id = self._require_page_id(payload.get("currentPageId"), "slot.currentPageId")
        history = self._coerce_page_ids(payload.get("history"), "slot.history")
        visited = payload.get("visitedPages")
        return SaveSlot(
            id=slot_id,
            name=self._coerce_str(payload.get("name"), f"Save {slot_id}"),
            story_id=self._coerce_str(payload.get("storyId"), ""),
            story_title=self._coerce_str(payload.get("storyTitle"), "Untitled Story"),
            current_page_id=current_page_id,
            page_preview=self._coerce_str(payload.get("pagePreview"), ""),
            saved_at=self._coerce_str(payload.get("savedAt"), ""),
            inventory=[str(item) for item in self._require_list(payload.get("inventory", []), "slot.inventory")],
            stats=self._coerce_number_dict(payload.get("stats"), "slot.stats"),
            variables=self._coerce_variables(payload.get("variables")),
            history=history,
            # Older saves lack visitedPages; the path taken is the best available record.
            visited_pages=self._coerce_page_ids(visited, "slot.visitedPages")
            if visited is not None
            else list(dict.fromkeys(history)),
            player_name=self._coerce_str(payload.get("playerName"), DEFAULT_PLAYER_NAME),
            shop_inventories=self._coerce_shop_inventories(payload.get("shopInventories")),
        )

    @staticmethod
    def _require_page_id(value: object, context: str) -> PageId:
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise SaveLoadError(f"{context} must be a page id.")
        return value

    @staticmethod
    def _require_list(value: object, context: str) -> list:
        if not isinstance(value, list):
            raise SaveLoadError(f"{context} must be a list.")
        return value

    def _coerce_page_ids(self, value: object, context: str) -> List[PageId]:
        return [
            self._require_page_id(entry, f"{context} entry")
            for entry in self._require_list(value if value is not None else [], context)
        ]

    @staticmethod
    def _coerce_str(value: object, default: str) -> str:
        return value if isinstance(value, str) else default

    @staticmethod
    def _coerce_number_dict(value: object, context: str) -> Dict[str, float]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise SaveLoadError(f"{context} must be an object.")
        result: Dict[str, float] = {}
        for key, number in value.items():
            if isinstance(number, bool) or not isinstance(number, (int, float)):
                raise SaveLoadError(f"{context}.{key} must be a number.")
            result[str(key)] = number
        return result

    @staticmethod
    def _coerce_variables(value: object) -> Dict[str, Any]:
        if not isinstance(value, Mapping):
            return {}
        return {
            str(key): literal
            for key, literal in value.items()
            if isinstance(literal, (bool, int, float, str))
        }

    @staticmethod
    def _coerce_shop_inventories(value: object) -> Dict[str, Dict[str, int]]:
        if not isinstance(value, Mapping):
            return {}
        result: Dict[str, Dict[str, int]] = {}
        for page_key, stock in value.items():
            if not isinstance(stock, Mapping):
                continue
            result[str(page_key)] = {
                str(item_id): int(quantity)
                for item_id, quantity in stock.items()
                if isinstance(quantity, (int, float)) and not isinstance(quantity, bool)
            }
        return result


def _ordered_visited(state: SessionState) -> List[PageId]:
    ordered = [page_id for page_id in dict.fromkeys(state.history) if page_id in state.visited_pages]
    ordered.extend(page_id for page_id in state.visited_pages if page_id not in ordered)
    return ordered


def _same_id(raw_id: object, slot_id: int) -> bool:
    return not isinstance(raw_id, bool) and raw_id == slot_id
