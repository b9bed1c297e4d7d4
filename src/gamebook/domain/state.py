"""Domain-level session state tracking."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Set

from gamebook.core.types import PageId, VariableValue

DEFAULT_PLAYER_NAME = "Adventurer"


@dataclass
class SessionState:
    """Mutable play-through state, owned by the story engine."""

    current_page_id: PageId | None
    inventory: List[str] = field(default_factory=list)
    stats: Dict[str, float] = field(default_factory=dict)
    variables: Dict[str, VariableValue] = field(default_factory=dict)
    history: List[PageId] = field(default_factory=list)
    visited_pages: Set[PageId] = field(default_factory=set)
    player_name: str = DEFAULT_PLAYER_NAME
    bookmarks: Dict[str, PageId] = field(default_factory=dict)
    shop_inventories: Dict[str, Dict[str, int]] = field(default_factory=dict)
    character_setup_complete: bool = False

    def copy(self) -> "SessionState":
        """Return an independent copy; values are scalars so one level deep suffices."""
        return SessionState(
            current_page_id=self.current_page_id,
            inventory=list(self.inventory),
            stats=dict(self.stats),
            variables=dict(self.variables),
            history=list(self.history),
            visited_pages=set(self.visited_pages),
            player_name=self.player_name,
            bookmarks=dict(self.bookmarks),
            shop_inventories={
                page_key: dict(stock) for page_key, stock in self.shop_inventories.items()
            },
            character_setup_complete=self.character_setup_complete,
        )


@dataclass
class SaveSlot:
    """Snapshot of a session plus display metadata."""

    id: int
    name: str
    story_id: str
    story_title: str
    current_page_id: PageId
    page_preview: str
    saved_at: str
    inventory: List[str] = field(default_factory=list)
    stats: Dict[str, float] = field(default_factory=dict)
    variables: Dict[str, VariableValue] = field(default_factory=dict)
    history: List[PageId] = field(default_factory=list)
    visited_pages: List[PageId] = field(default_factory=list)
    player_name: str = DEFAULT_PLAYER_NAME
    shop_inventories: Dict[str, Dict[str, int]] = field(default_factory=dict)
