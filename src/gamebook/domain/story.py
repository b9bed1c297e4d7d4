"""Normalized, read-only story document."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Tuple

from gamebook.core.types import PageId
from gamebook.domain.defs import (
    EnemyDef,
    ItemDef,
    PageDef,
    PlayerConfigDef,
    PresetsDef,
    StoryMetaDef,
)


@dataclass(frozen=True, slots=True)
class Story:
    """Canonical story: one ordered page list plus catalogs and presets."""

    meta: StoryMetaDef = field(default_factory=StoryMetaDef)
    presets: PresetsDef = field(default_factory=PresetsDef)
    player: PlayerConfigDef = field(default_factory=PlayerConfigDef)
    pages: Tuple[PageDef, ...] = ()
    items: Dict[str, ItemDef] = field(default_factory=dict)
    enemies: Dict[str, EnemyDef] = field(default_factory=dict)

    @property
    def first_page_id(self) -> PageId | None:
        return self.pages[0].id if self.pages else None

    def get_page(self, page_id: PageId | None) -> PageDef | None:
        """Return the first page with the given id, or None."""
        if page_id is None:
            return None
        for page in self.pages:
            if page.id == page_id and type(page.id) is type(page_id):
                return page
        return None

    def build_bookmarks(self) -> Dict[str, PageId]:
        """Map each bookmark name to its page id; later duplicates win."""
        return {page.bookmark: page.id for page in self.pages if page.bookmark}
