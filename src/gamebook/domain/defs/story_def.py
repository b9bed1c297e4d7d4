"""Story definition structures used by the runtime."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Tuple

from gamebook.core.types import EndingType, PageId, VariableValue
from gamebook.domain.defs.requirement_def import RequirementClause


@dataclass(frozen=True, slots=True)
class EffectDef:
    """Canonical mutation applied when a choice is taken or a page is first visited."""

    stats: Dict[str, float] = field(default_factory=dict)
    variables: Dict[str, VariableValue] = field(default_factory=dict)
    items_add: Tuple[str, ...] = ()
    items_remove: Tuple[str, ...] = ()

    def is_empty(self) -> bool:
        return not (self.stats or self.variables or self.items_add or self.items_remove)


@dataclass(frozen=True, slots=True)
class CombatDef:
    """Combat encounter attached to a choice; adjudicated outside the engine."""

    enemy_id: str
    win_page_id: PageId
    lose_page_id: PageId
    win_effects: EffectDef | None = None
    lose_effects: EffectDef | None = None


@dataclass(frozen=True, slots=True)
class InputDef:
    """Typed-answer puzzle attached to a choice."""

    answer_type: Literal["number", "string"]
    answer: VariableValue
    prompt: str = ""
    success_page_id: PageId | None = None


@dataclass(frozen=True, slots=True)
class ChoiceDef:
    """Represents a selectable choice on a page."""

    text: str
    next_page_id: PageId | None = None
    to_bookmark: str | None = None
    failure_page_id: PageId | None = None
    effects: EffectDef | None = None
    requirements: Tuple[RequirementClause, ...] = ()
    combat: CombatDef | None = None
    input: InputDef | None = None
    note: str | None = None


@dataclass(frozen=True, slots=True)
class ShopItemDef:
    """A market entry; without a price the catalog item's ``shopPrice`` applies."""

    item_id: str
    price: float | None = None
    quantity: int | None = None


@dataclass(frozen=True, slots=True)
class ShopDef:
    """Market configuration; `currency` names a numeric variable."""

    currency: str
    items: Tuple[ShopItemDef, ...] = ()


@dataclass(frozen=True, slots=True)
class PageDef:
    """Fully parsed story page."""

    id: PageId
    text: str = ""
    title: str | None = None
    image: str | None = None
    bookmark: str | None = None
    choices: Tuple[ChoiceDef, ...] = ()
    effects: Tuple[EffectDef, ...] = ()
    ending: EndingType | None = None
    shop: ShopDef | None = None
