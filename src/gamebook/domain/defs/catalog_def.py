"""Item and enemy catalog entries."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict

from gamebook.domain.defs.story_def import EffectDef


@dataclass(frozen=True, slots=True)
class ItemDef:
    id: str
    name: str
    type: str | None = None
    description: str = ""
    visible: bool = True
    effects: EffectDef | None = None
    shop_price: float | None = None

    @property
    def consumable(self) -> bool:
        return self.type == "consumable"


@dataclass(frozen=True, slots=True)
class EnemyDef:
    id: str
    name: str
    description: str = ""
    stats: Dict[str, float] = field(default_factory=dict)
    note: str = ""
