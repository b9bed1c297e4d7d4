"""Dice roller offered to players alongside the story."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping

from gamebook.core.rng import RNG
from gamebook.core.types import DiceType

DICE_SIDES: dict[str, int] = {"d4": 4, "d6": 6, "d8": 8, "d10": 10, "d12": 12, "d20": 20}


@dataclass(slots=True)
class DiceRollResult:
    dice: DiceType
    quantity: int
    rolls: List[int] = field(default_factory=list)
    total: int = 0
    stat_name: str | None = None
    stat_value: float | None = None
    success: bool | None = None


class DiceService:
    """Rolls dice and optionally tests the total against a stat (roll-under)."""

    def __init__(self, rng: RNG | None = None) -> None:
        self._rng = rng or RNG()

    def roll(
        self,
        dice: DiceType,
        quantity: int = 1,
        *,
        stats: Mapping[str, float] | None = None,
        stat_name: str | None = None,
    ) -> DiceRollResult:
        sides = DICE_SIDES.get(dice)
        if sides is None:
            raise ValueError(f"Unsupported dice type '{dice}'.")
        if quantity < 1:
            raise ValueError("Dice quantity must be at least 1.")
        rolls = [self._rng.roll(sides) for _ in range(quantity)]
        result = DiceRollResult(dice=dice, quantity=quantity, rolls=rolls, total=sum(rolls))
        if stat_name and stats is not None and stat_name in stats:
            result.stat_name = stat_name
            result.stat_value = stats[stat_name]
            result.success = result.total <= stats[stat_name]
        return result
