"""Canonical requirement clauses shared by every choice condition format."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from gamebook.core.types import VariableValue


@dataclass(frozen=True, slots=True)
class ItemClause:
    """Passes while the item id is held in the inventory."""

    item_id: str


@dataclass(frozen=True, slots=True)
class StatClause:
    """Passes while the stat (unset counts as 0) sits inside the bounds."""

    name: str
    gte: float | None = None
    lte: float | None = None


@dataclass(frozen=True, slots=True)
class VariableClause:
    """Passes while the variable equals the expected literal."""

    name: str
    value: VariableValue


RequirementClause = Union[ItemClause, StatClause, VariableClause]

__all__ = ["ItemClause", "RequirementClause", "StatClause", "VariableClause"]
