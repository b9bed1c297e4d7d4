"""Choice eligibility over the canonical requirement clauses."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Mapping

from gamebook.core.types import VariableValue
from gamebook.domain.defs import (
    ChoiceDef,
    ItemClause,
    ItemDef,
    RequirementClause,
    StatClause,
    VariableClause,
)
from gamebook.domain.state import SessionState


@dataclass(slots=True)
class Eligibility:
    """Whether a choice can be taken, with a hint for every unmet clause."""

    available: bool
    unmet: List[str] = field(default_factory=list)


def values_equal(actual: object, expected: VariableValue) -> bool:
    """Strict literal equality: booleans never match numbers, numbers match numerically."""
    if isinstance(actual, bool) or isinstance(expected, bool):
        return isinstance(actual, bool) and isinstance(expected, bool) and actual == expected
    if isinstance(actual, (int, float)) and isinstance(expected, (int, float)):
        return actual == expected
    return type(actual) is type(expected) and actual == expected


def clause_passes(clause: RequirementClause, state: SessionState) -> bool:
    if isinstance(clause, ItemClause):
        return clause.item_id in state.inventory
    if isinstance(clause, StatClause):
        value = state.stats.get(clause.name, 0)
        if clause.gte is not None and value < clause.gte:
            return False
        if clause.lte is not None and value > clause.lte:
            return False
        return True
    if isinstance(clause, VariableClause):
        if clause.name not in state.variables:
            return False
        return values_equal(state.variables[clause.name], clause.value)
    return False


def describe_clause(clause: RequirementClause, items: Mapping[str, ItemDef] | None = None) -> str:
    """Return a human-readable description of a clause."""
    if isinstance(clause, ItemClause):
        item = (items or {}).get(clause.item_id)
        return f"Requires item: {item.name if item else clause.item_id}"
    if isinstance(clause, StatClause):
        if clause.gte is not None and clause.lte is not None:
            return f"Requires {clause.name} between {_fmt(clause.gte)} and {_fmt(clause.lte)}"
        if clause.lte is not None:
            return f"Requires {clause.name} at most {_fmt(clause.lte)}"
        return f"Requires {clause.name} at least {_fmt(clause.gte or 0)}"
    if isinstance(clause, VariableClause):
        return f"Requires {clause.name} = {_fmt(clause.value)}"
    return "Unknown requirement"


def evaluate_choice(
    choice: ChoiceDef,
    state: SessionState,
    items: Mapping[str, ItemDef] | None = None,
) -> Eligibility:
    """Evaluate every clause; the choice is available only when all of them pass."""
    unmet = [
        describe_clause(clause, items)
        for clause in choice.requirements
        if not clause_passes(clause, state)
    ]
    return Eligibility(available=not unmet, unmet=unmet)


def can_choose(choice: ChoiceDef, state: SessionState) -> bool:
    return all(clause_passes(clause, state) for clause in choice.requirements)


def _fmt(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
