"""Effect application: stat deltas, variable overwrites and item set updates."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from gamebook.core.types import VariableValue
from gamebook.domain.defs import EffectDef
from gamebook.domain.state import SessionState
from gamebook.services.events import (
    ItemGainedEvent,
    ItemLostEvent,
    StatChangedEvent,
    StoryEvent,
    VariableSetEvent,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EffectOutcome:
    """Working copy of the mutable parts of a session, plus the emitted events."""

    stats: Dict[str, float]
    variables: Dict[str, VariableValue]
    inventory: List[str]
    events: List[StoryEvent] = field(default_factory=list)

    @classmethod
    def from_state(cls, state: SessionState) -> "EffectOutcome":
        return cls(
            stats=dict(state.stats),
            variables=dict(state.variables),
            inventory=list(state.inventory),
        )


def apply_effect(effect: EffectDef | None, outcome: EffectOutcome) -> EffectOutcome:
    """Return a new outcome with the effect applied on top of ``outcome``.

    Stat deltas are additive and unclamped (an unset stat starts from 0).
    Variables are overwritten, including type changes. ``items_add`` skips ids
    already held; ``items_remove`` ignores ids not held.
    """
    result = EffectOutcome(
        stats=dict(outcome.stats),
        variables=dict(outcome.variables),
        inventory=list(outcome.inventory),
        events=list(outcome.events),
    )
    if effect is None or effect.is_empty():
        return result
    for name, delta in effect.stats.items():
        old_value = result.stats.get(name, 0)
        new_value = old_value + delta
        result.stats[name] = new_value
        result.events.append(StatChangedEvent(name=name, old_value=old_value, new_value=new_value))
    for name, value in effect.variables.items():
        result.variables[name] = value
        result.events.append(VariableSetEvent(name=name, value=value))
    for item_id in effect.items_add:
        if item_id not in result.inventory:
            result.inventory.append(item_id)
            result.events.append(ItemGainedEvent(item_id=item_id))
    if effect.items_remove:
        removed = set(effect.items_remove)
        for item_id in result.inventory:
            if item_id in removed:
                result.events.append(ItemLostEvent(item_id=item_id))
        result.inventory = [item_id for item_id in result.inventory if item_id not in removed]
    return result


def apply_effects(effects: Iterable[EffectDef | None], state: SessionState) -> EffectOutcome:
    """Apply effects in order, each one seeing the result of the previous ones."""
    outcome = EffectOutcome.from_state(state)
    for effect in effects:
        outcome = apply_effect(effect, outcome)
    if outcome.events:
        logger.debug("Applied effects: %d changes", len(outcome.events))
    return outcome
