"""Events emitted by engine operations for the presentation layer."""
from __future__ import annotations

from dataclasses import dataclass

from gamebook.core.types import EndingType, PageId, VariableValue


@dataclass(slots=True)
class StoryEvent:
    """Base class for story events."""


@dataclass(slots=True)
class PageEnteredEvent(StoryEvent):
    page_id: PageId
    first_visit: bool


@dataclass(slots=True)
class StatChangedEvent(StoryEvent):
    name: str
    old_value: float
    new_value: float


@dataclass(slots=True)
class VariableSetEvent(StoryEvent):
    name: str
    value: VariableValue


@dataclass(slots=True)
class ItemGainedEvent(StoryEvent):
    item_id: str


@dataclass(slots=True)
class ItemLostEvent(StoryEvent):
    item_id: str


@dataclass(slots=True)
class EndingReachedEvent(StoryEvent):
    page_id: PageId
    ending_type: EndingType
