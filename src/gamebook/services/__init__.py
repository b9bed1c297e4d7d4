"""Service layer exports."""

from .errors import CharacterSetupError, SaveLoadError
from .events import (
    EndingReachedEvent,
    ItemGainedEvent,
    ItemLostEvent,
    PageEnteredEvent,
    StatChangedEvent,
    StoryEvent,
    VariableSetEvent,
)
from .save_service import SaveService
from .story_engine import ChoiceResult, ChoiceView, PageView, StoryEngine

__all__ = [
    "CharacterSetupError",
    "ChoiceResult",
    "ChoiceView",
    "EndingReachedEvent",
    "ItemGainedEvent",
    "ItemLostEvent",
    "PageEnteredEvent",
    "PageView",
    "SaveLoadError",
    "SaveService",
    "StatChangedEvent",
    "StoryEngine",
    "StoryEvent",
    "VariableSetEvent",
]
