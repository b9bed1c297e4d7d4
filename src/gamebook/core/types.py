"""Shared type aliases for the core and domain layers."""
from typing import Literal, Union

PageId = Union[int, str]
VariableValue = Union[bool, int, float, str]
EndingType = Literal["soft", "hard"]
EngineMode = Literal["idle", "awaiting_input", "awaiting_combat"]
DiceType = Literal["d4", "d6", "d8", "d10", "d12", "d20"]

__all__ = ["DiceType", "EndingType", "EngineMode", "PageId", "VariableValue"]
