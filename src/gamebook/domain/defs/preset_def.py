"""Story metadata, presets and player configuration."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Literal, Tuple

from gamebook.core.types import VariableValue

CreationMode = Literal["sliders", "profiles", "both"]


@dataclass(frozen=True, slots=True)
class StoryMetaDef:
    title: str = "Untitled Story"
    author: str = ""
    version: str = ""
    story_id: str = ""


@dataclass(frozen=True, slots=True)
class StatPresetDef:
    """Declared stat range; min/max guide authoring and setup only."""

    name: str
    min: float = 0
    max: float = 100
    default: float = 0
    description: str = ""


@dataclass(frozen=True, slots=True)
class CharacterProfileDef:
    id: str
    name: str
    description: str = ""
    stats: Dict[str, float] = field(default_factory=dict)
    inventory: Tuple[str, ...] | None = None
    variables: Dict[str, VariableValue] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class PresetsDef:
    stats: Dict[str, StatPresetDef] = field(default_factory=dict)
    variables: Dict[str, VariableValue] = field(default_factory=dict)
    profiles: Tuple[CharacterProfileDef, ...] = ()


@dataclass(frozen=True, slots=True)
class PlayerConfigDef:
    creation_mode: CreationMode | None = None
    allow_custom_name: bool = True
    stat_pool: int = 0
    default_profile: str | None = None
    stats: Dict[str, float] = field(default_factory=dict)
    variables: Dict[str, VariableValue] = field(default_factory=dict)
    starting_items: Tuple[str, ...] | None = None
    inventory: Tuple[str, ...] | None = None
