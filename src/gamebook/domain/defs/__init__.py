"""Domain definition exports."""

from .catalog_def import EnemyDef, ItemDef
from .preset_def import (
    CharacterProfileDef,
    PlayerConfigDef,
    PresetsDef,
    StatPresetDef,
    StoryMetaDef,
)
from .requirement_def import ItemClause, RequirementClause, StatClause, VariableClause
from .story_def import (
    ChoiceDef,
    CombatDef,
    EffectDef,
    InputDef,
    PageDef,
    ShopDef,
    ShopItemDef,
)

__all__ = [
    "CharacterProfileDef",
    "ChoiceDef",
    "CombatDef",
    "EffectDef",
    "EnemyDef",
    "InputDef",
    "ItemClause",
    "ItemDef",
    "PageDef",
    "PlayerConfigDef",
    "PresetsDef",
    "RequirementClause",
    "ShopDef",
    "ShopItemDef",
    "StatClause",
    "StatPresetDef",
    "StoryMetaDef",
    "VariableClause",
]
