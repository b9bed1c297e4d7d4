"""Character creation: custom stat allocation and premade profiles."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping

from gamebook.core.types import VariableValue
from gamebook.domain.defs import CharacterProfileDef
from gamebook.domain.state import DEFAULT_PLAYER_NAME
from gamebook.domain.story import Story
from gamebook.services.errors import CharacterSetupError
from gamebook.services.session_initializer import initial_stats


@dataclass(slots=True)
class CharacterSetup:
    """Values the engine writes into the session when setup completes."""

    player_name: str
    stats: Dict[str, float]
    inventory: List[str] | None = None
    variables: Dict[str, VariableValue] = field(default_factory=dict)


class CharacterService:
    """Applies the story's character creation rules."""

    def __init__(self, story: Story) -> None:
        self._story = story

    @property
    def allows_custom_stats(self) -> bool:
        return self._story.player.creation_mode in (None, "sliders", "both")

    @property
    def allows_profiles(self) -> bool:
        return self._story.player.creation_mode in (None, "profiles", "both")

    def profiles(self) -> List[CharacterProfileDef]:
        return list(self._story.presets.profiles)

    def get_profile(self, profile_id: str) -> CharacterProfileDef:
        for profile in self._story.presets.profiles:
            if profile.id == profile_id:
                return profile
        raise CharacterSetupError(f"Unknown character profile '{profile_id}'.")

    def resolve_name(self, requested: str | None) -> str:
        if not self._story.player.allow_custom_name:
            return DEFAULT_PLAYER_NAME
        name = (requested or "").strip()
        return name or DEFAULT_PLAYER_NAME

    def allocate_stats(self, requested: Mapping[str, float]) -> Dict[str, float]:
        """Clamp requested values to preset ranges and enforce the point pool."""
        if not self.allows_custom_stats:
            raise CharacterSetupError("This story does not allow custom stats.")
        presets = self._story.presets.stats
        unknown = sorted(set(requested) - set(presets))
        if unknown:
            raise CharacterSetupError(f"Unknown stats: {', '.join(unknown)}.")
        base = initial_stats(self._story)
        allocated = dict(base)
        spent = 0.0
        for name, preset in presets.items():
            value = requested.get(name, base.get(name, preset.default))
            value = max(preset.min, min(preset.max, value))
            allocated[name] = value
            spent += value - base.get(name, preset.default)
        if spent > self._story.player.stat_pool:
            raise CharacterSetupError(
                f"Stat allocation spends {spent:g} points but only "
                f"{self._story.player.stat_pool} are available."
            )
        return allocated

    def build_setup(
        self,
        player_name: str | None,
        *,
        stats: Mapping[str, float] | None = None,
        profile_id: str | None = None,
    ) -> CharacterSetup:
        if profile_id is None and stats is None:
            profile_id = self._story.player.default_profile
        name = self.resolve_name(player_name)
        if profile_id is not None:
            if not self.allows_profiles:
                raise CharacterSetupError("This story does not offer character profiles.")
            profile = self.get_profile(profile_id)
            profile_stats = initial_stats(self._story)
            profile_stats.update(profile.stats)
            return CharacterSetup(
                player_name=name,
                stats=profile_stats,
                inventory=list(dict.fromkeys(profile.inventory)) if profile.inventory is not None else None,
                variables=dict(profile.variables),
            )
        allocated = self.allocate_stats(stats or {})
        return CharacterSetup(player_name=name, stats=allocated)
