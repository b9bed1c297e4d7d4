"""Converts raw story documents into the canonical Story structure.

Story files have gone through several shapes: flat ``pages`` lists versus
``sections`` that double as pages, three condition formats on choices
(``requiresItem``/``requiresStat``, ``conditions``, ``requires``) and two
effect formats on pages (``effects`` versus ``addItems``/``removeItems``/
``statChanges``). Everything is translated here, once, so the services only
ever see :class:`~gamebook.domain.story.Story` and its canonical defs.

The normalizer does not validate references; missing optional fields fall
back to empty defaults. Use :mod:`gamebook.services.story_validator` for
author-facing diagnostics.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Mapping, Sequence, Tuple

from gamebook.core.types import VariableValue
from gamebook.data.errors import DataValidationError
from gamebook.data.json_loader import load_json
from gamebook.domain.defs import (
    CharacterProfileDef,
    ChoiceDef,
    CombatDef,
    EffectDef,
    EnemyDef,
    InputDef,
    ItemClause,
    ItemDef,
    PageDef,
    PlayerConfigDef,
    PresetsDef,
    RequirementClause,
    ShopDef,
    ShopItemDef,
    StatClause,
    StatPresetDef,
    StoryMetaDef,
    VariableClause,
)
from gamebook.domain.story import Story

logger = logging.getLogger(__name__)

_NARRATIVE_SECTION_FIELDS = ("text", "choices")
_ENDING_TYPES = ("soft", "hard")
# Legacy enemy fields mapped onto stat names when no stats block exists.
_LEGACY_ENEMY_STATS = {"hayat": "health", "attack": "attack", "rank": "rank"}


class StoryNormalizer:
    """Builds a :class:`Story` from a raw JSON-compatible mapping."""

    def normalize(self, raw: object) -> Story:
        if not isinstance(raw, Mapping):
            raise DataValidationError("Story document must be a JSON object.")
        pages = tuple(self._build_page(entry) for entry in self._select_page_payloads(raw))
        story = Story(
            meta=self._build_meta(raw),
            presets=self._build_presets(self._mapping(raw.get("presets"))),
            player=self._build_player(self._mapping(raw.get("player"))),
            pages=pages,
            items=self._build_items(raw),
            enemies=self._build_enemies(raw.get("enemies")),
        )
        logger.debug("Normalized story '%s' with %d pages", story.meta.title, len(pages))
        return story

    def _select_page_payloads(self, raw: Mapping[str, object]) -> List[Mapping[str, object]]:
        pages = raw.get("pages")
        if pages is not None and not isinstance(pages, list):
            raise DataValidationError("Story 'pages' must be a list if provided.")
        if pages:
            return [entry for entry in pages if isinstance(entry, Mapping)]
        sections = raw.get("sections")
        if sections is not None and not isinstance(sections, list):
            raise DataValidationError("Story 'sections' must be a list if provided.")
        section_entries = [entry for entry in sections or [] if isinstance(entry, Mapping)]
        if any(field in entry for entry in section_entries for field in _NARRATIVE_SECTION_FIELDS):
            return [self._project_section(entry) for entry in section_entries]
        return []

    @staticmethod
    def _project_section(section: Mapping[str, object]) -> Dict[str, object]:
        projected: Dict[str, object] = {
            "id": section.get("id"),
            "title": section.get("name") or section.get("title"),
            "text": section.get("text") or "",
            "choices": section.get("choices") or [],
        }
        for key in ("bookmark", "image", "effects", "ending"):
            if key in section:
                projected[key] = section[key]
        return projected

    def _build_page(self, payload: Mapping[str, object]) -> PageDef:
        effects: List[EffectDef] = []
        page_effects = self._build_effect(payload.get("effects"))
        if page_effects is not None:
            effects.append(page_effects)
        legacy_effects = self._build_legacy_page_effect(payload)
        if legacy_effects is not None:
            effects.append(legacy_effects)
        return PageDef(
            id=payload.get("id"),  # type: ignore[arg-type]
            text=self._str(payload.get("text")),
            title=self._optional_str(payload.get("title")),
            image=self._optional_str(payload.get("image")),
            bookmark=self._optional_str(payload.get("bookmark")),
            choices=tuple(
                self._build_choice(entry)
                for entry in self._list(payload.get("choices"))
                if isinstance(entry, Mapping)
            ),
            effects=tuple(effects),
            ending=self._build_ending(payload.get("ending")),
            shop=self._build_shop(payload.get("shop")),
        )

    def _build_choice(self, payload: Mapping[str, object]) -> ChoiceDef:
        next_page_id = payload.get("nextPageId")
        if next_page_id is None:
            next_page_id = payload.get("to")
        effects = self._build_effect(payload.get("effects"))
        choice_input = self._build_input(payload.get("input"))
        gate = payload.get("inputGate")
        if choice_input is None and isinstance(gate, Mapping):
            on_success = self._mapping(gate.get("onSuccess"))
            choice_input = InputDef(
                answer_type=self._answer_type(gate.get("type")),
                answer=gate.get("answer"),  # type: ignore[arg-type]
                prompt=self._str(gate.get("prompt")),
                success_page_id=on_success.get("to"),  # type: ignore[arg-type]
            )
            success_variables = self._variables(on_success.get("variables"))
            if success_variables:
                effects = self._overlay_variables(effects, success_variables)
        return ChoiceDef(
            text=self._str(payload.get("text")),
            next_page_id=next_page_id,  # type: ignore[arg-type]
            to_bookmark=self._optional_str(payload.get("toBookmark")),
            failure_page_id=payload.get("failurePageId"),  # type: ignore[arg-type]
            effects=effects,
            requirements=self._build_requirements(payload),
            combat=self._build_combat(payload.get("combat")),
            input=choice_input,
            note=self._optional_str(payload.get("note")),
        )

    def _build_requirements(self, payload: Mapping[str, object]) -> Tuple[RequirementClause, ...]:
        clauses: List[RequirementClause] = []
        required_item = payload.get("requiresItem")
        if isinstance(required_item, str) and required_item:
            clauses.append(ItemClause(item_id=required_item))
        required_stat = payload.get("requiresStat")
        if isinstance(required_stat, Mapping) and required_stat.get("name"):
            clauses.append(
                StatClause(
                    name=str(required_stat["name"]),
                    gte=self._optional_number(required_stat.get("min")),
                )
            )
        for key in ("conditions", "requires"):
            block = payload.get(key)
            if isinstance(block, Mapping):
                clauses.extend(self._clauses_from_block(block))
        return tuple(clauses)

    def _clauses_from_block(self, block: Mapping[str, object]) -> List[RequirementClause]:
        clauses: List[RequirementClause] = []
        for item_id in self._list(block.get("items")):
            clauses.append(ItemClause(item_id=str(item_id)))
        for name, bounds in self._mapping(block.get("stats")).items():
            bounds_map = self._mapping(bounds)
            clauses.append(
                StatClause(
                    name=str(name),
                    gte=self._optional_number(bounds_map.get("gte")),
                    lte=self._optional_number(bounds_map.get("lte")),
                )
            )
        for name, value in self._variables(block.get("variables")).items():
            clauses.append(VariableClause(name=name, value=value))
        return clauses

    def _build_effect(self, raw: object) -> EffectDef | None:
        if not isinstance(raw, Mapping):
            return None
        return EffectDef(
            stats={
                str(name): delta
                for name, delta in self._mapping(raw.get("stats")).items()
                if self._is_number(delta)
            },
            variables=self._variables(raw.get("variables")),
            items_add=tuple(str(item) for item in self._list(raw.get("itemsAdd"))),
            items_remove=tuple(str(item) for item in self._list(raw.get("itemsRemove"))),
        )

    def _build_legacy_page_effect(self, payload: Mapping[str, object]) -> EffectDef | None:
        if not any(key in payload for key in ("addItems", "removeItems", "statChanges")):
            return None
        stats: Dict[str, float] = {}
        for change in self._list(payload.get("statChanges")):
            change_map = self._mapping(change)
            name = change_map.get("name")
            value = change_map.get("value")
            if isinstance(name, str) and self._is_number(value):
                stats[name] = stats.get(name, 0) + value  # type: ignore[operator]
        return EffectDef(
            stats=stats,
            items_add=tuple(str(item) for item in self._list(payload.get("addItems"))),
            items_remove=tuple(str(item) for item in self._list(payload.get("removeItems"))),
        )

    @staticmethod
    def _overlay_variables(
        effects: EffectDef | None, variables: Mapping[str, VariableValue]
    ) -> EffectDef:
        if effects is None:
            return EffectDef(variables=dict(variables))
        merged = dict(effects.variables)
        merged.update(variables)
        return EffectDef(
            stats=dict(effects.stats),
            variables=merged,
            items_add=effects.items_add,
            items_remove=effects.items_remove,
        )

    def _build_combat(self, raw: object) -> CombatDef | None:
        if not isinstance(raw, Mapping):
            return None
        return CombatDef(
            enemy_id=self._str(raw.get("enemyId")),
            win_page_id=raw.get("winPageId"),  # type: ignore[arg-type]
            lose_page_id=raw.get("losePageId"),  # type: ignore[arg-type]
            win_effects=self._build_effect(raw.get("winEffects")),
            lose_effects=self._build_effect(raw.get("loseEffects")),
        )

    def _build_input(self, raw: object) -> InputDef | None:
        if not isinstance(raw, Mapping):
            return None
        return InputDef(
            answer_type=self._answer_type(raw.get("type")),
            answer=raw.get("answer"),  # type: ignore[arg-type]
            prompt=self._str(raw.get("prompt")),
        )

    @staticmethod
    def _answer_type(raw: object) -> str:
        return "number" if raw == "number" else "string"

    @staticmethod
    def _build_ending(raw: object) -> str | None:
        if isinstance(raw, Mapping):
            raw = raw.get("type", "soft")
        if raw is True:
            return "soft"
        if isinstance(raw, str) and raw in _ENDING_TYPES:
            return raw
        return None

    def _build_shop(self, raw: object) -> ShopDef | None:
        if not isinstance(raw, Mapping):
            return None
        items: List[ShopItemDef] = []
        for entry in self._list(raw.get("items")):
            entry_map = self._mapping(entry)
            item_id = entry_map.get("itemId")
            if not isinstance(item_id, str):
                continue
            quantity = entry_map.get("quantity")
            items.append(
                ShopItemDef(
                    item_id=item_id,
                    price=self._optional_number(entry_map.get("price")),
                    quantity=int(quantity) if self._is_number(quantity) else None,  # type: ignore[arg-type]
                )
            )
        return ShopDef(currency=self._str(raw.get("currency")), items=tuple(items))

    def _build_meta(self, raw: Mapping[str, object]) -> StoryMetaDef:
        meta = self._mapping(raw.get("meta"))
        title = meta.get("title") or raw.get("title") or "Untitled Story"
        return StoryMetaDef(
            title=str(title),
            author=self._str(meta.get("author")),
            version=self._str(meta.get("version")),
            story_id=self._str(meta.get("storyId")),
        )

    def _build_presets(self, raw: Mapping[str, object]) -> PresetsDef:
        stats: Dict[str, StatPresetDef] = {}
        for name, entry in self._mapping(raw.get("stats")).items():
            entry_map = self._mapping(entry)
            stats[str(name)] = StatPresetDef(
                name=self._str(entry_map.get("name")) or str(name),
                min=self._number(entry_map.get("min"), 0),
                max=self._number(entry_map.get("max"), 100),
                default=self._number(entry_map.get("default"), 0),
                description=self._str(entry_map.get("description")),
            )
        profiles = tuple(
            self._build_profile(entry)
            for entry in self._list(raw.get("profiles"))
            if isinstance(entry, Mapping)
        )
        return PresetsDef(
            stats=stats,
            variables=self._variables(raw.get("variables")),
            profiles=profiles,
        )

    def _build_profile(self, raw: Mapping[str, object]) -> CharacterProfileDef:
        inventory = raw.get("inventory")
        return CharacterProfileDef(
            id=self._str(raw.get("id")),
            name=self._str(raw.get("name")),
            description=self._str(raw.get("description")),
            stats=self._numbers(raw.get("stats")),
            inventory=tuple(str(item) for item in inventory) if isinstance(inventory, list) else None,
            variables=self._variables(raw.get("variables")),
        )

    def _build_player(self, raw: Mapping[str, object]) -> PlayerConfigDef:
        variables = self._variables(raw.get("startingVariables"))
        variables.update(self._variables(raw.get("variables")))
        starting_items = raw.get("startingItems")
        inventory = raw.get("inventory")
        creation_mode = raw.get("creationMode")
        pool = raw.get("customPool", raw.get("totalStatPoints"))
        return PlayerConfigDef(
            creation_mode=creation_mode if creation_mode in ("sliders", "profiles", "both") else None,  # type: ignore[arg-type]
            allow_custom_name=raw.get("allowCustomName", True) is not False,
            stat_pool=int(pool) if self._is_number(pool) else 0,  # type: ignore[arg-type]
            default_profile=self._optional_str(raw.get("defaultProfile")),
            stats=self._numbers(raw.get("stats")),
            variables=variables,
            starting_items=tuple(str(item) for item in starting_items)
            if isinstance(starting_items, list)
            else None,
            inventory=tuple(str(item) for item in inventory) if isinstance(inventory, list) else None,
        )

    def _build_items(self, raw: Mapping[str, object]) -> Dict[str, ItemDef]:
        items: Dict[str, ItemDef] = {}
        presets = self._mapping(raw.get("presets"))
        for source in (presets.get("items"), raw.get("items")):
            for item_id, entry in self._catalog_entries(source):
                items[item_id] = ItemDef(
                    id=item_id,
                    name=self._str(entry.get("name")) or item_id,
                    type=self._optional_str(entry.get("type")),
                    description=self._str(entry.get("description")),
                    visible=entry.get("visible", True) is not False,
                    effects=self._build_effect(entry.get("effects")),
                    shop_price=self._optional_number(entry.get("shopPrice")),
                )
        return items

    def _build_enemies(self, raw: object) -> Dict[str, EnemyDef]:
        enemies: Dict[str, EnemyDef] = {}
        for enemy_id, entry in self._catalog_entries(raw):
            stats = self._numbers(entry.get("stats"))
            if not stats:
                stats = {
                    stat_name: entry[legacy]
                    for legacy, stat_name in _LEGACY_ENEMY_STATS.items()
                    if self._is_number(entry.get(legacy))
                }
            enemies[enemy_id] = EnemyDef(
                id=enemy_id,
                name=self._str(entry.get("name")) or enemy_id,
                description=self._str(entry.get("description")),
                stats=stats,
                note=self._str(entry.get("note")),
            )
        return enemies

    def _catalog_entries(self, raw: object) -> List[Tuple[str, Mapping[str, object]]]:
        """Accept both the array form (``[{id, ...}]``) and the keyed form (``{id: {...}}``)."""
        entries: List[Tuple[str, Mapping[str, object]]] = []
        if isinstance(raw, list):
            for entry in raw:
                if isinstance(entry, Mapping) and isinstance(entry.get("id"), str):
                    entries.append((entry["id"], entry))  # type: ignore[index]
        elif isinstance(raw, Mapping):
            for key, entry in raw.items():
                if isinstance(entry, Mapping):
                    entries.append((str(entry.get("id") or key), entry))
                elif isinstance(entry, str):
                    entries.append((str(key), {"name": entry}))
        return entries

    @staticmethod
    def _mapping(value: object) -> Mapping[str, object]:
        return value if isinstance(value, Mapping) else {}

    @staticmethod
    def _list(value: object) -> Sequence[object]:
        return value if isinstance(value, list) else []

    @staticmethod
    def _str(value: object) -> str:
        return value if isinstance(value, str) else ""

    @staticmethod
    def _optional_str(value: object) -> str | None:
        return value if isinstance(value, str) and value else None

    @staticmethod
    def _is_number(value: object) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    def _number(self, value: object, default: float) -> float:
        return value if self._is_number(value) else default  # type: ignore[return-value]

    def _optional_number(self, value: object) -> float | None:
        return value if self._is_number(value) else None  # type: ignore[return-value]

    def _numbers(self, value: object) -> Dict[str, float]:
        return {
            str(name): number
            for name, number in self._mapping(value).items()
            if self._is_number(number)
        }

    @staticmethod
    def _variables(value: object) -> Dict[str, VariableValue]:
        if not isinstance(value, Mapping):
            return {}
        return {
            str(name): literal
            for name, literal in value.items()
            if isinstance(literal, (bool, int, float, str))
        }


def normalize_story(raw: object) -> Story:
    """Normalize a raw story document."""
    return StoryNormalizer().normalize(raw)


def load_story_file(path: Path | str) -> Story:
    """Read a story JSON file from disk and normalize it."""
    raw = load_json(Path(path))
    return normalize_story(raw)


__all__ = ["StoryNormalizer", "load_story_file", "normalize_story"]
