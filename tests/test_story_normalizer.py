from __future__ import annotations

import json
from pathlib import Path

import pytest

from gamebook.data import DataLoadError, DataValidationError, load_story_file, normalize_story
from gamebook.domain.defs import EffectDef, ItemClause, StatClause, VariableClause

from tests.helpers.story_documents import vault_story


def test_normalize_builds_pages_catalogs_and_meta() -> None:
    story = normalize_story(vault_story())

    assert story.meta.title == "The Vault"
    assert story.meta.story_id == "vault"
    assert [page.id for page in story.pages] == [1, 2, 3, 4, 5]
    assert story.first_page_id == 1
    assert story.items["potion"].consumable is True
    assert story.items["key"].consumable is False
    assert story.enemies["rat"].stats == {"health": 6, "attack": 2}
    assert story.get_page(4).ending == "hard"
    assert story.get_page(5).ending == "soft"
    assert story.build_bookmarks() == {"start": 1}


def test_legacy_and_structured_requirements_become_clauses() -> None:
    story = normalize_story(
        {
            "pages": [
                {
                    "id": 1,
                    "choices": [
                        {
                            "text": "Open",
                            "nextPageId": 2,
                            "requiresItem": "key",
                            "requiresStat": {"name": "SKILL", "min": 3},
                            "conditions": {"stats": {"LUCK": {"gte": 2, "lte": 9}}},
                            "requires": {"items": ["lamp"], "variables": {"met_guard": True}},
                        }
                    ],
                }
            ]
        }
    )

    choice = story.pages[0].choices[0]
    assert choice.requirements == (
        ItemClause("key"),
        StatClause("SKILL", gte=3),
        StatClause("LUCK", gte=2, lte=9),
        ItemClause("lamp"),
        VariableClause("met_guard", True),
    )


def test_legacy_page_effects_follow_structured_effects() -> None:
    story = normalize_story(
        {
            "pages": [
                {
                    "id": "camp",
                    "effects": {"variables": {"rested": True}},
                    "addItems": ["torch"],
                    "removeItems": ["firewood"],
                    "statChanges": [{"name": "STAMINA", "value": 2}, {"name": "STAMINA", "value": 1}],
                }
            ]
        }
    )

    page = story.pages[0]
    assert page.effects == (
        EffectDef(variables={"rested": True}),
        EffectDef(stats={"STAMINA": 3}, items_add=("torch",), items_remove=("firewood",)),
    )


def test_to_is_accepted_as_next_page_alias() -> None:
    story = normalize_story({"pages": [{"id": 1, "choices": [{"text": "On", "to": 2}]}, {"id": 2}]})

    assert story.pages[0].choices[0].next_page_id == 2


def test_sections_with_text_are_used_as_pages() -> None:
    story = normalize_story(
        {
            "title": "Legacy",
            "sections": [
                {"id": "s1", "name": "Start", "text": "Begin.", "choices": [{"text": "Go", "to": "s2"}]},
                {"id": "s2", "title": "End"},
            ],
        }
    )

    assert story.meta.title == "Legacy"
    assert [page.id for page in story.pages] == ["s1", "s2"]
    assert story.pages[0].title == "Start"
    assert story.pages[1].title == "End"
    assert story.pages[1].text == ""
    assert story.pages[1].choices == ()


def test_grouping_sections_without_narrative_are_ignored() -> None:
    story = normalize_story({"sections": [{"id": "chapter-1", "name": "Chapter 1"}]})

    assert story.pages == ()
    assert story.meta.title == "Untitled Story"


def test_pages_take_priority_over_sections() -> None:
    story = normalize_story(
        {
            "pages": [{"id": 1, "text": "Page."}],
            "sections": [{"id": 9, "text": "Section."}],
        }
    )

    assert [page.id for page in story.pages] == [1]


def test_input_gate_success_target_and_variables() -> None:
    story = normalize_story(
        {
            "pages": [
                {
                    "id": 1,
                    "choices": [
                        {
                            "text": "Answer",
                            "nextPageId": 2,
                            "failurePageId": 3,
                            "effects": {"stats": {"wits": 1}},
                            "inputGate": {
                                "type": "number",
                                "answer": 12,
                                "onSuccess": {"to": 4, "variables": {"solved": True}},
                            },
                        }
                    ],
                }
            ]
        }
    )

    choice = story.pages[0].choices[0]
    assert choice.input is not None
    assert choice.input.answer_type == "number"
    assert choice.input.success_page_id == 4
    assert choice.failure_page_id == 3
    assert choice.effects == EffectDef(stats={"wits": 1}, variables={"solved": True})


def test_player_config_and_presets() -> None:
    story = normalize_story(
        {
            "presets": {
                "stats": {"SKILL": {"min": 1, "max": 12, "default": 6}},
                "profiles": [{"id": "knight", "name": "Knight", "stats": {"SKILL": 9}, "inventory": ["sword"]}],
            },
            "player": {
                "creationMode": "both",
                "allowCustomName": False,
                "totalStatPoints": 4,
                "startingVariables": {"gold": 5, "rank": "squire"},
                "variables": {"gold": 8},
                "startingItems": ["bread"],
            },
            "pages": [{"id": 1}],
        }
    )

    assert story.presets.stats["SKILL"].max == 12
    assert story.presets.profiles[0].inventory == ("sword",)
    assert story.player.creation_mode == "both"
    assert story.player.allow_custom_name is False
    assert story.player.stat_pool == 4
    assert story.player.variables == {"gold": 8, "rank": "squire"}
    assert story.player.starting_items == ("bread",)


def test_keyed_item_catalog_is_accepted() -> None:
    story = normalize_story({"items": {"lamp": {"name": "Oil Lamp"}, "coin": "Gold Coin"}, "pages": []})

    assert story.items["lamp"].name == "Oil Lamp"
    assert story.items["coin"].name == "Gold Coin"


def test_non_object_document_is_rejected() -> None:
    with pytest.raises(DataValidationError):
        normalize_story(["not", "a", "story"])


def test_pages_must_be_a_list() -> None:
    with pytest.raises(DataValidationError):
        normalize_story({"pages": {"1": {}}})


def test_load_story_file_reads_json(tmp_path: Path) -> None:
    path = tmp_path / "story.json"
    path.write_text(json.dumps(vault_story()), encoding="utf-8")

    story = load_story_file(path)

    assert story.meta.title == "The Vault"


def test_load_story_file_reports_invalid_json(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text("{ not json", encoding="utf-8")

    with pytest.raises(DataLoadError):
        load_story_file(path)
    with pytest.raises(DataLoadError):
        load_story_file(tmp_path / "missing.json")
