from __future__ import annotations

from gamebook.domain.defs import ChoiceDef
from gamebook.services import StoryEngine
from gamebook.services.events import (
    EndingReachedEvent,
    ItemGainedEvent,
    PageEnteredEvent,
    StatChangedEvent,
)
from gamebook.services.shop_service import ShopActionFailedEvent, ShopPurchaseEvent

from tests.helpers.story_documents import build_engine, vault_story


def _enter_hall(engine: StoryEngine) -> None:
    result = engine.select_choice(0)
    assert result.moved
    assert engine.state.current_page_id == 2


def test_load_story_starts_on_first_page_with_preset_values() -> None:
    engine = build_engine()
    state = engine.state

    assert engine.is_playable
    assert engine.mode == "idle"
    assert state.current_page_id == 1
    assert state.history == [1]
    assert state.visited_pages == {1}
    assert state.stats == {"health": 10, "luck": 5}
    assert state.variables == {"gold": 10, "door_open": False}
    assert state.inventory == []
    assert state.bookmarks == {"start": 1}


def test_first_visit_applies_page_effects_and_emits_events() -> None:
    engine = build_engine()

    result = engine.select_choice(0)

    assert engine.state.stats["health"] == 8
    assert engine.state.inventory == ["key"]
    assert engine.state.history == [1, 2]
    assert isinstance(result.events[0], PageEnteredEvent)
    assert result.events[0].first_visit is True
    assert any(isinstance(event, StatChangedEvent) and event.name == "health" for event in result.events)
    assert any(isinstance(event, ItemGainedEvent) and event.item_id == "key" for event in result.events)


def test_page_effects_are_not_reapplied_after_history_jump() -> None:
    engine = build_engine()
    _enter_hall(engine)

    assert engine.jump_to_page(1)
    result = engine.select_choice(0)

    assert result.moved
    assert result.events[0].first_visit is False
    assert engine.state.stats["health"] == 8
    assert engine.state.inventory == ["key"]
    assert engine.state.history == [1, 2]


def test_revisiting_a_page_by_choice_grows_history_without_effects() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(0)
    engine.select_choice(0)

    assert engine.state.history == [1, 2, 1, 2]
    assert engine.state.stats["health"] == 8


def test_jump_to_page_only_changes_position_and_history() -> None:
    engine = build_engine()
    _enter_hall(engine)
    before = engine.state.copy()

    assert engine.jump_to_page(1) is True

    state = engine.state
    assert state.current_page_id == 1
    assert state.history == [1]
    assert state.inventory == before.inventory
    assert state.stats == before.stats
    assert state.variables == before.variables
    assert state.visited_pages == before.visited_pages


def test_jump_to_page_outside_history_is_rejected() -> None:
    engine = build_engine()
    before = engine.state.copy()

    assert engine.jump_to_page(3) is False
    assert engine.state == before


def test_undefined_stat_delta_starts_from_zero() -> None:
    engine = build_engine(
        {
            "pages": [
                {
                    "id": "a",
                    "choices": [{"text": "go", "nextPageId": "b", "effects": {"stats": {"SKILL": -2}}}],
                },
                {"id": "b", "text": "Done."},
            ]
        }
    )

    engine.select_choice(0)

    assert engine.state.stats["SKILL"] == -2


def test_missing_destination_leaves_session_untouched() -> None:
    engine = build_engine()
    before = engine.state.copy()

    result = engine.make_choice(ChoiceDef(text="go", next_page_id=9999))

    assert result.moved is False
    assert engine.state == before


def test_choice_to_missing_page_from_story_is_a_no_op() -> None:
    engine = build_engine()
    before = engine.state.copy()

    result = engine.select_choice(3)

    assert result.moved is False
    assert engine.state == before


def test_page_ids_do_not_match_across_types() -> None:
    engine = build_engine()
    before = engine.state.copy()

    engine.make_choice(ChoiceDef(text="go", next_page_id="2"))

    assert engine.state == before


def test_restart_rebuilds_the_initial_session() -> None:
    engine = build_engine()
    initial = engine.state.copy()
    _enter_hall(engine)
    engine.select_choice(1)

    engine.restart()

    assert engine.state == initial
    assert engine.mode == "idle"
    assert engine.pending_choice is None


def test_locked_choice_cannot_be_selected() -> None:
    engine = build_engine()
    before = engine.state.copy()
    locked = engine.current_page.choices[1]

    result = engine.select_choice(1)

    assert result.moved is False
    assert engine.state == before
    assert engine.can_choose(locked) is False
    assert engine.get_choice_requirements(locked) == ["Requires item: Brass Key"]


def test_item_gained_unlocks_choice() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(0)

    result = engine.select_choice(1)

    assert result.moved
    assert engine.state.current_page_id == 3


def test_current_page_view_reports_availability_and_hints() -> None:
    engine = build_engine()

    view = engine.current_page_view()

    assert view is not None
    assert view.title == "Gate"
    assert [choice.available for choice in view.choices] == [True, False, False, True]
    assert view.choices[2].requirements == ["Requires luck at least 8"]
    assert view.ending_type is None
    assert view.has_shop is False


def test_correct_answer_follows_next_page_and_applies_effects() -> None:
    engine = build_engine()
    _enter_hall(engine)

    pending = engine.select_choice(1)
    assert pending.mode == "awaiting_input"
    assert engine.pending_choice is not None

    result = engine.submit_answer(" 7.0 ")

    assert result.moved
    assert engine.mode == "idle"
    assert engine.state.current_page_id == 3
    assert engine.state.variables["door_open"] is True


def test_wrong_answer_redirects_to_failure_page_without_choice_effects() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(1)

    result = engine.submit_answer("8")

    assert engine.state.current_page_id == 4
    assert engine.state.variables["door_open"] is False
    assert isinstance(result.events[-1], EndingReachedEvent)
    assert result.events[-1].ending_type == "hard"


def test_wrong_answer_without_failure_page_falls_through_to_next_page() -> None:
    document = {
        "pages": [
            {
                "id": 1,
                "choices": [
                    {
                        "text": "Speak the word",
                        "input": {"type": "string", "answer": "Mellon"},
                        "nextPageId": 2,
                        "effects": {"variables": {"friend": True}},
                    }
                ],
            },
            {"id": 2, "text": "The door stays shut."},
        ]
    }
    engine = build_engine(document)
    engine.select_choice(0)

    engine.submit_answer("enemy")

    assert engine.state.current_page_id == 2
    assert "friend" not in engine.state.variables


def test_string_answers_ignore_case_and_surrounding_space() -> None:
    document = {
        "pages": [
            {
                "id": 1,
                "choices": [
                    {
                        "text": "Speak the word",
                        "inputGate": {
                            "type": "string",
                            "answer": "Mellon",
                            "onSuccess": {"to": 3, "variables": {"friend": True}},
                        },
                        "nextPageId": 2,
                    }
                ],
            },
            {"id": 2, "text": "Nothing happens."},
            {"id": 3, "text": "The doors open."},
        ]
    }
    engine = build_engine(document)
    engine.select_choice(0)

    engine.submit_answer("  mELLON ")

    assert engine.state.current_page_id == 3
    assert engine.state.variables["friend"] is True


def test_cancelled_input_keeps_session() -> None:
    engine = build_engine()
    _enter_hall(engine)
    before = engine.state.copy()
    engine.select_choice(1)

    engine.cancel_pending()

    assert engine.mode == "idle"
    assert engine.state == before
    assert engine.submit_answer("7").moved is False


def test_choices_are_ignored_while_awaiting_combat() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(2)

    result = engine.select_choice(0)

    assert result.moved is False
    assert result.mode == "awaiting_combat"
    assert engine.state.current_page_id == 2


def test_combat_win_overwrites_stats_and_applies_win_effects() -> None:
    engine = build_engine()
    _enter_hall(engine)
    assert engine.select_choice(2).mode == "awaiting_combat"

    result = engine.resolve_combat(True, {"health": 3})

    assert result.moved
    assert engine.state.stats["health"] == 3
    assert engine.state.variables["gold"] == 25
    assert engine.state.current_page_id == 3
    assert isinstance(result.events[0], StatChangedEvent)


def test_combat_loss_goes_to_lose_page() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(2)

    engine.resolve_combat(False)

    assert engine.state.current_page_id == 4
    assert engine.state.variables["gold"] == 10
    assert engine.ending_type() == "hard"


def test_bookmark_destination_resolves_through_session_bookmarks() -> None:
    engine = build_engine()
    _enter_hall(engine)

    engine.select_choice(3)

    assert engine.state.current_page_id == 1
    assert engine.state.history == [1, 2, 1]
    assert engine.get_page_by_bookmark("start").id == 1


def test_unknown_bookmark_is_a_no_op() -> None:
    engine = build_engine()
    before = engine.state.copy()

    engine.make_choice(ChoiceDef(text="go", to_bookmark="nowhere", next_page_id=2))

    assert engine.state == before


def test_endings_and_save_permission() -> None:
    engine = build_engine()
    assert engine.is_ending() is False
    assert engine.ending_type(engine.get_page(5)) == "soft"
    assert engine.ending_type(engine.get_page(4)) == "hard"

    _enter_hall(engine)
    engine.select_choice(2)
    engine.resolve_combat(False)

    assert engine.can_save() is False
    assert engine.save_game() is None


def test_save_then_load_reproduces_session() -> None:
    engine = build_engine()
    _enter_hall(engine)
    saved = engine.state.copy()

    slot = engine.save_game(1, "x")
    assert slot is not None
    engine.select_choice(2)
    engine.resolve_combat(True, {"health": 1})
    engine.load_game(slot)

    state = engine.state
    assert state.current_page_id == saved.current_page_id
    assert state.inventory == saved.inventory
    assert state.stats == saved.stats
    assert state.variables == saved.variables
    assert state.history == saved.history
    assert state.visited_pages == saved.visited_pages


def test_save_game_picks_next_free_slot() -> None:
    engine = build_engine()

    first = engine.save_game()
    second = engine.save_game()

    assert first is not None and second is not None
    assert (first.id, first.name) == (1, "Save 1")
    assert second.id == 2
    assert first.page_preview == "You stand before the vault gate."
    assert [slot.id for slot in engine.get_save_slots()] == [1, 2]

    engine.delete_save(1)
    assert [slot.id for slot in engine.get_save_slots()] == [2]


def test_market_purchase_updates_funds_inventory_and_stock() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(1)
    engine.submit_answer("7")

    events = engine.purchase_item("rope")

    assert isinstance(events[0], ShopPurchaseEvent)
    assert engine.state.variables["gold"] == 6
    assert "rope" in engine.state.inventory
    assert engine.state.shop_inventories == {"3": {"rope": 0}}
    view = engine.shop_view()
    assert view is not None
    assert [entry.stock for entry in view.entries] == [0, None]


def test_market_refusal_leaves_session_unchanged() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(1)
    engine.submit_answer("7")
    engine.set_variable("gold", 2)
    before = engine.state.copy()

    events = engine.purchase_item("potion")

    assert isinstance(events[0], ShopActionFailedEvent)
    assert events[0].reason == "insufficient_funds"
    assert engine.state == before


def test_consuming_an_item_applies_its_effects_and_removes_it() -> None:
    engine = build_engine()
    _enter_hall(engine)
    engine.select_choice(1)
    engine.submit_answer("7")
    engine.purchase_item("potion")

    events = engine.consume_item("potion")

    assert engine.state.stats["health"] == 13
    assert "potion" not in engine.state.inventory
    assert events
    assert engine.consume_item("key") == []


def test_empty_story_is_not_playable() -> None:
    engine = build_engine({"pages": []})

    assert engine.is_playable is False
    assert engine.state.current_page_id is None
    assert engine.state.history == []
    assert engine.current_page_view() is None
    assert engine.select_choice(0).moved is False


def test_exit_story_clears_session() -> None:
    engine = build_engine()
    engine.exit_story()

    assert engine.is_playing is False
    assert engine.story is None
    assert engine.restart().current_page_id is None


def test_load_story_accepts_a_fresh_document_each_time() -> None:
    engine = build_engine()
    _enter_hall(engine)

    engine.load_story(vault_story())

    assert engine.state.history == [1]
    assert engine.state.inventory == []


def test_explicit_editing_entry_points() -> None:
    engine = build_engine()

    engine.update_stat("luck", 11)
    engine.set_variable("door_open", True)
    events = engine.apply_adjudicated_stats({"health": 4, "luck": 11})

    assert engine.state.stats == {"health": 4, "luck": 11}
    assert engine.state.variables["door_open"] is True
    assert events == [StatChangedEvent(name="health", old_value=10, new_value=4)]
    assert engine.current_page_view().choices[2].available is True


def test_save_game_refuses_slots_outside_capacity() -> None:
    engine = build_engine()

    assert engine.max_save_slots == 5
    assert engine.save_game(0, "zero") is None
    assert engine.save_game(6, "six") is None
    for slot_id in range(1, 8):
        engine.save_game(slot_id, f"slot {slot_id}")

    assert [slot.id for slot in engine.get_save_slots()] == [1, 2, 3, 4, 5]


def test_save_slots_can_be_limited_to_the_loaded_story() -> None:
    engine = build_engine()
    engine.save_game(1, "vault run")
    other = vault_story()
    other["meta"]["storyId"] = "other"
    engine.load_story(other)
    engine.save_game(2, "other run")

    assert [slot.id for slot in engine.get_save_slots()] == [1, 2]
    assert [slot.name for slot in engine.get_save_slots(current_story_only=True)] == ["other run"]


def test_hidden_items_are_left_out_of_visible_inventory() -> None:
    document = vault_story()
    document["player"] = {"startingItems": ["map", "rope", "feather"]}
    engine = build_engine(document)

    assert engine.state.inventory == ["map", "rope", "feather"]
    assert engine.visible_inventory() == ["rope", "feather"]


def test_page_view_carries_author_notes() -> None:
    engine = build_engine()
    _enter_hall(engine)

    view = engine.current_page_view()

    assert view.choices[2].note == "Roll the fight on paper."
    assert view.choices[0].note is None
