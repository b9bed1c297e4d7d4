"""Console-driven UI loops for the gamebook player."""
from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from gamebook.data import DataError, load_story_file
from gamebook.data.storage import JsonFileStorage
from gamebook.domain.state import SaveSlot
from gamebook.domain.story import Story
from gamebook.presentation.cli.config import configure_logging, get_save_path, load_config
from gamebook.presentation.cli.render import (
    render_bullet_lines,
    render_dice_roll,
    render_events,
    render_heading,
    render_menu,
    render_page,
    render_save_slots,
    render_shop,
)
from gamebook.services import ChoiceResult, SaveService, StoryEngine
from gamebook.services.character_service import CharacterService
from gamebook.services.dice_service import DICE_SIDES
from gamebook.services.errors import CharacterSetupError
from gamebook.services.story_validator import format_issue, has_errors, validate_story

logger = logging.getLogger(__name__)

_COMMANDS = {
    "s": "save",
    "l": "load",
    "x": "delete save",
    "h": "history",
    "i": "inventory",
    "u": "use item",
    "m": "market",
    "d": "roll dice",
    "r": "restart",
    "q": "quit",
}


def main(argv: Sequence[str] | None = None) -> int:
    """Start the interactive CLI session."""
    args = _parse_args(argv)
    config = load_config()
    configure_logging(config)
    try:
        story = load_story_file(Path(args.story))
    except DataError as exc:
        logger.debug("Story load failed for %s", args.story, exc_info=True)
        print(f"Could not load story: {exc}")
        return 1
    if args.validate:
        return _report_issues(story)

    save_path = Path(args.saves) if args.saves else get_save_path()
    engine = StoryEngine(
        save_service=SaveService(JsonFileStorage(save_path), max_slots=int(config["max_save_slots"]))
    )
    engine.load_story(story)
    if not engine.is_playable:
        print("This story has no pages to play.")
        return 1
    print(f"=== {story.meta.title} ===")
    byline = [f"by {story.meta.author}"] if story.meta.author else []
    if story.meta.version:
        byline.append(f"v{story.meta.version}")
    if byline:
        print(" ".join(byline))
    _run_character_setup(engine)
    _run_story_loop(engine)
    print("Goodbye!")
    return 0


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="gamebook", description="Play a JSON gamebook in the console.")
    parser.add_argument("story", help="path to the story JSON file")
    parser.add_argument("--saves", help="save storage file (defaults to the per-user data dir)")
    parser.add_argument("--validate", action="store_true", help="report story issues and exit")
    return parser.parse_args(argv)


def _report_issues(story: Story) -> int:
    issues = validate_story(story)
    if not issues:
        print("No issues found.")
        return 0
    for issue in issues:
        print(format_issue(issue))
    return 1 if has_errors(issues) else 0


def _run_character_setup(engine: StoryEngine) -> None:
    story = engine.story
    if story is None:
        return
    service = CharacterService(story)
    name = None
    if story.player.allow_custom_name:
        name = input("Enter your name (default Adventurer): ").strip()
    profiles = service.profiles() if service.allows_profiles else []
    custom = service.allows_custom_stats and bool(story.presets.stats)
    while True:
        try:
            if profiles:
                render_menu("Choose a character", [profile.name for profile in profiles])
                if custom:
                    print("Leave blank to distribute your own points.")
                index = _prompt_index(len(profiles), allow_blank=custom)
                if index is not None:
                    engine.complete_character_setup(name, profile_id=profiles[index].id)
                    return
            if custom:
                engine.complete_character_setup(name, stats=_prompt_stat_allocation(engine))
            else:
                engine.complete_character_setup(name)
            return
        except CharacterSetupError as exc:
            print(exc)
            if not profiles and not custom:
                return


def _prompt_stat_allocation(engine: StoryEngine) -> dict[str, float]:
    story = engine.story
    assert story is not None
    print(f"Distribute up to {story.player.stat_pool:g} points.")
    allocation: dict[str, float] = {}
    for name, preset in story.presets.stats.items():
        base = engine.state.stats.get(name, preset.default)
        while True:
            raw = input(f"{name} [{preset.min:g}-{preset.max:g}] (default {base:g}): ").strip()
            if not raw:
                allocation[name] = base
                break
            try:
                allocation[name] = int(raw)
                break
            except ValueError:
                print("Please enter a whole number.")
    return allocation


def _run_story_loop(engine: StoryEngine) -> None:
    while True:
        view = engine.current_page_view()
        if view is None:
            print("The story cannot continue from here.")
            return
        render_page(view)
        hints = [f"{key}={label}" for key, label in _COMMANDS.items() if key != "m" or view.has_shop]
        print("Commands: " + ", ".join(hints))
        raw = input("Select an option: ").strip().lower()
        if raw == "q":
            return
        if raw.isdigit():
            _handle_choice(engine, int(raw) - 1)
        elif raw in _COMMANDS:
            _handle_command(engine, raw)
        else:
            print("Invalid selection.")


def _handle_choice(engine: StoryEngine, index: int) -> None:
    result = engine.select_choice(index)
    if result.mode == "awaiting_input":
        result = _run_input_prompt(engine)
    elif result.mode == "awaiting_combat":
        result = _run_combat_prompt(engine)
    elif not result.moved:
        print("That choice is not available.")
        return
    render_events(result.events)


def _run_input_prompt(engine: StoryEngine) -> ChoiceResult:
    choice = engine.pending_choice
    assert choice is not None and choice.input is not None
    prompt = choice.input.prompt or "Your answer"
    answer = input(f"{prompt} (blank to cancel): ")
    if not answer.strip():
        engine.cancel_pending()
        return ChoiceResult()
    result = engine.submit_answer(answer)
    if not result.moved:
        print("Nothing happens.")
    return result


def _run_combat_prompt(engine: StoryEngine) -> ChoiceResult:
    choice = engine.pending_choice
    assert choice is not None and choice.combat is not None
    enemy = engine.get_enemy(choice.combat.enemy_id)
    render_heading(f"Battle: {enemy.name if enemy else choice.combat.enemy_id}")
    if enemy is not None:
        render_bullet_lines(f"{name}: {value:g}" for name, value in enemy.stats.items())
        if enemy.note:
            print(enemy.note)
    while True:
        outcome = input("Did you win? (w)in / (l)ose / (c)ancel: ").strip().lower()
        if outcome == "c":
            engine.cancel_pending()
            return ChoiceResult()
        if outcome in ("w", "l"):
            return engine.resolve_combat(outcome == "w", _prompt_final_stats(engine))
        print("Please enter w, l or c.")


def _prompt_final_stats(engine: StoryEngine) -> dict[str, float]:
    final: dict[str, float] = {}
    for name, value in engine.state.stats.items():
        raw = input(f"{name} after the battle (blank keeps {value:g}): ").strip()
        if not raw:
            continue
        try:
            final[name] = int(raw)
        except ValueError:
            print(f"Ignoring invalid value for {name}.")
    return final


def _handle_command(engine: StoryEngine, command: str) -> None:
    if command == "s":
        _save_game(engine)
    elif command == "l":
        _load_game(engine)
    elif command == "x":
        _delete_save(engine)
    elif command == "h":
        _jump_history(engine)
    elif command == "i":
        _show_inventory(engine)
    elif command == "u":
        _use_item(engine)
    elif command == "m":
        _run_market(engine)
    elif command == "d":
        _roll_dice(engine)
    elif command == "r":
        engine.restart()
        print("Story restarted.")
        _run_character_setup(engine)


def _save_game(engine: StoryEngine) -> None:
    if not engine.can_save():
        print("You cannot save here.")
        return
    render_save_slots(engine.get_save_slots(), engine.max_save_slots)
    raw = input(f"Slot number 1-{engine.max_save_slots} (blank for next free): ").strip()
    slot_id = None
    if raw:
        if not raw.isdigit() or not 1 <= int(raw) <= engine.max_save_slots:
            print("Invalid slot.")
            return
        slot_id = int(raw)
    name = input("Save name (optional): ").strip() or None
    slot = engine.save_game(slot_id, name)
    if slot is None:
        print("The game could not be saved.")
        return
    print(f"Saved to slot {slot.id}.")


def _pick_slot(engine: StoryEngine, *, current_story_only: bool = False) -> SaveSlot | None:
    slots = engine.get_save_slots(current_story_only=current_story_only)
    render_save_slots(slots, engine.max_save_slots)
    if not slots:
        return None
    raw = input("Slot number (blank to cancel): ").strip()
    return next((slot for slot in slots if raw.isdigit() and slot.id == int(raw)), None)


def _load_game(engine: StoryEngine) -> None:
    slot = _pick_slot(engine, current_story_only=True)
    if slot is None:
        return
    engine.load_game(slot)
    print(f"Loaded slot {slot.id}.")


def _delete_save(engine: StoryEngine) -> None:
    slot = _pick_slot(engine)
    if slot is not None and engine.delete_save(slot.id):
        print(f"Deleted slot {slot.id}.")


def _jump_history(engine: StoryEngine) -> None:
    history = engine.state.history
    labels = []
    for page_id in history:
        page = engine.get_page(page_id)
        labels.append(f"{page.title or page_id}" if page else str(page_id))
    render_menu("History", labels)
    index = _prompt_index(len(history), allow_blank=True)
    if index is not None:
        engine.jump_to_page(history[index])


def _show_inventory(engine: StoryEngine) -> None:
    state = engine.state
    render_heading(state.player_name)
    render_bullet_lines(f"{name}: {value:g}" for name, value in state.stats.items())
    render_heading("Inventory")
    items = [_item_label(engine, item_id) for item_id in engine.visible_inventory()]
    render_bullet_lines(items or ["(empty)"])


def _use_item(engine: StoryEngine) -> None:
    usable = [
        item_id
        for item_id in engine.visible_inventory()
        if (item := engine.get_item(item_id)) is not None and item.consumable
    ]
    if not usable:
        print("You have nothing to use.")
        return
    render_menu("Use which item?", [_item_label(engine, item_id) for item_id in usable])
    index = _prompt_index(len(usable), allow_blank=True)
    if index is not None:
        render_events(engine.consume_item(usable[index]))


def _run_market(engine: StoryEngine) -> None:
    while True:
        view = engine.shop_view()
        if view is None:
            print("There is no market here.")
            return
        render_shop(view)
        index = _prompt_index(len(view.entries), allow_blank=True) if view.entries else None
        if index is None:
            return
        render_events(engine.purchase_item(view.entries[index].item_id))


def _roll_dice(engine: StoryEngine) -> None:
    raw = input(f"Dice ({'/'.join(DICE_SIDES)}), e.g. 2d6: ").strip().lower()
    count, _, sides = raw.partition("d")
    dice = f"d{sides}"
    if dice not in DICE_SIDES or (count and not count.isdigit()):
        print("Invalid dice.")
        return
    stat_name = input("Test against stat (blank for none): ").strip() or None
    try:
        result = engine.roll_dice(dice, int(count or 1), stat_name)  # type: ignore[arg-type]
    except ValueError as exc:
        print(exc)
        return
    render_dice_roll(result)


def _item_label(engine: StoryEngine, item_id: str) -> str:
    item = engine.get_item(item_id)
    return item.name if item else item_id


def _prompt_index(count: int, *, allow_blank: bool = False) -> int | None:
    while True:
        raw = input("Select an option: ").strip()
        if not raw and allow_blank:
            return None
        if raw.isdigit() and 1 <= int(raw) <= count:
            return int(raw) - 1
        print(f"Invalid selection. Please enter a number between 1 and {count}.")