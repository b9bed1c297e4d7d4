"""Story progression engine.

``StoryEngine`` owns the play session. Every navigation event (a choice, a
history jump, a restart, a load) goes through it and mutates the session at
most once. The eligibility evaluator and the effect applier are pure helpers;
their results are merged here.

Engine operations never raise for story data defects. A choice whose
destination cannot be resolved, or resolves to a page that does not exist,
leaves the session untouched.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Mapping

from gamebook.core.types import DiceType, EndingType, EngineMode, PageId, VariableValue
from gamebook.data.storage import MemoryStorage
from gamebook.data.story_normalizer import normalize_story
from gamebook.domain.defs import ChoiceDef, EnemyDef, InputDef, ItemDef, PageDef
from gamebook.domain.state import SaveSlot, SessionState
from gamebook.domain.story import Story
from gamebook.services.character_service import CharacterService
from gamebook.services.dice_service import DiceRollResult, DiceService
from gamebook.services.effects import EffectOutcome, apply_effects
from gamebook.services.eligibility import can_choose, evaluate_choice
from gamebook.services.events import (
    EndingReachedEvent,
    PageEnteredEvent,
    StatChangedEvent,
    StoryEvent,
    VariableSetEvent,
)
from gamebook.services.save_service import SaveService
from gamebook.services.session_initializer import initialize_session
from gamebook.services.shop_service import ShopService, ShopView

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ChoiceView:
    index: int
    text: str
    available: bool
    requirements: List[str] = field(default_factory=list)
    kind: str = "navigate"
    note: str | None = None


@dataclass(slots=True)
class PageView:
    """Data returned to the presentation layer for rendering."""

    page_id: PageId
    title: str | None
    text: str
    image: str | None
    choices: List[ChoiceView]
    ending_type: EndingType | None = None
    has_shop: bool = False


@dataclass(slots=True)
class ChoiceResult:
    """Result returned after a choice, answer or combat resolution."""

    moved: bool = False
    events: List[StoryEvent] = field(default_factory=list)
    mode: EngineMode = "idle"


def is_answer_correct(puzzle: InputDef, raw_answer: str) -> bool:
    """Numbers compare numerically; text is trimmed and compared case-insensitively."""
    if puzzle.answer_type == "number":
        try:
            value = float(raw_answer.strip())
        except ValueError:
            return False
        expected = puzzle.answer
        if isinstance(expected, bool) or not isinstance(expected, (int, float)):
            return False
        return value == expected
    return raw_answer.strip().lower() == _literal_text(puzzle.answer).lower()


def _literal_text(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return "" if value is None else str(value)


class StoryEngine:
    """Application service that drives a story session.

    Modes: ``idle`` accepts choices; ``awaiting_input`` and ``awaiting_combat``
    wait for an outside collaborator to call :meth:`submit_answer` or
    :meth:`resolve_combat` (or :meth:`cancel_pending`).
    """

    def __init__(
        self,
        *,
        save_service: SaveService | None = None,
        dice_service: DiceService | None = None,
    ) -> None:
        self._save_service = save_service or SaveService(MemoryStorage())
        self._dice_service = dice_service or DiceService()
        self._story: Story | None = None
        self._state = SessionState(current_page_id=None)
        self._mode: EngineMode = "idle"
        self._pending_choice: ChoiceDef | None = None

    # -- lifecycle -----------------------------------------------------

    @property
    def story(self) -> Story | None:
        return self._story

    @property
    def state(self) -> SessionState:
        """The live session. Treat as read-only; mutate through engine methods."""
        return self._state

    @property
    def mode(self) -> EngineMode:
        return self._mode

    @property
    def pending_choice(self) -> ChoiceDef | None:
        return self._pending_choice

    @property
    def is_playing(self) -> bool:
        return self._story is not None

    @property
    def is_playable(self) -> bool:
        """False when no story is loaded or the story has no pages."""
        return self._story is not None and bool(self._story.pages)

    def load_story(self, document: Story | Mapping[str, object]) -> SessionState:
        """Normalize (if needed) and start a fresh session on the first page."""
        story = document if isinstance(document, Story) else normalize_story(document)
        self._story = story
        self._state = initialize_session(story)
        self._clear_pending()
        if story.pages:
            logger.info("Loaded story '%s' (%d pages)", story.meta.title, len(story.pages))
        else:
            logger.warning("Story '%s' has no pages; the session cannot start", story.meta.title)
        return self._state

    def restart(self) -> SessionState:
        """Discard the session and rebuild it exactly as a fresh load would."""
        if self._story is None:
            return self._state
        self._state = initialize_session(self._story)
        self._clear_pending()
        logger.info("Restarted story '%s'", self._story.meta.title)
        return self._state

    def exit_story(self) -> None:
        self._story = None
        self._state = SessionState(current_page_id=None)
        self._clear_pending()

    # -- accessors -----------------------------------------------------

    @property
    def current_page(self) -> PageDef | None:
        return self.get_page(self._state.current_page_id)

    def get_page(self, page_id: PageId | None) -> PageDef | None:
        if self._story is None:
            return None
        return self._story.get_page(page_id)

    def get_page_by_bookmark(self, bookmark: str) -> PageDef | None:
        page_id = self._state.bookmarks.get(bookmark)
        return self.get_page(page_id)

    def get_item(self, item_id: str) -> ItemDef | None:
        return self._story.items.get(item_id) if self._story else None

    def get_enemy(self, enemy_id: str) -> EnemyDef | None:
        return self._story.enemies.get(enemy_id) if self._story else None

    def can_choose(self, choice: ChoiceDef) -> bool:
        return can_choose(choice, self._state)

    def get_choice_requirements(self, choice: ChoiceDef) -> List[str]:
        """Descriptions of the clauses the player does not currently meet."""
        items = self._story.items if self._story else None
        return evaluate_choice(choice, self._state, items).unmet

    def is_ending(self, page: PageDef | None = None) -> bool:
        if page is None:
            page = self.current_page
        if page is None:
            return False
        return page.ending is not None or not page.choices

    def ending_type(self, page: PageDef | None = None) -> EndingType | None:
        if page is None:
            page = self.current_page
        if page is None or not self.is_ending(page):
            return None
        return page.ending or "soft"

    def can_save(self) -> bool:
        return self.is_playable and self.current_page is not None and self.ending_type() != "hard"

    def current_page_view(self) -> PageView | None:
        page = self.current_page
        if page is None:
            return None
        items = self._story.items if self._story else None
        choices: List[ChoiceView] = []
        for index, choice in enumerate(page.choices):
            eligibility = evaluate_choice(choice, self._state, items)
            choices.append(
                ChoiceView(
                    index=index,
                    text=choice.text,
                    available=eligibility.available,
                    requirements=eligibility.unmet,
                    kind="combat" if choice.combat else "input" if choice.input else "navigate",
                    note=choice.note,
                )
            )
        return PageView(
            page_id=page.id,
            title=page.title,
            text=page.text,
            image=page.image,
            choices=choices,
            ending_type=self.ending_type(page),
            has_shop=page.shop is not None,
        )

    # -- transitions ---------------------------------------------------

    def resolve_destination(self, choice: ChoiceDef, input_correct: bool | None = None) -> PageId | None:
        """Bookmark first, then the failure redirect, then the direct target."""
        if choice.to_bookmark:
            return self._state.bookmarks.get(choice.to_bookmark)
        if choice.input is not None and input_correct is False and choice.failure_page_id is not None:
            return choice.failure_page_id
        if choice.input is not None and input_correct is True and choice.input.success_page_id is not None:
            return choice.input.success_page_id
        return choice.next_page_id

    def make_choice(self, choice: ChoiceDef, input_correct: bool | None = None) -> ChoiceResult:
        """Take a choice: resolve its destination and apply effects exactly once."""
        self._clear_pending()
        destination = self.resolve_destination(choice, input_correct)
        page = self.get_page(destination)
        if page is None:
            return ChoiceResult()

        state = self._state
        first_visit = page.id not in state.visited_pages
        state.visited_pages.add(page.id)
        effects = []
        if input_correct is not False:
            effects.append(choice.effects)
        if first_visit:
            effects.extend(page.effects)
        outcome = apply_effects(effects, state)
        self._merge(outcome)
        state.history.append(page.id)
        state.current_page_id = page.id
        logger.debug("Entered page %r (first visit: %s)", page.id, first_visit)

        events: List[StoryEvent] = [PageEnteredEvent(page_id=page.id, first_visit=first_visit)]
        events.extend(outcome.events)
        ending = self.ending_type(page)
        if ending is not None:
            events.append(EndingReachedEvent(page_id=page.id, ending_type=ending))
        return ChoiceResult(moved=True, events=events)

    def select_choice(self, index: int) -> ChoiceResult:
        """Act on a choice of the current page as a player would."""
        page = self.current_page
        if self._mode != "idle" or page is None or not 0 <= index < len(page.choices):
            return ChoiceResult(mode=self._mode)
        choice = page.choices[index]
        if not self.can_choose(choice):
            return ChoiceResult()
        if choice.combat is not None:
            self._mode = "awaiting_combat"
            self._pending_choice = choice
            return ChoiceResult(mode=self._mode)
        if choice.input is not None:
            self._mode = "awaiting_input"
            self._pending_choice = choice
            return ChoiceResult(mode=self._mode)
        return self.make_choice(choice)

    def submit_answer(self, raw_answer: str) -> ChoiceResult:
        choice = self._pending_choice
        if self._mode != "awaiting_input" or choice is None or choice.input is None:
            return ChoiceResult(mode=self._mode)
        correct = is_answer_correct(choice.input, raw_answer)
        logger.debug("Puzzle answer accepted: %s", correct)
        return self.make_choice(choice, input_correct=correct)

    def resolve_combat(self, won: bool, final_stats: Mapping[str, float] | None = None) -> ChoiceResult:
        """Apply an externally adjudicated battle outcome, then follow the win or lose path."""
        choice = self._pending_choice
        if self._mode != "awaiting_combat" or choice is None or choice.combat is None:
            return ChoiceResult(mode=self._mode)
        combat = choice.combat
        events: List[StoryEvent] = []
        if final_stats:
            events.extend(self.apply_adjudicated_stats(final_stats))
        outcome_choice = ChoiceDef(
            text=choice.text,
            next_page_id=combat.win_page_id if won else combat.lose_page_id,
            effects=combat.win_effects if won else combat.lose_effects,
        )
        result = self.make_choice(outcome_choice)
        result.events[:0] = events
        return result

    def cancel_pending(self) -> None:
        """Abandon a pending puzzle or battle; the session stays untouched."""
        self._clear_pending()

    def jump_to_page(self, page_id: PageId) -> bool:
        """Rewind to an earlier history entry without re-running any effects."""
        history = self._state.history
        if page_id not in history:
            return False
        index = history.index(page_id)
        del history[index + 1 :]
        self._state.current_page_id = history[index]
        self._clear_pending()
        logger.debug("Jumped back to page %r", page_id)
        return True

    # -- explicit editing entry points ---------------------------------

    def update_stat(self, name: str, value: float) -> None:
        self._state.stats[name] = value

    def set_variable(self, name: str, value: VariableValue) -> None:
        self._state.variables[name] = value

    def apply_adjudicated_stats(self, stats: Mapping[str, float]) -> List[StoryEvent]:
        """Overwrite stats with values decided outside the engine (e.g. a manual battle).

        Values are accepted as given: no range or delta checks apply here.
        """
        events: List[StoryEvent] = []
        for name, value in stats.items():
            old_value = self._state.stats.get(name, 0)
            self._state.stats[name] = value
            if old_value != value:
                events.append(StatChangedEvent(name=name, old_value=old_value, new_value=value))
        return events

    def visible_inventory(self) -> List[str]:
        """Held item ids, minus catalog items marked hidden."""
        return [
            item_id
            for item_id in self._state.inventory
            if (item := self.get_item(item_id)) is None or item.visible
        ]

    def consume_item(self, item_id: str) -> List[StoryEvent]:
        item = self.get_item(item_id)
        if item is None or not item.consumable or item_id not in self._state.inventory:
            return []
        outcome = apply_effects([item.effects], self._state)
        if item_id in outcome.inventory:
            outcome.inventory.remove(item_id)
        self._merge(outcome)
        logger.debug("Consumed item %s", item_id)
        return outcome.events

    def shop_view(self) -> ShopView | None:
        if self._story is None:
            return None
        return ShopService(self._story).build_shop_view(self._state)

    def purchase_item(self, item_id: str) -> List[StoryEvent]:
        if self._story is None:
            return []
        transaction = ShopService(self._story).purchase(self._state, item_id)
        if not transaction.success:
            return list(transaction.events)
        assert transaction.currency is not None and transaction.item_id is not None
        assert transaction.funds is not None and transaction.stock_key is not None
        state = self._state
        state.variables[transaction.currency] = transaction.funds
        state.inventory.append(transaction.item_id)
        if transaction.stock is not None:
            state.shop_inventories.setdefault(transaction.stock_key, {})[transaction.item_id] = transaction.stock
        events: List[StoryEvent] = list(transaction.events)
        events.append(VariableSetEvent(name=transaction.currency, value=transaction.funds))
        return events

    def complete_character_setup(
        self,
        player_name: str | None,
        *,
        stats: Mapping[str, float] | None = None,
        profile_id: str | None = None,
    ) -> SessionState:
        """Apply character creation choices; raises CharacterSetupError on invalid input."""
        if self._story is None:
            return self._state
        setup = CharacterService(self._story).build_setup(
            player_name, stats=stats, profile_id=profile_id
        )
        state = self._state
        state.player_name = setup.player_name
        state.stats = dict(setup.stats)
        if setup.inventory is not None:
            state.inventory = list(setup.inventory)
        state.variables.update(setup.variables)
        state.character_setup_complete = True
        return state

    def roll_dice(self, dice: DiceType, quantity: int = 1, stat_name: str | None = None) -> DiceRollResult:
        return self._dice_service.roll(dice, quantity, stats=self._state.stats, stat_name=stat_name)

    # -- persistence ---------------------------------------------------

    @property
    def max_save_slots(self) -> int:
        return self._save_service.max_slots

    def get_save_slots(self, *, current_story_only: bool = False) -> List[SaveSlot]:
        """Stored slots; optionally only those saved from the loaded story."""
        if current_story_only and self._story is not None:
            return self._save_service.list_slots(self._story.meta.story_id)
        return self._save_service.list_slots()

    def save_game(self, slot_id: int | None = None, name: str | None = None) -> SaveSlot | None:
        """Snapshot the session; returns None when saving is not allowed here."""
        if self._story is None or not self.can_save():
            return None
        if slot_id is None:
            slot_id = self._save_service.next_slot_id()
        elif not 1 <= slot_id <= self._save_service.max_slots:
            return None
        slot = self._save_service.build_slot(slot_id, name or f"Save {slot_id}", self._story, self._state)
        if not self._save_service.write_slot(slot):
            return None
        return slot

    def load_game(self, slot: SaveSlot) -> SessionState:
        """Replace the session with the slot contents; no effects are re-applied."""
        if self._story is None:
            return self._state
        self._state = self._save_service.restore_state(slot, self._story)
        self._clear_pending()
        logger.info("Loaded slot %d at page %r", slot.id, slot.current_page_id)
        return self._state

    def delete_save(self, slot_id: int) -> bool:
        return self._save_service.delete_slot(slot_id)

    # -- internals -----------------------------------------------------

    def _merge(self, outcome: EffectOutcome) -> None:
        self._state.stats = outcome.stats
        self._state.variables = outcome.variables
        self._state.inventory = outcome.inventory

    def _clear_pending(self) -> None:
        self._mode = "idle"
        self._pending_choice = None
