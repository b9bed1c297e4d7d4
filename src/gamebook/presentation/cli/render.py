"""Shared CLI rendering helpers."""
from __future__ import annotations

import os
import re
import textwrap
from typing import Iterable, Sequence

from gamebook.domain.state import SaveSlot
from gamebook.services.dice_service import DiceRollResult
from gamebook.services.events import (
    EndingReachedEvent,
    ItemGainedEvent,
    ItemLostEvent,
    PageEnteredEvent,
    StatChangedEvent,
    StoryEvent,
    VariableSetEvent,
)
from gamebook.services.shop_service import ShopActionFailedEvent, ShopPurchaseEvent, ShopView
from gamebook.services.story_engine import PageView

_TEXT_WIDTH = 78
_BLOCK_TAGS = re.compile(r"</?(p|div|br|li|h[1-6])[^>]*>", re.IGNORECASE)
_ANY_TAG = re.compile(r"<[^>]+>")


def debug_enabled() -> bool:
    """Return True only when GAMEBOOK_DEBUG is explicitly set to '1'."""
    return os.getenv("GAMEBOOK_DEBUG") == "1"


def plain_text(text: str) -> str:
    """Drop rich-text markup, keeping paragraph breaks."""
    text = _ANY_TAG.sub("", _BLOCK_TAGS.sub("\n", text))
    paragraphs = [" ".join(chunk.split()) for chunk in re.split(r"\n\s*\n|\n", text)]
    return "\n\n".join(paragraph for paragraph in paragraphs if paragraph)


def wrap_paragraphs(text: str, width: int = _TEXT_WIDTH) -> list[str]:
    lines: list[str] = []
    for index, paragraph in enumerate(plain_text(text).split("\n\n")):
        if index:
            lines.append("")
        lines.extend(
            textwrap.wrap(paragraph, width=width, break_long_words=False, break_on_hyphens=False)
            or [""]
        )
    return lines


def render_heading(title: str) -> None:
    """Print a consistent section heading."""
    print(f"\n=== {title} ===")


def render_page(view: PageView) -> None:
    render_heading(view.title or "Story")
    if debug_enabled():
        print(f"[page {view.page_id!r}]")
    for line in wrap_paragraphs(view.text):
        print(line)
    if view.ending_type is not None:
        print("\n- The End -")
        return
    render_heading("Choices")
    for choice in view.choices:
        marker = "" if choice.available else " (locked)"
        print(f"{choice.index + 1}. {choice.text}{marker}")
        for requirement in choice.requirements:
            print(f"     {requirement}")
        if choice.note:
            print(f"     Note: {choice.note}")


def render_menu(title: str, options: Sequence[str]) -> None:
    """Display a menu section with numbered options."""
    render_heading(title)
    for idx, label in enumerate(options, start=1):
        print(f"{idx}. {label}")


def render_bullet_lines(lines: Iterable[str]) -> None:
    """Print bullet-prefixed lines."""
    for line in lines:
        print(f"- {line}")


def describe_event(event: StoryEvent) -> str | None:
    if isinstance(event, StatChangedEvent):
        delta = event.new_value - event.old_value
        return f"{event.name} {delta:+g} (now {event.new_value:g})"
    if isinstance(event, VariableSetEvent):
        return None if not debug_enabled() else f"{event.name} = {event.value!r}"
    if isinstance(event, ItemGainedEvent):
        return f"Gained {event.item_id}"
    if isinstance(event, ItemLostEvent):
        return f"Lost {event.item_id}"
    if isinstance(event, ShopPurchaseEvent):
        return f"Bought {event.item_name} for {event.price:g} ({event.remaining_funds:g} left)"
    if isinstance(event, ShopActionFailedEvent):
        return event.message
    if isinstance(event, EndingReachedEvent):
        return "Your story ends here." if event.ending_type == "hard" else None
    if isinstance(event, PageEnteredEvent):
        return None
    return str(event)


def render_events(events: Sequence[StoryEvent]) -> None:
    lines = [line for line in (describe_event(event) for event in events) if line]
    if lines:
        render_heading("Events")
        render_bullet_lines(lines)


def render_save_slots(slots: Sequence[SaveSlot], max_slots: int) -> None:
    render_heading(f"Saves ({len(slots)}/{max_slots})")
    if not slots:
        print("No saved games.")
        return
    for slot in slots:
        print(f"{slot.id}. {slot.name} - {slot.story_title} ({slot.saved_at})")
        if slot.page_preview:
            print(f"     {slot.page_preview}")


def render_shop(view: ShopView) -> None:
    render_heading(f"Market ({view.currency}: {view.funds:g})")
    if not view.entries:
        print("No items available for sale.")
    for idx, entry in enumerate(view.entries, start=1):
        stock = "" if entry.stock is None else f", stock {entry.stock}"
        owned = " (owned)" if entry.owned else ""
        print(f"{idx}. {entry.name} - {entry.price:g}{stock}{owned}")


def render_dice_roll(result: DiceRollResult) -> None:
    rolls = ", ".join(str(roll) for roll in result.rolls)
    print(f"Rolled {result.quantity}{result.dice}: {rolls} (total {result.total})")
    if result.success is not None:
        verdict = "Success" if result.success else "Failure"
        print(f"{verdict} against {result.stat_name} {result.stat_value:g}")
