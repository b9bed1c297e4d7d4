"""Builds the starting session state for a story."""
from __future__ import annotations

from typing import Dict

from gamebook.domain.state import DEFAULT_PLAYER_NAME, SessionState
from gamebook.domain.story import Story


def initial_stats(story: Story) -> Dict[str, float]:
    """Preset defaults, overridden by player-declared starting values."""
    stats: Dict[str, float] = {
        name: preset.default for name, preset in story.presets.stats.items()
    }
    stats.update(story.player.stats)
    return stats


def initialize_session(story: Story) -> SessionState:
    """Return a fresh session positioned on the first page.

    The first page's own effects are not applied here; effects only run when
    a page is entered through a choice.
    """
    variables = dict(story.presets.variables)
    variables.update(story.player.variables)
    if story.player.starting_items is not None:
        inventory = list(dict.fromkeys(story.player.starting_items))
    elif story.player.inventory is not None:
        inventory = list(dict.fromkeys(story.player.inventory))
    else:
        inventory = []
    first_page_id = story.first_page_id
    return SessionState(
        current_page_id=first_page_id,
        inventory=inventory,
        stats=initial_stats(story),
        variables=variables,
        history=[first_page_id] if first_page_id is not None else [],
        visited_pages={first_page_id} if first_page_id is not None else set(),
        player_name=DEFAULT_PLAYER_NAME,
        bookmarks=story.build_bookmarks(),
    )
