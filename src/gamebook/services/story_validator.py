"""Static story validation utilities for authors.

The engine never calls this module; it tolerates the defects reported here.
"""
from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable

from gamebook.core.types import PageId
from gamebook.domain.defs import ChoiceDef, EffectDef, ItemClause, StatClause, VariableClause
from gamebook.domain.story import Story

Severity = str


@dataclass(frozen=True, slots=True)
class Issue:
    severity: Severity
    code: str
    message: str
    context: dict[str, str]


def format_issue(issue: Issue) -> str:
    context = " ".join(f"{key}={value}" for key, value in issue.context.items())
    suffix = f" ({context})" if context else ""
    return f"[{issue.severity}] {issue.code}: {issue.message}{suffix}"


def has_errors(issues: Iterable[Issue]) -> bool:
    return any(issue.severity == "ERROR" for issue in issues)


class _Declarations:
    def __init__(self, story: Story) -> None:
        self.stats = set(story.presets.stats)
        self.variables = set(story.presets.variables)
        self.items = set(story.items)
        self.enemies = set(story.enemies)


def validate_story(story: Story) -> list[Issue]:
    issues: list[Issue] = []
    if not story.pages:
        issues.append(Issue("ERROR", "EMPTY_STORY", "Story has no pages.", {}))
        return issues

    counts = Counter(page.id for page in story.pages)
    for page_id, count in counts.items():
        if count > 1:
            issues.append(
                Issue("ERROR", "DUPLICATE_PAGE_ID", "Duplicate page id detected.", {"page_id": str(page_id)})
            )

    declared = _Declarations(story)
    bookmarks = story.build_bookmarks()
    for page in story.pages:
        page_ctx = {"page_id": str(page.id)}
        for effect in page.effects:
            _validate_effect(effect, declared, page_ctx, issues)
        for index, choice in enumerate(page.choices):
            choice_ctx = {**page_ctx, "choice": str(index)}
            _validate_choice_targets(story, choice, bookmarks, choice_ctx, issues)
            _validate_requirements(choice, declared, choice_ctx, issues)
            _validate_effect(choice.effects, declared, choice_ctx, issues)
            if choice.combat is not None:
                _validate_effect(choice.combat.win_effects, declared, choice_ctx, issues)
                _validate_effect(choice.combat.lose_effects, declared, choice_ctx, issues)

    starting_items = story.player.starting_items or story.player.inventory or ()
    for item_id in starting_items:
        if declared.items and item_id not in declared.items:
            issues.append(
                Issue(
                    "WARNING",
                    "UNDECLARED_ITEM",
                    f"Starting item '{item_id}' is not declared.",
                    {"source": "player"},
                )
            )
    return issues


def _validate_choice_targets(
    story: Story,
    choice: ChoiceDef,
    bookmarks: dict[str, PageId],
    context: dict[str, str],
    issues: list[Issue],
) -> None:
    targets: list[tuple[str, PageId | None]] = []
    if choice.to_bookmark:
        if choice.to_bookmark not in bookmarks:
            issues.append(
                Issue(
                    "ERROR",
                    "MISSING_BOOKMARK",
                    f"Bookmark '{choice.to_bookmark}' does not exist.",
                    context,
                )
            )
    elif choice.combat is not None:
        targets.append(("winPageId", choice.combat.win_page_id))
        targets.append(("losePageId", choice.combat.lose_page_id))
        if choice.combat.enemy_id not in story.enemies:
            issues.append(
                Issue(
                    "WARNING",
                    "UNDECLARED_ENEMY",
                    f"Enemy '{choice.combat.enemy_id}' is not declared.",
                    context,
                )
            )
    else:
        if choice.next_page_id is None and not (choice.input and choice.input.success_page_id is not None):
            issues.append(Issue("ERROR", "MISSING_DESTINATION", "Choice has no destination.", context))
        else:
            targets.append(("nextPageId", choice.next_page_id))
    if choice.failure_page_id is not None:
        targets.append(("failurePageId", choice.failure_page_id))
    if choice.input is not None and choice.input.success_page_id is not None:
        targets.append(("onSuccess.to", choice.input.success_page_id))
    for field_name, target in targets:
        if target is not None and story.get_page(target) is None:
            issues.append(
                Issue(
                    "ERROR",
                    "MISSING_PAGE_REFERENCE",
                    f"Referenced page id {target!r} does not exist.",
                    {**context, "field": field_name},
                )
            )


def _validate_requirements(
    choice: ChoiceDef, declared: _Declarations, context: dict[str, str], issues: list[Issue]
) -> None:
    for clause in choice.requirements:
        if isinstance(clause, ItemClause):
            _check_declared("item", clause.item_id, declared.items, "WARNING", context, issues)
        elif isinstance(clause, StatClause):
            _check_declared("stat", clause.name, declared.stats, "WARNING", context, issues)
        elif isinstance(clause, VariableClause):
            _check_declared("variable", clause.name, declared.variables, "ERROR", context, issues)


def _validate_effect(
    effect: EffectDef | None, declared: _Declarations, context: dict[str, str], issues: list[Issue]
) -> None:
    if effect is None:
        return
    for name in effect.stats:
        _check_declared("stat", name, declared.stats, "WARNING", context, issues)
    for name in effect.variables:
        _check_declared("variable", name, declared.variables, "ERROR", context, issues)
    for item_id in (*effect.items_add, *effect.items_remove):
        _check_declared("item", item_id, declared.items, "WARNING", context, issues)


def _check_declared(
    kind: str,
    name: str,
    declared: set[str],
    severity: Severity,
    context: dict[str, str],
    issues: list[Issue],
) -> None:
    # Stories that declare nothing of a kind opt out of the check for that kind.
    if not declared or name in declared:
        return
    issues.append(
        Issue(
            severity,
            f"UNDECLARED_{kind.upper()}",
            f"{kind.capitalize()} '{name}' is not declared.",
            context,
        )
    )
