from __future__ import annotations

from gamebook.data import normalize_story
from gamebook.domain.defs import ChoiceDef, ItemClause, ItemDef, StatClause, VariableClause
from gamebook.domain.state import SessionState
from gamebook.services.eligibility import (
    can_choose,
    clause_passes,
    describe_clause,
    evaluate_choice,
    values_equal,
)


def _state(**overrides) -> SessionState:
    state = SessionState(current_page_id=1)
    for name, value in overrides.items():
        setattr(state, name, value)
    return state


def _gated_choice() -> ChoiceDef:
    story = normalize_story(
        {
            "pages": [
                {
                    "id": 1,
                    "choices": [
                        {
                            "text": "Open the door",
                            "nextPageId": 2,
                            "requires": {"items": ["key"]},
                            "conditions": {"stats": {"SKILL": {"gte": 5}}},
                        }
                    ],
                }
            ]
        }
    )
    return story.pages[0].choices[0]


def test_all_clauses_must_pass() -> None:
    choice = _gated_choice()

    assert can_choose(choice, _state(inventory=["key"], stats={"SKILL": 5})) is True
    assert can_choose(choice, _state(inventory=["key"], stats={"SKILL": 4})) is False
    assert can_choose(choice, _state(inventory=[], stats={"SKILL": 9})) is False
    assert can_choose(choice, _state(inventory=[], stats={"SKILL": 1})) is False


def test_unmet_clauses_are_described() -> None:
    choice = _gated_choice()

    result = evaluate_choice(choice, _state(stats={"SKILL": 2}), {"key": ItemDef(id="key", name="Iron Key")})

    assert result.available is False
    assert result.unmet == ["Requires SKILL at least 5", "Requires item: Iron Key"]


def test_choice_without_requirements_is_always_available() -> None:
    result = evaluate_choice(ChoiceDef(text="Walk", next_page_id=2), _state())

    assert result.available is True
    assert result.unmet == []


def test_unset_stat_counts_as_zero() -> None:
    assert clause_passes(StatClause("FEAR", lte=0), _state()) is True
    assert clause_passes(StatClause("FEAR", gte=1), _state()) is False


def test_stat_bounds_are_inclusive() -> None:
    clause = StatClause("LUCK", gte=3, lte=6)

    assert clause_passes(clause, _state(stats={"LUCK": 3})) is True
    assert clause_passes(clause, _state(stats={"LUCK": 6})) is True
    assert clause_passes(clause, _state(stats={"LUCK": 7})) is False


def test_missing_variable_fails() -> None:
    assert clause_passes(VariableClause("met_guard", False), _state()) is False


def test_variable_equality_is_strict_about_booleans() -> None:
    assert values_equal(True, True) is True
    assert values_equal(1, True) is False
    assert values_equal(0, False) is False
    assert values_equal(3, 3.0) is True
    assert values_equal("3", 3) is False
    assert clause_passes(VariableClause("gold", 10), _state(variables={"gold": 10})) is True


def test_describe_clause_formats() -> None:
    assert describe_clause(ItemClause("lamp")) == "Requires item: lamp"
    assert describe_clause(StatClause("SKILL", lte=4.0)) == "Requires SKILL at most 4"
    assert describe_clause(StatClause("SKILL", gte=2, lte=8)) == "Requires SKILL between 2 and 8"
    assert describe_clause(VariableClause("door_open", True)) == "Requires door_open = true"
