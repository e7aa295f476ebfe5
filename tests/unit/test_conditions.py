from __future__ import annotations

import pytest

from quizflow.flow_core import builders as b
from quizflow.flow_core.conditions import (
    branch_label,
    condition_label,
    evaluate,
    evaluate_leaf,
    is_empty,
    strict_equals,
)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("left", "right", "expected"),
    [
        ("female", "female", True),
        ("female", "male", False),
        (18, 18, True),
        (18, 18.0, True),
        (1, True, False),
        (0, False, False),
        (True, True, True),
        ("1", 1, False),
        (None, None, True),
        (None, "x", False),
        (["a", "b"], ["a", "b"], True),
        (["a", "b"], ["b", "a"], False),
        ([1], [True], False),
    ],
)
def test_strict_equals(left, right, expected) -> None:  # type: ignore[no-untyped-def]
    assert strict_equals(left, right) is expected


@pytest.mark.unit
def test_is_empty() -> None:
    assert is_empty(None)
    assert is_empty("")
    assert is_empty([])
    assert not is_empty(0)
    assert not is_empty(False)
    assert not is_empty(" ")
    assert not is_empty(["x"])


@pytest.mark.unit
def test_equality_leaves() -> None:
    assert evaluate_leaf(b.equals("yes"), "yes")
    assert not evaluate_leaf(b.equals("yes"), "no")
    assert evaluate_leaf(b.not_equals("yes"), "no")
    assert not evaluate_leaf(b.equals(1), True)


@pytest.mark.unit
def test_membership_is_false_for_non_list_operands() -> None:
    assert evaluate_leaf(b.includes("x"), ["x", "y"])
    assert not evaluate_leaf(b.includes("z"), ["x", "y"])
    assert evaluate_leaf(b.not_includes("z"), ["x", "y"])
    # Both operators are False when the value is not a list
    assert not evaluate_leaf(b.includes("x"), "x")
    assert not evaluate_leaf(b.not_includes("x"), "x")
    assert not evaluate_leaf(b.not_includes("x"), None)


@pytest.mark.unit
def test_numeric_comparisons_require_numbers() -> None:
    assert evaluate_leaf(b.lt(18), 17)
    assert not evaluate_leaf(b.lt(18), 18)
    assert evaluate_leaf(b.lte(18), 18)
    assert evaluate_leaf(b.gt(18), 18.5)
    assert evaluate_leaf(b.gte(18), 18)
    assert not evaluate_leaf(b.lt(18), "17")
    assert not evaluate_leaf(b.lt(18), None)
    assert not evaluate_leaf(b.lt(18), True)


@pytest.mark.unit
def test_matches_uses_search_semantics() -> None:
    assert evaluate_leaf(b.matches("@example"), "me@example.com")
    assert not evaluate_leaf(b.matches("^@"), "me@example.com")
    assert not evaluate_leaf(b.matches("1"), 1)


@pytest.mark.unit
def test_emptiness_leaves() -> None:
    assert evaluate_leaf(b.is_empty(), [])
    assert evaluate_leaf(b.is_not_empty(), "x")
    assert not evaluate_leaf(b.is_not_empty(), None)


@pytest.mark.unit
def test_evaluate_leaf_rejects_combinators() -> None:
    with pytest.raises(TypeError):
        evaluate_leaf(b.all_of(), "x")


@pytest.mark.unit
def test_empty_combinators() -> None:
    assert evaluate(b.all_of(), "anything", {}) is True
    assert evaluate(b.any_of(), "anything", {}) is False


@pytest.mark.unit
def test_combinators_and_negation() -> None:
    adult_female = b.all_of(b.gte(18), b.answer("sex", b.equals("female")))
    assert evaluate(adult_female, 30, {"sex": "female"})
    assert not evaluate(adult_female, 30, {"sex": "male"})
    assert evaluate(b.any_of(b.lt(18), b.gt(65)), 70, {})
    assert evaluate(b.negate(b.equals("x")), "y", {})


@pytest.mark.unit
def test_cross_step_condition_on_unanswered_step_is_false() -> None:
    condition = b.answer("sex", b.equals("female"))
    assert evaluate(condition, "ignored", {}) is False
    assert evaluate(b.answer("sex", b.is_empty()), "ignored", {}) is True


@pytest.mark.unit
def test_cross_step_condition_ignores_current_value() -> None:
    condition = b.answer("age", b.lt(18))
    assert evaluate(condition, 99, {"age": 16})
    assert not evaluate(condition, 10, {"age": 40})


@pytest.mark.unit
def test_evaluate_is_deterministic() -> None:
    condition = b.any_of(b.includes("x"), b.answer("a", b.matches("^y")))
    answers = {"a": "yes"}
    results = {evaluate(condition, ["z"], answers) for _ in range(5)}
    assert results == {True}
    assert answers == {"a": "yes"}


@pytest.mark.unit
def test_labels() -> None:
    assert condition_label(b.equals("female")) == '= "female"'
    assert condition_label(b.not_includes("x")) == 'excludes "x"'
    assert condition_label(b.lt(18)) == "< 18"
    assert condition_label(b.matches("^a")) == "matches /^a/"
    assert condition_label(b.is_empty()) == "is empty"
    assert condition_label(b.answer("sex", b.equals("male"))) == 'sex = "male"'
    assert condition_label(b.all_of(b.gt(1), b.lt(5))) == "> 1 AND < 5"
    assert condition_label(b.any_of(b.gt(1), b.lt(5), b.equals(3))) == "OR(3)"
    assert condition_label(b.negate(b.is_empty())) == "NOT is empty"
    assert branch_label(b.default("x")) == "default"
    assert branch_label(b.when(b.gte(18), "x")) == ">= 18"
