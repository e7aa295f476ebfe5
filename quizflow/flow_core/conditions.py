from __future__ import annotations

import json
import re
from collections.abc import Callable, Mapping
from functools import lru_cache
from typing import Any

from .constants import MAX_INLINE_COMBINATOR_PARTS
from .ir import (
    AndCondition,
    AnswerCondition,
    Branch,
    ComparisonCondition,
    Condition,
    DefaultBranch,
    EmptinessCondition,
    EqualityCondition,
    MatchesCondition,
    MembershipCondition,
    NotCondition,
    OrCondition,
)

Answers = Mapping[str, Any]
NumericPredicate = Callable[[float, float], bool]


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _is_list(value: Any) -> bool:
    return isinstance(value, list | tuple)


def strict_equals(left: Any, right: Any) -> bool:
    """Type-sensitive equality: booleans never equal numbers, strings never equal numbers."""
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if _is_number(left) and _is_number(right):
        return left == right
    if _is_list(left) and _is_list(right):
        return len(left) == len(right) and all(
            strict_equals(a, b) for a, b in zip(left, right, strict=True)
        )
    if not (isinstance(left, type(right)) or isinstance(right, type(left))):
        return False
    return bool(left == right)


def is_empty(value: Any) -> bool:
    """Return True for a missing answer, an empty string or an empty list."""
    if value is None or value == "":
        return True
    if _is_list(value):
        return len(value) == 0
    return False


@lru_cache(maxsize=256)
def _compiled(pattern: str) -> re.Pattern[str]:
    return re.compile(pattern)


def _contains(values: Any, expected: Any) -> bool:
    return any(strict_equals(item, expected) for item in values)


_COMPARISONS: dict[str, NumericPredicate] = {
    "gt": lambda actual, bound: actual > bound,
    "gte": lambda actual, bound: actual >= bound,
    "lt": lambda actual, bound: actual < bound,
    "lte": lambda actual, bound: actual <= bound,
}


def evaluate_leaf(condition: Condition, value: Any) -> bool:
    """Evaluate a value condition against ``value``."""
    if isinstance(condition, EqualityCondition):
        equal = strict_equals(value, condition.value)
        return equal if condition.op == "equals" else not equal

    if isinstance(condition, MembershipCondition):
        # A non-list operand is False for both operators
        if not _is_list(value):
            return False
        present = _contains(value, condition.value)
        return present if condition.op == "includes" else not present

    if isinstance(condition, ComparisonCondition):
        if not _is_number(value):
            return False
        return _COMPARISONS[condition.op](value, condition.value)

    if isinstance(condition, MatchesCondition):
        if not isinstance(value, str):
            return False
        return _compiled(condition.pattern).search(value) is not None

    if isinstance(condition, EmptinessCondition):
        empty = is_empty(value)
        return empty if condition.op == "is_empty" else not empty

    msg = f"Not a value condition: {type(condition).__name__}"
    raise TypeError(msg)


def evaluate(condition: Condition, current_value: Any, answers: Answers) -> bool:
    """Evaluate a condition tree against the current answer and all answers.

    Pure and deterministic. Cross-step conditions read ``answers[step]``; an
    unanswered step reads as ``None`` and goes through the ordinary leaf rules.
    """
    if isinstance(condition, AndCondition):
        return all(evaluate(c, current_value, answers) for c in condition.conditions)
    if isinstance(condition, OrCondition):
        return any(evaluate(c, current_value, answers) for c in condition.conditions)
    if isinstance(condition, NotCondition):
        return not evaluate(condition.condition, current_value, answers)
    if isinstance(condition, AnswerCondition):
        return evaluate_leaf(condition.check, answers.get(condition.step))
    return evaluate_leaf(condition, current_value)


# ---------------------------------------------------------------------------
# Human-readable labels (graph export)
# ---------------------------------------------------------------------------

_LEAF_SYMBOLS = {
    "equals": "=",
    "not_equals": "!=",
    "includes": "includes",
    "not_includes": "excludes",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
}


def _leaf_label(condition: Condition) -> str:
    if isinstance(condition, EqualityCondition | MembershipCondition | ComparisonCondition):
        return f"{_LEAF_SYMBOLS[condition.op]} {json.dumps(condition.value)}"
    if isinstance(condition, MatchesCondition):
        return f"matches /{condition.pattern}/"
    if isinstance(condition, EmptinessCondition):
        return "is empty" if condition.op == "is_empty" else "is not empty"
    return "?"


def _combinator_label(name: str, conditions: list[Condition]) -> str:
    parts = [condition_label(c) for c in conditions]
    if len(parts) <= MAX_INLINE_COMBINATOR_PARTS:
        return f" {name} ".join(parts)
    return f"{name}({len(parts)})"


def condition_label(condition: Condition) -> str:
    """Render a condition as a short label, e.g. ``sex = "female"`` or ``AND(3)``."""
    if isinstance(condition, AndCondition):
        return _combinator_label("AND", condition.conditions)
    if isinstance(condition, OrCondition):
        return _combinator_label("OR", condition.conditions)
    if isinstance(condition, NotCondition):
        return f"NOT {condition_label(condition.condition)}"
    if isinstance(condition, AnswerCondition):
        return f"{condition.step} {_leaf_label(condition.check)}"
    return _leaf_label(condition)


def branch_label(branch: Branch) -> str:
    if isinstance(branch, DefaultBranch):
        return "default"
    return condition_label(branch.when)
