"""Small constructors for writing flows in Python instead of JSON."""

from __future__ import annotations

from typing import Any

from .ir import (
    AndCondition,
    AnswerCondition,
    ComparisonCondition,
    Condition,
    DefaultBranch,
    EmptinessCondition,
    EqualityCondition,
    LeafCondition,
    MatchesCondition,
    MembershipCondition,
    NotCondition,
    OrCondition,
    WhenBranch,
)


def when(condition: Condition, target: str) -> WhenBranch:
    return WhenBranch(when=condition, then=target)


def default(target: str) -> DefaultBranch:
    return DefaultBranch(default=target)


def equals(value: Any) -> EqualityCondition:
    return EqualityCondition(op="equals", value=value)


def not_equals(value: Any) -> EqualityCondition:
    return EqualityCondition(op="not_equals", value=value)


def includes(value: Any) -> MembershipCondition:
    return MembershipCondition(op="includes", value=value)


def not_includes(value: Any) -> MembershipCondition:
    return MembershipCondition(op="not_includes", value=value)


def gt(value: float) -> ComparisonCondition:
    return ComparisonCondition(op="gt", value=value)


def gte(value: float) -> ComparisonCondition:
    return ComparisonCondition(op="gte", value=value)


def lt(value: float) -> ComparisonCondition:
    return ComparisonCondition(op="lt", value=value)


def lte(value: float) -> ComparisonCondition:
    return ComparisonCondition(op="lte", value=value)


def matches(pattern: str) -> MatchesCondition:
    return MatchesCondition(pattern=pattern)


def is_empty() -> EmptinessCondition:
    return EmptinessCondition(op="is_empty")


def is_not_empty() -> EmptinessCondition:
    return EmptinessCondition(op="is_not_empty")


def answer(step_id: str, check: LeafCondition) -> AnswerCondition:
    """Evaluate ``check`` against the recorded answer of ``step_id``."""
    return AnswerCondition(step=step_id, check=check)


def all_of(*conditions: Condition) -> AndCondition:
    return AndCondition(conditions=conditions)


def any_of(*conditions: Condition) -> OrCondition:
    return OrCondition(conditions=conditions)


def negate(condition: Condition) -> NotCondition:
    return NotCondition(condition=condition)
