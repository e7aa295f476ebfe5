"""Per-field answer validation.

Validation is a user-facing, recoverable outcome: ``validate_answer`` never
raises, it returns a :class:`ValidationResult` carrying the message to show.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from .constants import (
    MAX_LENGTH_MESSAGE,
    MAX_VALUE_MESSAGE,
    MIN_LENGTH_MESSAGE,
    MIN_VALUE_MESSAGE,
    PATTERN_MESSAGE,
    REQUIRED_MESSAGE,
    REQUIRED_SELECTION_MESSAGE,
)
from .ir import Step, ValidationRules


@dataclass(slots=True, frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None

    @classmethod
    def ok(cls) -> ValidationResult:
        return cls(valid=True)

    @classmethod
    def fail(cls, rules: ValidationRules, default_message: str) -> ValidationResult:
        return cls(valid=False, error=rules.custom_message or default_message)


def _check_required(value: Any, rules: ValidationRules) -> ValidationResult | None:
    if value is None or value == "":
        return ValidationResult.fail(rules, REQUIRED_MESSAGE)
    if isinstance(value, list | tuple) and len(value) == 0:
        return ValidationResult.fail(rules, REQUIRED_SELECTION_MESSAGE)
    return None


def _check_number(value: float, rules: ValidationRules) -> ValidationResult | None:
    if rules.min is not None and value < rules.min:
        return ValidationResult.fail(rules, MIN_VALUE_MESSAGE.format(min=rules.min))
    if rules.max is not None and value > rules.max:
        return ValidationResult.fail(rules, MAX_VALUE_MESSAGE.format(max=rules.max))
    return None


def _check_string(value: str, rules: ValidationRules) -> ValidationResult | None:
    if rules.min_length is not None and len(value) < rules.min_length:
        return ValidationResult.fail(
            rules, MIN_LENGTH_MESSAGE.format(min_length=rules.min_length)
        )
    if rules.max_length is not None and len(value) > rules.max_length:
        return ValidationResult.fail(
            rules, MAX_LENGTH_MESSAGE.format(max_length=rules.max_length)
        )
    if rules.pattern and re.search(rules.pattern, value) is None:
        return ValidationResult.fail(rules, PATTERN_MESSAGE)
    return None


def validate_answer(value: Any, step: Step) -> ValidationResult:
    """Validate a value against the step's rules; no rules means always valid."""
    rules = step.validation
    if rules is None:
        return ValidationResult.ok()

    if rules.required:
        failure = _check_required(value, rules)
        if failure:
            return failure

    failure = None
    if isinstance(value, int | float) and not isinstance(value, bool):
        failure = _check_number(value, rules)
    elif isinstance(value, str):
        failure = _check_string(value, rules)

    return failure or ValidationResult.ok()
