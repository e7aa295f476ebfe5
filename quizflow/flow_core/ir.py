from __future__ import annotations

import re
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import OUTCOME_PREFIX


class _FrozenModel(BaseModel):
    """Flow definitions are read-only once parsed; sequences are stored as tuples."""

    model_config = ConfigDict(frozen=True)


def _compile_pattern(pattern: str) -> str:
    try:
        re.compile(pattern)
    except re.error as exc:
        msg = f"Invalid regular expression {pattern!r}: {exc}"
        raise ValueError(msg) from exc
    return pattern


# ---------------------------------------------------------------------------
# Conditions
# ---------------------------------------------------------------------------


class EqualityCondition(_FrozenModel):
    """Strict equality (or inequality) against the operand."""

    op: Literal["equals", "not_equals"]
    value: Any = None


class MembershipCondition(_FrozenModel):
    """Element presence in a list-typed operand (multi-select answers)."""

    op: Literal["includes", "not_includes"]
    value: Any


class ComparisonCondition(_FrozenModel):
    """Numeric comparison against a numeric operand."""

    op: Literal["gt", "gte", "lt", "lte"]
    value: int | float


class MatchesCondition(_FrozenModel):
    """Regular expression search against a string operand."""

    op: Literal["matches"] = "matches"
    pattern: str

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str) -> str:
        return _compile_pattern(v)


class EmptinessCondition(_FrozenModel):
    """Missing, empty string or empty list checks."""

    op: Literal["is_empty", "is_not_empty"]


LeafCondition = Annotated[
    EqualityCondition
    | MembershipCondition
    | ComparisonCondition
    | MatchesCondition
    | EmptinessCondition,
    Field(discriminator="op"),
]


class AnswerCondition(_FrozenModel):
    """Leaf condition evaluated against another step's recorded answer."""

    op: Literal["answer"] = "answer"
    step: str
    check: LeafCondition


class AndCondition(_FrozenModel):
    op: Literal["and"] = "and"
    conditions: tuple[Condition, ...] = ()


class OrCondition(_FrozenModel):
    op: Literal["or"] = "or"
    conditions: tuple[Condition, ...] = ()


class NotCondition(_FrozenModel):
    op: Literal["not"] = "not"
    condition: Condition


Condition = Annotated[
    EqualityCondition
    | MembershipCondition
    | ComparisonCondition
    | MatchesCondition
    | EmptinessCondition
    | AnswerCondition
    | AndCondition
    | OrCondition
    | NotCondition,
    Field(discriminator="op"),
]

AndCondition.model_rebuild()
OrCondition.model_rebuild()
NotCondition.model_rebuild()


# ---------------------------------------------------------------------------
# Branches
# ---------------------------------------------------------------------------


class WhenBranch(_FrozenModel):
    """Conditional edge: taken when ``when`` holds."""

    kind: Literal["when"] = "when"
    when: Condition
    then: str


class DefaultBranch(_FrozenModel):
    """Fallback edge; always matches and must be the last branch."""

    kind: Literal["default"] = "default"
    default: str


Branch = Annotated[WhenBranch | DefaultBranch, Field(discriminator="kind")]

# A literal target (possibly empty) or an ordered list of branches
NextLogic = str | tuple[Branch, ...]


# ---------------------------------------------------------------------------
# Steps and outcomes
# ---------------------------------------------------------------------------


class StepKind(str, Enum):
    """Closed set of question kinds a step can render as."""

    TEXT = "text"
    NUMBER = "number"
    SINGLE_SELECT = "single_select"
    MULTI_SELECT = "multi_select"
    DATE = "date"
    EMAIL = "email"
    LONG_LIST_SELECT = "long_list_select"
    INFO = "info"
    STOP = "stop"


class StepOption(_FrozenModel):
    value: str
    label: str
    description: str | None = None


class HelpText(_FrozenModel):
    """Help popup shown next to a question."""

    title: str | None = None
    content: str
    link_text: str | None = None


class ValidationRules(_FrozenModel):
    """Per-field validation rules; every field is optional."""

    required: bool = False
    min: int | float | None = None
    max: int | float | None = None
    min_length: int | None = Field(default=None, ge=0)
    max_length: int | None = Field(default=None, ge=0)
    pattern: str | None = None
    custom_message: str | None = None

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return _compile_pattern(v)


class Step(_FrozenModel):
    """One question or screen of a flow."""

    id: str
    kind: StepKind
    question: str
    description: str | None = None
    placeholder: str | None = None
    help_text: HelpText | None = None
    options: tuple[StepOption, ...] | None = None
    validation: ValidationRules | None = None
    # Reference tag for downstream systems; opaque to the engine
    shortcode: str | None = None
    next: NextLogic


class OutcomeKind(str, Enum):
    ELIGIBLE = "eligible"
    INELIGIBLE = "ineligible"
    NEEDS_REVIEW = "needs-review"


class Outcome(_FrozenModel):
    """Terminal classification reached at the end of a session."""

    kind: OutcomeKind
    reason: str | None = None
    message: str | None = None


def is_outcome_id(target: str) -> bool:
    """Return True when ``target`` addresses an outcome rather than a step."""
    return target.startswith(OUTCOME_PREFIX)


class FlowDefinition(_FrozenModel):
    """Complete questionnaire graph."""

    id: str
    name: str
    version: str
    description: str | None = None
    steps: tuple[Step, ...]
    # Keyed by outcome id, e.g. "outcome:eligible"
    outcomes: dict[str, Outcome] = Field(default_factory=dict)
    initial_step: str

    def step_by_id(self, step_id: str) -> Step | None:
        """Get step by ID."""
        for s in self.steps:
            if s.id == step_id:
                return s
        return None

    def outcome_by_id(self, outcome_id: str) -> Outcome | None:
        return self.outcomes.get(outcome_id)

    def input_steps(self) -> list[Step]:
        """Steps that count towards progress (everything but informational screens)."""
        return [s for s in self.steps if s.kind is not StepKind.INFO]
