from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType

from .ir import StepKind


@dataclass(slots=True, frozen=True)
class QuestionTypeMeta:
    """Static facts about a step kind used by validation and renderers."""

    kind: StepKind
    name: str
    description: str
    accepts_input: bool = True
    requires_options: bool = False
    multiple: bool = False


QUESTION_TYPES: MappingProxyType[StepKind, QuestionTypeMeta] = MappingProxyType(
    {
        meta.kind: meta
        for meta in (
            QuestionTypeMeta(
                StepKind.SINGLE_SELECT,
                "Radio",
                "Single select from a list of options",
                requires_options=True,
            ),
            QuestionTypeMeta(
                StepKind.MULTI_SELECT,
                "Checkbox",
                "Multi-select from a list of options",
                requires_options=True,
                multiple=True,
            ),
            QuestionTypeMeta(StepKind.TEXT, "Text", "Free-form text input"),
            QuestionTypeMeta(StepKind.NUMBER, "Number", "Numeric input with validation"),
            QuestionTypeMeta(StepKind.DATE, "Date", "Date picker input"),
            QuestionTypeMeta(StepKind.EMAIL, "Email", "Email input with validation"),
            QuestionTypeMeta(
                StepKind.LONG_LIST_SELECT,
                "Dropdown",
                "Select dropdown for long option lists",
                requires_options=True,
            ),
            QuestionTypeMeta(
                StepKind.INFO, "Info", "Informational screen (no input)", accepts_input=False
            ),
            QuestionTypeMeta(
                StepKind.STOP,
                "Stop",
                "Terminal screen - quiz cannot continue",
                accepts_input=False,
            ),
        )
    }
)


def question_type(kind: StepKind) -> QuestionTypeMeta:
    return QUESTION_TYPES[kind]
