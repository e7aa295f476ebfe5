"""Next-step resolution over literal targets and ordered branch lists."""

from __future__ import annotations

import logging
from typing import Any

from .conditions import Answers, evaluate
from .errors import ResolutionError
from .ir import Branch, DefaultBranch, NextLogic, WhenBranch

logger = logging.getLogger(__name__)


def has_branching(next_logic: NextLogic) -> bool:
    """Check if next logic is a branch list rather than a literal target."""
    return isinstance(next_logic, tuple)


def branch_target(branch: Branch) -> str:
    if isinstance(branch, DefaultBranch):
        return branch.default
    return branch.then


def extract_targets(next_logic: NextLogic) -> list[str]:
    """Return every non-empty target the next logic can resolve to, in declared order."""
    if isinstance(next_logic, str):
        return [next_logic] if next_logic else []
    return [t for t in (branch_target(b) for b in next_logic) if t]


def resolve_next(
    next_logic: NextLogic,
    current_value: Any,
    answers: Answers,
    *,
    step_id: str | None = None,
) -> str:
    """Resolve next logic to a single target id.

    A literal string is returned verbatim, including the empty string. Branch
    lists are evaluated in declared order and the first ``when`` that holds, or
    the first ``default``, wins.

    Raises:
        ResolutionError: when a branch list is exhausted without a match.
    """
    if isinstance(next_logic, str):
        return next_logic

    for index, branch in enumerate(next_logic):
        if isinstance(branch, DefaultBranch):
            logger.debug("step=%s matched default branch index=%d", step_id, index)
            return branch.default
        if isinstance(branch, WhenBranch) and evaluate(branch.when, current_value, answers):
            logger.debug("step=%s matched branch index=%d target=%s", step_id, index, branch.then)
            return branch.then

    logger.error("No matching branch for step=%s value=%r", step_id, current_value)
    raise ResolutionError(step_id)
