"""Structural validator for flow definitions.

Runs once, eagerly, when a flow is registered. A flow that passes is trusted
by every session built on it: every literal and branch target resolves to a
known step or outcome.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Mapping

from .errors import (
    DanglingTarget,
    DuplicateStepId,
    MisplacedDefault,
    MissingInitialStep,
    StructuralWarnings,
)
from .ir import DefaultBranch, FlowDefinition, Step, is_outcome_id
from .question_types import question_type
from .resolver import extract_targets
from .shortcodes import SHORTCODES, ShortcodeDefinition

logger = logging.getLogger(__name__)


class FlowValidator:
    """Validate flow structure and references.

    Fatal problems raise a :class:`GraphError` subclass. Non-fatal findings are
    collected in ``validation_warnings``; ``strict=True`` turns them into a
    :class:`StructuralWarnings` error.
    """

    def __init__(
        self,
        *,
        strict: bool = False,
        shortcodes: Mapping[str, ShortcodeDefinition] | None = SHORTCODES,
    ) -> None:
        self.strict = strict
        self.shortcodes = shortcodes
        self.validation_warnings: list[str] = []

    def validate(self, flow: FlowDefinition) -> FlowDefinition:
        self.validation_warnings = []

        step_ids = {s.id for s in flow.steps}
        outcome_ids = set(flow.outcomes)

        if flow.initial_step not in step_ids:
            raise MissingInitialStep(flow.id, flow.initial_step)

        self._check_unique_ids(flow)

        for step in flow.steps:
            self._check_targets(flow.id, step, step_ids, outcome_ids)
            self._check_default_placement(flow.id, step)

        self._collect_warnings(flow)

        if self.validation_warnings:
            for warning in self.validation_warnings:
                logger.warning('Flow "%s" v%s: %s', flow.id, flow.version, warning)
            if self.strict:
                raise StructuralWarnings(flow.id, self.validation_warnings)

        logger.debug(
            'Flow "%s" v%s validated: steps=%d outcomes=%d',
            flow.id,
            flow.version,
            len(flow.steps),
            len(flow.outcomes),
        )
        return flow

    # Fatal checks

    def _check_unique_ids(self, flow: FlowDefinition) -> None:
        seen: set[str] = set()
        for step in flow.steps:
            if step.id in seen:
                raise DuplicateStepId(flow.id, step.id)
            seen.add(step.id)

    def _check_targets(
        self, flow_id: str, step: Step, step_ids: set[str], outcome_ids: set[str]
    ) -> None:
        for target in extract_targets(step.next):
            if is_outcome_id(target):
                if target not in outcome_ids:
                    raise DanglingTarget(flow_id, step.id, target, outcome=True)
            elif target not in step_ids:
                raise DanglingTarget(flow_id, step.id, target, outcome=False)

    def _check_default_placement(self, flow_id: str, step: Step) -> None:
        if not isinstance(step.next, tuple) or not step.next:
            return
        for index, branch in enumerate(step.next):
            if isinstance(branch, DefaultBranch) and index != len(step.next) - 1:
                raise MisplacedDefault(flow_id, step.id)

    # Warnings

    def _collect_warnings(self, flow: FlowDefinition) -> None:
        referenced: set[str] = set()
        for step in flow.steps:
            referenced.update(extract_targets(step.next))

            if isinstance(step.next, tuple) and not any(
                isinstance(b, DefaultBranch) for b in step.next
            ):
                self.validation_warnings.append(
                    f'Step "{step.id}" has no default branch; unmatched answers will fail'
                )

            if question_type(step.kind).requires_options and not step.options:
                self.validation_warnings.append(
                    f'Step "{step.id}" of kind {step.kind.value} has no options'
                )

            if (
                step.shortcode is not None
                and self.shortcodes is not None
                and step.shortcode not in self.shortcodes
            ):
                self.validation_warnings.append(
                    f'Step "{step.id}" uses unknown shortcode "{step.shortcode}"'
                )

        unused = sorted(set(flow.outcomes) - referenced)
        if unused:
            self.validation_warnings.append(f"Unreferenced outcomes: {', '.join(unused)}")

        unreachable = self._unreachable_steps(flow)
        if unreachable:
            self.validation_warnings.append(
                f"Unreachable steps detected: {', '.join(sorted(unreachable))}"
            )

    def _unreachable_steps(self, flow: FlowDefinition) -> set[str]:
        """Breadth-first walk over every possible edge from the initial step."""
        steps = {s.id: s for s in flow.steps}
        visited: set[str] = set()
        queue = deque([flow.initial_step])

        while queue:
            step_id = queue.popleft()
            if step_id in visited or step_id not in steps:
                continue
            visited.add(step_id)
            queue.extend(t for t in extract_targets(steps[step_id].next) if t not in visited)

        return set(steps) - visited


def validate_flow(
    flow: FlowDefinition,
    *,
    strict: bool = False,
    shortcodes: Mapping[str, ShortcodeDefinition] | None = SHORTCODES,
) -> FlowDefinition:
    """Convenience function to validate a flow."""
    return FlowValidator(strict=strict, shortcodes=shortcodes).validate(flow)
