"""Session state machine driving one user through a validated flow."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Literal

from .constants import (
    FALLBACK_VALIDATION_MESSAGE,
    MAX_PROGRESS_PERCENTAGE,
    MIN_PROGRESS_PERCENTAGE,
    NO_NAVIGATION,
)
from .errors import ResolutionError
from .ir import FlowDefinition, Outcome, Step, StepKind, is_outcome_id
from .resolver import resolve_next
from .state import Progress, SessionState, SessionStatus
from .validation import validate_answer

logger = logging.getLogger(__name__)

AnswerCallback = Callable[[str, str | None, Any], Awaitable[None]]
CompleteCallback = Callable[[str], Awaitable[None]]


@dataclass(slots=True)
class SubmitResult:
    """Response from the session after a submission."""

    kind: Literal["advanced", "completed", "invalid", "halted", "ignored"]
    step_id: str | None
    target: str | None = None
    error: str | None = None


class FlowSession:
    """
    Stateful controller for a single traversal of a flow.

    Key principles:
    1. The flow must already have passed the structural validator
    2. Transitions happen only through the public operations
    3. Answers and moves to steps are committed before collaborators are awaited
    4. An outcome becomes the position only after on_complete returns
    5. Collaborator failures propagate; committed answers are not rolled back

    Callers must serialize calls to ``submit_answer``, ``go_back`` and ``reset``.
    """

    def __init__(
        self,
        flow: FlowDefinition,
        initial_answers: dict[str, Any] | None = None,
        initial_step: str | None = None,
        *,
        on_answer: AnswerCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> None:
        start = initial_step or flow.initial_step
        answers = dict(initial_answers or {})
        self._flow = flow
        self._on_answer = on_answer
        self._on_complete = on_complete
        self._state = SessionState(
            flow_id=flow.id,
            flow_version=flow.version,
            current_step_id=start,
            answers=answers,
            history=[start],
            current_answer=answers.get(start),
        )

    @classmethod
    def restore(
        cls,
        flow: FlowDefinition,
        state: SessionState,
        *,
        on_answer: AnswerCallback | None = None,
        on_complete: CompleteCallback | None = None,
    ) -> FlowSession:
        """Rebuild a session from a snapshot taken with :meth:`snapshot`."""
        session = cls(flow, on_answer=on_answer, on_complete=on_complete)
        session._state = state.copy()
        session._state.is_submitting = False
        if not session._state.history:
            session._state.history = [state.current_step_id]
        return session

    # Read model

    @property
    def flow(self) -> FlowDefinition:
        return self._flow

    @property
    def current_step_id(self) -> str:
        return self._state.current_step_id

    @property
    def current_step(self) -> Step | None:
        """The current step definition (None when positioned on an outcome)."""
        return self._flow.step_by_id(self._state.current_step_id)

    @property
    def current_answer(self) -> Any:
        return self._state.current_answer

    @property
    def answers(self) -> dict[str, Any]:
        return dict(self._state.answers)

    @property
    def history(self) -> list[str]:
        return list(self._state.history)

    @property
    def validation_error(self) -> str | None:
        return self._state.validation_error

    @property
    def is_submitting(self) -> bool:
        return self._state.is_submitting

    @property
    def is_outcome(self) -> bool:
        return is_outcome_id(self._state.current_step_id)

    @property
    def outcome(self) -> Outcome | None:
        if not self.is_outcome:
            return None
        return self._flow.outcome_by_id(self._state.current_step_id)

    @property
    def status(self) -> SessionStatus:
        if self.is_outcome and self.outcome is not None:
            return SessionStatus.OUTCOME_REACHED
        if self.current_step is not None:
            return SessionStatus.ANSWERING
        return SessionStatus.STEP_NOT_FOUND

    @property
    def can_go_back(self) -> bool:
        return len(self._state.history) > 1 and not self.is_outcome

    @property
    def progress(self) -> Progress:
        """Answered steps over non-informational steps, never dividing by zero."""
        input_ids = {s.id for s in self._flow.input_steps()}
        answered = len(input_ids.intersection(self._state.answers))
        total = len(input_ids)
        if total == 0 or answered == 0:
            return Progress(current=answered, total=total, percentage=MIN_PROGRESS_PERCENTAGE)
        # Round half up
        percentage = int(answered * 100 / total + 0.5)
        percentage = max(MIN_PROGRESS_PERCENTAGE, min(MAX_PROGRESS_PERCENTAGE, percentage))
        return Progress(current=answered, total=total, percentage=percentage)

    def snapshot(self) -> SessionState:
        return self._state.copy()

    # Transitions

    def set_current_answer(self, value: Any) -> None:
        """Update the in-flight value; committed answers are untouched."""
        self._state.current_answer = value

    async def submit_answer(self) -> SubmitResult:
        """Validate, commit and advance from the current step.

        Raises:
            ResolutionError: when the step's branch list has no match. The answer is
                committed and ``on_answer`` has run by then.
            Exception: whatever the ``on_answer``/``on_complete`` collaborators
                raise. The answer stays committed. A failed ``on_complete``
                leaves the position on the answered step.
        """
        step = self.current_step
        if step is None or self.is_outcome:
            if self.status is SessionStatus.STEP_NOT_FOUND:
                logger.warning(
                    'Flow "%s": current position "%s" is neither a step nor an outcome',
                    self._flow.id,
                    self._state.current_step_id,
                )
            return SubmitResult(kind="ignored", step_id=self._state.current_step_id)

        if step.kind is StepKind.STOP:
            return SubmitResult(kind="halted", step_id=step.id)

        if step.kind is StepKind.INFO:
            target = resolve_next(step.next, None, self._state.answers, step_id=step.id)
            return await self._transition(step, target)

        result = validate_answer(self._state.current_answer, step)
        if not result.valid:
            self._state.validation_error = result.error or FALLBACK_VALIDATION_MESSAGE
            logger.debug(
                "Validation failed step=%s error=%s", step.id, self._state.validation_error
            )
            return SubmitResult(
                kind="invalid", step_id=step.id, error=self._state.validation_error
            )

        value = self._state.current_answer
        self._state.answers = {**self._state.answers, step.id: value}
        self._state.validation_error = None
        try:
            target = resolve_next(step.next, value, self._state.answers, step_id=step.id)
        except ResolutionError:
            # The committed answer is still handed to the collaborator
            await self._notify_answer(step, value)
            raise
        return await self._transition(step, target, value=value, record=True)

    def go_back(self) -> None:
        """Return to the previous history entry and restore its committed answer."""
        if len(self._state.history) <= 1 or self.is_outcome:
            return

        self._state.history.pop()
        previous = self._state.history[-1]
        self._state.current_step_id = previous
        self._state.current_answer = self._state.answers.get(previous)
        self._state.validation_error = None
        self._state.touch()

    def reset(self) -> None:
        """Clear all answers and history and return to the flow's initial step."""
        start = self._flow.initial_step
        self._state.current_step_id = start
        self._state.answers = {}
        self._state.history = [start]
        self._state.current_answer = None
        self._state.validation_error = None
        self._state.is_submitting = False
        self._state.touch()

    # Helpers

    def _advance(self, target: str) -> None:
        self._state.history.append(target)
        self._state.current_step_id = target
        self._state.current_answer = self._state.answers.get(target)
        self._state.validation_error = None
        self._state.touch()

    async def _transition(
        self,
        step: Step,
        target: str,
        *,
        value: Any = None,
        record: bool = False,
    ) -> SubmitResult:
        if target == NO_NAVIGATION:
            if record:
                await self._notify_answer(step, value)
            return SubmitResult(kind="halted", step_id=step.id, target=target)

        if not is_outcome_id(target):
            self._advance(target)
            if record:
                await self._notify_answer(step, value)
            return SubmitResult(kind="advanced", step_id=step.id, target=target)

        # Outcomes are entered only after on_complete succeeds
        if record:
            await self._notify_answer(step, value)
        if self._on_complete is not None:
            self._state.is_submitting = True
            try:
                await self._on_complete(target)
            finally:
                self._state.is_submitting = False
        self._advance(target)
        logger.info('Flow "%s" v%s reached %s', self._flow.id, self._flow.version, target)
        return SubmitResult(kind="completed", step_id=step.id, target=target)

    async def _notify_answer(self, step: Step, value: Any) -> None:
        if self._on_answer is None:
            return
        self._state.is_submitting = True
        try:
            await self._on_answer(step.id, step.shortcode, value)
        finally:
            self._state.is_submitting = False
