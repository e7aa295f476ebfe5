"""Persistence collaborator recording flow sessions and answers in the database."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy.orm import Session

from quizflow.db import repository
from quizflow.db.models import FlowSessionRecord, SessionRecordStatus
from quizflow.db.session import db_transaction
from quizflow.flow_core.errors import FlowRegistryError, ResolutionError
from quizflow.flow_core.ir import FlowDefinition, StepKind, is_outcome_id
from quizflow.flow_core.resolver import resolve_next
from quizflow.flow_core.session import AnswerCallback, CompleteCallback, FlowSession
from quizflow.flow_core.state import SessionState

if TYPE_CHECKING:
    from quizflow.flow_core.registry import FlowRegistry

logger = logging.getLogger(__name__)

SessionScope = Callable[[], AbstractContextManager[Session]]


@dataclass(slots=True, frozen=True)
class RecordedSession:
    """Detached copy of a stored session row."""

    id: UUID
    flow_id: str
    flow_version: str
    user_id: str | None
    current_step: str | None
    status: SessionRecordStatus
    outcome: str | None
    started_at: datetime
    completed_at: datetime | None

    @property
    def is_finished(self) -> bool:
        return self.status is not SessionRecordStatus.in_progress

    @classmethod
    def from_record(cls, record: FlowSessionRecord) -> RecordedSession:
        return cls(
            id=record.id,
            flow_id=record.flow_id,
            flow_version=record.flow_version,
            user_id=record.user_id,
            current_step=record.current_step,
            status=SessionRecordStatus(record.status),
            outcome=record.outcome,
            started_at=record.started_at,
            completed_at=record.completed_at,
        )


def replay_history(flow: FlowDefinition, answers: dict[str, Any], position: str) -> list[str]:
    """Rebuild the navigation history leading to ``position`` from stored answers.

    Walks from the initial step following the resolver with the stored answers
    and stops at ``position``, at the first unanswered step, or when a step
    would be revisited. ``position`` is always the last entry.
    """
    history: list[str] = []
    current = flow.initial_step

    while current and current not in history:
        history.append(current)
        if current == position or is_outcome_id(current):
            break
        step = flow.step_by_id(current)
        if step is None or step.kind is StepKind.STOP:
            break
        if step.kind is StepKind.INFO:
            value = None
        elif step.id in answers:
            value = answers[step.id]
        else:
            break
        try:
            current = resolve_next(step.next, value, answers, step_id=step.id)
        except ResolutionError:
            logger.warning(
                'Flow "%s": stored answers no longer resolve at "%s"', flow.id, step.id
            )
            break

    if not history or history[-1] != position:
        history.append(position)
    return history


class SessionRecorder:
    """
    Records one database row per flow session and one per committed answer.

    The ``on_answer``/``on_complete`` callbacks handed to :class:`FlowSession`
    run their blocking database work in a worker thread. ``scope`` opens a
    transactional SQLAlchemy session and defaults to :func:`db_transaction`.
    """

    def __init__(self, scope: SessionScope = db_transaction) -> None:
        self._scope = scope

    # Session lifecycle

    async def start(self, flow: FlowDefinition, user_id: str | None = None) -> RecordedSession:
        """Create an in-progress session record positioned on the initial step."""
        return await asyncio.to_thread(self._start, flow, user_id)

    async def get(self, session_id: UUID) -> RecordedSession | None:
        return await asyncio.to_thread(self._get, session_id)

    async def load_answers(self, session_id: UUID) -> dict[str, Any]:
        """Stored answers keyed by step id; a later answer for a step wins."""
        return await asyncio.to_thread(self._load_answers, session_id)

    async def record_position(self, session_id: UUID, step_id: str) -> None:
        await asyncio.to_thread(self._record_position, session_id, step_id)

    async def abandon(self, session_id: UUID) -> RecordedSession | None:
        return await asyncio.to_thread(self._abandon, session_id)

    async def find_incomplete(self, flow_id: str, user_id: str | None) -> RecordedSession | None:
        """Most recent in-progress session of ``user_id`` for ``flow_id``."""
        return await asyncio.to_thread(self._find_incomplete, flow_id, user_id)

    # Engine callbacks

    def callbacks(self, session_id: UUID) -> tuple[AnswerCallback, CompleteCallback]:
        """Build the ``on_answer``/``on_complete`` pair bound to one session record."""

        async def on_answer(step_id: str, shortcode: str | None, value: Any) -> None:
            await asyncio.to_thread(self._save_answer, session_id, step_id, shortcode, value)

        async def on_complete(outcome_id: str) -> None:
            await asyncio.to_thread(self._complete, session_id, outcome_id)

        return on_answer, on_complete

    def attach(self, flow: FlowDefinition, record: RecordedSession) -> FlowSession:
        """Create a fresh engine session wired to ``record``."""
        on_answer, on_complete = self.callbacks(record.id)
        return FlowSession(flow, on_answer=on_answer, on_complete=on_complete)

    async def resume(
        self, session_id: UUID, registry: FlowRegistry
    ) -> tuple[RecordedSession, FlowSession] | None:
        """Rebuild an engine session from the stored position and answers.

        Returns None for an unknown session id. Raises ``FlowRegistryError``
        when the recorded flow version is no longer registered.
        """
        record = await self.get(session_id)
        if record is None:
            return None

        flow = registry.get_flow_by_version(record.flow_id, record.flow_version)
        if flow is None:
            msg = f'Flow "{record.flow_id}" version {record.flow_version} is not registered'
            raise FlowRegistryError(msg)

        answers = await self.load_answers(session_id)
        position = record.outcome or record.current_step or flow.initial_step
        state = SessionState(
            flow_id=flow.id,
            flow_version=flow.version,
            current_step_id=position,
            answers=answers,
            history=replay_history(flow, answers, position),
            current_answer=answers.get(position),
        )
        on_answer, on_complete = self.callbacks(record.id)
        logger.debug(
            "Resumed session %s at %s with %d answers", session_id, position, len(answers)
        )
        return record, FlowSession.restore(
            flow, state, on_answer=on_answer, on_complete=on_complete
        )

    # Blocking helpers (worker thread)

    def _start(self, flow: FlowDefinition, user_id: str | None) -> RecordedSession:
        with self._scope() as db:
            record = repository.create_flow_session(
                db,
                flow_id=flow.id,
                flow_version=flow.version,
                initial_step=flow.initial_step,
                user_id=user_id,
            )
            return RecordedSession.from_record(record)

    def _get(self, session_id: UUID) -> RecordedSession | None:
        with self._scope() as db:
            record = repository.get_flow_session(db, session_id)
            return RecordedSession.from_record(record) if record else None

    def _load_answers(self, session_id: UUID) -> dict[str, Any]:
        with self._scope() as db:
            return {a.step_id: a.value for a in repository.list_answers(db, session_id)}

    def _save_answer(
        self, session_id: UUID, step_id: str, shortcode: str | None, value: Any
    ) -> None:
        with self._scope() as db:
            repository.save_answer(db, session_id, step_id, shortcode, value)
        logger.debug("Recorded answer session=%s step=%s", session_id, step_id)

    def _complete(self, session_id: UUID, outcome_id: str) -> None:
        with self._scope() as db:
            repository.complete_flow_session(db, session_id, outcome_id)

    def _record_position(self, session_id: UUID, step_id: str) -> None:
        with self._scope() as db:
            repository.update_current_step(db, session_id, step_id)

    def _abandon(self, session_id: UUID) -> RecordedSession | None:
        with self._scope() as db:
            record = repository.abandon_flow_session(db, session_id)
            return RecordedSession.from_record(record) if record else None

    def _find_incomplete(self, flow_id: str, user_id: str | None) -> RecordedSession | None:
        with self._scope() as db:
            record = repository.find_incomplete_session(db, flow_id, user_id)
            return RecordedSession.from_record(record) if record else None
