from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from quizflow.db.models import FlowAnswerRecord, FlowSessionRecord, SessionRecordStatus

logger = logging.getLogger(__name__)


def create_flow_session(
    session: Session,
    *,
    flow_id: str,
    flow_version: str,
    initial_step: str,
    user_id: str | None = None,
) -> FlowSessionRecord:
    record = FlowSessionRecord(
        flow_id=flow_id,
        flow_version=flow_version,
        user_id=user_id,
        current_step=initial_step,
        status=SessionRecordStatus.in_progress,
    )
    session.add(record)
    session.flush()
    logger.info("Created flow session %s for %s v%s", record.id, flow_id, flow_version)
    return record


def get_flow_session(session: Session, session_id: UUID) -> FlowSessionRecord | None:
    return session.get(FlowSessionRecord, session_id)


def list_answers(session: Session, session_id: UUID) -> Sequence[FlowAnswerRecord]:
    """Answers of a session ordered by creation time for replay."""
    return (
        session.execute(
            select(FlowAnswerRecord)
            .where(FlowAnswerRecord.session_id == session_id)
            .order_by(FlowAnswerRecord.created_at.asc(), FlowAnswerRecord.id.asc())
        )
        .scalars()
        .all()
    )


def save_answer(
    session: Session,
    session_id: UUID,
    step_id: str,
    shortcode: str | None,
    value: Any,
) -> FlowAnswerRecord:
    """Append an answer row and move the session's current step to ``step_id``."""
    answer = FlowAnswerRecord(
        session_id=session_id,
        step_id=step_id,
        shortcode=shortcode,
        value=value,
    )
    session.add(answer)

    record = session.get(FlowSessionRecord, session_id)
    if record is not None:
        record.current_step = step_id
    session.flush()
    return answer


def update_current_step(session: Session, session_id: UUID, step_id: str) -> None:
    record = session.get(FlowSessionRecord, session_id)
    if record is not None and record.current_step != step_id:
        record.current_step = step_id
        session.flush()


def complete_flow_session(
    session: Session, session_id: UUID, outcome: str
) -> FlowSessionRecord | None:
    """Mark a session as completed with an outcome."""
    record = session.get(FlowSessionRecord, session_id)
    if record is None:
        return None
    record.status = SessionRecordStatus.completed
    record.outcome = outcome
    record.current_step = outcome
    record.completed_at = datetime.now(UTC)
    session.flush()
    logger.info("Completed flow session %s with %s", session_id, outcome)
    return record


def abandon_flow_session(session: Session, session_id: UUID) -> FlowSessionRecord | None:
    record = session.get(FlowSessionRecord, session_id)
    if record is None:
        return None
    if record.status == SessionRecordStatus.in_progress:
        record.status = SessionRecordStatus.abandoned
        session.flush()
    return record


def find_incomplete_session(
    session: Session, flow_id: str, user_id: str | None
) -> FlowSessionRecord | None:
    """Find the most recent in-progress session of a user for a flow."""
    if not user_id:
        return None
    return session.execute(
        select(FlowSessionRecord)
        .where(
            FlowSessionRecord.flow_id == flow_id,
            FlowSessionRecord.user_id == user_id,
            FlowSessionRecord.status == SessionRecordStatus.in_progress,
        )
        .order_by(FlowSessionRecord.started_at.desc())
        .limit(1)
    ).scalar_one_or_none()
