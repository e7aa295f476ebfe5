"""Session and answer records written by the persistence collaborator.

Answers are replayed in creation order to resume a session; a later answer
for the same step overrides an earlier one.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Uuid, func
from sqlalchemy import Enum as SAEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship
from uuid_v7.base import uuid7

from quizflow.db.base import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONValue = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(UTC)


# --- Enumerations


class SessionRecordStatus(str, Enum):
    in_progress = "in_progress"
    completed = "completed"
    abandoned = "abandoned"


# --- Entities


class TimestampMixin:
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        server_default=func.now(),
        onupdate=_utcnow,
    )


class FlowSessionRecord(Base, TimestampMixin):
    """One user's traversal of a specific flow version."""

    __tablename__ = "flow_sessions"
    __table_args__ = (Index("ix_flow_sessions_flow_user_status", "flow_id", "user_id", "status"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
    flow_id: Mapped[str] = mapped_column(String(200), nullable=False)
    flow_version: Mapped[str] = mapped_column(String(50), nullable=False)
    user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    current_step: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[SessionRecordStatus] = mapped_column(
        SAEnum(SessionRecordStatus, name="flow_session_status"),
        nullable=False,
        default=SessionRecordStatus.in_progress,
    )
    outcome: Mapped[str | None] = mapped_column(String(255), nullable=True)
    started_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    answers: Mapped[list[FlowAnswerRecord]] = relationship(
        back_populates="session",
        cascade="all, delete-orphan",
        order_by="FlowAnswerRecord.created_at",
    )


class FlowAnswerRecord(Base):
    """A committed answer; one row per submission."""

    __tablename__ = "flow_answers"
    __table_args__ = (Index("ix_flow_answers_session_created", "session_id", "created_at"),)

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid7)
    session_id: Mapped[UUID] = mapped_column(
        ForeignKey("flow_sessions.id", ondelete="CASCADE"), nullable=False
    )
    step_id: Mapped[str] = mapped_column(String(255), nullable=False)
    shortcode: Mapped[str | None] = mapped_column(String(255), nullable=True)
    value: Mapped[Any] = mapped_column(JSONValue, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, server_default=func.now()
    )

    session: Mapped[FlowSessionRecord] = relationship(back_populates="answers")
