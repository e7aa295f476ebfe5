"""Session state with serialization for hand-off to stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any


class SessionStatus(str, Enum):
    """Where a session is positioned."""

    ANSWERING = "answering"
    OUTCOME_REACHED = "outcome_reached"
    STEP_NOT_FOUND = "step_not_found"


@dataclass(slots=True, frozen=True)
class Progress:
    current: int
    total: int
    percentage: int


@dataclass(slots=True)
class SessionState:
    """Mutable state owned by a single :class:`FlowSession`."""

    flow_id: str
    flow_version: str
    current_step_id: str
    answers: dict[str, Any] = field(default_factory=dict)
    history: list[str] = field(default_factory=list)
    current_answer: Any = None
    validation_error: str | None = None
    is_submitting: bool = False
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def touch(self) -> None:
        self.updated_at = datetime.now(UTC)

    def copy(self) -> SessionState:
        return SessionState(
            flow_id=self.flow_id,
            flow_version=self.flow_version,
            current_step_id=self.current_step_id,
            answers=dict(self.answers),
            history=list(self.history),
            current_answer=self.current_answer,
            validation_error=self.validation_error,
            is_submitting=self.is_submitting,
            updated_at=self.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for persistence."""
        return {
            "flow_id": self.flow_id,
            "flow_version": self.flow_version,
            "current_step_id": self.current_step_id,
            "answers": dict(self.answers),
            "history": list(self.history),
            "current_answer": self.current_answer,
            "validation_error": self.validation_error,
            "updated_at": self.updated_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionState:
        """Deserialize from dict."""
        current = data["current_step_id"]
        state = cls(
            flow_id=data["flow_id"],
            flow_version=data["flow_version"],
            current_step_id=current,
            answers=dict(data.get("answers", {})),
            history=list(data.get("history") or [current]),
            current_answer=data.get("current_answer"),
            validation_error=data.get("validation_error"),
        )
        if data.get("updated_at"):
            state.updated_at = datetime.fromisoformat(data["updated_at"])
        return state
