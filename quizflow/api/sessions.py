from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from quizflow.api.flows import get_flow_registry
from quizflow.core.logging import bind_session_id
from quizflow.flow_core.errors import FlowRegistryError, ResolutionError
from quizflow.flow_core.ir import Outcome, Step
from quizflow.flow_core.registry import FlowRegistry
from quizflow.flow_core.session import FlowSession
from quizflow.services.session_recorder import RecordedSession, SessionRecorder

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


@lru_cache(maxsize=1)
def get_session_recorder() -> SessionRecorder:
    return SessionRecorder()


class StartSessionRequest(BaseModel):
    flow_id: str
    version: str | None = None
    user_id: str | None = None
    # Continue the user's most recent in-progress session for this flow
    resume: bool = True


class SubmitAnswerRequest(BaseModel):
    value: Any = None


class ProgressResponse(BaseModel):
    current: int
    total: int
    percentage: int


class SessionResponse(BaseModel):
    id: UUID
    flow_id: str
    flow_version: str
    user_id: str | None = None
    status: str
    current_step_id: str
    current_step: Step | None = None
    current_answer: Any = None
    outcome_id: str | None = None
    outcome: Outcome | None = None
    answers: dict[str, Any] = Field(default_factory=dict)
    history: list[str] = Field(default_factory=list)
    can_go_back: bool = False
    progress: ProgressResponse
    validation_error: str | None = None


def _to_response(record: RecordedSession, session: FlowSession) -> SessionResponse:
    progress = session.progress
    return SessionResponse(
        id=record.id,
        flow_id=record.flow_id,
        flow_version=record.flow_version,
        user_id=record.user_id,
        status=record.status.value,
        current_step_id=session.current_step_id,
        current_step=session.current_step,
        current_answer=session.current_answer,
        outcome_id=session.current_step_id if session.is_outcome else None,
        outcome=session.outcome,
        answers=session.answers,
        history=session.history,
        can_go_back=session.can_go_back and not record.is_finished,
        progress=ProgressResponse(
            current=progress.current, total=progress.total, percentage=progress.percentage
        ),
        validation_error=session.validation_error,
    )


async def _load(
    session_id: UUID, recorder: SessionRecorder, registry: FlowRegistry
) -> tuple[RecordedSession, FlowSession]:
    try:
        loaded = await recorder.resume(session_id, registry)
    except FlowRegistryError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e
    if loaded is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    return loaded


def _require_open(record: RecordedSession) -> None:
    if record.is_finished:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Session {record.id} is {record.status.value}",
        )


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    body: StartSessionRequest,
    registry: FlowRegistry = Depends(get_flow_registry),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> SessionResponse:
    """Start a session, or continue the user's unfinished one for the same flow."""
    if body.version:
        flow = registry.get_flow_by_version(body.flow_id, body.version)
    else:
        flow = registry.get_flow(body.flow_id)
    if flow is None:
        raise HTTPException(status_code=404, detail=f"Flow not found: {body.flow_id}")

    if body.resume and body.user_id:
        existing = await recorder.find_incomplete(flow.id, body.user_id)
        if existing is not None and existing.flow_version == flow.version:
            logger.info("Resuming session %s for user %s", existing.id, body.user_id)
            record, session = await _load(existing.id, recorder, registry)
            return _to_response(record, session)

    record = await recorder.start(flow, body.user_id)
    return _to_response(record, recorder.attach(flow, record))


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(
    session_id: UUID,
    registry: FlowRegistry = Depends(get_flow_registry),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> SessionResponse:
    record, session = await _load(session_id, recorder, registry)
    return _to_response(record, session)


@router.post("/{session_id}/answers", response_model=SessionResponse)
async def submit_answer(
    session_id: UUID,
    body: SubmitAnswerRequest,
    registry: FlowRegistry = Depends(get_flow_registry),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> SessionResponse:
    """Set the answer for the current step and submit it.

    Invalid answers are reported through ``validation_error`` with a 200.
    """
    with bind_session_id(str(session_id)):
        record, session = await _load(session_id, recorder, registry)
        _require_open(record)

        session.set_current_answer(body.value)
        try:
            result = await session.submit_answer()
        except ResolutionError as e:
            logger.exception(
                "Flow %s v%s cannot resolve next step", record.flow_id, record.flow_version
            )
            raise HTTPException(status_code=500, detail=str(e)) from e

        if result.kind == "advanced":
            await recorder.record_position(session_id, session.current_step_id)
        elif result.kind == "completed":
            record = await recorder.get(session_id) or record
        logger.info("Submitted step=%s result=%s", result.step_id, result.kind)
        return _to_response(record, session)


@router.post("/{session_id}/back", response_model=SessionResponse)
async def go_back(
    session_id: UUID,
    registry: FlowRegistry = Depends(get_flow_registry),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> SessionResponse:
    with bind_session_id(str(session_id)):
        record, session = await _load(session_id, recorder, registry)
        _require_open(record)
        if session.can_go_back:
            session.go_back()
            await recorder.record_position(session_id, session.current_step_id)
        return _to_response(record, session)


@router.post("/{session_id}/abandon", response_model=SessionResponse)
async def abandon_session(
    session_id: UUID,
    registry: FlowRegistry = Depends(get_flow_registry),
    recorder: SessionRecorder = Depends(get_session_recorder),
) -> SessionResponse:
    with bind_session_id(str(session_id)):
        record, session = await _load(session_id, recorder, registry)
        _require_open(record)
        record = await recorder.abandon(session_id) or record
        logger.info("Abandoned session at step %s", session.current_step_id)
        return _to_response(record, session)
