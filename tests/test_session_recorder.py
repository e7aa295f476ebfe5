from __future__ import annotations

import uuid
from collections.abc import Callable

import pytest

from quizflow.db.models import SessionRecordStatus
from quizflow.flow_core.errors import FlowRegistryError
from quizflow.flow_core.ir import FlowDefinition
from quizflow.flow_core.registry import FlowRegistry
from quizflow.flow_core.session import FlowSession
from quizflow.services.session_recorder import SessionRecorder, replay_history

FlowFactory = Callable[..., FlowDefinition]


async def _answer(session: FlowSession, value: object) -> None:
    session.set_current_answer(value)
    await session.submit_answer()


@pytest.mark.asyncio
async def test_start_creates_in_progress_record(
    recorder: SessionRecorder, weight_loss_flow: FlowDefinition
) -> None:
    record = await recorder.start(weight_loss_flow, user_id="user-1")

    assert record.flow_id == "weight-loss-onboarding"
    assert record.flow_version == "1.0.0"
    assert record.user_id == "user-1"
    assert record.current_step == "welcome"
    assert record.status is SessionRecordStatus.in_progress
    assert not record.is_finished
    assert record.outcome is None

    fetched = await recorder.get(record.id)
    assert fetched is not None
    assert fetched.id == record.id
    assert fetched.current_step == "welcome"


@pytest.mark.asyncio
async def test_unknown_session(
    recorder: SessionRecorder, bundled_registry: FlowRegistry
) -> None:
    missing = uuid.uuid4()
    assert await recorder.get(missing) is None
    assert await recorder.resume(missing, bundled_registry) is None
    assert await recorder.abandon(missing) is None
    assert await recorder.load_answers(missing) == {}


@pytest.mark.asyncio
async def test_callbacks_record_answers(
    recorder: SessionRecorder, weight_loss_flow: FlowDefinition
) -> None:
    record = await recorder.start(weight_loss_flow)
    session = recorder.attach(weight_loss_flow, record)

    await session.submit_answer()
    await _answer(session, 30)
    await _answer(session, "female")

    assert await recorder.load_answers(record.id) == {"age": 30, "sex": "female"}
    stored = await recorder.get(record.id)
    assert stored is not None
    # The answer callback moves the stored position to the answered step
    assert stored.current_step == "sex"

    await recorder.record_position(record.id, session.current_step_id)
    stored = await recorder.get(record.id)
    assert stored is not None and stored.current_step == "pregnancy"


@pytest.mark.asyncio
async def test_resume_rebuilds_position_and_history(
    recorder: SessionRecorder,
    weight_loss_flow: FlowDefinition,
    bundled_registry: FlowRegistry,
) -> None:
    record = await recorder.start(weight_loss_flow)
    session = recorder.attach(weight_loss_flow, record)
    await session.submit_answer()
    await _answer(session, 30)
    await _answer(session, "female")
    await recorder.record_position(record.id, session.current_step_id)

    loaded = await recorder.resume(record.id, bundled_registry)
    assert loaded is not None
    _, resumed = loaded
    assert resumed.flow.version == "1.0.0"
    assert resumed.current_step_id == "pregnancy"
    assert resumed.history == ["welcome", "age", "sex", "pregnancy"]
    assert resumed.answers == {"age": 30, "sex": "female"}
    assert resumed.can_go_back

    resumed.go_back()
    assert resumed.current_answer == "female"

    # The resumed session keeps recording through the same record
    await _answer(resumed, "male")
    assert (await recorder.load_answers(record.id))["sex"] == "male"


@pytest.mark.asyncio
async def test_later_answer_wins(
    recorder: SessionRecorder,
    weight_loss_flow: FlowDefinition,
    bundled_registry: FlowRegistry,
) -> None:
    record = await recorder.start(weight_loss_flow)
    session = recorder.attach(weight_loss_flow, record)
    await session.submit_answer()
    await _answer(session, 30)
    await _answer(session, "male")
    session.go_back()
    await _answer(session, "female")
    await recorder.record_position(record.id, session.current_step_id)

    loaded = await recorder.resume(record.id, bundled_registry)
    assert loaded is not None
    assert loaded[1].answers["sex"] == "female"
    assert loaded[1].current_step_id == "pregnancy"


@pytest.mark.asyncio
async def test_completion_is_recorded(
    recorder: SessionRecorder,
    weight_loss_flow: FlowDefinition,
    bundled_registry: FlowRegistry,
) -> None:
    record = await recorder.start(weight_loss_flow, user_id="user-2")
    session = recorder.attach(weight_loss_flow, record)
    await session.submit_answer()
    await _answer(session, 15)

    stored = await recorder.get(record.id)
    assert stored is not None
    assert stored.status is SessionRecordStatus.completed
    assert stored.outcome == "outcome:ineligible-age"
    assert stored.current_step == "outcome:ineligible-age"
    assert stored.completed_at is not None
    assert stored.is_finished

    loaded = await recorder.resume(record.id, bundled_registry)
    assert loaded is not None
    assert loaded[1].is_outcome
    assert loaded[1].history == ["welcome", "age", "outcome:ineligible-age"]

    assert await recorder.find_incomplete(weight_loss_flow.id, "user-2") is None


@pytest.mark.asyncio
async def test_abandon(recorder: SessionRecorder, weight_loss_flow: FlowDefinition) -> None:
    record = await recorder.start(weight_loss_flow)
    abandoned = await recorder.abandon(record.id)
    assert abandoned is not None
    assert abandoned.status is SessionRecordStatus.abandoned

    finished = await recorder.start(weight_loss_flow)
    session = recorder.attach(weight_loss_flow, finished)
    await session.submit_answer()
    await _answer(session, 10)
    still_completed = await recorder.abandon(finished.id)
    assert still_completed is not None
    assert still_completed.status is SessionRecordStatus.completed


@pytest.mark.asyncio
async def test_find_incomplete(recorder: SessionRecorder, weight_loss_flow: FlowDefinition) -> None:
    await recorder.start(weight_loss_flow, user_id="user-3")
    latest = await recorder.start(weight_loss_flow, user_id="user-3")
    await recorder.start(weight_loss_flow, user_id="someone-else")

    found = await recorder.find_incomplete(weight_loss_flow.id, "user-3")
    assert found is not None and found.id == latest.id

    assert await recorder.find_incomplete(weight_loss_flow.id, None) is None
    assert await recorder.find_incomplete("skin-consult", "user-3") is None

    await recorder.abandon(latest.id)
    older = await recorder.find_incomplete(weight_loss_flow.id, "user-3")
    assert older is not None and older.id != latest.id


@pytest.mark.asyncio
async def test_resume_requires_registered_version(
    recorder: SessionRecorder,
    flow_factory: FlowFactory,
    bundled_registry: FlowRegistry,
) -> None:
    flow = flow_factory([{"id": "a", "kind": "text", "question": "a?", "next": ""}])
    record = await recorder.start(flow)
    with pytest.raises(FlowRegistryError, match="is not registered"):
        await recorder.resume(record.id, bundled_registry)


def test_replay_history_follows_stored_answers(weight_loss_flow: FlowDefinition) -> None:
    answers = {"age": 40, "sex": "male", "weight": 80}
    assert replay_history(weight_loss_flow, answers, "height") == [
        "welcome",
        "age",
        "sex",
        "weight",
        "height",
    ]


def test_replay_history_stops_at_first_gap(weight_loss_flow: FlowDefinition) -> None:
    # Position is not on the path the answers describe
    history = replay_history(weight_loss_flow, {"age": 40}, "height")
    assert history == ["welcome", "age", "sex", "height"]


def test_replay_history_at_initial_step(weight_loss_flow: FlowDefinition) -> None:
    assert replay_history(weight_loss_flow, {}, "welcome") == ["welcome"]
