from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import Any

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from quizflow.api.flows import get_flow_registry
from quizflow.api.sessions import get_session_recorder
from quizflow.db import models  # noqa: F401 - registers tables on Base.metadata
from quizflow.db.base import Base
from quizflow.flow_core.ir import FlowDefinition
from quizflow.flow_core.registry import FlowRegistry, default_definitions_dir, load_flow_file
from quizflow.services.session_recorder import SessionRecorder

FlowFactory = Callable[..., FlowDefinition]


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: Fast unit tests without database or HTTP")


@pytest.fixture
def flow_factory() -> FlowFactory:
    """Build a FlowDefinition from plain step dicts (no structural validation)."""

    def _build(
        steps: list[dict[str, Any]],
        outcomes: dict[str, Any] | None = None,
        initial_step: str | None = None,
        flow_id: str = "test-flow",
        version: str = "1.0.0",
    ) -> FlowDefinition:
        return FlowDefinition.model_validate(
            {
                "id": flow_id,
                "name": "Test Flow",
                "version": version,
                "steps": steps,
                "outcomes": outcomes if outcomes is not None else {},
                "initial_step": initial_step or steps[0]["id"],
            }
        )

    return _build


@pytest.fixture
def weight_loss_flow() -> FlowDefinition:
    return load_flow_file(default_definitions_dir() / "weight-loss-onboarding" / "v1.0.0.json")


@pytest.fixture
def weight_loss_flow_v12() -> FlowDefinition:
    return load_flow_file(default_definitions_dir() / "weight-loss-onboarding" / "v1.2.0.json")


@pytest.fixture
def bundled_registry() -> FlowRegistry:
    return FlowRegistry.from_directory(default_definitions_dir())


@pytest.fixture
def db_scope() -> Iterator[Callable[[], Any]]:
    """Transactional session scope bound to a private in-memory SQLite database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        future=True,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, future=True)

    @contextmanager
    def _scope() -> Iterator[Session]:
        session = factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    yield _scope
    engine.dispose()


@pytest.fixture
def recorder(db_scope: Callable[[], Any]) -> SessionRecorder:
    return SessionRecorder(scope=db_scope)


@pytest.fixture
def client(bundled_registry: FlowRegistry, recorder: SessionRecorder) -> Iterator[TestClient]:
    from quizflow.main import app

    app.dependency_overrides[get_flow_registry] = lambda: bundled_registry
    app.dependency_overrides[get_session_recorder] = lambda: recorder
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
