from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from quizflow.db import models  # noqa: F401 - registers tables on Base.metadata
from quizflow.db.base import Base
from quizflow.settings import get_settings

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _engine() -> Engine:
    settings = get_settings()
    url = settings.sqlalchemy_database_url

    if url.startswith("sqlite"):
        return create_engine(url, future=True, echo=settings.development_mode)

    return create_engine(
        url,
        pool_pre_ping=True,
        future=True,
        pool_size=10,
        max_overflow=20,
        pool_recycle=3600,  # Recycle connections every hour
        pool_timeout=30,
        echo=settings.development_mode,
        connect_args={
            "connect_timeout": 10,
            "application_name": "quizflow",
        },
    )


@lru_cache(maxsize=1)
def _session_factory() -> sessionmaker[Session]:
    return sessionmaker(bind=_engine(), autoflush=False, autocommit=False, future=True)


def init_db(engine: Engine | None = None) -> None:
    """Create the session/answer tables if they do not exist."""
    Base.metadata.create_all(engine or _engine())


@contextmanager
def db_transaction() -> Iterator[Session]:
    """
    Context manager for database transactions with automatic commit/rollback.

    Automatically commits on success, rolls back on exception.

    Usage:
        with db_transaction() as session:
            repository.save_answer(session, session_id, "age", "patient_age", 42)
    """
    session = _session_factory()()
    try:
        yield session
        session.commit()
        logger.debug("Database transaction committed successfully")
    except Exception as e:
        logger.warning("Database transaction failed, rolling back: %s", e)
        session.rollback()
        raise
    finally:
        session.close()
