from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from quizflow import __version__
from quizflow.core.logging import RequestIdMiddleware, setup_logging
from quizflow.db.session import init_db
from quizflow.flow_core.registry import get_registry
from quizflow.router import api_router
from quizflow.settings import get_settings

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the flow registry up front so broken definitions fail at startup."""
    settings = get_settings()

    registry = get_registry()
    logger.info("Flow registry ready with %d flows", len(registry))

    if settings.development_mode:
        try:
            init_db()
            logger.info("Database tables ensured (create_all)")
        except Exception as e:
            logger.warning("Failed to create DB tables on startup: %s", e)

    yield

    logger.info("Application shutting down")


app = FastAPI(
    title="Quizflow API",
    version=__version__,
    description="Branching questionnaire flows with server-driven sessions",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Accept", "Content-Type", "X-Request-ID"],
)
app.add_middleware(RequestIdMiddleware)


@app.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    return "ok"


app.include_router(api_router)
