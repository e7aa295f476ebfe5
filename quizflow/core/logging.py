"""Application logging configuration and middleware.

This module sets up a structured logging configuration using
``logging.config.dictConfig`` and exposes a FastAPI middleware that injects
request IDs into all log records. Flow session IDs are carried the same way so
engine logs can be correlated with a single user traversal. Log output uses
key-value formatting to facilitate downstream parsing.
"""

from __future__ import annotations

import logging
import logging.config
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware  # type: ignore[import-not-found]

from quizflow.settings import get_settings

# ---------------------------------------------------------------------------
# Context variables propagated to log records
# ---------------------------------------------------------------------------
request_id_ctx_var: ContextVar[str | None] = ContextVar("request_id", default=None)
session_id_ctx_var: ContextVar[str | None] = ContextVar("flow_session_id", default=None)


class RequestIdFilter(logging.Filter):
    """Inject the request and flow session IDs from contextvars into log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # pragma: no cover - small
        record.request_id = request_id_ctx_var.get() or "-"
        record.session_id = session_id_ctx_var.get() or "-"
        return True


def _build_config(log_level: str) -> dict[str, Any]:
    """Build logging configuration dictionary."""

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {"request_id": {"()": RequestIdFilter}},
        "formatters": {
            "kv": {
                "format": (
                    "level=%(levelname)s logger=%(name)s request_id=%(request_id)s "
                    "session_id=%(session_id)s message=%(message)s"
                )
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "kv",
                "filters": ["request_id"],
                "level": log_level,
            }
        },
        "root": {"handlers": ["default"], "level": log_level},
    }


def setup_logging(log_level: str | None = None) -> None:
    """Configure root logging using key-value formatting.

    The level defaults to the ``LOG_LEVEL`` setting.
    """

    level = (log_level or get_settings().log_level).upper()
    logging.config.dictConfig(_build_config(level))


@contextmanager
def bind_session_id(session_id: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with a flow session ID."""
    token = session_id_ctx_var.set(session_id)
    try:
        yield
    finally:
        session_id_ctx_var.reset(token)


# ---------------------------------------------------------------------------
# FastAPI middleware for request ID injection
# ---------------------------------------------------------------------------
class RequestIdMiddleware(BaseHTTPMiddleware):
    """Populate a unique request ID for each incoming HTTP request.

    The middleware uses the ``X-Request-ID`` header if provided, otherwise a
    new UUID4 value is generated. The request ID is stored in a ContextVar so it
    can be included in every log record via ``RequestIdFilter``. The ID is also
    echoed back to clients in the ``X-Request-ID`` response header.
    """

    async def dispatch(self, request: Request, call_next):  # type: ignore[no-untyped-def]
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        token = request_id_ctx_var.set(request_id)
        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            request_id_ctx_var.reset(token)


__all__ = [
    "RequestIdMiddleware",
    "bind_session_id",
    "request_id_ctx_var",
    "session_id_ctx_var",
    "setup_logging",
]
