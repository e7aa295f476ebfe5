from __future__ import annotations

from fastapi import APIRouter

from quizflow.api.flows import router as flows_router
from quizflow.api.sessions import router as sessions_router

api_router = APIRouter(prefix="/api")

api_router.include_router(flows_router)
api_router.include_router(sessions_router)
