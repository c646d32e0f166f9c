from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..core.database import get_session_factory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/live", response_model=dict)
async def live() -> dict:
    return {"ok": True}


@router.get("/ready", response_model=dict)
async def ready() -> JSONResponse:
    session_factory = get_session_factory()
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Readiness check failed: %s", exc)
        return JSONResponse({"ok": False}, status_code=503)
    return JSONResponse({"ok": True})
