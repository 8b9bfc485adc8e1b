"""
Health check endpoint.

Used by container health checks, load balancers and uptime monitors. Always
answers 200 so a slow or unreachable database degrades the status instead of
taking the instance out of rotation.
"""

import os
import time
from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from tilldesk.core.db import get_db

router = APIRouter(tags=["health"])

# Set by the application lifespan
_app_start_time: datetime | None = None


def set_app_start_time(start_time: datetime) -> None:
    global _app_start_time
    _app_start_time = start_time


def get_uptime_seconds() -> int:
    """Whole seconds since startup (0 before the lifespan has run)."""
    if _app_start_time is None:
        return 0
    return int((datetime.now() - _app_start_time).total_seconds())


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)


async def check_database(db: AsyncSession) -> dict[str, Any]:
    """Run ``SELECT 1``; report ok/down with the round-trip time."""
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        return {"status": "down", "response_time_ms": _elapsed_ms(started), "error": type(e).__name__}
    return {"status": "ok", "response_time_ms": _elapsed_ms(started)}


@router.get("/health", summary="Health check")
async def health_check(db: AsyncSession = Depends(get_db)) -> JSONResponse:
    """
    Example response:
        {
            "status": "ok",
            "environment": "production",
            "uptime_seconds": 3600,
            "checks": {"database": {"status": "ok", "response_time_ms": 5}}
        }
    """
    checks = {"database": await check_database(db)}
    healthy = all(check["status"] == "ok" for check in checks.values())

    return JSONResponse(
        content={
            "status": "ok" if healthy else "degraded",
            "environment": os.getenv("ENVIRONMENT", "development"),
            "uptime_seconds": get_uptime_seconds(),
            "checks": checks,
        }
    )
