"""Health check endpoint: liveness plus database and sweep scheduler status."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Request
from pydantic import BaseModel
from sqlalchemy import text

from app.db.database import engine

router = APIRouter()

VERSION = "0.1.0"


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    version: str
    checks: dict[str, dict]
    timestamp: datetime


def _database_check() -> dict:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        return {"status": "error", "detail": str(e)[:200]}
    return {"status": "ok", "detail": engine.dialect.name}


def _sweep_check(request: Request) -> dict:
    scheduler = getattr(request.app.state, "status_scheduler", None)
    if scheduler is None:
        return {"status": "warning", "detail": "scheduler not initialized"}
    sweep = scheduler.get_status()
    if not sweep["enabled"]:
        state = "disabled"
    else:
        state = "ok" if sweep["running"] else "warning"
    return {"status": state, **sweep}


@router.get("/health", response_model=HealthStatus)
async def health_check(request: Request) -> HealthStatus:
    """Report whether the store answers and the status sweep is scheduled."""
    checks = {
        "database": _database_check(),
        "status_sweep": _sweep_check(request),
    }
    states = {c["status"] for c in checks.values()}
    if "error" in states:
        status = "unhealthy"
    elif "warning" in states:
        status = "degraded"
    else:
        status = "healthy"

    return HealthStatus(
        status=status,
        version=VERSION,
        checks=checks,
        timestamp=datetime.now(timezone.utc),
    )
