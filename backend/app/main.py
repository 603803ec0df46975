"""Crew Scheduler FastAPI Application.

Entry point for the backend server. Run with:
    uvicorn app.main:app --app-dir backend
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.health import router as health_router
from app.api.v1.auth import router as auth_router
from app.api.v1.engineers import router as engineers_router
from app.api.v1.tasks import router as tasks_router
from app.config import settings
from app.db.database import create_db_and_tables, engine
from app.errors import register_exception_handlers
from app.lifecycle.manager import TaskLifecycleManager
from app.lifecycle.scheduler import TaskStatusScheduler
from app.middleware.rate_limit import RateLimitMiddleware

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown.

    uvicorn turns SIGINT/SIGTERM into the shutdown half of this context,
    which is where the status sweep is stopped.
    """
    configure_logging()
    create_db_and_tables()

    lifecycle = TaskLifecycleManager(engine)
    scheduler = TaskStatusScheduler(
        manager=lifecycle,
        interval_minutes=settings.status_sweep_interval_minutes,
        enabled=settings.status_sweep_enabled,
    )
    app.state.task_lifecycle = lifecycle
    app.state.status_scheduler = scheduler
    await scheduler.start()

    yield

    await scheduler.stop()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Crew Scheduler",
    description="Engineer task assignment with double-booking checks",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (order matters: first added = innermost)
app.add_middleware(
    RateLimitMiddleware,
    global_rpm=settings.rate_limit_rpm,
    auth_rpm=settings.auth_rate_limit_rpm,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

register_exception_handlers(app)

# Routes
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(engineers_router)
app.include_router(tasks_router)


@app.get("/")
async def root():
    return {"name": "Crew Scheduler", "version": "0.1.0", "status": "running"}
