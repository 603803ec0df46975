"""Domain errors and the JSON error envelope.

Every error response carries an ``error`` message string. Validation
failures add ``details``; booking conflicts add ``conflicts``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from app.engines.availability import ConflictEntry

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 400

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_content(self) -> dict:
        return {"error": self.message}


class TaskValidationError(SchedulingError):
    status_code = 400


class TaskNotFoundError(SchedulingError):
    status_code = 404

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task not found: {task_id}")


class UserNotFoundError(SchedulingError):
    status_code = 404

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(f"User not found: {user_id}")


class CompletedTaskError(SchedulingError):
    """Edit or delete attempted on a COMPLETED (read-only) task."""

    status_code = 400


class DuplicateUsernameError(SchedulingError):
    status_code = 400

    def __init__(self, username: str) -> None:
        self.username = username
        super().__init__("Username already exists")


class EngineerConflictError(SchedulingError):
    """Requested engineers are already booked for an overlapping slot."""

    status_code = 409

    def __init__(self, conflicts: list[ConflictEntry]) -> None:
        self.conflicts = conflicts
        projects = sorted({c.project for c in conflicts})
        super().__init__(
            "One or more engineers are already assigned to overlapping tasks: "
            + ", ".join(projects)
        )

    def to_content(self) -> dict:
        return {
            "error": self.message,
            "conflicts": [c.model_dump(mode="json", by_alias=True) for c in self.conflicts],
        }


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_content())


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Validation failed", "details": jsonable_encoder(exc.errors())},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
