"""Task API endpoints: task write path + status sweep trigger.

POST   /api/v1/tasks: create task (manager); 409 on engineer conflict
GET    /api/v1/tasks: list tasks (optional ?status= filter), newest first
GET    /api/v1/tasks/my-tasks: tasks the caller is assigned to
PUT    /api/v1/tasks/update-statuses: run the completion sweep now
GET    /api/v1/tasks/{id}: single task
PUT    /api/v1/tasks/{id}: update task (manager); COMPLETED tasks are read-only
DELETE /api/v1/tasks/{id}: delete task (manager); COMPLETED tasks are kept

Availability is checked against ACTIVE tasks only. The check and the write
are separate statements with no lock between them.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlmodel import Session, select

from app.api.deps import (
    CurrentUser,
    builtin_admin,
    get_current_user,
    get_task_lifecycle,
    require_manager,
)
from app.config import settings
from app.db.database import get_session
from app.engines.availability import ExistingTask, check_availability, without_task
from app.engines.intervals import Interval, utcnow
from app.errors import (
    CompletedTaskError,
    EngineerConflictError,
    TaskNotFoundError,
    TaskValidationError,
)
from app.lifecycle.manager import ACTIVE, COMPLETED, TaskLifecycleManager
from app.models.task import RequestedTimeSlot, Task, TaskPriority, TaskStatus, TimeSlot
from app.models.user import User
from app.models.wire import CamelModel

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/tasks", tags=["tasks"])

_STATUS_PATTERN = r"^(ACTIVE|COMPLETED)$"


# === Request / Response Models ===


class CreateTaskRequest(CamelModel):
    project: str = Field(min_length=1, max_length=200)
    time_slots: list[RequestedTimeSlot] = Field(min_length=1)
    assigned_to: list[str] = Field(default_factory=list)
    contact_no: str = Field(min_length=1, max_length=50)
    priority: TaskPriority = "NORMAL"
    remarks: str = Field(default="", max_length=2000)


class UpdateTaskRequest(CamelModel):
    """All fields optional; omitted fields keep their stored value."""

    project: str | None = Field(default=None, min_length=1, max_length=200)
    time_slots: list[RequestedTimeSlot] | None = Field(default=None, min_length=1)
    assigned_to: list[str] | None = None
    contact_no: str | None = Field(default=None, min_length=1, max_length=50)
    priority: TaskPriority | None = None
    remarks: str | None = Field(default=None, max_length=2000)


class UserSummary(CamelModel):
    id: str
    name: str
    username: str


class TaskResponse(CamelModel):
    id: str
    project: str
    time_slots: list[TimeSlot]
    assigned_to: list[str]
    contact_no: str
    priority: TaskPriority
    remarks: str
    status: TaskStatus
    created_by_id: str
    created_at: datetime
    updated_at: datetime
    created_by: UserSummary | None = None
    assigned_users: list[UserSummary] = Field(default_factory=list)


class StatusSweepResponse(CamelModel):
    updated: int
    message: str


# === Helpers ===


def _summaries(session: Session, user_ids: set[str]) -> dict[str, UserSummary]:
    found: dict[str, UserSummary] = {}
    if user_ids:
        users = session.exec(select(User).where(User.id.in_(user_ids))).all()
        found = {u.id: UserSummary(id=u.id, name=u.name, username=u.username) for u in users}
    admin = builtin_admin()
    if admin.id in user_ids and admin.id not in found:
        found[admin.id] = UserSummary(id=admin.id, name=admin.name, username=admin.username)
    return found


def _enrich(session: Session, tasks: Sequence[Task]) -> list[TaskResponse]:
    """Attach creator and assigned-user records (unknown ids are skipped)."""
    wanted: set[str] = set()
    for task in tasks:
        wanted.update(task.assigned_to or ())
        wanted.add(task.created_by_id)
    users = _summaries(session, wanted)

    return [
        TaskResponse(
            id=task.id,
            project=task.project,
            time_slots=task.slots(),
            assigned_to=list(task.assigned_to or ()),
            contact_no=task.contact_no,
            priority=task.priority,
            remarks=task.remarks,
            status=task.status,
            created_by_id=task.created_by_id,
            created_at=task.created_at,
            updated_at=task.updated_at,
            created_by=users.get(task.created_by_id),
            assigned_users=[users[uid] for uid in task.assigned_to or () if uid in users],
        )
        for task in tasks
    ]


def _get_task(session: Session, task_id: str) -> Task:
    task = session.get(Task, task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


def _validate_engineers(session: Session, engineer_ids: Sequence[str]) -> list[str]:
    """De-duplicate ids and require each to be an existing ENGINEER."""
    unique = list(dict.fromkeys(engineer_ids))
    if not unique:
        return unique
    found = session.exec(
        select(User.id).where(User.id.in_(unique), User.role == "ENGINEER")
    ).all()
    if len(set(found)) != len(unique):
        raise TaskValidationError("One or more assigned users not found or not engineers")
    return unique


def _reject_past_starts(slots: Sequence[TimeSlot], now: datetime) -> None:
    if settings.allow_past_time_slots:
        return
    if any(slot.start_date_time < now for slot in slots):
        raise TaskValidationError("Start time cannot be in the past")


def _ensure_available(
    session: Session,
    engineer_ids: Sequence[str],
    slots: Sequence[Interval],
    editing_task_id: str | None = None,
) -> None:
    """Raise EngineerConflictError if any engineer is booked on an ACTIVE task."""
    if not engineer_ids:
        return
    active = session.exec(select(Task).where(Task.status == ACTIVE)).all()
    result = check_availability(engineer_ids, slots, [ExistingTask.from_task(t) for t in active])
    if editing_task_id is not None:
        result = without_task(result, editing_task_id)
    if not result.available:
        logger.info(
            "Booking conflict for engineers %s with tasks %s",
            sorted(result.busy_engineer_ids()),
            result.conflicting_task_ids(),
        )
        raise EngineerConflictError(result.conflicts)


# === Endpoints ===


@router.post("", response_model=TaskResponse, status_code=201)
async def create_task(
    req: CreateTaskRequest,
    session: Session = Depends(get_session),
    caller: CurrentUser = Depends(require_manager),
    lifecycle: TaskLifecycleManager = Depends(get_task_lifecycle),
) -> TaskResponse:
    """Create a task after the availability check; status comes from its slots."""
    now = utcnow()
    _reject_past_starts(req.time_slots, now)
    assigned = _validate_engineers(session, req.assigned_to)
    intervals = [slot.as_interval() for slot in req.time_slots]
    _ensure_available(session, assigned, intervals)

    task = Task(
        project=req.project,
        time_slots=[slot.to_record() for slot in req.time_slots],
        assigned_to=assigned,
        contact_no=req.contact_no,
        priority=req.priority,
        remarks=req.remarks,
        status=lifecycle.initial_status(intervals, now),
        created_by_id=caller.id,
        created_at=now,
        updated_at=now,
    )
    session.add(task)
    session.commit()
    session.refresh(task)
    logger.info("Created task %s (%s) with status %s", task.id, task.project, task.status)
    return _enrich(session, [task])[0]


@router.get("", response_model=list[TaskResponse])
async def list_tasks(
    status: str | None = Query(default=None, pattern=_STATUS_PATTERN),
    session: Session = Depends(get_session),
    _caller: CurrentUser = Depends(get_current_user),
) -> list[TaskResponse]:
    """List all tasks, optionally filtered by status."""
    stmt = select(Task)
    if status:
        stmt = stmt.where(Task.status == status)
    tasks = session.exec(stmt.order_by(Task.created_at.desc())).all()
    return _enrich(session, tasks)


@router.get("/my-tasks", response_model=list[TaskResponse])
async def list_my_tasks(
    status: str | None = Query(default=None, pattern=_STATUS_PATTERN),
    session: Session = Depends(get_session),
    caller: CurrentUser = Depends(get_current_user),
) -> list[TaskResponse]:
    """List tasks the caller is assigned to."""
    stmt = select(Task)
    if status:
        stmt = stmt.where(Task.status == status)
    tasks = session.exec(stmt.order_by(Task.created_at.desc())).all()
    mine = [t for t in tasks if caller.id in (t.assigned_to or ())]
    return _enrich(session, mine)


@router.put("/update-statuses", response_model=StatusSweepResponse)
async def update_statuses(
    _caller: CurrentUser = Depends(get_current_user),
    lifecycle: TaskLifecycleManager = Depends(get_task_lifecycle),
) -> StatusSweepResponse:
    """Run the completion sweep on demand."""
    updated = lifecycle.sweep()
    return StatusSweepResponse(
        updated=updated,
        message=f"Updated {updated} tasks to {COMPLETED} status",
    )


@router.get("/{task_id}", response_model=TaskResponse)
async def get_task(
    task_id: str,
    session: Session = Depends(get_session),
    _caller: CurrentUser = Depends(get_current_user),
) -> TaskResponse:
    return _enrich(session, [_get_task(session, task_id)])[0]


@router.put("/{task_id}", response_model=TaskResponse)
async def update_task(
    task_id: str,
    req: UpdateTaskRequest,
    session: Session = Depends(get_session),
    _caller: CurrentUser = Depends(require_manager),
    lifecycle: TaskLifecycleManager = Depends(get_task_lifecycle),
) -> TaskResponse:
    """Update a task. New slots or engineers are re-checked, ignoring the task itself."""
    task = _get_task(session, task_id)
    if task.status == COMPLETED:
        raise CompletedTaskError("Cannot edit completed tasks. Completed tasks are read-only.")

    update_data = req.model_dump(exclude_unset=True, exclude_none=True)
    now = utcnow()

    assigned = list(task.assigned_to or ())
    if "assigned_to" in update_data:
        assigned = _validate_engineers(session, req.assigned_to)

    intervals = task.intervals()
    if "time_slots" in update_data:
        intervals = [slot.as_interval() for slot in req.time_slots]

    if "assigned_to" in update_data or "time_slots" in update_data:
        _ensure_available(session, assigned, intervals, editing_task_id=task.id)

    for key in ("project", "contact_no", "priority", "remarks"):
        if key in update_data:
            setattr(task, key, update_data[key])
    if "assigned_to" in update_data:
        task.assigned_to = assigned
    task.updated_at = now
    if "time_slots" in update_data:
        task.time_slots = [slot.to_record() for slot in req.time_slots]
        lifecycle.apply_slot_change(task, now)

    session.add(task)
    session.commit()
    session.refresh(task)
    return _enrich(session, [task])[0]


@router.delete("/{task_id}", status_code=204)
async def delete_task(
    task_id: str,
    session: Session = Depends(get_session),
    _caller: CurrentUser = Depends(require_manager),
) -> None:
    """Delete an ACTIVE task. COMPLETED tasks are kept for record keeping."""
    task = _get_task(session, task_id)
    if task.status == COMPLETED:
        raise CompletedTaskError(
            "Cannot delete completed tasks. Completed tasks are read-only for record keeping."
        )
    session.delete(task)
    session.commit()
    logger.info("Deleted task %s", task_id)
