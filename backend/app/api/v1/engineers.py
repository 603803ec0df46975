"""Engineer roster and availability endpoints.

GET  /api/v1/engineers: all ENGINEER users, by name
POST /api/v1/engineers/available: engineers free for every requested slot

The availability query defaults to the whole roster; passing ``engineerIds``
narrows it to a candidate subset. Either way the same checker the task
write path uses decides who is busy.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session, select

from app.api.deps import CurrentUser, get_current_user
from app.db.database import get_session
from app.engines.availability import ConflictEntry, ExistingTask, check_availability
from app.lifecycle.manager import ACTIVE
from app.models.task import RequestedTimeSlot, Task
from app.models.user import User
from app.models.wire import CamelModel

router = APIRouter(prefix="/api/v1/engineers", tags=["engineers"])


# === Request / Response Models ===


class EngineerResponse(CamelModel):
    id: str
    username: str
    name: str
    role: str
    created_at: datetime


class AvailabilityRequest(CamelModel):
    time_slots: list[RequestedTimeSlot] = Field(min_length=1)
    engineer_ids: list[str] | None = None  # None = whole roster


class AvailabilityResponse(CamelModel):
    engineers: list[EngineerResponse]
    busy_engineer_ids: list[str]
    conflicts: list[ConflictEntry]
    message: str


def _to_response(user: User) -> EngineerResponse:
    return EngineerResponse(
        id=user.id,
        username=user.username,
        name=user.name,
        role=user.role,
        created_at=user.created_at,
    )


# === Endpoints ===


@router.get("", response_model=list[EngineerResponse])
async def list_engineers(
    session: Session = Depends(get_session),
    _caller: CurrentUser = Depends(get_current_user),
) -> list[EngineerResponse]:
    engineers = session.exec(
        select(User).where(User.role == "ENGINEER").order_by(User.name)
    ).all()
    return [_to_response(u) for u in engineers]


@router.post("/available", response_model=AvailabilityResponse)
async def available_engineers(
    req: AvailabilityRequest,
    session: Session = Depends(get_session),
    _caller: CurrentUser = Depends(get_current_user),
) -> AvailabilityResponse:
    """Split the candidate engineers into free and busy for the requested slots."""
    stmt = select(User).where(User.role == "ENGINEER")
    if req.engineer_ids is not None:
        stmt = stmt.where(User.id.in_(req.engineer_ids))
    candidates = session.exec(stmt.order_by(User.name)).all()

    active = session.exec(select(Task).where(Task.status == ACTIVE)).all()
    result = check_availability(
        [u.id for u in candidates],
        [slot.as_interval() for slot in req.time_slots],
        [ExistingTask.from_task(t) for t in active],
    )
    busy = result.busy_engineer_ids()
    free = [u for u in candidates if u.id not in busy]

    return AvailabilityResponse(
        engineers=[_to_response(u) for u in free],
        busy_engineer_ids=sorted(busy),
        conflicts=result.conflicts,
        message=f"Found {len(free)} available engineers out of {len(candidates)} total engineers",
    )
