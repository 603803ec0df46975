"""Task models.

Includes: Task (SQL table), TimeSlot / RequestedTimeSlot (Pydantic).

Time slots and assigned engineer ids live in JSON columns on the task row.
Slots are stored in their wire form ({"startDateTime", "endDateTime"} as
ISO-8601 strings) so the column reads back without custom types.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import uuid4

from pydantic import field_validator, model_validator
from sqlmodel import JSON, Column, SQLModel
from sqlmodel import Field as SQLField

from app.engines.intervals import Interval, format_instant, parse_instant, utcnow
from app.models.wire import CamelModel

TaskStatus = Literal["ACTIVE", "COMPLETED"]
TaskPriority = Literal["HIGH", "NORMAL"]


class TimeSlot(CamelModel):
    """A (start, end) pair of timezone-aware instants."""

    start_date_time: datetime
    end_date_time: datetime

    @field_validator("start_date_time", "end_date_time", mode="before")
    @classmethod
    def _aware(cls, value):
        if isinstance(value, (str, datetime)):
            return parse_instant(value)
        return value

    def as_interval(self) -> Interval:
        return Interval(self.start_date_time, self.end_date_time)

    def to_record(self) -> dict:
        return {
            "startDateTime": format_instant(self.start_date_time),
            "endDateTime": format_instant(self.end_date_time),
        }


class RequestedTimeSlot(TimeSlot):
    """A time slot arriving on the write path: start must precede end."""

    @model_validator(mode="after")
    def _ordered(self) -> RequestedTimeSlot:
        if self.start_date_time >= self.end_date_time:
            raise ValueError("End time must be after start time for all time slots")
        return self


class Task(SQLModel, table=True):
    """A project task with one or more time slots and zero or more engineers."""

    __tablename__ = "task"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    project: str
    time_slots: list[dict] = SQLField(default_factory=list, sa_column=Column(JSON))
    assigned_to: list[str] = SQLField(default_factory=list, sa_column=Column(JSON))
    contact_no: str
    priority: str = "NORMAL"  # "HIGH" | "NORMAL"
    remarks: str = ""
    status: str = SQLField(default="ACTIVE", index=True)  # "ACTIVE" | "COMPLETED"
    created_by_id: str = SQLField(index=True)  # User id, or the built-in admin id
    created_at: datetime = SQLField(default_factory=utcnow)
    updated_at: datetime = SQLField(default_factory=utcnow)

    def slots(self) -> list[TimeSlot]:
        return [TimeSlot.model_validate(raw) for raw in self.time_slots or []]

    def intervals(self) -> list[Interval]:
        return [slot.as_interval() for slot in self.slots()]
