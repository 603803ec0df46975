"""Engineer availability: detects double-booking against live commitments.

Given candidate engineers and requested time slots, reports every existing
task that already commits one of those engineers to an overlapping slot.

The checker is pure: callers fetch the live commitments (ACTIVE tasks) and
decide what to do with the result. When a task is being edited, the caller
drops that task's own entries with ``without_task`` before judging
availability.

Usage:
    commitments = [ExistingTask.from_task(t) for t in active_tasks]
    result = check_availability({"eng-1"}, [slot.as_interval()], commitments)
    if not result.available:
        ...
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from pydantic import Field

from app.engines.intervals import Interval, overlaps
from app.models.task import Task, TimeSlot
from app.models.wire import CamelModel


@dataclass(frozen=True)
class ExistingTask:
    """Snapshot of a task that already holds engineers' time."""

    task_id: str
    project: str
    assigned_to: frozenset[str]
    time_slots: tuple[Interval, ...]

    @classmethod
    def from_task(cls, task: Task) -> ExistingTask:
        return cls(
            task_id=task.id,
            project=task.project,
            assigned_to=frozenset(task.assigned_to or ()),
            time_slots=tuple(task.intervals()),
        )


class ConflictEntry(CamelModel):
    """One existing slot that collides with one requested slot."""

    task_id: str
    project: str
    engineer_ids: list[str]  # Conflicting subset of the candidates
    existing_slot: TimeSlot
    requested_slot: TimeSlot


class AvailabilityResult(CamelModel):
    available: bool
    conflicts: list[ConflictEntry] = Field(default_factory=list)

    def busy_engineer_ids(self) -> set[str]:
        """Engineers named in at least one conflict."""
        return {eid for conflict in self.conflicts for eid in conflict.engineer_ids}

    def conflicting_task_ids(self) -> list[str]:
        seen: dict[str, None] = {}
        for conflict in self.conflicts:
            seen.setdefault(conflict.task_id, None)
        return list(seen)


def _slot(interval: Interval) -> TimeSlot:
    return TimeSlot(start_date_time=interval.start, end_date_time=interval.end)


def check_availability(
    engineer_ids: Iterable[str],
    requested_slots: Sequence[Interval],
    existing_tasks: Sequence[ExistingTask],
) -> AvailabilityResult:
    """Check whether the engineers are free for every requested slot.

    Args:
        engineer_ids: Candidate engineers. Empty means trivially available.
        requested_slots: Slots to commit; start < end is the caller's job.
        existing_tasks: Live commitments. No status filtering happens here.

    Returns:
        AvailabilityResult with one ConflictEntry per overlapping
        (requested slot, existing slot) pair; ``available`` iff none.
    """
    candidates = set(engineer_ids)
    if not candidates:
        return AvailabilityResult(available=True, conflicts=[])

    conflicts: list[ConflictEntry] = []
    for requested in requested_slots:
        for task in existing_tasks:
            clashing = candidates & task.assigned_to
            if not clashing:
                continue
            for existing in task.time_slots:
                if overlaps(requested, existing):
                    conflicts.append(ConflictEntry(
                        task_id=task.task_id,
                        project=task.project,
                        engineer_ids=sorted(clashing),
                        existing_slot=_slot(existing),
                        requested_slot=_slot(requested),
                    ))

    return AvailabilityResult(available=not conflicts, conflicts=conflicts)


def without_task(result: AvailabilityResult, task_id: str) -> AvailabilityResult:
    """Drop conflicts raised by ``task_id`` itself (used when editing that task)."""
    remaining = [c for c in result.conflicts if c.task_id != task_id]
    return AvailabilityResult(available=not remaining, conflicts=remaining)
