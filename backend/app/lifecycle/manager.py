"""Task Lifecycle Manager: state machine + completion sweep.

Owns the task status field. A task is ACTIVE while any of its time slots
still reaches into the future and COMPLETED once every slot has ended.
COMPLETED is terminal.

The same rule serves every caller:
- task creation and slot edits (``initial_status`` / ``apply_slot_change``)
- the recurring sweep and the manual trigger (``sweep``)
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.engine import Engine
from sqlmodel import Session, select

from app.engines.intervals import Interval, all_elapsed, ensure_aware, utcnow
from app.models.task import Task

logger = logging.getLogger(__name__)

ACTIVE = "ACTIVE"
COMPLETED = "COMPLETED"

# === State Transition Table ===
# Key: (from_state, to_state) → guard description
# Absent pair → illegal transition

LEGAL_TRANSITIONS: dict[tuple[str, str], str] = {
    (ACTIVE, ACTIVE): "Slots edited, work still ahead",
    (ACTIVE, COMPLETED): "Every time slot has ended",
    # COMPLETED is terminal; no transitions out
}

TERMINAL_STATES = {COMPLETED}


class IllegalTransitionError(Exception):
    """Raised when attempting an illegal status transition."""

    def __init__(self, from_state: str, to_state: str) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(f"Illegal transition: {from_state} → {to_state}")


def initial_status(slots: Sequence[Interval], now: datetime | None = None) -> str:
    """Status for a task whose slots were just written.

    COMPLETED iff there is at least one slot and every slot ended at or
    before ``now``; ACTIVE otherwise.
    """
    now = ensure_aware(now or utcnow())
    return COMPLETED if all_elapsed(slots, now) else ACTIVE


def transition(task: Task, to_state: str, now: datetime | None = None) -> None:
    """Move a task to ``to_state`` with guard enforcement.

    Raises:
        IllegalTransitionError: If the transition is not legal.
    """
    from_state = task.status
    if from_state in TERMINAL_STATES or (from_state, to_state) not in LEGAL_TRANSITIONS:
        raise IllegalTransitionError(from_state, to_state)
    task.status = to_state
    task.updated_at = now or utcnow()


class TaskLifecycleManager:
    """Applies the completion rule to persisted tasks.

    One instance per process, built at startup and handed to the scheduler
    and to the manual-trigger endpoint.

    Usage:
        manager = TaskLifecycleManager(engine)
        manager.apply_slot_change(task)   # on create / slot edit
        count = manager.sweep()           # ACTIVE → COMPLETED in bulk
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        self.last_run_at: datetime | None = None
        self.last_updated_count = 0

    def initial_status(self, slots: Sequence[Interval], now: datetime | None = None) -> str:
        return initial_status(slots, now)

    def apply_slot_change(self, task: Task, now: datetime | None = None) -> str:
        """Recompute status after a task's slots were (re)written."""
        now = now or utcnow()
        target = initial_status(task.intervals(), now)
        transition(task, target, now)
        return target

    @staticmethod
    def due_for_completion(tasks: Sequence[Task], now: datetime) -> list[str]:
        """Ids of ACTIVE tasks whose slots have all ended (empty slot lists never qualify)."""
        return [
            task.id
            for task in tasks
            if task.status == ACTIVE and all_elapsed(task.intervals(), now)
        ]

    def sweep(self, now: datetime | None = None) -> int:
        """Complete every ACTIVE task whose slots are all in the past.

        Returns the number of tasks transitioned. Store failures are logged
        and reported as zero so a recurring caller keeps running.
        """
        now = ensure_aware(now or utcnow())
        try:
            with Session(self.engine) as session:
                active = session.exec(select(Task).where(Task.status == ACTIVE)).all()
                due = self.due_for_completion(active, now)
                if due:
                    session.exec(
                        update(Task)
                        .where(Task.id.in_(due), Task.status == ACTIVE)
                        .values(status=COMPLETED, updated_at=now)
                    )
                    session.commit()
        except Exception as e:
            logger.error("Error updating task statuses: %s", e, exc_info=True)
            self.last_run_at = now
            self.last_updated_count = 0
            return 0

        if due:
            logger.info("Updated %d tasks to COMPLETED status", len(due))
        self.last_run_at = now
        self.last_updated_count = len(due)
        return len(due)
