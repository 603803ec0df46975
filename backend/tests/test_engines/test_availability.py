"""Tests for the engineer availability checker."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

from datetime import datetime, timedelta, timezone

from app.engines.availability import (
    ExistingTask,
    check_availability,
    without_task,
)
from app.engines.intervals import Interval
from app.models.task import Task

T0 = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


def _iv(start_h: float, end_h: float) -> Interval:
    return Interval(T0 + timedelta(hours=start_h), T0 + timedelta(hours=end_h))


def _existing(task_id: str, engineers, *slots: Interval, project: str = "Alpha") -> ExistingTask:
    return ExistingTask(
        task_id=task_id,
        project=project,
        assigned_to=frozenset(engineers),
        time_slots=tuple(slots),
    )


def test_no_candidates_is_available():
    """An empty candidate set is trivially available, whatever is booked."""
    booked = [_existing("t1", ["e1"], _iv(0, 8))]
    result = check_availability([], [_iv(1, 2)], booked)
    assert result.available
    assert result.conflicts == []
    print("  PASS: no_candidates_is_available")


def test_no_existing_tasks_is_available():
    result = check_availability(["e1"], [_iv(0, 1)], [])
    assert result.available
    print("  PASS: no_existing_tasks_is_available")


def test_overlap_reports_conflict():
    booked = [_existing("t1", ["e1"], _iv(0, 2), project="Alpha")]
    result = check_availability(["e1"], [_iv(1, 3)], booked)
    assert not result.available
    assert len(result.conflicts) == 1
    conflict = result.conflicts[0]
    assert conflict.task_id == "t1"
    assert conflict.project == "Alpha"
    assert conflict.engineer_ids == ["e1"]
    assert conflict.existing_slot.as_interval() == _iv(0, 2)
    assert conflict.requested_slot.as_interval() == _iv(1, 3)
    print("  PASS: overlap_reports_conflict")


def test_back_to_back_is_available():
    """Booking 10:00-11:00 right after 09:00-10:00 is fine."""
    booked = [_existing("t1", ["e1"], _iv(0, 1))]
    result = check_availability(["e1"], [_iv(1, 2)], booked)
    assert result.available
    print("  PASS: back_to_back_is_available")


def test_other_engineers_do_not_conflict():
    booked = [_existing("t1", ["e2"], _iv(0, 2))]
    result = check_availability(["e1"], [_iv(0, 2)], booked)
    assert result.available
    print("  PASS: other_engineers_do_not_conflict")


def test_conflict_names_only_clashing_subset():
    """Engineers listed in a conflict are the candidates also on that task."""
    booked = [_existing("t1", ["e2", "e3", "e9"], _iv(0, 2))]
    result = check_availability(["e1", "e3", "e2"], [_iv(1, 3)], booked)
    assert not result.available
    assert result.conflicts[0].engineer_ids == ["e2", "e3"]
    assert result.busy_engineer_ids() == {"e2", "e3"}
    print("  PASS: conflict_names_only_clashing_subset")


def test_one_conflict_per_slot_pair():
    """Two requested slots against two overlapping existing slots give four entries."""
    booked = [_existing("t1", ["e1"], _iv(0, 4), _iv(10, 14))]
    result = check_availability(["e1"], [_iv(1, 2), _iv(11, 12)], booked)
    # _iv(1,2) hits only _iv(0,4); _iv(11,12) hits only _iv(10,14)
    assert len(result.conflicts) == 2

    wide = check_availability(["e1"], [_iv(0, 14), _iv(2, 12)], booked)
    assert len(wide.conflicts) == 4
    print("  PASS: one_conflict_per_slot_pair")


def test_conflict_order_follows_requested_then_tasks():
    booked = [
        _existing("t1", ["e1"], _iv(0, 1), project="First"),
        _existing("t2", ["e1"], _iv(5, 6), project="Second"),
    ]
    result = check_availability(["e1"], [_iv(5, 6), _iv(0, 1)], booked)
    assert [c.task_id for c in result.conflicts] == ["t2", "t1"]
    assert result.conflicting_task_ids() == ["t2", "t1"]
    print("  PASS: conflict_order_follows_requested_then_tasks")


def test_conflicting_task_ids_deduplicated():
    booked = [_existing("t1", ["e1"], _iv(0, 2), _iv(3, 5))]
    result = check_availability(["e1"], [_iv(0, 5)], booked)
    assert len(result.conflicts) == 2
    assert result.conflicting_task_ids() == ["t1"]
    print("  PASS: conflicting_task_ids_deduplicated")


def test_without_task_drops_self():
    """Editing a task must not conflict with its own stored slots."""
    booked = [_existing("self", ["e1"], _iv(0, 2))]
    result = check_availability(["e1"], [_iv(1, 3)], booked)
    assert not result.available

    filtered = without_task(result, "self")
    assert filtered.available
    assert filtered.conflicts == []
    print("  PASS: without_task_drops_self")


def test_without_task_keeps_other_conflicts():
    booked = [
        _existing("self", ["e1"], _iv(0, 2)),
        _existing("other", ["e1"], _iv(1, 2)),
    ]
    result = without_task(check_availability(["e1"], [_iv(0, 2)], booked), "self")
    assert not result.available
    assert result.conflicting_task_ids() == ["other"]
    print("  PASS: without_task_keeps_other_conflicts")


def test_existing_task_from_model():
    task = Task(
        id="t-42",
        project="Fibre install",
        time_slots=[{"startDateTime": "2025-03-01T09:00:00Z", "endDateTime": "2025-03-01T11:00:00Z"}],
        assigned_to=["e1", "e2"],
        contact_no="555-0100",
        created_by_id="admin",
    )
    snapshot = ExistingTask.from_task(task)
    assert snapshot.task_id == "t-42"
    assert snapshot.assigned_to == frozenset({"e1", "e2"})
    assert snapshot.time_slots == (_iv(0, 2),)
    print("  PASS: existing_task_from_model")


def test_conflicts_serialize_camel_case():
    booked = [_existing("t1", ["e1"], _iv(0, 2))]
    result = check_availability(["e1"], [_iv(1, 3)], booked)
    dumped = result.conflicts[0].model_dump(mode="json", by_alias=True)
    assert set(dumped) == {"taskId", "project", "engineerIds", "existingSlot", "requestedSlot"}
    assert set(dumped["existingSlot"]) == {"startDateTime", "endDateTime"}
    print("  PASS: conflicts_serialize_camel_case")


if __name__ == "__main__":
    print("Testing Availability:")
    test_no_candidates_is_available()
    test_no_existing_tasks_is_available()
    test_overlap_reports_conflict()
    test_back_to_back_is_available()
    test_other_engineers_do_not_conflict()
    test_conflict_names_only_clashing_subset()
    test_one_conflict_per_slot_pair()
    test_conflict_order_follows_requested_then_tasks()
    test_conflicting_task_ids_deduplicated()
    test_without_task_drops_self()
    test_without_task_keeps_other_conflicts()
    test_existing_task_from_model()
    test_conflicts_serialize_camel_case()
    print("\nAll Availability tests passed!")
