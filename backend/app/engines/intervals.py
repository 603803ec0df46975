"""Interval and wall-clock primitives shared by availability and status logic.

All instants are timezone-aware. Naive values (SQLite hands them back that
way) are read as UTC.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from typing import NamedTuple


class Interval(NamedTuple):
    """Half-open time interval [start, end)."""

    start: datetime
    end: datetime


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; leave aware ones untouched."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def parse_instant(value: str | datetime) -> datetime:
    """Parse an ISO-8601 instant (``Z`` suffix accepted) into an aware datetime."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def format_instant(value: datetime) -> str:
    return ensure_aware(value).astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def overlaps(a: Interval, b: Interval) -> bool:
    """True if the intervals share any instant.

    Intervals that only touch at an endpoint (a.end == b.start) do not overlap.
    """
    return a.start < b.end and b.start < a.end


def all_elapsed(intervals: Iterable[Interval], now: datetime) -> bool:
    """True if every interval has ended at or before ``now``.

    An empty collection never counts as elapsed.
    """
    now = ensure_aware(now)
    seen = False
    for interval in intervals:
        seen = True
        if ensure_aware(interval.end) > now:
            return False
    return seen
