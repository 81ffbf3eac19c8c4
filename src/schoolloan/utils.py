"""Utility functions for schoolloan."""

import math
from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime, truncated to seconds."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_iso(value: datetime) -> str:
    """
    Serialize a datetime to a fixed-width UTC ISO-8601 string.

    Naive datetimes are assumed to already be UTC. Fixed width keeps
    string comparison in SQL chronological.

    Example:
        >>> to_iso(datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        '2025-01-02T03:04:05+00:00'
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="seconds")


def from_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored ISO string back to an aware datetime (None passes through)."""
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def hours_between(start: datetime, end: datetime, round_up: bool = True) -> int:
    """
    Whole hours from start to end, never negative.

    Example:
        >>> t = datetime(2025, 1, 1, tzinfo=timezone.utc)
        >>> hours_between(t, t + timedelta(minutes=61))
        2
        >>> hours_between(t, t + timedelta(minutes=61), round_up=False)
        1
    """
    seconds = (end - start).total_seconds()
    if seconds <= 0:
        return 0
    hours = seconds / 3600
    return math.ceil(hours) if round_up else math.floor(hours)
