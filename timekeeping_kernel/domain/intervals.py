"""
Interval -- half-open time interval arithmetic.

Responsibility:
    Single source of truth for "do these two time ranges collide".  Every
    conflict check in the kernel (shift creation, shift assignment, shift
    edits) goes through ``overlaps``.

Architecture position:
    Kernel > Domain -- pure functions, no I/O.

Invariants enforced:
    - Intervals are half-open ``[start, end)``: touching endpoints never
      overlap.
    - No time zone normalisation happens here.  Callers pass UTC instants
      (see ``time_entry.ensure_aware``): two datetimes sharing one
      ``ZoneInfo`` compare and subtract by wall clock, not elapsed time.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta

_ONE_MINUTE = timedelta(minutes=1)


@dataclass(frozen=True)
class Interval:
    """A time range ``[start, end)`` between two instants."""

    start: datetime
    end: datetime

    def __contains__(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    @property
    def is_empty(self) -> bool:
        return self.start >= self.end


def overlaps(a: Interval, b: Interval) -> bool:
    """True iff ``a.start < b.end and b.start < a.end``."""
    return a.start < b.end and b.start < a.end


def intersection(a: Interval, b: Interval) -> Interval | None:
    """The overlapping region of ``a`` and ``b``, or None when they do not overlap."""
    if not overlaps(a, b):
        return None
    return Interval(start=max(a.start, b.start), end=min(a.end, b.end))


def duration_minutes(interval: Interval) -> int:
    """
    Whole minutes elapsed between start and end, floored.

    A negative interval floors towards negative infinity, mirroring integer
    division of the millisecond delta.
    """
    return (interval.end - interval.start) // _ONE_MINUTE
