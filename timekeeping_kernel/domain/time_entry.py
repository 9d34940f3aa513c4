"""
Time entry rules -- the pure half of the time entry lifecycle.

Responsibility:
    State transition table, worked-duration arithmetic and input guards
    shared by the lifecycle service, the report aggregator and the
    earnings preview.

Architecture position:
    Kernel > Domain -- pure functions, no I/O.

Invariants enforced:
    - Worked minutes are ``floor((clock_out - clock_in) / 1 min) +
      adjustment_minutes`` computed on UTC instants, so DST shifts are
      measured in real elapsed time.
    - Effective minutes are never negative.
    - clock_out is strictly after clock_in.
"""

from datetime import datetime, timezone

from timekeeping_kernel.domain.intervals import Interval, duration_minutes
from timekeeping_kernel.domain.values import TimeEntryStatus
from timekeeping_kernel.exceptions import (
    InvalidClockOutError,
    NaiveDatetimeError,
    NegativeDurationError,
)

ALLOWED_TRANSITIONS: dict[TimeEntryStatus, frozenset[TimeEntryStatus]] = {
    TimeEntryStatus.ACTIVE: frozenset({TimeEntryStatus.PENDING}),
    TimeEntryStatus.PENDING: frozenset(
        {TimeEntryStatus.APPROVED, TimeEntryStatus.REJECTED}
    ),
    TimeEntryStatus.APPROVED: frozenset(),
    TimeEntryStatus.REJECTED: frozenset(),
}


def can_transition(current: TimeEntryStatus | str, target: TimeEntryStatus | str) -> bool:
    return TimeEntryStatus(target) in ALLOWED_TRANSITIONS[TimeEntryStatus(current)]


def ensure_aware(value: datetime, field: str) -> datetime:
    """
    Reject naive datetimes and return the instant in UTC.

    Two datetimes sharing one ``ZoneInfo`` compare and subtract by wall
    clock, so every instant entering the kernel is converted first.
    """
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise NaiveDatetimeError(field)
    return value.astimezone(timezone.utc)


def validate_clock_out(clock_in: datetime, clock_out: datetime) -> None:
    if ensure_aware(clock_out, "clock_out") <= ensure_aware(clock_in, "clock_in"):
        raise InvalidClockOutError(clock_in.isoformat(), clock_out.isoformat())


def raw_minutes(clock_in: datetime, clock_out: datetime) -> int:
    return duration_minutes(
        Interval(
            start=ensure_aware(clock_in, "clock_in"),
            end=ensure_aware(clock_out, "clock_out"),
        )
    )


def effective_minutes(
    clock_in: datetime,
    clock_out: datetime,
    adjustment_minutes: int = 0,
) -> int:
    """
    Worked minutes after applying the signed manual adjustment.

    Raises:
        NegativeDurationError: if the adjustment drives the result below zero.
    """
    raw = raw_minutes(clock_in, clock_out)
    effective = raw + adjustment_minutes
    if effective < 0:
        raise NegativeDurationError(raw, adjustment_minutes)
    return effective
