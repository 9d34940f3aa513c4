"""
Pure domain layer.

This module contains pure data transfer objects and domain logic
with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (beyond the SystemClock boundary and zoneinfo data)

All domain objects are immutable and deterministic.
"""

from timekeeping_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from timekeeping_kernel.domain.intervals import (
    Interval,
    duration_minutes,
    intersection,
    overlaps,
)
from timekeeping_kernel.domain.rates import rate_for_report, resolve_rate
from timekeeping_kernel.domain.settings import KernelSettings
from timekeeping_kernel.domain.values import (
    AssignmentStatus,
    MembershipRole,
    MembershipStatus,
    ReportKind,
    SignatureAction,
    TimeEntrySource,
    TimeEntryStatus,
)

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "Interval",
    "overlaps",
    "intersection",
    "duration_minutes",
    "resolve_rate",
    "rate_for_report",
    "KernelSettings",
    "AssignmentStatus",
    "MembershipRole",
    "MembershipStatus",
    "ReportKind",
    "SignatureAction",
    "TimeEntrySource",
    "TimeEntryStatus",
]
