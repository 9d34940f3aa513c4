"""
Typed Exception Hierarchy for the Timekeeping Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection the kernel produces must be rendered by the calling layer as
a specific message ("you are already clocked in on Kitchen since 08:02"),
never a generic failure.  That requires:
  1. A TYPED exception class per failure (catch by type, not message)
  2. A CODE attribute on every class (machine-readable, API-safe)
  3. Structured DATA on every instance (conflicting interval, current
     state, required precondition)

Example - WRONG way to handle errors:
    try:
        lifecycle.clock_in(membership_id, schedule_id)
    except Exception as e:
        if "already" in str(e):  # FRAGILE
            ...

Example - RIGHT way:
    try:
        lifecycle.clock_in(membership_id, schedule_id)
    except DuplicateOpenEntryError as e:
        respond(409, code=e.code, open_entry_id=e.open_entry_id)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from TimekeepingError:

    TimekeepingError (base)
    |
    +-- ValidationError                 malformed input, rejected before writes
    |   +-- NaiveDatetimeError
    |   +-- InvalidShiftTimesError
    |   +-- InvalidClockOutError
    |   +-- NegativeDurationError
    |   +-- ReasonRequiredError
    |   +-- InvalidPeriodStartError
    |   +-- ScheduleRestaurantMismatchError
    |
    +-- ConflictError                   duplicate resource or double booking
    |   +-- DuplicateOpenEntryError
    |   +-- ReportAlreadyExistsError
    |   +-- ShiftOverlapError
    |   +-- ConcurrentModificationError
    |
    +-- NotFoundError
    |   +-- RestaurantNotFoundError
    |   +-- MembershipNotFoundError
    |   +-- ScheduleNotFoundError
    |   +-- ShiftNotFoundError
    |   +-- TimeEntryNotFoundError
    |   +-- NoOpenEntryError
    |   +-- ReportNotFoundError
    |
    +-- InvalidStateError               action blocked by current state
    |   +-- EntryNotPendingError
    |   +-- EntryNotActiveError
    |   +-- EntryStillActiveError
    |   +-- MembershipInactiveError
    |   +-- ReportAlreadySignedError
    |   +-- ReportNotSignedError
    |   +-- ImmutablePeriodError
    |   +-- ImmutabilityViolationError
    |
    +-- InternalError                   storage failure, never swallowed

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                          | When Raised
--------------|-------------------------------|----------------------------------
Validation    | NAIVE_DATETIME                | Instant without tzinfo
              | INVALID_SHIFT_TIMES           | start >= end or longer than 24h
              | INVALID_CLOCK_OUT             | clock_out <= clock_in
              | NEGATIVE_EFFECTIVE_DURATION   | adjustment drives duration < 0
              | REASON_REQUIRED               | unsign / force-close w/o reason
              | INVALID_PERIOD_START          | weekStart not Monday, month not 1st
              | SCHEDULE_RESTAURANT_MISMATCH  | schedule of another restaurant
--------------|-------------------------------|----------------------------------
Conflict      | ALREADY_CLOCKED_IN            | open entry for membership+schedule
              | REPORT_ALREADY_EXISTS         | second report for same period
              | SHIFT_OVERLAP                 | worker double-booked
              | CONCURRENT_MODIFICATION       | optimistic lock lost, retry
--------------|-------------------------------|----------------------------------
Not found     | RESTAURANT_NOT_FOUND, MEMBERSHIP_NOT_FOUND, SCHEDULE_NOT_FOUND,
              | SHIFT_NOT_FOUND, TIME_ENTRY_NOT_FOUND, NO_OPEN_TIME_ENTRY,
              | REPORT_NOT_FOUND
--------------|-------------------------------|----------------------------------
Invalid state | NOT_PENDING                   | approve/reject non-pending entry
              | ENTRY_NOT_ACTIVE              | force-close a closed entry
              | ENTRY_STILL_ACTIVE            | clock-out edit on an open entry
              | MEMBERSHIP_INACTIVE           | clock-in on inactive membership
              | REPORT_ALREADY_SIGNED         | sign a signed report
              | REPORT_NOT_SIGNED             | unsign an unsigned report
              | IMMUTABLE_PERIOD              | edit entry of a signed date
              | IMMUTABILITY_VIOLATION        | ORM-level write to frozen row
--------------|-------------------------------|----------------------------------
Internal      | INTERNAL_ERROR                | unclassified storage failure

===============================================================================
"""

from __future__ import annotations

from typing import Any


class TimekeepingError(Exception):
    """
    Base exception for all timekeeping kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "TIMEKEEPING_ERROR"


# Validation


class ValidationError(TimekeepingError):
    """Malformed input; rejected before any write."""

    code: str = "VALIDATION_ERROR"


class NaiveDatetimeError(ValidationError):
    """A datetime without tzinfo was passed where an instant is required."""

    code: str = "NAIVE_DATETIME"

    def __init__(self, field: str):
        self.field = field
        super().__init__(f"'{field}' must be a timezone-aware datetime")


class InvalidShiftTimesError(ValidationError):
    """Shift interval is empty, inverted, or too long."""

    code: str = "INVALID_SHIFT_TIMES"

    def __init__(self, start: str, end: str, reason: str):
        self.start = start
        self.end = end
        self.reason = reason
        super().__init__(f"Invalid shift times {start} -> {end}: {reason}")


class InvalidClockOutError(ValidationError):
    """clock_out is not strictly after clock_in."""

    code: str = "INVALID_CLOCK_OUT"

    def __init__(self, clock_in: str, clock_out: str):
        self.clock_in = clock_in
        self.clock_out = clock_out
        super().__init__(
            f"clock_out ({clock_out}) must be after clock_in ({clock_in})"
        )


class NegativeDurationError(ValidationError):
    """An adjustment would make the effective worked duration negative."""

    code: str = "NEGATIVE_EFFECTIVE_DURATION"

    def __init__(self, raw_minutes: int, adjustment_minutes: int):
        self.raw_minutes = raw_minutes
        self.adjustment_minutes = adjustment_minutes
        self.effective_minutes = raw_minutes + adjustment_minutes
        super().__init__(
            f"Adjustment of {adjustment_minutes} min on {raw_minutes} worked min "
            f"gives negative duration ({self.effective_minutes} min)"
        )


class ReasonRequiredError(ValidationError):
    """The operation requires a non-empty reason."""

    code: str = "REASON_REQUIRED"

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"A reason is required to {operation}")


class InvalidPeriodStartError(ValidationError):
    """Report period key does not start on the required boundary."""

    code: str = "INVALID_PERIOD_START"

    def __init__(self, period_kind: str, value: str, expected: str):
        self.period_kind = period_kind
        self.value = value
        self.expected = expected
        super().__init__(f"{period_kind} period start {value} must be {expected}")


class ScheduleRestaurantMismatchError(ValidationError):
    """Schedule category belongs to another restaurant than the membership."""

    code: str = "SCHEDULE_RESTAURANT_MISMATCH"

    def __init__(self, schedule_id: str, membership_id: str):
        self.schedule_id = schedule_id
        self.membership_id = membership_id
        super().__init__(
            f"Schedule {schedule_id} does not belong to the restaurant of "
            f"membership {membership_id}"
        )


# Conflict


class ConflictError(TimekeepingError):
    """Duplicate resource or double booking."""

    code: str = "CONFLICT"


class DuplicateOpenEntryError(ConflictError):
    """Worker is already clocked in on this schedule."""

    code: str = "ALREADY_CLOCKED_IN"

    def __init__(
        self,
        membership_id: str,
        schedule_id: str,
        open_entry_id: str | None = None,
        clock_in: str | None = None,
    ):
        self.membership_id = membership_id
        self.schedule_id = schedule_id
        self.open_entry_id = open_entry_id
        self.clock_in = clock_in
        super().__init__(
            f"Membership {membership_id} already has an open time entry "
            f"on schedule {schedule_id}"
            + (f" ({open_entry_id} since {clock_in})" if open_entry_id else "")
        )


class ReportAlreadyExistsError(ConflictError):
    """A report for this restaurant and period was already generated."""

    code: str = "REPORT_ALREADY_EXISTS"

    def __init__(
        self,
        report_kind: str,
        restaurant_id: str,
        period_key: str,
        existing_report_id: str | None = None,
    ):
        self.report_kind = report_kind
        self.restaurant_id = restaurant_id
        self.period_key = period_key
        self.existing_report_id = existing_report_id
        super().__init__(
            f"{report_kind} report for restaurant {restaurant_id} and "
            f"period {period_key} already exists"
        )


class ShiftOverlapError(ConflictError):
    """The worker already holds a shift overlapping the candidate interval."""

    code: str = "SHIFT_OVERLAP"

    def __init__(self, membership_id: str, conflicts: list[dict[str, Any]]):
        self.membership_id = membership_id
        self.conflicts = conflicts
        first = conflicts[0] if conflicts else {}
        super().__init__(
            f"Membership {membership_id} has {len(conflicts)} overlapping "
            f"shift(s); first: {first.get('shift_id')} "
            f"({first.get('start')} -> {first.get('end')})"
        )


class ConcurrentModificationError(ConflictError):
    """Row changed under us between read and write; the unit of work may be retried."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id}: "
            "entity was modified by another transaction"
        )


# Not found


class NotFoundError(TimekeepingError):
    """Referenced entity does not exist."""

    code: str = "NOT_FOUND"


class RestaurantNotFoundError(NotFoundError):
    code: str = "RESTAURANT_NOT_FOUND"

    def __init__(self, restaurant_id: str):
        self.restaurant_id = restaurant_id
        super().__init__(f"Restaurant not found: {restaurant_id}")


class MembershipNotFoundError(NotFoundError):
    code: str = "MEMBERSHIP_NOT_FOUND"

    def __init__(self, membership_id: str):
        self.membership_id = membership_id
        super().__init__(f"Membership not found: {membership_id}")


class ScheduleNotFoundError(NotFoundError):
    code: str = "SCHEDULE_NOT_FOUND"

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"Schedule not found: {schedule_id}")


class ShiftNotFoundError(NotFoundError):
    code: str = "SHIFT_NOT_FOUND"

    def __init__(self, shift_id: str):
        self.shift_id = shift_id
        super().__init__(f"Shift not found: {shift_id}")


class TimeEntryNotFoundError(NotFoundError):
    code: str = "TIME_ENTRY_NOT_FOUND"

    def __init__(self, time_entry_id: str):
        self.time_entry_id = time_entry_id
        super().__init__(f"Time entry not found: {time_entry_id}")


class NoOpenEntryError(NotFoundError):
    """Clock-out requested but the worker is not clocked in."""

    code: str = "NO_OPEN_TIME_ENTRY"

    def __init__(self, membership_id: str, schedule_id: str):
        self.membership_id = membership_id
        self.schedule_id = schedule_id
        super().__init__(
            f"No open time entry for membership {membership_id} on "
            f"schedule {schedule_id}. Clock in first."
        )


class ReportNotFoundError(NotFoundError):
    code: str = "REPORT_NOT_FOUND"

    def __init__(self, report_id: str):
        self.report_id = report_id
        super().__init__(f"Report not found: {report_id}")


# Invalid state


class InvalidStateError(TimekeepingError):
    """
    The action is not allowed in the entity's current state.

    Subclasses always expose ``current_state`` so the caller can explain
    why the action is blocked.
    """

    code: str = "INVALID_STATE"
    current_state: str | None = None


class EntryNotPendingError(InvalidStateError):
    """Approve/reject requested on an entry that is not pending."""

    code: str = "NOT_PENDING"

    def __init__(self, time_entry_id: str, current_state: str):
        self.time_entry_id = time_entry_id
        self.current_state = current_state
        super().__init__(
            f"Time entry {time_entry_id} is not in pending status "
            f"(current: {current_state})"
        )


class EntryNotActiveError(InvalidStateError):
    """Force-close requested on an entry that is already closed."""

    code: str = "ENTRY_NOT_ACTIVE"

    def __init__(self, time_entry_id: str, current_state: str):
        self.time_entry_id = time_entry_id
        self.current_state = current_state
        super().__init__(
            f"Time entry {time_entry_id} is not active (current: {current_state})"
        )


class EntryStillActiveError(InvalidStateError):
    """A clock-out correction was requested on an entry that was never closed."""

    code: str = "ENTRY_STILL_ACTIVE"

    def __init__(self, time_entry_id: str):
        self.time_entry_id = time_entry_id
        self.current_state = "active"
        super().__init__(
            f"Time entry {time_entry_id} is still active; clock out or force-close it first"
        )


class MembershipInactiveError(InvalidStateError):
    code: str = "MEMBERSHIP_INACTIVE"

    def __init__(self, membership_id: str, current_state: str):
        self.membership_id = membership_id
        self.current_state = current_state
        super().__init__(
            f"Membership {membership_id} is not active (current: {current_state})"
        )


class ReportAlreadySignedError(InvalidStateError):
    code: str = "REPORT_ALREADY_SIGNED"

    def __init__(self, report_id: str, signed_by_user_id: str, signed_at: str):
        self.report_id = report_id
        self.signed_by_user_id = signed_by_user_id
        self.signed_at = signed_at
        self.current_state = "signed"
        super().__init__(
            f"Report {report_id} already signed by {signed_by_user_id} at {signed_at}"
        )


class ReportNotSignedError(InvalidStateError):
    code: str = "REPORT_NOT_SIGNED"

    def __init__(self, report_id: str):
        self.report_id = report_id
        self.current_state = "unsigned"
        super().__init__(f"Report {report_id} is not signed")


class ImmutablePeriodError(InvalidStateError):
    """
    The daily report covering this entry's date is signed.

    Only an explicit unsign through the signing ledger reopens the date.
    """

    code: str = "IMMUTABLE_PERIOD"

    def __init__(
        self,
        restaurant_id: str,
        work_date: str,
        operation: str,
        report_id: str | None = None,
        signed_by_user_id: str | None = None,
        signed_at: str | None = None,
    ):
        self.restaurant_id = restaurant_id
        self.work_date = work_date
        self.operation = operation
        self.report_id = report_id
        self.signed_by_user_id = signed_by_user_id
        self.signed_at = signed_at
        self.current_state = "signed"
        super().__init__(
            f"Cannot {operation}: daily report for {work_date} is signed"
            + (f" by {signed_by_user_id} at {signed_at}" if signed_by_user_id else "")
        )


class ImmutabilityViolationError(InvalidStateError):
    """Write to a row the ORM listeners consider frozen."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        self.current_state = "immutable"
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


# Internal


class InternalError(TimekeepingError):
    """Storage failure the kernel could not classify. Always propagated."""

    code: str = "INTERNAL_ERROR"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Internal error during {operation}: {detail}")
