"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

A signed daily report is the payroll record for its date.  The time entries
it summarises, the totals it captured and the signature log explaining who
signed and unsigned it must not drift afterwards.

The services check these rules before they mutate anything (the signing
ledger's ``assert_date_editable`` gate).  This module is the backstop that
catches a mutation which reached the session without going through that
gate:

    session.flush()
         |
         v
    [before_update event] --> _check_*() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _check_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable
--------------------|----------------------------------------------------------
ReportSignature     | ALWAYS (append-only log)
AuditLogEntry       | ALWAYS
ReportDaily         | totals always; row cannot be deleted while signed
ReportWeekly        | totals always
ReportMonthly       | totals always
TimeEntry           | once no longer ACTIVE, while its date's report is signed

===============================================================================
NOTES
===============================================================================

1. Clock-out (ACTIVE -> PENDING) is always allowed.  Clock actions concern
   an unreported day, and the service-level gate covers force-close.

2. The "is this date signed" question runs the same statement the signing
   ledger uses (models/report.py: signed_daily_report_query), on the
   connection doing the flush.

3. Report discard deletes rows with Core DELETE statements, which do not
   fire mapper events.  It is the one sanctioned removal path and only
   ever runs against unsigned reports.

===============================================================================
USAGE
===============================================================================

    from timekeeping_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

To temporarily disable (TESTS ONLY):

    from timekeeping_kernel.db.immutability import unregister_immutability_listeners
    unregister_immutability_listeners()
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from timekeeping_kernel.exceptions import ImmutabilityViolationError
from timekeeping_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Fields that may change on any row: audit metadata and the version counter.
_ALWAYS_MUTABLE = frozenset({"updated_at", "version"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(entity_type, str(entity_id), reason)


def _old_value(target, attribute: str):
    """Value as loaded from the database, before any pending change."""
    history = get_history(target, attribute)
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    return getattr(target, attribute)


def _changed_fields(target, mapper) -> set[str]:
    changed = set()
    for attr in mapper.column_attrs:
        if get_history(target, attr.key).has_changes():
            changed.add(attr.key)
    return changed


# ---------------------------------------------------------------------------
# Always-immutable rows
# ---------------------------------------------------------------------------


def _check_signature_update(mapper, connection, target):
    _blocked("ReportSignature", target.id, "UPDATE", "signature log is append-only")


def _check_signature_delete(mapper, connection, target):
    _blocked("ReportSignature", target.id, "DELETE", "signature log is append-only")


def _check_audit_log_update(mapper, connection, target):
    _blocked("AuditLogEntry", target.id, "UPDATE", "audit log is insert-only")


def _check_audit_log_delete(mapper, connection, target):
    _blocked("AuditLogEntry", target.id, "DELETE", "audit log is insert-only")


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


def _check_report_totals(mapper, connection, target):
    """Totals are a point-in-time snapshot and never change after insert."""
    if get_history(target, "totals").has_changes():
        _blocked(type(target).__name__, target.id, "UPDATE", "report totals are frozen")

    changed = _changed_fields(target, mapper) - _ALWAYS_MUTABLE
    frozen_keys = {"restaurant_id", "report_date", "week_start", "period_month"}
    if changed & frozen_keys:
        _blocked(
            type(target).__name__,
            target.id,
            "UPDATE",
            f"report period key cannot change: {sorted(changed & frozen_keys)}",
        )


def _check_report_daily_delete(mapper, connection, target):
    if _old_value(target, "signed_by_user_id") is not None:
        _blocked("ReportDaily", target.id, "DELETE", "signed report cannot be deleted")


# ---------------------------------------------------------------------------
# Time entries
# ---------------------------------------------------------------------------


def _date_is_signed(connection, restaurant_id, work_date) -> bool:
    from timekeeping_kernel.models.report import signed_daily_report_query

    row = connection.execute(signed_daily_report_query(restaurant_id, work_date)).first()
    return row is not None


def _check_time_entry_immutability(mapper, connection, target):
    """
    Block updates to a closed entry whose date is covered by a signed report.

    Both the stored work_date and a new one (an edited clock_in may move the
    entry to another day) are checked.
    """
    from timekeeping_kernel.domain.values import TimeEntryStatus

    if _old_value(target, "status") == TimeEntryStatus.ACTIVE:
        return

    changed = _changed_fields(target, mapper) - _ALWAYS_MUTABLE
    if not changed:
        return

    restaurant_id = _old_value(target, "restaurant_id")
    dates = {_old_value(target, "work_date"), target.work_date}
    for work_date in dates:
        if _date_is_signed(connection, restaurant_id, work_date):
            _blocked(
                "TimeEntry",
                target.id,
                "UPDATE",
                f"daily report for {work_date} is signed",
            )


def _check_time_entry_delete(mapper, connection, target):
    if _date_is_signed(
        connection, _old_value(target, "restaurant_id"), _old_value(target, "work_date")
    ):
        _blocked("TimeEntry", target.id, "DELETE", "daily report for the entry's date is signed")


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


def _listeners():
    from timekeeping_kernel.models.audit_log import AuditLogEntry
    from timekeeping_kernel.models.report import (
        ReportDaily,
        ReportMonthly,
        ReportSignature,
        ReportWeekly,
    )
    from timekeeping_kernel.models.time_entry import TimeEntry

    return [
        (ReportSignature, "before_update", _check_signature_update),
        (ReportSignature, "before_delete", _check_signature_delete),
        (AuditLogEntry, "before_update", _check_audit_log_update),
        (AuditLogEntry, "before_delete", _check_audit_log_delete),
        (ReportDaily, "before_update", _check_report_totals),
        (ReportDaily, "before_delete", _check_report_daily_delete),
        (ReportWeekly, "before_update", _check_report_totals),
        (ReportMonthly, "before_update", _check_report_totals),
        (TimeEntry, "before_update", _check_time_entry_immutability),
        (TimeEntry, "before_delete", _check_time_entry_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Idempotent.  Call after the models are importable and before any
    database operations begin.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def _safe_remove_listener(target, event_name, listener_fn):
    """Safely remove an event listener, ignoring if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        _safe_remove_listener(target, event_name, listener_fn)
