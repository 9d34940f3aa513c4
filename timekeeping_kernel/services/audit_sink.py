"""
Audit sink -- fire-and-forget recording of state transitions.

Responsibility:
    Receives a structured record of every time entry transition, report
    generation and signing action.  The kernel never depends on the
    result: ``record_safely`` logs and swallows sink failures so the
    primary operation always proceeds.

Architecture position:
    Kernel > Services.  ``DatabaseAuditSink`` writes to ``audit_log`` in the
    caller's transaction, inside a SAVEPOINT so a failed insert cannot
    poison the surrounding unit of work.

Audit relevance:
    Action names are stable strings (``time_entry.approve``,
    ``report_daily.sign`` ...) that downstream consumers key on.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from timekeeping_kernel.domain.clock import Clock, SystemClock
from timekeeping_kernel.logging_config import get_logger
from timekeeping_kernel.models.audit_log import AuditLogEntry

logger = get_logger("services.audit")


class AuditAction:
    """Stable action names."""

    TIME_ENTRY_CREATE = "time_entry.create"
    TIME_ENTRY_CLOCK_OUT = "time_entry.clock_out"
    TIME_ENTRY_EDIT = "time_entry.edit"
    TIME_ENTRY_APPROVE = "time_entry.approve"
    TIME_ENTRY_REJECT = "time_entry.reject"
    TIME_ENTRY_CLOSE_BY_MANAGER = "time_entry.close_by_manager"
    REPORT_DAILY_GENERATE = "report_daily.generate"
    REPORT_DAILY_SIGN = "report_daily.sign"
    REPORT_DAILY_UNSIGN = "report_daily.unsign"
    REPORT_DAILY_DISCARD = "report_daily.discard"
    REPORT_WEEKLY_GENERATE = "report_weekly.generate"
    REPORT_MONTHLY_GENERATE = "report_monthly.generate"
    SHIFT_CREATE = "shift.create"
    SHIFT_UPDATE = "shift.update"
    SHIFT_ASSIGN = "shift.assign"
    SHIFT_ASSIGNMENT_STATUS = "shift.assignment_status"


@dataclass(frozen=True)
class AuditRecord:
    actor_id: UUID | None
    restaurant_id: UUID | None
    entity_type: str
    entity_id: UUID | str
    action: str
    before: dict[str, Any] | None = None
    after: dict[str, Any] | None = None
    occurred_at: datetime | None = field(default=None, compare=False)


class AuditSink(ABC):
    """Write-only destination for audit records."""

    @abstractmethod
    def record(self, record: AuditRecord) -> None:
        ...


class NullAuditSink(AuditSink):
    """Discards records.  Used when auditing is disabled in configuration."""

    def record(self, record: AuditRecord) -> None:
        return None


class InMemoryAuditSink(AuditSink):
    """Collects records in a list.  Useful for tests and dry runs."""

    def __init__(self):
        self.records: list[AuditRecord] = []

    def record(self, record: AuditRecord) -> None:
        self.records.append(record)

    def actions(self) -> list[str]:
        return [r.action for r in self.records]


class DatabaseAuditSink(AuditSink):
    """Persists records to ``audit_log`` inside a SAVEPOINT."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self.clock = clock or SystemClock()

    def record(self, record: AuditRecord) -> None:
        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                AuditLogEntry(
                    actor_user_id=record.actor_id,
                    restaurant_id=record.restaurant_id,
                    entity_type=record.entity_type,
                    entity_id=str(record.entity_id),
                    action=record.action,
                    before=record.before,
                    after=record.after,
                    occurred_at=record.occurred_at or self.clock.now(),
                )
            )
            self.session.flush()
        except SQLAlchemyError:
            savepoint.rollback()
            raise
        savepoint.commit()


def record_safely(sink: AuditSink | None, record: AuditRecord) -> None:
    """
    Hand ``record`` to ``sink``; never raise.

    A failed audit write is logged at error level and otherwise ignored.
    """
    if sink is None:
        return
    try:
        sink.record(record)
    except Exception:
        logger.error(
            "audit_record_failed",
            extra={
                "action": record.action,
                "entity_type": record.entity_type,
                "entity_id": str(record.entity_id),
            },
            exc_info=True,
        )
