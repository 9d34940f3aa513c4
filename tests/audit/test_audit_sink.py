"""
Audit sinks.

Verifies:
- Every state transition reaches the sink with before/after images
- A failing sink never breaks the operation it records
- DatabaseAuditSink writes insert-only rows
"""

from datetime import date

import pytest
from sqlalchemy import select

from timekeeping_kernel.exceptions import ImmutabilityViolationError
from timekeeping_kernel.models.audit_log import AuditLogEntry
from timekeeping_kernel.services.audit_sink import (
    AuditAction,
    AuditRecord,
    AuditSink,
    DatabaseAuditSink,
    record_safely,
)
from timekeeping_kernel.services.kernel_facade import TimekeepingKernel


class ExplodingSink(AuditSink):
    def record(self, record: AuditRecord) -> None:
        raise RuntimeError("audit backend down")


class TestInMemorySink:
    def test_clock_cycle_images(
        self, kernel, membership, schedule, deterministic_clock, audit_sink
    ):
        entry = kernel.clock_in(membership.id, schedule.id)
        deterministic_clock.advance_minutes(60)
        kernel.clock_out(entry.id)

        create, clock_out = audit_sink.records
        assert create.action == AuditAction.TIME_ENTRY_CREATE
        assert create.before is None
        assert create.actor_id == membership.user_id
        assert clock_out.before["status"] == "active"
        assert clock_out.after["status"] == "pending"
        assert clock_out.entity_id == entry.id


class TestRecordSafely:
    def test_none_sink_is_ignored(self):
        record_safely(None, AuditRecord(None, None, "x", "1", "x.test"))

    def test_failing_sink_is_logged_not_raised(self, captured_logs):
        record_safely(ExplodingSink(), AuditRecord(None, None, "x", "1", "x.test"))

        assert any(r["message"] == "audit_record_failed" for r in captured_logs())

    def test_operation_survives_failing_sink(
        self, session, deterministic_clock, settings, membership, schedule
    ):
        kernel = TimekeepingKernel(session, deterministic_clock, settings, ExplodingSink())

        info = kernel.clock_in(membership.id, schedule.id)

        assert info.clock_out is None


class TestDatabaseSink:
    def test_rows_written_in_transaction(
        self, session, deterministic_clock, settings, restaurant, test_actor_id
    ):
        kernel = TimekeepingKernel(
            session, deterministic_clock, settings, DatabaseAuditSink(session, deterministic_clock)
        )

        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))
        kernel.sign_report(report.id, test_actor_id)

        rows = session.scalars(
            select(AuditLogEntry).where(AuditLogEntry.entity_id == str(report.id))
        ).all()
        assert sorted(r.action for r in rows) == [
            AuditAction.REPORT_DAILY_GENERATE,
            AuditAction.REPORT_DAILY_SIGN,
        ]

    def test_default_sink_follows_settings(self, session, deterministic_clock, settings):
        kernel = TimekeepingKernel(session, deterministic_clock, settings)

        assert isinstance(kernel.audit_sink, DatabaseAuditSink)

    def test_rows_are_insert_only(self, session, deterministic_clock, restaurant):
        sink = DatabaseAuditSink(session, deterministic_clock)
        sink.record(AuditRecord(None, restaurant.id, "restaurant", restaurant.id, "x.test"))
        row = session.scalars(select(AuditLogEntry)).one()

        row.action = "x.rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
