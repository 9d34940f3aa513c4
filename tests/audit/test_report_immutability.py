"""
ORM-level immutability listeners.

These bypass the services and write rows directly, proving the kernel
refuses forbidden writes even when a caller skips the service layer.

Verifies:
- Signature rows cannot be updated or deleted
- Report totals and period keys are frozen after insert
- Signed reports cannot be deleted
- Closed time entries on a signed date cannot be updated
"""

from datetime import date, datetime, timezone

import pytest
from sqlalchemy import select

from timekeeping_kernel.exceptions import ImmutabilityViolationError
from timekeeping_kernel.models.report import ReportDaily, ReportSignature
from timekeeping_kernel.models.time_entry import TimeEntry

MONDAY = date(2025, 1, 6)


def utc(day, hour) -> datetime:
    return datetime(2025, 1, day, hour, 0, tzinfo=timezone.utc)


@pytest.fixture
def signed_report(kernel, restaurant, test_actor_id, session):
    report = kernel.generate_daily_report(restaurant.id, MONDAY)
    kernel.sign_report(report.id, test_actor_id)
    return session.get(ReportDaily, report.id)


class TestSignatureRows:
    def test_update_blocked(self, session, signed_report):
        signature = session.scalars(
            select(ReportSignature).where(ReportSignature.report_id == signed_report.id)
        ).one()

        signature.reason = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_blocked(self, session, signed_report):
        signature = session.scalars(
            select(ReportSignature).where(ReportSignature.report_id == signed_report.id)
        ).one()

        session.delete(signature)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestReportRows:
    def test_totals_frozen(self, session, kernel, restaurant):
        info = kernel.generate_daily_report(restaurant.id, MONDAY)
        report = session.get(ReportDaily, info.id)

        report.totals = {**report.totals, "currency": "EUR"}
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_period_key_frozen(self, session, kernel, restaurant):
        info = kernel.generate_daily_report(restaurant.id, MONDAY)
        report = session.get(ReportDaily, info.id)

        report.report_date = date(2025, 1, 7)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_signed_report_delete_blocked(self, session, signed_report):
        session.delete(signed_report)
        with pytest.raises(ImmutabilityViolationError):
            session.flush()


class TestTimeEntryRows:
    def test_closed_entry_on_signed_date_frozen(
        self, session, create_entry, membership, schedule, kernel, restaurant, test_actor_id
    ):
        entry = create_entry(membership, schedule, utc(6, 8), hours=8)
        report = kernel.generate_daily_report(restaurant.id, MONDAY)
        kernel.sign_report(report.id, test_actor_id)

        entry.adjustment_minutes = -60
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_closed_entry_moved_onto_signed_date_frozen(
        self, session, create_entry, membership, schedule, kernel, restaurant, test_actor_id
    ):
        entry = create_entry(membership, schedule, utc(7, 8), hours=8)
        report = kernel.generate_daily_report(restaurant.id, MONDAY)
        kernel.sign_report(report.id, test_actor_id)

        entry.work_date = MONDAY
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_delete_on_signed_date_blocked(
        self, session, create_entry, membership, schedule, kernel, restaurant, test_actor_id
    ):
        entry = create_entry(membership, schedule, utc(6, 8), hours=8)
        report = kernel.generate_daily_report(restaurant.id, MONDAY)
        kernel.sign_report(report.id, test_actor_id)

        session.delete(session.get(TimeEntry, entry.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
