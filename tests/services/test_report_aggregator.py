"""
Daily, weekly and monthly payroll reports.

Verifies:
- Only closed entries inside the restaurant-local window are summed
- Rows are rounded once each; the summary sums the rounded rows
- A period can be generated once; the conflict names the existing report
- Weekly and monthly periods must start on a Monday / the 1st
- Unsigned daily reports can be discarded and regenerated
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from timekeeping_kernel.domain.values import MembershipRole, ReportKind, TimeEntryStatus
from timekeeping_kernel.exceptions import (
    InvalidPeriodStartError,
    ReasonRequiredError,
    ReportAlreadyExistsError,
    ReportAlreadySignedError,
    ReportNotFoundError,
    RestaurantNotFoundError,
)
from timekeeping_kernel.services.audit_sink import AuditAction
from timekeeping_kernel.services.report_aggregator import aggregate_entries


def utc(day, hour, minute=0) -> datetime:
    return datetime(2025, 1, day, hour, minute, tzinfo=timezone.utc)


@pytest.fixture
def crew(create_user, create_membership, restaurant):
    """Three workers paid 55, 35 and 40 per hour."""
    return [
        create_membership(restaurant, user=create_user("Ala", "55")),
        create_membership(restaurant, user=create_user("Bartek", "35")),
        create_membership(restaurant, user=create_user("Celina", "40")),
    ]


class TestAggregateEntries:
    def test_empty_input_gives_zero_summary(self):
        rows, summary = aggregate_entries([])

        assert rows == ()
        assert summary.total_employees == 0
        assert str(summary.total_hours) == "0.00"
        assert str(summary.total_amount) == "0.00"

    def test_rows_sum_entries_of_one_membership(
        self, create_entry, membership, schedule
    ):
        first = create_entry(membership, schedule, utc(6, 8), hours=4)
        second = create_entry(membership, schedule, utc(6, 14), hours=3, adjustment_minutes=-20)

        rows, summary = aggregate_entries([first, second])

        assert len(rows) == 1
        assert rows[0].total_minutes == 400
        assert rows[0].total_hours == Decimal("6.67")
        assert rows[0].total_amount == Decimal("200.00")
        assert rows[0].entries == 2
        assert rows[0].days_worked == 1

    def test_open_entries_are_skipped(self, create_entry, membership, schedule):
        open_entry = create_entry(membership, schedule, utc(6, 8))

        rows, _ = aggregate_entries([open_entry])

        assert rows == ()

    def test_manager_rows_use_manager_rate(
        self, create_entry, create_membership, restaurant, schedule
    ):
        manager = create_membership(
            restaurant, role=MembershipRole.MANAGER, manager_rate="48.50", hourly_rate="30"
        )
        entry = create_entry(manager, schedule, utc(6, 8), hours=2)

        rows, _ = aggregate_entries([entry])

        assert rows[0].hourly_rate == Decimal("48.50")
        assert rows[0].role == "manager"

    def test_summary_is_sum_of_rounded_rows(
        self, create_user, create_membership, create_entry, restaurant, schedule
    ):
        # 20 minutes at 10/h is 3.333...; two rows round to 3.33 each
        entries = [
            create_entry(
                create_membership(restaurant, user=create_user(name, "10")),
                schedule,
                utc(6, 8),
                clock_out=utc(6, 8, 20),
            )
            for name in ("A", "B")
        ]

        rows, summary = aggregate_entries(entries)

        assert [r.total_amount for r in rows] == [Decimal("3.33"), Decimal("3.33")]
        assert summary.total_amount == Decimal("6.66")


class TestDailyReport:
    def test_totals_for_a_day(self, kernel, crew, create_entry, schedule, restaurant):
        for membership, hours in zip(crew, (8, 6, 7)):
            create_entry(membership, schedule, utc(6, 8), hours=hours)

        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        totals = report.totals
        assert totals.kind == ReportKind.DAILY
        assert [e.user_name for e in totals.employees] == ["Ala", "Bartek", "Celina"]
        assert [e.total_amount for e in totals.employees] == [
            Decimal("440.00"),
            Decimal("210.00"),
            Decimal("280.00"),
        ]
        assert totals.summary.total_hours == Decimal("21.00")
        assert totals.summary.total_amount == Decimal("930.00")
        assert report.signed_by_user_id is None

    def test_window_is_restaurant_local(
        self, kernel, create_entry, membership, schedule, restaurant
    ):
        # 23:30 UTC on the 5th is 00:30 on the 6th in Warsaw
        create_entry(membership, schedule, utc(5, 23, 30), hours=2)
        # 23:30 UTC on the 6th already belongs to the 7th
        create_entry(membership, schedule, utc(6, 23, 30), hours=2)

        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert report.totals.summary.total_hours == Decimal("2.00")

    def test_active_entries_excluded(self, kernel, create_entry, membership, schedule, restaurant):
        create_entry(membership, schedule, utc(6, 8), hours=3)
        create_entry(membership, schedule, utc(6, 12))

        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert report.totals.employees[0].entries == 1

    def test_every_closed_status_counts(self, kernel, create_entry, membership, schedule, restaurant):
        for hour, status in (
            (6, TimeEntryStatus.PENDING),
            (10, TimeEntryStatus.APPROVED),
            (14, TimeEntryStatus.REJECTED),
        ):
            create_entry(membership, schedule, utc(6, hour), hours=2, status=status)

        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert report.totals.summary.total_hours == Decimal("6.00")

    def test_empty_day_is_a_valid_report(self, kernel, restaurant):
        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert report.totals.employees == ()
        assert report.totals.summary.total_amount == Decimal("0.00")

    def test_second_generation_names_existing_report(self, kernel, restaurant):
        first = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        with pytest.raises(ReportAlreadyExistsError) as exc_info:
            kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert exc_info.value.existing_report_id == str(first.id)

    def test_unknown_restaurant(self, kernel):
        with pytest.raises(RestaurantNotFoundError):
            kernel.generate_daily_report(uuid4(), date(2025, 1, 6))

    def test_generation_is_audited(self, kernel, restaurant, audit_sink, test_actor_id):
        kernel.generate_daily_report(restaurant.id, date(2025, 1, 6), actor_id=test_actor_id)

        assert audit_sink.actions() == [AuditAction.REPORT_DAILY_GENERATE]
        assert audit_sink.records[0].after["summary"]["total_amount"] == "0.00"


class TestWeeklyReport:
    def test_week_reads_entries_not_daily_snapshots(
        self, kernel, create_entry, membership, schedule, restaurant
    ):
        create_entry(membership, schedule, utc(6, 8), hours=8)
        kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))
        # Added after the daily snapshot, still counted by the week
        create_entry(membership, schedule, utc(12, 8), hours=4)

        report = kernel.generate_weekly_report(restaurant.id, date(2025, 1, 6))

        assert report.kind == ReportKind.WEEKLY
        assert report.totals.period_end == date(2025, 1, 12)
        assert report.totals.summary.total_hours == Decimal("12.00")
        assert report.totals.employees[0].days_worked == 2
        assert report.totals.daily_reports_count == 1

    def test_week_must_start_on_monday(self, kernel, restaurant):
        with pytest.raises(InvalidPeriodStartError):
            kernel.generate_weekly_report(restaurant.id, date(2025, 1, 7))

    def test_week_generated_once(self, kernel, restaurant):
        kernel.generate_weekly_report(restaurant.id, date(2025, 1, 6))

        with pytest.raises(ReportAlreadyExistsError):
            kernel.generate_weekly_report(restaurant.id, date(2025, 1, 6))

    def test_get_weekly_report(self, kernel, restaurant):
        generated = kernel.generate_weekly_report(restaurant.id, date(2025, 1, 6))

        assert kernel.get_weekly_report(restaurant.id, date(2025, 1, 6)).id == generated.id
        with pytest.raises(ReportNotFoundError):
            kernel.get_weekly_report(restaurant.id, date(2025, 1, 13))


class TestMonthlyReport:
    def test_month_totals(self, kernel, create_entry, membership, schedule, restaurant):
        create_entry(membership, schedule, utc(2, 8), hours=5)
        create_entry(membership, schedule, utc(31, 8), hours=5)
        create_entry(membership, schedule, datetime(2025, 2, 1, 8, tzinfo=timezone.utc), hours=5)

        report = kernel.generate_monthly_report(restaurant.id, date(2025, 1, 1))

        assert report.totals.period_end == date(2025, 1, 31)
        assert report.totals.summary.total_hours == Decimal("10.00")
        assert report.totals.summary.total_amount == Decimal("300.00")
        assert report.totals.daily_reports_count is None

    def test_month_must_start_on_first(self, kernel, restaurant):
        with pytest.raises(InvalidPeriodStartError):
            kernel.generate_monthly_report(restaurant.id, date(2025, 1, 2))


class TestDiscard:
    def test_discard_allows_regeneration(
        self, kernel, create_entry, membership, schedule, restaurant, test_actor_id, audit_sink
    ):
        first = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))
        create_entry(membership, schedule, utc(6, 8), hours=2)

        kernel.discard_daily_report(first.id, test_actor_id, "late entries")
        second = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert second.id != first.id
        assert second.totals.summary.total_hours == Decimal("2.00")
        assert AuditAction.REPORT_DAILY_DISCARD in audit_sink.actions()
        with pytest.raises(ReportNotFoundError):
            kernel.get_daily_report(first.id)

    def test_signed_report_cannot_be_discarded(self, kernel, restaurant, test_actor_id):
        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))
        kernel.sign_report(report.id, test_actor_id)

        with pytest.raises(ReportAlreadySignedError):
            kernel.discard_daily_report(report.id, test_actor_id, "oops")

    def test_discard_needs_reason(self, kernel, restaurant, test_actor_id):
        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        with pytest.raises(ReasonRequiredError):
            kernel.discard_daily_report(report.id, test_actor_id, "")
