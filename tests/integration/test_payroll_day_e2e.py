"""
End-to-end payroll day through the kernel facade.

Verifies:
- Schedule, clock, approve, report and sign compose into the expected
  totals for a restaurant-local day
- Night shifts across midnight and DST changes are paid by elapsed time
- A signed day stays frozen until unsigned, and regeneration after a
  discard picks up corrections
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from timekeeping_kernel.domain.dtos import TimeEntryPatch
from timekeeping_kernel.domain.values import MembershipRole, TimeEntryStatus
from timekeeping_kernel.exceptions import ImmutablePeriodError

WARSAW = ZoneInfo("Europe/Warsaw")


def local(year, month, day, hour, minute=0) -> datetime:
    return datetime(year, month, day, hour, minute, tzinfo=WARSAW).astimezone(timezone.utc)


class TestPayrollDay:
    def test_three_workers_one_day(
        self,
        kernel,
        deterministic_clock,
        create_user,
        create_membership,
        restaurant,
        schedule,
        test_actor_id,
    ):
        ala = create_membership(
            restaurant,
            user=create_user("Ala", "30"),
            role=MembershipRole.MANAGER,
            manager_rate="55",
        )
        bartek = create_membership(restaurant, user=create_user("Bartek", "35"))
        celina = create_membership(restaurant, user=create_user("Celina", "40"))

        kernel.create_shift(
            schedule.id,
            local(2025, 1, 6, 8),
            local(2025, 1, 6, 16),
            assignee_ids=[ala.id, bartek.id, celina.id],
        )

        deterministic_clock.set_time(local(2025, 1, 6, 8))
        entries = {m.id: kernel.clock_in(m.id, schedule.id) for m in (ala, bartek, celina)}
        for membership, hours in ((bartek, 6), (celina, 7), (ala, 8)):
            deterministic_clock.set_time(local(2025, 1, 6, 8 + hours))
            kernel.clock_out(entries[membership.id].id)

        for info in kernel.pending_entries(restaurant.id):
            kernel.approve_or_reject(info.id, True, actor_id=test_actor_id)

        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6), test_actor_id)
        kernel.sign_report(report.id, test_actor_id)

        rows = {e.user_name: e for e in report.totals.employees}
        assert rows["Ala"].hourly_rate == Decimal("55.00")
        assert rows["Ala"].total_amount == Decimal("440.00")
        assert rows["Bartek"].total_amount == Decimal("210.00")
        assert rows["Celina"].total_amount == Decimal("280.00")
        assert report.totals.summary.total_hours == Decimal("21.00")
        assert report.totals.summary.total_amount == Decimal("930.00")

        with pytest.raises(ImmutablePeriodError):
            kernel.edit_time_entry(
                entries[ala.id].id, TimeEntryPatch(adjustment_minutes=-30), test_actor_id
            )

    def test_correction_after_unsign_and_regenerate(
        self, kernel, deterministic_clock, membership, restaurant, schedule, test_actor_id
    ):
        deterministic_clock.set_time(local(2025, 1, 6, 9))
        entry = kernel.clock_in(membership.id, schedule.id)
        deterministic_clock.set_time(local(2025, 1, 6, 17))
        kernel.clock_out(entry.id)
        report = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))
        kernel.sign_report(report.id, test_actor_id)

        kernel.unsign_report(report.id, test_actor_id, "unpaid break missing")
        kernel.edit_time_entry(entry.id, TimeEntryPatch(adjustment_minutes=-30), test_actor_id)
        kernel.discard_daily_report(report.id, test_actor_id, "recompute after break fix")
        again = kernel.generate_daily_report(restaurant.id, date(2025, 1, 6))

        assert again.totals.summary.total_hours == Decimal("7.50")
        assert again.totals.summary.total_amount == Decimal("225.00")


class TestNightShifts:
    def test_midnight_crossing_belongs_to_clock_in_day(
        self, kernel, deterministic_clock, membership, restaurant, schedule
    ):
        deterministic_clock.set_time(local(2025, 1, 10, 22))
        entry = kernel.clock_in(membership.id, schedule.id)
        deterministic_clock.set_time(local(2025, 1, 11, 4))
        kernel.clock_out(entry.id)

        friday = kernel.generate_daily_report(restaurant.id, date(2025, 1, 10))
        saturday = kernel.generate_daily_report(restaurant.id, date(2025, 1, 11))

        assert friday.totals.summary.total_hours == Decimal("6.00")
        assert saturday.totals.employees == ()

    @pytest.mark.parametrize(
        "start_day,end_day,month,expected_hours",
        [
            (29, 30, 3, Decimal("7.00")),
            (25, 26, 10, Decimal("9.00")),
        ],
    )
    def test_dst_nights_paid_by_elapsed_time(
        self,
        kernel,
        deterministic_clock,
        membership,
        restaurant,
        schedule,
        start_day,
        end_day,
        month,
        expected_hours,
    ):
        deterministic_clock.set_time(local(2025, month, start_day, 22))
        entry = kernel.clock_in(membership.id, schedule.id)
        deterministic_clock.set_time(local(2025, month, end_day, 6))
        info = kernel.clock_out(entry.id)

        report = kernel.generate_daily_report(restaurant.id, date(2025, month, start_day))

        assert info.status == TimeEntryStatus.PENDING
        assert report.totals.summary.total_hours == expected_hours
        assert report.totals.summary.total_amount == expected_hours * 30
