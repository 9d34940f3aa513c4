"""
Module: timekeeping_kernel.selectors.time_entry_selector
Responsibility: Read-only access to time entries: lookups, the manager's
    pending queue and a worker's monthly summary.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Monthly figures are computed from time entries with the same minute
      arithmetic as reports, and rounded only when materialised.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select

from timekeeping_kernel.db.types import (
    MONEY_DECIMAL_PLACES,
    amount_for_minutes,
    minutes_to_hours,
    round_money,
)
from timekeeping_kernel.domain.dtos import MonthlySummary, TimeEntryInfo, WeeklyBreakdown
from timekeeping_kernel.domain.periods import (
    local_date,
    month_window,
    resolve_timezone,
    weeks_in_month,
)
from timekeeping_kernel.domain.rates import rate_for_report
from timekeeping_kernel.domain.values import TimeEntryStatus
from timekeeping_kernel.exceptions import MembershipNotFoundError
from timekeeping_kernel.models.restaurant import Membership
from timekeeping_kernel.models.time_entry import TimeEntry
from timekeeping_kernel.selectors.base import BaseSelector


class TimeEntrySelector(BaseSelector):
    """Query time entries."""

    def get(self, time_entry_id: UUID) -> TimeEntryInfo | None:
        entry = self.session.get(TimeEntry, time_entry_id)
        return TimeEntryInfo.from_model(entry) if entry else None

    def open_entry(self, membership_id: UUID, schedule_id: UUID) -> TimeEntryInfo | None:
        entry = self.session.scalars(
            select(TimeEntry).where(
                TimeEntry.membership_id == membership_id,
                TimeEntry.schedule_id == schedule_id,
                TimeEntry.clock_out.is_(None),
            )
        ).first()
        return TimeEntryInfo.from_model(entry) if entry else None

    def pending_entries(self, restaurant_id: UUID) -> list[TimeEntryInfo]:
        """Entries awaiting a manager decision, oldest clock-in first."""
        stmt = (
            select(TimeEntry)
            .where(
                TimeEntry.restaurant_id == restaurant_id,
                TimeEntry.status == TimeEntryStatus.PENDING.value,
            )
            .order_by(TimeEntry.clock_in, TimeEntry.id)
        )
        return [TimeEntryInfo.from_model(e) for e in self.session.scalars(stmt).unique()]

    def entries_for_date(self, restaurant_id: UUID, work_date: date) -> list[TimeEntryInfo]:
        stmt = (
            select(TimeEntry)
            .where(
                TimeEntry.restaurant_id == restaurant_id,
                TimeEntry.work_date == work_date,
            )
            .order_by(TimeEntry.clock_in, TimeEntry.id)
        )
        return [TimeEntryInfo.from_model(e) for e in self.session.scalars(stmt).unique()]

    def monthly_summary(
        self,
        membership_id: UUID,
        month: date,
        currency: str = "PLN",
        decimal_places: int = MONEY_DECIMAL_PLACES,
    ) -> MonthlySummary:
        """
        Hours and earnings of one worker for a calendar month.

        Preconditions: ``month`` is the first day of the month.

        Rejected entries count towards total hours but neither approved
        nor pending.  A week is "approved" only when every entry in it is
        closed and approved; weeks without entries are omitted.
        """
        membership = self.session.get(Membership, membership_id)
        if membership is None:
            raise MembershipNotFoundError(str(membership_id))

        tz = resolve_timezone(membership.restaurant.timezone)
        window = month_window(month, tz)

        entries = list(
            self.session.scalars(
                select(TimeEntry)
                .where(
                    TimeEntry.membership_id == membership_id,
                    TimeEntry.clock_in >= window.start,
                    TimeEntry.clock_in < window.end,
                )
                .order_by(TimeEntry.clock_in, TimeEntry.id)
            ).unique()
        )
        infos = [TimeEntryInfo.from_model(e) for e in entries]

        rate = rate_for_report(
            membership.user.hourly_rate_default,
            membership.hourly_rate_manager,
            membership.role,
        )

        total = approved = pending = 0
        for info in infos:
            if info.worked_minutes is None:
                continue
            total += info.worked_minutes
            if info.status == TimeEntryStatus.APPROVED:
                approved += info.worked_minutes
            elif info.status == TimeEntryStatus.PENDING:
                pending += info.worked_minutes

        weeks = []
        for first_day, last_day in weeks_in_month(month):
            in_week = [
                i for i in infos if first_day <= local_date(i.clock_in, tz) <= last_day
            ]
            if not in_week:
                continue
            minutes = sum(i.worked_minutes or 0 for i in in_week)
            all_approved = all(
                i.worked_minutes is not None and i.status == TimeEntryStatus.APPROVED
                for i in in_week
            )
            weeks.append(
                WeeklyBreakdown(
                    week_start=first_day,
                    week_end=last_day,
                    minutes=minutes,
                    hours=round_money(minutes_to_hours(minutes), decimal_places),
                    earnings=round_money(amount_for_minutes(minutes, rate), decimal_places),
                    status="approved" if all_approved else "pending",
                    entries=len(in_week),
                )
            )

        return MonthlySummary(
            membership_id=membership_id,
            month=month,
            total_hours=round_money(minutes_to_hours(total), decimal_places),
            approved_hours=round_money(minutes_to_hours(approved), decimal_places),
            pending_hours=round_money(minutes_to_hours(pending), decimal_places),
            hourly_rate=round_money(Decimal(rate), decimal_places),
            estimated_earnings=round_money(amount_for_minutes(total, rate), decimal_places),
            approved_earnings=round_money(amount_for_minutes(approved, rate), decimal_places),
            currency=currency,
            weeks=tuple(weeks),
        )
