"""
ReportAggregator -- daily, weekly and monthly payroll totals.

Responsibility:
    Turns completed time entries into per-employee totals for a
    restaurant-local period and persists them as a generate-once snapshot.

Architecture position:
    Kernel > Services.  Pure arithmetic lives in ``aggregate_entries``;
    the service only selects, locks and persists.

Invariants enforced:
    - Only entries with a clock_out count.  Active entries are excluded from
      every tier.
    - Every tier reads TimeEntry rows directly over its own window.  Weekly
      and monthly totals are never composed from daily snapshots.
    - Minutes are exact integers; hours and amounts are rounded once, per
      employee row.  Summary totals are the sums of the rounded rows.
    - One report per (restaurant, period) is enforced by a unique
      constraint.  The pre-check exists only to name the existing report.
    - The entries of a period are locked (FOR UPDATE) while they are summed
      so an in-flight edit cannot slip between read and snapshot.

Failure modes:
    - RestaurantNotFoundError.
    - InvalidPeriodStartError: week_start not a Monday, month not the 1st.
    - ReportAlreadyExistsError on a second generation for the same period.
    - ReportNotFoundError, ReportAlreadySignedError, ReasonRequiredError on
      discard.

Audit relevance:
    A discard hands the complete before-image (totals and signature log)
    to the audit sink, since the rows themselves are gone afterwards.
"""

from collections.abc import Iterable, Sequence
from datetime import date, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError

from timekeeping_kernel.db.types import amount_for_minutes, minutes_to_hours, round_money
from timekeeping_kernel.domain.dtos import (
    EmployeeTotals,
    ReportDailyInfo,
    ReportPeriodInfo,
    ReportTotals,
    TotalsSummary,
)
from timekeeping_kernel.domain.intervals import Interval
from timekeeping_kernel.domain.periods import (
    day_window,
    month_window,
    next_month,
    resolve_timezone,
    week_window,
)
from timekeeping_kernel.domain.rates import rate_for_report
from timekeeping_kernel.domain.time_entry import raw_minutes
from timekeeping_kernel.domain.values import ReportKind
from timekeeping_kernel.exceptions import (
    ReasonRequiredError,
    ReportAlreadyExistsError,
    ReportAlreadySignedError,
    ReportNotFoundError,
    RestaurantNotFoundError,
)
from timekeeping_kernel.logging_config import LogContext, get_logger
from timekeeping_kernel.models.report import (
    ReportDaily,
    ReportMonthly,
    ReportSignature,
    ReportWeekly,
)
from timekeeping_kernel.models.restaurant import Restaurant
from timekeeping_kernel.models.time_entry import TimeEntry
from timekeeping_kernel.selectors.report_selector import ReportSelector
from timekeeping_kernel.services.audit_sink import (
    AuditAction,
    AuditRecord,
    AuditSink,
    record_safely,
)
from timekeeping_kernel.services.base import BaseService

logger = get_logger("services.report_aggregator")


def aggregate_entries(
    entries: Iterable[TimeEntry],
    decimal_places: int = 2,
) -> tuple[tuple[EmployeeTotals, ...], TotalsSummary]:
    """
    Per-employee rows and the summary for a set of time entries.

    Open entries are skipped.  Rows are ordered by user name, then
    membership id.
    """
    groups: dict[UUID, list[TimeEntry]] = {}
    for entry in entries:
        if entry.clock_out is None:
            continue
        groups.setdefault(entry.membership_id, []).append(entry)

    rows = []
    for membership_id, group in groups.items():
        membership = group[0].membership
        minutes = sum(
            raw_minutes(e.clock_in, e.clock_out) + e.adjustment_minutes for e in group
        )
        rate = Decimal(
            rate_for_report(
                membership.user.hourly_rate_default,
                membership.hourly_rate_manager,
                membership.role,
            )
        )
        rows.append(
            EmployeeTotals(
                user_id=membership.user_id,
                user_name=membership.user.name,
                membership_id=membership_id,
                role=str(getattr(membership.role, "value", membership.role)),
                total_minutes=minutes,
                total_hours=round_money(minutes_to_hours(minutes), decimal_places),
                hourly_rate=round_money(rate, decimal_places),
                total_amount=round_money(amount_for_minutes(minutes, rate), decimal_places),
                entries=len(group),
                days_worked=len({e.work_date for e in group}),
            )
        )
    rows.sort(key=lambda r: (r.user_name, str(r.membership_id)))

    summary = TotalsSummary(
        total_employees=len(rows),
        total_hours=sum((r.total_hours for r in rows), Decimal("0")),
        total_amount=sum((r.total_amount for r in rows), Decimal("0")),
    )
    if not rows:
        zero = round_money(Decimal("0"), decimal_places)
        summary = TotalsSummary(total_employees=0, total_hours=zero, total_amount=zero)
    return tuple(rows), summary


class ReportAggregator(BaseService):
    """
    Report generation, lookup and discard.

    Contract:
        Flushes only.  Generation is all-or-nothing inside a SAVEPOINT.
    """

    def __init__(self, session, clock=None, settings=None, audit_sink: AuditSink | None = None):
        super().__init__(session, clock, settings)
        self.audit_sink = audit_sink
        self._reports = ReportSelector(session)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _restaurant(self, restaurant_id: UUID) -> Restaurant:
        restaurant = self.session.get(Restaurant, restaurant_id)
        if restaurant is None:
            raise RestaurantNotFoundError(str(restaurant_id))
        return restaurant

    def _completed_entries(self, restaurant_id: UUID, window: Interval) -> Sequence[TimeEntry]:
        stmt = (
            select(TimeEntry)
            .where(
                TimeEntry.restaurant_id == restaurant_id,
                TimeEntry.clock_in >= window.start,
                TimeEntry.clock_in < window.end,
                TimeEntry.clock_out.is_not(None),
            )
            .order_by(TimeEntry.clock_in, TimeEntry.id)
            .with_for_update(of=TimeEntry)
        )
        return self.session.scalars(stmt).unique().all()

    def _totals(
        self,
        kind: ReportKind,
        restaurant_id: UUID,
        first_day: date,
        last_day: date,
        window: Interval,
        daily_reports_count: int | None = None,
    ) -> ReportTotals:
        entries = self._completed_entries(restaurant_id, window)
        employees, summary = aggregate_entries(entries, self.settings.money_decimal_places)
        return ReportTotals(
            kind=kind,
            restaurant_id=restaurant_id,
            period_start=first_day,
            period_end=last_day,
            currency=self.settings.currency,
            employees=employees,
            summary=summary,
            daily_reports_count=daily_reports_count,
        )

    def _insert(self, report, kind: ReportKind, restaurant_id: UUID, period_key: date) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(report)
                self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "report_generation_conflict",
                extra={
                    "kind": kind.value,
                    "restaurant_id": str(restaurant_id),
                    "period_key": period_key.isoformat(),
                },
            )
            raise ReportAlreadyExistsError(
                kind.value, str(restaurant_id), period_key.isoformat()
            ) from exc

    def _reject_existing(self, kind: ReportKind, restaurant_id: UUID, period_key: date, existing) -> None:
        if existing is None:
            return
        logger.warning(
            "report_already_exists",
            extra={
                "kind": kind.value,
                "restaurant_id": str(restaurant_id),
                "period_key": period_key.isoformat(),
                "existing_report_id": str(existing.id),
            },
        )
        raise ReportAlreadyExistsError(
            kind.value,
            str(restaurant_id),
            period_key.isoformat(),
            existing_report_id=str(existing.id),
        )

    def _audit_generate(self, action: str, actor_id, restaurant_id, report_id, totals) -> None:
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=restaurant_id,
                entity_type=action.split(".")[0],
                entity_id=report_id,
                action=action,
                before=None,
                after=totals.to_dict(),
                occurred_at=self.clock.now(),
            ),
        )

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_daily_report(
        self,
        restaurant_id: UUID,
        report_date: date,
        actor_id: UUID | None = None,
    ) -> ReportDailyInfo:
        """
        Snapshot the totals of one restaurant-local day.

        Raises:
            RestaurantNotFoundError
            ReportAlreadyExistsError
        """
        restaurant = self._restaurant(restaurant_id)
        self._reject_existing(
            ReportKind.DAILY,
            restaurant_id,
            report_date,
            self._reports.get_daily_for_date(restaurant_id, report_date),
        )

        tz = resolve_timezone(restaurant.timezone)
        totals = self._totals(
            ReportKind.DAILY,
            restaurant_id,
            report_date,
            report_date,
            day_window(report_date, tz),
        )
        report = ReportDaily(
            restaurant_id=restaurant_id,
            report_date=report_date,
            totals=totals.to_dict(),
            generated_by_user_id=actor_id,
        )
        self._insert(report, ReportKind.DAILY, restaurant_id, report_date)

        with LogContext.bind(report_id=str(report.id), restaurant_id=str(restaurant_id)):
            logger.info(
                "daily_report_generated",
                extra={
                    "report_date": report_date.isoformat(),
                    "employees": totals.summary.total_employees,
                    "total_hours": str(totals.summary.total_hours),
                    "total_amount": str(totals.summary.total_amount),
                },
            )
        self._audit_generate(
            AuditAction.REPORT_DAILY_GENERATE, actor_id, restaurant_id, report.id, totals
        )
        return self._reports.daily_info(report)

    def generate_weekly_report(
        self,
        restaurant_id: UUID,
        week_start: date,
        actor_id: UUID | None = None,
    ) -> ReportPeriodInfo:
        """
        Snapshot the totals of a Monday-to-Sunday week.

        Raises:
            InvalidPeriodStartError: ``week_start`` is not a Monday.
            RestaurantNotFoundError
            ReportAlreadyExistsError
        """
        restaurant = self._restaurant(restaurant_id)
        window = week_window(week_start, resolve_timezone(restaurant.timezone))
        self._reject_existing(
            ReportKind.WEEKLY,
            restaurant_id,
            week_start,
            self._reports.get_weekly(restaurant_id, week_start),
        )

        week_end = week_start + timedelta(days=6)
        totals = self._totals(
            ReportKind.WEEKLY,
            restaurant_id,
            week_start,
            week_end,
            window,
            daily_reports_count=self._reports.count_daily_reports(
                restaurant_id, week_start, week_end
            ),
        )
        report = ReportWeekly(
            restaurant_id=restaurant_id,
            week_start=week_start,
            totals=totals.to_dict(),
            generated_by_user_id=actor_id,
        )
        self._insert(report, ReportKind.WEEKLY, restaurant_id, week_start)

        logger.info(
            "weekly_report_generated",
            extra={
                "restaurant_id": str(restaurant_id),
                "week_start": week_start.isoformat(),
                "daily_reports_count": totals.daily_reports_count,
                "total_amount": str(totals.summary.total_amount),
            },
        )
        self._audit_generate(
            AuditAction.REPORT_WEEKLY_GENERATE, actor_id, restaurant_id, report.id, totals
        )
        return self._reports.get_weekly(restaurant_id, week_start)

    def generate_monthly_report(
        self,
        restaurant_id: UUID,
        period_month: date,
        actor_id: UUID | None = None,
    ) -> ReportPeriodInfo:
        """
        Snapshot the totals of a calendar month.

        Raises:
            InvalidPeriodStartError: ``period_month`` is not the 1st.
            RestaurantNotFoundError
            ReportAlreadyExistsError
        """
        restaurant = self._restaurant(restaurant_id)
        window = month_window(period_month, resolve_timezone(restaurant.timezone))
        self._reject_existing(
            ReportKind.MONTHLY,
            restaurant_id,
            period_month,
            self._reports.get_monthly(restaurant_id, period_month),
        )

        totals = self._totals(
            ReportKind.MONTHLY,
            restaurant_id,
            period_month,
            next_month(period_month) - timedelta(days=1),
            window,
        )
        report = ReportMonthly(
            restaurant_id=restaurant_id,
            period_month=period_month,
            totals=totals.to_dict(),
            generated_by_user_id=actor_id,
        )
        self._insert(report, ReportKind.MONTHLY, restaurant_id, period_month)

        logger.info(
            "monthly_report_generated",
            extra={
                "restaurant_id": str(restaurant_id),
                "period_month": period_month.isoformat(),
                "total_amount": str(totals.summary.total_amount),
            },
        )
        self._audit_generate(
            AuditAction.REPORT_MONTHLY_GENERATE, actor_id, restaurant_id, report.id, totals
        )
        return self._reports.get_monthly(restaurant_id, period_month)

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def get_daily_report(self, report_id: UUID) -> ReportDailyInfo:
        info = self._reports.get_daily(report_id)
        if info is None:
            raise ReportNotFoundError(str(report_id))
        return info

    def get_daily_report_for_date(self, restaurant_id: UUID, report_date: date) -> ReportDailyInfo:
        info = self._reports.get_daily_for_date(restaurant_id, report_date)
        if info is None:
            raise ReportNotFoundError(f"{restaurant_id}/{report_date.isoformat()}")
        return info

    def get_weekly_report(self, restaurant_id: UUID, week_start: date) -> ReportPeriodInfo:
        info = self._reports.get_weekly(restaurant_id, week_start)
        if info is None:
            raise ReportNotFoundError(f"{restaurant_id}/{week_start.isoformat()}")
        return info

    def get_monthly_report(self, restaurant_id: UUID, period_month: date) -> ReportPeriodInfo:
        info = self._reports.get_monthly(restaurant_id, period_month)
        if info is None:
            raise ReportNotFoundError(f"{restaurant_id}/{period_month.isoformat()}")
        return info

    # ------------------------------------------------------------------
    # Discard
    # ------------------------------------------------------------------

    def discard_daily_report(self, report_id: UUID, actor_id: UUID, reason: str) -> None:
        """
        Remove an unsigned daily report so the date can be regenerated.

        Raises:
            ReasonRequiredError
            ReportNotFoundError
            ReportAlreadySignedError: signed reports must be unsigned first.
        """
        if not reason or not reason.strip():
            raise ReasonRequiredError("discard report")

        report = self.session.execute(
            select(ReportDaily)
            .where(ReportDaily.id == report_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if report is None:
            raise ReportNotFoundError(str(report_id))
        if report.is_signed:
            raise ReportAlreadySignedError(
                str(report.id), str(report.signed_by_user_id), report.signed_at.isoformat()
            )

        before = self._reports.daily_info(report).to_audit_dict()
        restaurant_id = report.restaurant_id
        self.session.execute(
            delete(ReportSignature).where(ReportSignature.report_id == report.id)
        )
        self.session.delete(report)
        self.session.flush()

        logger.info(
            "daily_report_discarded",
            extra={
                "report_id": str(report_id),
                "report_date": before["report_date"],
                "actor_id": str(actor_id),
            },
        )
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=restaurant_id,
                entity_type="report_daily",
                entity_id=report_id,
                action=AuditAction.REPORT_DAILY_DISCARD,
                before=before,
                after={"reason": reason.strip()},
                occurred_at=self.clock.now(),
            ),
        )
