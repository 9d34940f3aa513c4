"""
Module: timekeeping_kernel.selectors.report_selector
Responsibility: Read-only access to report snapshots and signature logs.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Signature logs are returned in append order (seq ascending).
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select

from timekeeping_kernel.domain.dtos import (
    ReportDailyInfo,
    ReportPeriodInfo,
    ReportTotals,
    SignatureLogEntry,
    signature_entry_from_model,
)
from timekeeping_kernel.domain.values import ReportKind
from timekeeping_kernel.models.report import (
    ReportDaily,
    ReportMonthly,
    ReportSignature,
    ReportWeekly,
)
from timekeeping_kernel.selectors.base import BaseSelector


class ReportSelector(BaseSelector):
    """Query reports."""

    def _signatures(self, report_id: UUID) -> list[ReportSignature]:
        return list(
            self.session.scalars(
                select(ReportSignature)
                .where(ReportSignature.report_id == report_id)
                .order_by(ReportSignature.seq)
            )
        )

    def signature_log(self, report_id: UUID) -> tuple[SignatureLogEntry, ...]:
        return tuple(signature_entry_from_model(s) for s in self._signatures(report_id))

    def daily_info(self, report: ReportDaily) -> ReportDailyInfo:
        return ReportDailyInfo.from_model(report, self._signatures(report.id))

    def get_daily(self, report_id: UUID) -> ReportDailyInfo | None:
        report = self.session.get(ReportDaily, report_id)
        return self.daily_info(report) if report else None

    def get_daily_for_date(self, restaurant_id: UUID, report_date: date) -> ReportDailyInfo | None:
        report = self.session.scalars(
            select(ReportDaily).where(
                ReportDaily.restaurant_id == restaurant_id,
                ReportDaily.report_date == report_date,
            )
        ).first()
        return self.daily_info(report) if report else None

    def count_daily_reports(self, restaurant_id: UUID, first_day: date, last_day: date) -> int:
        return self.session.scalar(
            select(func.count(ReportDaily.id)).where(
                ReportDaily.restaurant_id == restaurant_id,
                ReportDaily.report_date >= first_day,
                ReportDaily.report_date <= last_day,
            )
        ) or 0

    def get_weekly(self, restaurant_id: UUID, week_start: date) -> ReportPeriodInfo | None:
        report = self.session.scalars(
            select(ReportWeekly).where(
                ReportWeekly.restaurant_id == restaurant_id,
                ReportWeekly.week_start == week_start,
            )
        ).first()
        if report is None:
            return None
        return ReportPeriodInfo(
            id=report.id,
            restaurant_id=report.restaurant_id,
            kind=ReportKind.WEEKLY,
            period_start=report.week_start,
            totals=ReportTotals.from_dict(report.totals),
            generated_at=report.created_at,
        )

    def get_monthly(self, restaurant_id: UUID, period_month: date) -> ReportPeriodInfo | None:
        report = self.session.scalars(
            select(ReportMonthly).where(
                ReportMonthly.restaurant_id == restaurant_id,
                ReportMonthly.period_month == period_month,
            )
        ).first()
        if report is None:
            return None
        return ReportPeriodInfo(
            id=report.id,
            restaurant_id=report.restaurant_id,
            kind=ReportKind.MONTHLY,
            period_start=report.period_month,
            totals=ReportTotals.from_dict(report.totals),
            generated_at=report.created_at,
        )
