"""
TimekeepingKernel -- the calling layer's single entry point.

The kernel ties together:
- ShiftOverlapValidator and ShiftService: scheduling
- TimeEntryLifecycle: clock-in/out, corrections, approvals
- ReportAggregator: daily/weekly/monthly totals
- ReportSigningLedger: sign/unsign and the immutability gate
- AuditSink: fire-and-forget audit trail

All services share one session, clock, settings object and audit sink, so
the lifecycle and the ledger always see the same transaction.  The kernel
never commits; wrap calls in ``session_scope`` or ``run_in_transaction``.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from timekeeping_kernel.domain.clock import Clock, SystemClock
from timekeeping_kernel.domain.dtos import (
    BatchOverlapResult,
    EarningsPreview,
    MonthlySummary,
    OverlapResult,
    ReportDailyInfo,
    ReportPeriodInfo,
    ShiftAssignmentInfo,
    ShiftInfo,
    SignatureLogEntry,
    TimeEntryInfo,
    TimeEntryPatch,
)
from timekeeping_kernel.domain.settings import KernelSettings
from timekeeping_kernel.selectors.time_entry_selector import TimeEntrySelector
from timekeeping_kernel.services.audit_sink import AuditSink, DatabaseAuditSink, NullAuditSink
from timekeeping_kernel.services.report_aggregator import ReportAggregator
from timekeeping_kernel.services.report_signing_ledger import ReportSigningLedger
from timekeeping_kernel.services.shift_overlap_validator import ShiftOverlapValidator
from timekeeping_kernel.services.shift_service import ShiftService
from timekeeping_kernel.services.time_entry_service import TimeEntryLifecycle


def _configured_settings() -> KernelSettings:
    """Settings from the active configuration (packaged defaults unless overridden)."""
    from timekeeping_config import get_kernel_settings

    return get_kernel_settings()


class TimekeepingKernel:
    """
    Facade over the timekeeping services.

    The authorization layer resolves who the actor is and whether they may
    call an operation; the kernel only enforces when it is allowed.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        settings: KernelSettings | None = None,
        audit_sink: AuditSink | None = None,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._settings = settings or _configured_settings()
        if audit_sink is None:
            audit_sink = (
                DatabaseAuditSink(session, self._clock)
                if self._settings.audit_enabled
                else NullAuditSink()
            )
        self.audit_sink = audit_sink

        self._validator = ShiftOverlapValidator(session, self._clock, self._settings)
        self._shifts = ShiftService(
            session, self._clock, self._settings, audit_sink, self._validator
        )
        self._ledger = ReportSigningLedger(session, self._clock, self._settings, audit_sink)
        self._lifecycle = TimeEntryLifecycle(
            session, self._clock, self._settings, audit_sink, self._ledger
        )
        self._aggregator = ReportAggregator(session, self._clock, self._settings, audit_sink)
        self._entries = TimeEntrySelector(session)

    # Scheduling

    def check_shift_overlap(
        self,
        membership_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: UUID | None = None,
    ) -> OverlapResult:
        return self._validator.check_overlap(membership_id, start, end, exclude_shift_id)

    def find_shift_conflicts(
        self,
        membership_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: UUID | None = None,
    ) -> BatchOverlapResult:
        return self._validator.find_all_conflicts(membership_id, start, end, exclude_shift_id)

    def validate_shift_times(self, start: datetime, end: datetime) -> tuple[datetime, datetime]:
        return self._validator.validate_shift_times(start, end)

    def create_shift(self, schedule_id: UUID, start: datetime, end: datetime, **kwargs: Any) -> ShiftInfo:
        return self._shifts.create_shift(schedule_id, start, end, **kwargs)

    def update_shift_times(
        self, shift_id: UUID, start: datetime, end: datetime, actor_id: UUID | None = None
    ) -> ShiftInfo:
        return self._shifts.update_shift_times(shift_id, start, end, actor_id)

    def assign_shift(
        self, shift_id: UUID, membership_id: UUID, actor_id: UUID | None = None
    ) -> ShiftAssignmentInfo:
        return self._shifts.assign_shift(shift_id, membership_id, actor_id)

    def set_assignment_status(
        self, shift_id: UUID, membership_id: UUID, status, actor_id: UUID | None = None
    ) -> ShiftAssignmentInfo:
        return self._shifts.set_assignment_status(shift_id, membership_id, status, actor_id)

    # Time entries

    def clock_in(self, membership_id: UUID, schedule_id: UUID, reason: str | None = None) -> TimeEntryInfo:
        return self._lifecycle.clock_in(membership_id, schedule_id, reason)

    def clock_out(
        self,
        time_entry_id: UUID,
        adjustment_minutes: int | None = None,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        return self._lifecycle.clock_out(time_entry_id, adjustment_minutes, reason)

    def clock_out_open(
        self,
        membership_id: UUID,
        schedule_id: UUID,
        adjustment_minutes: int | None = None,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        return self._lifecycle.clock_out_open(membership_id, schedule_id, adjustment_minutes, reason)

    def edit_time_entry(
        self, time_entry_id: UUID, patch: TimeEntryPatch, actor_id: UUID | None = None
    ) -> TimeEntryInfo:
        return self._lifecycle.edit_time_entry(time_entry_id, patch, actor_id)

    def approve_or_reject(
        self,
        time_entry_id: UUID,
        approved: bool,
        actor_id: UUID | None = None,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        return self._lifecycle.approve_or_reject(time_entry_id, approved, actor_id, reason)

    def close_by_manager(
        self,
        time_entry_id: UUID,
        actor_id: UUID,
        reason: str,
        clock_out: datetime | None = None,
    ) -> TimeEntryInfo:
        return self._lifecycle.close_by_manager(time_entry_id, actor_id, reason, clock_out)

    def preview_earnings(
        self, time_entry_id: UUID, working_as_manager: bool | None = None
    ) -> EarningsPreview:
        return self._lifecycle.preview_earnings(time_entry_id, working_as_manager)

    def pending_entries(self, restaurant_id: UUID) -> list[TimeEntryInfo]:
        return self._entries.pending_entries(restaurant_id)

    def monthly_summary(self, membership_id: UUID, month: date) -> MonthlySummary:
        return self._entries.monthly_summary(
            membership_id, month, self._settings.currency, self._settings.money_decimal_places
        )

    # Reports

    def generate_daily_report(
        self, restaurant_id: UUID, report_date: date, actor_id: UUID | None = None
    ) -> ReportDailyInfo:
        return self._aggregator.generate_daily_report(restaurant_id, report_date, actor_id)

    def generate_weekly_report(
        self, restaurant_id: UUID, week_start: date, actor_id: UUID | None = None
    ) -> ReportPeriodInfo:
        return self._aggregator.generate_weekly_report(restaurant_id, week_start, actor_id)

    def generate_monthly_report(
        self, restaurant_id: UUID, period_month: date, actor_id: UUID | None = None
    ) -> ReportPeriodInfo:
        return self._aggregator.generate_monthly_report(restaurant_id, period_month, actor_id)

    def get_daily_report(self, report_id: UUID) -> ReportDailyInfo:
        return self._aggregator.get_daily_report(report_id)

    def get_weekly_report(self, restaurant_id: UUID, week_start: date) -> ReportPeriodInfo:
        return self._aggregator.get_weekly_report(restaurant_id, week_start)

    def get_monthly_report(self, restaurant_id: UUID, period_month: date) -> ReportPeriodInfo:
        return self._aggregator.get_monthly_report(restaurant_id, period_month)

    def discard_daily_report(self, report_id: UUID, actor_id: UUID, reason: str) -> None:
        self._aggregator.discard_daily_report(report_id, actor_id, reason)

    # Signing

    def sign_report(self, report_id: UUID, actor_id: UUID) -> ReportDailyInfo:
        return self._ledger.sign(report_id, actor_id)

    def unsign_report(self, report_id: UUID, actor_id: UUID, reason: str) -> ReportDailyInfo:
        return self._ledger.unsign(report_id, actor_id, reason)

    def signature_log(self, report_id: UUID) -> tuple[SignatureLogEntry, ...]:
        return self._ledger.signature_log(report_id)

    def is_date_signed(self, restaurant_id: UUID, work_date: date) -> bool:
        return self._ledger.is_date_signed(restaurant_id, work_date)
