"""
ReportSigningLedger -- sign / unsign daily reports and guard signed dates.

Responsibility:
    Owns the signed state of every ReportDaily and its append-only
    signature log.  It is the single authority the time entry lifecycle
    consults before mutating an entry: a date whose daily report is signed
    is frozen until an explicit unsign.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - sign requires an unsigned report; unsign requires a signed one and a
      non-blank reason.
    - Every sign and unsign appends exactly one ReportSignature row with
      the next sequence number.  Rows are never updated or deleted
      (db/immutability.py).
    - The unsign entry keeps the withdrawn signer and time even though the
      live fields on the report are cleared.
    - assert_date_editable() locks the report row (FOR UPDATE) before
      reading its signed state, so a sign committing concurrently with an
      edit either waits for the edit or is observed by it.

Failure modes:
    - ReportNotFoundError, ReportAlreadySignedError, ReportNotSignedError,
      ReasonRequiredError.
    - ImmutablePeriodError from assert_date_editable().
    - ConcurrentModificationError when the report's version counter moved
      between read and write (retryable via run_in_transaction).

Audit relevance:
    The signature log is the legal record of who froze payroll for a date
    and who reopened it, and why.
"""

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm.exc import StaleDataError

from timekeeping_kernel.domain.dtos import ReportDailyInfo, SignatureLogEntry
from timekeeping_kernel.domain.values import SignatureAction
from timekeeping_kernel.exceptions import (
    ConcurrentModificationError,
    ImmutablePeriodError,
    ReasonRequiredError,
    ReportAlreadySignedError,
    ReportNotFoundError,
    ReportNotSignedError,
)
from timekeeping_kernel.logging_config import LogContext, get_logger
from timekeeping_kernel.models.report import (
    ReportDaily,
    ReportSignature,
    signed_daily_report_query,
)
from timekeeping_kernel.selectors.report_selector import ReportSelector
from timekeeping_kernel.services.audit_sink import (
    AuditAction,
    AuditRecord,
    AuditSink,
    record_safely,
)
from timekeeping_kernel.services.base import BaseService

logger = get_logger("services.signing_ledger")


class ReportSigningLedger(BaseService):
    """
    Signing authority for daily reports.

    Contract:
        Flushes only.  A ConcurrentModificationError leaves the session in
        need of rollback; the caller's transaction wrapper retries.
    """

    def __init__(self, session, clock=None, settings=None, audit_sink: AuditSink | None = None):
        super().__init__(session, clock, settings)
        self.audit_sink = audit_sink
        self._reports = ReportSelector(session)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_report(self, report_id: UUID) -> ReportDaily:
        report = self.session.execute(
            select(ReportDaily)
            .where(ReportDaily.id == report_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if report is None:
            raise ReportNotFoundError(str(report_id))
        return report

    def _next_seq(self, report_id: UUID) -> int:
        current = self.session.scalar(
            select(func.max(ReportSignature.seq)).where(ReportSignature.report_id == report_id)
        )
        return (current or 0) + 1

    def _flush(self, report: ReportDaily) -> None:
        try:
            self.session.flush()
        except StaleDataError as exc:
            logger.warning(
                "report_signature_conflict",
                extra={"report_id": str(report.id)},
            )
            raise ConcurrentModificationError("ReportDaily", str(report.id)) from exc

    # ------------------------------------------------------------------
    # Sign / unsign
    # ------------------------------------------------------------------

    def sign(self, report_id: UUID, actor_id: UUID) -> ReportDailyInfo:
        """
        Freeze a daily report and, with it, every time entry of its date.

        Raises:
            ReportNotFoundError
            ReportAlreadySignedError: the report is already signed.
        """
        report = self._lock_report(report_id)
        if report.is_signed:
            raise ReportAlreadySignedError(
                str(report.id), str(report.signed_by_user_id), report.signed_at.isoformat()
            )

        now = self.clock.now()
        self.session.add(
            ReportSignature(
                report_id=report.id,
                seq=self._next_seq(report.id),
                action=SignatureAction.SIGNED.value,
                actor_user_id=actor_id,
                at=now,
            )
        )
        report.signed_by_user_id = actor_id
        report.signed_at = now
        self._flush(report)

        with LogContext.bind(report_id=str(report.id), actor_id=str(actor_id)):
            logger.info(
                "report_signed",
                extra={"report_date": report.report_date.isoformat()},
            )
        info = self._reports.daily_info(report)
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=report.restaurant_id,
                entity_type="report_daily",
                entity_id=report.id,
                action=AuditAction.REPORT_DAILY_SIGN,
                before={"signed_by_user_id": None, "signed_at": None},
                after={"signed_by_user_id": str(actor_id), "signed_at": now.isoformat()},
                occurred_at=now,
            ),
        )
        return info

    def unsign(self, report_id: UUID, actor_id: UUID, reason: str) -> ReportDailyInfo:
        """
        Reopen a signed report.

        Raises:
            ReasonRequiredError: ``reason`` is missing or blank.
            ReportNotFoundError
            ReportNotSignedError: the report is not signed.
        """
        if not reason or not reason.strip():
            raise ReasonRequiredError("unsign_report")

        report = self._lock_report(report_id)
        if not report.is_signed:
            raise ReportNotSignedError(str(report.id))

        now = self.clock.now()
        previous_signer = report.signed_by_user_id
        previous_at = report.signed_at
        self.session.add(
            ReportSignature(
                report_id=report.id,
                seq=self._next_seq(report.id),
                action=SignatureAction.UNSIGNED.value,
                actor_user_id=actor_id,
                at=now,
                reason=reason.strip(),
                previous_signed_by_user_id=previous_signer,
                previous_signed_at=previous_at,
            )
        )
        report.signed_by_user_id = None
        report.signed_at = None
        self._flush(report)

        with LogContext.bind(report_id=str(report.id), actor_id=str(actor_id)):
            logger.info(
                "report_unsigned",
                extra={
                    "report_date": report.report_date.isoformat(),
                    "previous_signed_by_user_id": str(previous_signer),
                },
            )
        info = self._reports.daily_info(report)
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=report.restaurant_id,
                entity_type="report_daily",
                entity_id=report.id,
                action=AuditAction.REPORT_DAILY_UNSIGN,
                before={
                    "signed_by_user_id": str(previous_signer),
                    "signed_at": previous_at.isoformat(),
                },
                after={"signed_by_user_id": None, "signed_at": None, "reason": reason.strip()},
                occurred_at=now,
            ),
        )
        return info

    def signature_log(self, report_id: UUID) -> tuple[SignatureLogEntry, ...]:
        if self.session.get(ReportDaily, report_id) is None:
            raise ReportNotFoundError(str(report_id))
        return self._reports.signature_log(report_id)

    # ------------------------------------------------------------------
    # Immutability gate
    # ------------------------------------------------------------------

    def is_date_signed(self, restaurant_id: UUID, work_date: date) -> bool:
        row = self.session.execute(signed_daily_report_query(restaurant_id, work_date)).first()
        return row is not None

    def assert_date_editable(
        self,
        restaurant_id: UUID,
        work_date: date,
        operation: str,
    ) -> None:
        """
        Raise ImmutablePeriodError when ``work_date`` is frozen.

        The report row (signed or not) is locked first, so the check and the
        caller's mutation sit in one transaction against a stable state.
        """
        self.session.execute(
            select(ReportDaily.id)
            .where(
                ReportDaily.restaurant_id == restaurant_id,
                ReportDaily.report_date == work_date,
            )
            .with_for_update()
        ).first()

        row = self.session.execute(signed_daily_report_query(restaurant_id, work_date)).first()
        if row is None:
            return

        logger.warning(
            "immutable_period_rejected",
            extra={
                "restaurant_id": str(restaurant_id),
                "work_date": work_date.isoformat(),
                "operation": operation,
                "report_id": str(row.id),
            },
        )
        raise ImmutablePeriodError(
            str(restaurant_id),
            work_date.isoformat(),
            operation,
            report_id=str(row.id),
            signed_by_user_id=str(row.signed_by_user_id),
            signed_at=row.signed_at.isoformat() if row.signed_at else None,
        )
