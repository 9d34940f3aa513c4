"""
TimeEntryLifecycle -- the state machine of a worked-time record.

Responsibility:
    Clock-in, clock-out, corrections, approval and rejection, manager
    force-close and the earnings preview of a single TimeEntry.

Architecture position:
    Kernel > Services.  Consults ReportSigningLedger for every mutation of
    a closed entry; resolves pay through domain.rates.

Invariants enforced:
    - At most one open entry per (membership, schedule).  The partial unique
      index is the authority; the pre-check only produces a richer error.
    - ACTIVE -> PENDING -> APPROVED | REJECTED.  Force-closed entries enter
      PENDING with source ``system-closed``.
    - clock_out is strictly after clock_in and the effective duration
      (raw minutes + adjustment) is never negative.
    - Edit, approve, reject and force-close run the immutability gate for
      the entry's work_date (and the new date, when clock_in moves) inside
      the caller's transaction, after locking the entry row.
    - work_date is the restaurant-local date of clock_in.

Failure modes:
    - MembershipNotFoundError, MembershipInactiveError,
      ScheduleNotFoundError, ScheduleRestaurantMismatchError on clock-in.
    - DuplicateOpenEntryError on a second clock-in.
    - TimeEntryNotFoundError, NoOpenEntryError.
    - EntryNotPendingError, EntryNotActiveError, EntryStillActiveError.
    - InvalidClockOutError, NegativeDurationError, ReasonRequiredError.
    - ImmutablePeriodError when the date is signed.

Audit relevance:
    Every transition is handed to the audit sink with before/after images.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from timekeeping_kernel.db.types import amount_for_minutes, minutes_to_hours, round_money
from timekeeping_kernel.domain.dtos import EarningsPreview, TimeEntryInfo, TimeEntryPatch
from timekeeping_kernel.domain.periods import local_date, resolve_timezone
from timekeeping_kernel.domain.rates import rate_for_report, resolve_rate
from timekeeping_kernel.domain.time_entry import (
    effective_minutes,
    ensure_aware,
    raw_minutes,
    validate_clock_out,
)
from timekeeping_kernel.domain.values import TimeEntrySource, TimeEntryStatus
from timekeeping_kernel.exceptions import (
    DuplicateOpenEntryError,
    EntryNotActiveError,
    EntryNotPendingError,
    EntryStillActiveError,
    MembershipInactiveError,
    MembershipNotFoundError,
    NoOpenEntryError,
    ReasonRequiredError,
    ScheduleNotFoundError,
    ScheduleRestaurantMismatchError,
    TimeEntryNotFoundError,
)
from timekeeping_kernel.logging_config import LogContext, get_logger
from timekeeping_kernel.models.restaurant import Membership
from timekeeping_kernel.models.schedule import ScheduleCategory
from timekeeping_kernel.models.time_entry import TimeEntry
from timekeeping_kernel.selectors.shift_selector import ShiftSelector
from timekeeping_kernel.services.audit_sink import (
    AuditAction,
    AuditRecord,
    AuditSink,
    record_safely,
)
from timekeeping_kernel.services.base import BaseService
from timekeeping_kernel.services.report_signing_ledger import ReportSigningLedger

logger = get_logger("services.time_entry")


class TimeEntryLifecycle(BaseService):
    """
    Mutations of a single time entry.

    Contract:
        Flushes only.  Returns TimeEntryInfo snapshots, never ORM rows.
    """

    def __init__(
        self,
        session,
        clock=None,
        settings=None,
        audit_sink: AuditSink | None = None,
        ledger: ReportSigningLedger | None = None,
    ):
        super().__init__(session, clock, settings)
        self.audit_sink = audit_sink
        self.ledger = ledger or ReportSigningLedger(
            session, self.clock, self.settings, audit_sink
        )
        self._shifts = ShiftSelector(session)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _lock_entry(self, time_entry_id: UUID) -> TimeEntry:
        entry = self.session.scalars(
            select(TimeEntry)
            .where(TimeEntry.id == time_entry_id)
            .with_for_update(of=TimeEntry)
            .execution_options(populate_existing=True)
        ).unique().one_or_none()
        if entry is None:
            raise TimeEntryNotFoundError(str(time_entry_id))
        return entry

    def _find_open_entry(self, membership_id: UUID, schedule_id: UUID) -> TimeEntry | None:
        return self.session.scalars(
            select(TimeEntry).where(
                TimeEntry.membership_id == membership_id,
                TimeEntry.schedule_id == schedule_id,
                TimeEntry.clock_out.is_(None),
            )
        ).unique().first()

    def _work_date(self, entry: TimeEntry, clock_in: datetime):
        tz = resolve_timezone(entry.membership.restaurant.timezone)
        return local_date(clock_in, tz)

    def _audit(self, entry: TimeEntry, action: str, actor_id, before, after) -> None:
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=entry.restaurant_id,
                entity_type="time_entry",
                entity_id=entry.id,
                action=action,
                before=before,
                after=after,
                occurred_at=self.clock.now(),
            ),
        )

    # ------------------------------------------------------------------
    # Clock-in / clock-out
    # ------------------------------------------------------------------

    def clock_in(
        self,
        membership_id: UUID,
        schedule_id: UUID,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        """
        Open a time entry at "now".

        Raises:
            MembershipNotFoundError, MembershipInactiveError
            ScheduleNotFoundError, ScheduleRestaurantMismatchError
            DuplicateOpenEntryError: an open entry exists for the pair.
        """
        membership = self.session.get(Membership, membership_id)
        if membership is None:
            raise MembershipNotFoundError(str(membership_id))
        if not membership.is_active:
            raise MembershipInactiveError(str(membership_id), str(membership.status))

        schedule = self.session.get(ScheduleCategory, schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(str(schedule_id))
        if schedule.restaurant_id != membership.restaurant_id:
            raise ScheduleRestaurantMismatchError(str(schedule_id), str(membership_id))

        existing = self._find_open_entry(membership_id, schedule_id)
        if existing is not None:
            logger.warning(
                "clock_in_rejected_open_entry",
                extra={
                    "membership_id": str(membership_id),
                    "schedule_id": str(schedule_id),
                    "open_entry_id": str(existing.id),
                },
            )
            raise DuplicateOpenEntryError(
                str(membership_id),
                str(schedule_id),
                open_entry_id=str(existing.id),
                clock_in=existing.clock_in.isoformat(),
            )

        now = self.clock.now()
        tz = resolve_timezone(membership.restaurant.timezone)
        entry = TimeEntry(
            membership_id=membership_id,
            schedule_id=schedule_id,
            restaurant_id=membership.restaurant_id,
            clock_in=now,
            clock_out=None,
            work_date=local_date(now, tz),
            adjustment_minutes=0,
            status=TimeEntryStatus.ACTIVE.value,
            source=TimeEntrySource.CLOCK.value,
            reason=reason,
        )
        try:
            with self.session.begin_nested():
                self.session.add(entry)
                self.session.flush()
        except IntegrityError as exc:
            logger.warning(
                "clock_in_rejected_concurrent",
                extra={"membership_id": str(membership_id), "schedule_id": str(schedule_id)},
            )
            raise DuplicateOpenEntryError(str(membership_id), str(schedule_id)) from exc

        info = TimeEntryInfo.from_model(entry)
        with LogContext.bind(entry_id=str(entry.id), restaurant_id=str(entry.restaurant_id)):
            logger.info(
                "clock_in_recorded",
                extra={
                    "membership_id": str(membership_id),
                    "schedule_id": str(schedule_id),
                    "clock_in": now.isoformat(),
                    "work_date": entry.work_date.isoformat(),
                },
            )
        self._audit(entry, AuditAction.TIME_ENTRY_CREATE, membership.user_id, None, info.to_audit_dict())
        return info

    def clock_out(
        self,
        time_entry_id: UUID,
        adjustment_minutes: int | None = None,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        """
        Close an active entry at "now" and move it to pending.

        An entry that is already closed is returned unchanged.

        Raises:
            TimeEntryNotFoundError
            InvalidClockOutError: "now" is not after clock_in.
            NegativeDurationError: the adjustment makes the duration negative.
        """
        entry = self._lock_entry(time_entry_id)
        if entry.clock_out is not None:
            logger.info("clock_out_already_closed", extra={"time_entry_id": str(entry.id)})
            return TimeEntryInfo.from_model(entry)

        before = TimeEntryInfo.from_model(entry).to_audit_dict()
        now = self.clock.now()
        validate_clock_out(entry.clock_in, now)
        adjustment = entry.adjustment_minutes if adjustment_minutes is None else adjustment_minutes
        minutes = effective_minutes(entry.clock_in, now, adjustment)

        entry.clock_out = now
        entry.adjustment_minutes = adjustment
        entry.status = TimeEntryStatus.PENDING.value
        if reason is not None:
            entry.reason = reason
        self.session.flush()

        info = TimeEntryInfo.from_model(entry)
        with LogContext.bind(entry_id=str(entry.id), restaurant_id=str(entry.restaurant_id)):
            logger.info(
                "clock_out_recorded",
                extra={"clock_out": now.isoformat(), "worked_minutes": minutes},
            )
        self._audit(
            entry,
            AuditAction.TIME_ENTRY_CLOCK_OUT,
            entry.membership.user_id,
            before,
            info.to_audit_dict(),
        )
        return info

    def clock_out_open(
        self,
        membership_id: UUID,
        schedule_id: UUID,
        adjustment_minutes: int | None = None,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        """Clock out whichever entry is open for the pair.

        Raises:
            NoOpenEntryError: the worker is not clocked in on this schedule.
        """
        entry = self._find_open_entry(membership_id, schedule_id)
        if entry is None:
            logger.warning(
                "clock_out_rejected_no_open_entry",
                extra={"membership_id": str(membership_id), "schedule_id": str(schedule_id)},
            )
            raise NoOpenEntryError(str(membership_id), str(schedule_id))
        return self.clock_out(entry.id, adjustment_minutes, reason)

    # ------------------------------------------------------------------
    # Corrections
    # ------------------------------------------------------------------

    def edit_time_entry(
        self,
        time_entry_id: UUID,
        patch: TimeEntryPatch,
        actor_id: UUID | None = None,
    ) -> TimeEntryInfo:
        """
        Apply a correction to clock_in, clock_out, adjustment or reason.

        Both the current work_date and, when clock_in moves to another local
        day, the new one must be unsigned.

        Raises:
            TimeEntryNotFoundError
            ImmutablePeriodError
            EntryStillActiveError: clock_out given for an open entry.
            InvalidClockOutError, NegativeDurationError
        """
        entry = self._lock_entry(time_entry_id)
        if patch.is_empty():
            return TimeEntryInfo.from_model(entry)

        new_clock_in = entry.clock_in
        if patch.clock_in is not None:
            new_clock_in = ensure_aware(patch.clock_in, "clock_in")
        new_clock_out = entry.clock_out
        if patch.clock_out is not None:
            if entry.clock_out is None:
                raise EntryStillActiveError(str(entry.id))
            new_clock_out = ensure_aware(patch.clock_out, "clock_out")
        new_adjustment = entry.adjustment_minutes
        if patch.adjustment_minutes is not None:
            new_adjustment = patch.adjustment_minutes
        new_work_date = self._work_date(entry, new_clock_in)

        self.ledger.assert_date_editable(entry.restaurant_id, entry.work_date, "edit time entry")
        if new_work_date != entry.work_date:
            self.ledger.assert_date_editable(entry.restaurant_id, new_work_date, "edit time entry")

        if new_clock_out is not None:
            validate_clock_out(new_clock_in, new_clock_out)
            effective_minutes(new_clock_in, new_clock_out, new_adjustment)

        before = TimeEntryInfo.from_model(entry).to_audit_dict()
        entry.clock_in = new_clock_in
        entry.clock_out = new_clock_out
        entry.work_date = new_work_date
        entry.adjustment_minutes = new_adjustment
        if patch.touches_reason:
            entry.reason = patch.reason
        self.session.flush()

        info = TimeEntryInfo.from_model(entry)
        with LogContext.bind(entry_id=str(entry.id), restaurant_id=str(entry.restaurant_id)):
            logger.info(
                "time_entry_edited",
                extra={
                    "actor_id": str(actor_id) if actor_id else None,
                    "work_date": entry.work_date.isoformat(),
                    "adjustment_minutes": entry.adjustment_minutes,
                },
            )
        self._audit(entry, AuditAction.TIME_ENTRY_EDIT, actor_id, before, info.to_audit_dict())
        return info

    # ------------------------------------------------------------------
    # Approval
    # ------------------------------------------------------------------

    def approve_or_reject(
        self,
        time_entry_id: UUID,
        approved: bool,
        actor_id: UUID | None = None,
        reason: str | None = None,
    ) -> TimeEntryInfo:
        """
        Decide a pending entry.

        Raises:
            TimeEntryNotFoundError
            ImmutablePeriodError
            EntryNotPendingError: the entry is not pending.
        """
        entry = self._lock_entry(time_entry_id)
        operation = "approve time entry" if approved else "reject time entry"
        self.ledger.assert_date_editable(entry.restaurant_id, entry.work_date, operation)

        if TimeEntryStatus(entry.status) != TimeEntryStatus.PENDING:
            logger.warning(
                "time_entry_decision_rejected",
                extra={"time_entry_id": str(entry.id), "current_state": str(entry.status)},
            )
            raise EntryNotPendingError(str(entry.id), TimeEntryStatus(entry.status).value)

        before = TimeEntryInfo.from_model(entry).to_audit_dict()
        now = self.clock.now()
        if approved:
            entry.status = TimeEntryStatus.APPROVED.value
            entry.approved_by_user_id = actor_id
            entry.approved_at = now
        else:
            entry.status = TimeEntryStatus.REJECTED.value
        if reason is not None:
            entry.reason = reason
        self.session.flush()

        info = TimeEntryInfo.from_model(entry)
        with LogContext.bind(entry_id=str(entry.id), restaurant_id=str(entry.restaurant_id)):
            logger.info(
                "time_entry_approved" if approved else "time_entry_rejected",
                extra={"actor_id": str(actor_id) if actor_id else None},
            )
        after = info.to_audit_dict()
        if approved:
            after["approved_by_user_id"] = str(actor_id) if actor_id else None
            after["approved_at"] = now.isoformat()
        self._audit(
            entry,
            AuditAction.TIME_ENTRY_APPROVE if approved else AuditAction.TIME_ENTRY_REJECT,
            actor_id,
            before,
            after,
        )
        return info

    def close_by_manager(
        self,
        time_entry_id: UUID,
        actor_id: UUID,
        reason: str,
        clock_out: datetime | None = None,
    ) -> TimeEntryInfo:
        """
        Force-close an entry the worker never clocked out of.

        Without an explicit ``clock_out`` the end of the worker's assigned
        shift covering clock_in is used, else "now".

        Raises:
            ReasonRequiredError
            TimeEntryNotFoundError
            EntryNotActiveError: the entry is already closed.
            ImmutablePeriodError
            InvalidClockOutError
        """
        if not reason or not reason.strip():
            raise ReasonRequiredError("close time entry")

        entry = self._lock_entry(time_entry_id)
        if TimeEntryStatus(entry.status) != TimeEntryStatus.ACTIVE:
            raise EntryNotActiveError(str(entry.id), TimeEntryStatus(entry.status).value)

        self.ledger.assert_date_editable(entry.restaurant_id, entry.work_date, "close time entry")

        if clock_out is not None:
            close_at = ensure_aware(clock_out, "clock_out")
        else:
            shift = self._shifts.covering_shift(
                entry.membership_id,
                entry.clock_in,
                self.settings.assignment_conflict_statuses,
            )
            close_at = shift.end if shift is not None else self.clock.now()
        validate_clock_out(entry.clock_in, close_at)
        effective_minutes(entry.clock_in, close_at, entry.adjustment_minutes)

        before = TimeEntryInfo.from_model(entry).to_audit_dict()
        entry.clock_out = close_at
        entry.status = TimeEntryStatus.PENDING.value
        entry.source = TimeEntrySource.SYSTEM_CLOSED.value
        entry.reason = reason.strip()
        self.session.flush()

        info = TimeEntryInfo.from_model(entry)
        with LogContext.bind(entry_id=str(entry.id), restaurant_id=str(entry.restaurant_id)):
            logger.info(
                "time_entry_force_closed",
                extra={"actor_id": str(actor_id), "clock_out": close_at.isoformat()},
            )
        self._audit(
            entry,
            AuditAction.TIME_ENTRY_CLOSE_BY_MANAGER,
            actor_id,
            before,
            info.to_audit_dict(),
        )
        return info

    # ------------------------------------------------------------------
    # Earnings
    # ------------------------------------------------------------------

    def preview_earnings(
        self,
        time_entry_id: UUID,
        working_as_manager: bool | None = None,
    ) -> EarningsPreview:
        """
        Pay for one entry, rounded for display.

        An active entry is measured up to "now".  ``working_as_manager``
        defaults to the report rule (managers and owners at manager rate).
        """
        entry = self.session.get(TimeEntry, time_entry_id)
        if entry is None:
            raise TimeEntryNotFoundError(str(time_entry_id))

        end = entry.clock_out or self.clock.now()
        minutes = max(raw_minutes(entry.clock_in, end) + entry.adjustment_minutes, 0)

        membership = entry.membership
        if working_as_manager is None:
            rate = rate_for_report(
                membership.user.hourly_rate_default,
                membership.hourly_rate_manager,
                membership.role,
            )
        else:
            rate = resolve_rate(
                membership.user.hourly_rate_default,
                membership.hourly_rate_manager,
                membership.role,
                working_as_manager,
            )

        places = self.settings.money_decimal_places
        return EarningsPreview(
            time_entry_id=entry.id,
            minutes=minutes,
            hours=round_money(minutes_to_hours(minutes), places),
            hourly_rate=round_money(Decimal(rate), places),
            amount=round_money(amount_for_minutes(minutes, Decimal(rate)), places),
            currency=self.settings.currency,
        )
