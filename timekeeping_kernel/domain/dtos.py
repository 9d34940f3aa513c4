"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable values returned by every service and selector: time entries,
    shifts, overlap results, report totals, the signature log, earnings
    previews and monthly summaries.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    from_model() class methods exist as boundary converters but are only
    invoked from the service and selector layers.

Invariants enforced:
    - Services return DTOs, never ORM entities.
    - Report totals and signature log entries are explicit tagged structures.
      Their JSON form is produced only by ``to_dict()`` and read back only by
      ``from_dict()``.
    - Money and hours are Decimal, serialised as strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Union
from uuid import UUID

from timekeeping_kernel.domain.values import (
    AssignmentStatus,
    ReportKind,
    SignatureAction,
    TimeEntrySource,
    TimeEntryStatus,
)

if TYPE_CHECKING:
    from timekeeping_kernel.models.report import ReportDaily as ReportDailyModel
    from timekeeping_kernel.models.report import ReportSignature as ReportSignatureModel
    from timekeeping_kernel.models.schedule import Shift as ShiftModel
    from timekeeping_kernel.models.schedule import ShiftAssignment as ShiftAssignmentModel
    from timekeeping_kernel.models.time_entry import TimeEntry as TimeEntryModel


def _opt_uuid(value: str | None) -> UUID | None:
    return UUID(value) if value else None


def _opt_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


# ---------------------------------------------------------------------------
# Time entries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeEntryInfo:
    """
    Snapshot of one time entry.

    ``worked_minutes`` is None while the entry is active.
    """

    id: UUID
    membership_id: UUID
    schedule_id: UUID
    restaurant_id: UUID
    clock_in: datetime
    clock_out: datetime | None
    work_date: date
    adjustment_minutes: int
    status: TimeEntryStatus
    source: TimeEntrySource
    reason: str | None = None
    approved_by_user_id: UUID | None = None
    approved_at: datetime | None = None
    worked_minutes: int | None = None

    @property
    def is_active(self) -> bool:
        return self.status == TimeEntryStatus.ACTIVE

    @classmethod
    def from_model(cls, model: TimeEntryModel) -> TimeEntryInfo:
        from timekeeping_kernel.domain.time_entry import raw_minutes

        worked = None
        if model.clock_out is not None:
            worked = raw_minutes(model.clock_in, model.clock_out) + model.adjustment_minutes
        return cls(
            id=model.id,
            membership_id=model.membership_id,
            schedule_id=model.schedule_id,
            restaurant_id=model.restaurant_id,
            clock_in=model.clock_in,
            clock_out=model.clock_out,
            work_date=model.work_date,
            adjustment_minutes=model.adjustment_minutes,
            status=TimeEntryStatus(model.status),
            source=TimeEntrySource(model.source),
            reason=model.reason,
            approved_by_user_id=model.approved_by_user_id,
            approved_at=model.approved_at,
            worked_minutes=worked,
        )

    def to_audit_dict(self) -> dict[str, Any]:
        return {
            "clock_in": self.clock_in.isoformat(),
            "clock_out": self.clock_out.isoformat() if self.clock_out else None,
            "adjustment_minutes": self.adjustment_minutes,
            "status": self.status.value,
            "source": self.source.value,
            "reason": self.reason,
        }


_UNSET: Any = object()


@dataclass(frozen=True)
class TimeEntryPatch:
    """
    Requested correction to a time entry.

    Fields left at their default are not touched.  ``reason`` may be set
    to None explicitly to clear it.
    """

    clock_in: datetime | None = None
    clock_out: datetime | None = None
    adjustment_minutes: int | None = None
    reason: str | None = _UNSET

    @property
    def touches_reason(self) -> bool:
        return self.reason is not _UNSET

    def is_empty(self) -> bool:
        return (
            self.clock_in is None
            and self.clock_out is None
            and self.adjustment_minutes is None
            and not self.touches_reason
        )


@dataclass(frozen=True)
class EarningsPreview:
    time_entry_id: UUID
    minutes: int
    hours: Decimal
    hourly_rate: Decimal
    amount: Decimal
    currency: str


# ---------------------------------------------------------------------------
# Shifts and overlap results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ShiftInfo:
    id: UUID
    schedule_id: UUID
    schedule_name: str
    start: datetime
    end: datetime
    role_label: str | None = None

    @classmethod
    def from_model(cls, model: ShiftModel) -> ShiftInfo:
        return cls(
            id=model.id,
            schedule_id=model.schedule_id,
            schedule_name=model.schedule.name,
            start=model.start_at,
            end=model.end_at,
            role_label=model.role_label,
        )


@dataclass(frozen=True)
class ShiftAssignmentInfo:
    id: UUID
    shift_id: UUID
    membership_id: UUID
    status: AssignmentStatus

    @classmethod
    def from_model(cls, model: ShiftAssignmentModel) -> ShiftAssignmentInfo:
        return cls(
            id=model.id,
            shift_id=model.shift_id,
            membership_id=model.membership_id,
            status=AssignmentStatus(model.status),
        )


@dataclass(frozen=True)
class ShiftConflict:
    """An existing assigned shift that collides with a candidate interval."""

    shift_id: UUID
    schedule_id: UUID
    schedule_name: str
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "shift_id": str(self.shift_id),
            "schedule_id": str(self.schedule_id),
            "schedule_name": self.schedule_name,
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
        }


@dataclass(frozen=True)
class OverlapResult:
    has_overlap: bool
    conflict: ShiftConflict | None = None


@dataclass(frozen=True)
class OverlapConflict:
    """One collision from the batch check, with the shared region measured."""

    shift_id: UUID
    start: datetime
    end: datetime
    overlap_start: datetime
    overlap_end: datetime
    overlap_minutes: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "shift_id": str(self.shift_id),
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "overlap_start": self.overlap_start.isoformat(),
            "overlap_end": self.overlap_end.isoformat(),
            "overlap_minutes": self.overlap_minutes,
        }


@dataclass(frozen=True)
class BatchOverlapResult:
    has_overlap: bool
    conflicts: tuple[OverlapConflict, ...] = ()


# ---------------------------------------------------------------------------
# Report totals
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmployeeTotals:
    """
    One employee row of a report.

    ``total_hours`` and ``total_amount`` are rounded to 2 places;
    ``total_minutes`` is exact.
    """

    user_id: UUID
    user_name: str
    membership_id: UUID
    role: str
    total_minutes: int
    total_hours: Decimal
    hourly_rate: Decimal
    total_amount: Decimal
    entries: int
    days_worked: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": str(self.user_id),
            "user_name": self.user_name,
            "membership_id": str(self.membership_id),
            "role": self.role,
            "total_minutes": self.total_minutes,
            "total_hours": str(self.total_hours),
            "hourly_rate": str(self.hourly_rate),
            "total_amount": str(self.total_amount),
            "entries": self.entries,
            "days_worked": self.days_worked,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EmployeeTotals:
        return cls(
            user_id=UUID(data["user_id"]),
            user_name=data["user_name"],
            membership_id=UUID(data["membership_id"]),
            role=data["role"],
            total_minutes=int(data["total_minutes"]),
            total_hours=Decimal(data["total_hours"]),
            hourly_rate=Decimal(data["hourly_rate"]),
            total_amount=Decimal(data["total_amount"]),
            entries=int(data["entries"]),
            days_worked=int(data["days_worked"]),
        )


@dataclass(frozen=True)
class TotalsSummary:
    total_employees: int
    total_hours: Decimal
    total_amount: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_employees": self.total_employees,
            "total_hours": str(self.total_hours),
            "total_amount": str(self.total_amount),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TotalsSummary:
        return cls(
            total_employees=int(data["total_employees"]),
            total_hours=Decimal(data["total_hours"]),
            total_amount=Decimal(data["total_amount"]),
        )


@dataclass(frozen=True)
class ReportTotals:
    """
    Point-in-time totals snapshot stored on a report row.

    Contract:
        ``period_start`` and ``period_end`` are restaurant-local dates, both
        inclusive.  ``daily_reports_count`` is set only on weekly totals.
    """

    kind: ReportKind
    restaurant_id: UUID
    period_start: date
    period_end: date
    currency: str
    employees: tuple[EmployeeTotals, ...]
    summary: TotalsSummary
    daily_reports_count: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "restaurant_id": str(self.restaurant_id),
            "period_start": self.period_start.isoformat(),
            "period_end": self.period_end.isoformat(),
            "currency": self.currency,
            "employees": [e.to_dict() for e in self.employees],
            "summary": self.summary.to_dict(),
        }
        if self.daily_reports_count is not None:
            data["daily_reports_count"] = self.daily_reports_count
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReportTotals:
        return cls(
            kind=ReportKind(data["kind"]),
            restaurant_id=UUID(data["restaurant_id"]),
            period_start=date.fromisoformat(data["period_start"]),
            period_end=date.fromisoformat(data["period_end"]),
            currency=data["currency"],
            employees=tuple(EmployeeTotals.from_dict(e) for e in data["employees"]),
            summary=TotalsSummary.from_dict(data["summary"]),
            daily_reports_count=data.get("daily_reports_count"),
        )

    def employee(self, membership_id: UUID) -> EmployeeTotals | None:
        for row in self.employees:
            if row.membership_id == membership_id:
                return row
        return None


# ---------------------------------------------------------------------------
# Signature log
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class SignedLogEntry:
    seq: int
    actor_user_id: UUID
    at: datetime

    @property
    def action(self) -> SignatureAction:
        return SignatureAction.SIGNED

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "action": self.action.value,
            "actor_user_id": str(self.actor_user_id),
            "at": self.at.isoformat(),
        }


@dataclass(frozen=True)
class UnsignedLogEntry:
    """An unsign, carrying the signature it withdrew."""

    seq: int
    actor_user_id: UUID
    at: datetime
    reason: str
    previous_signed_by_user_id: UUID | None
    previous_signed_at: datetime | None

    @property
    def action(self) -> SignatureAction:
        return SignatureAction.UNSIGNED

    def to_dict(self) -> dict[str, Any]:
        return {
            "seq": self.seq,
            "action": self.action.value,
            "actor_user_id": str(self.actor_user_id),
            "at": self.at.isoformat(),
            "reason": self.reason,
            "previous_signed_by_user_id": (
                str(self.previous_signed_by_user_id)
                if self.previous_signed_by_user_id
                else None
            ),
            "previous_signed_at": (
                self.previous_signed_at.isoformat() if self.previous_signed_at else None
            ),
        }


SignatureLogEntry = Union[SignedLogEntry, UnsignedLogEntry]


def signature_entry_from_model(model: ReportSignatureModel) -> SignatureLogEntry:
    if SignatureAction(model.action) == SignatureAction.SIGNED:
        return SignedLogEntry(seq=model.seq, actor_user_id=model.actor_user_id, at=model.at)
    return UnsignedLogEntry(
        seq=model.seq,
        actor_user_id=model.actor_user_id,
        at=model.at,
        reason=model.reason or "",
        previous_signed_by_user_id=model.previous_signed_by_user_id,
        previous_signed_at=model.previous_signed_at,
    )


def signature_entry_from_dict(data: dict[str, Any]) -> SignatureLogEntry:
    if SignatureAction(data["action"]) == SignatureAction.SIGNED:
        return SignedLogEntry(
            seq=int(data["seq"]),
            actor_user_id=UUID(data["actor_user_id"]),
            at=datetime.fromisoformat(data["at"]),
        )
    return UnsignedLogEntry(
        seq=int(data["seq"]),
        actor_user_id=UUID(data["actor_user_id"]),
        at=datetime.fromisoformat(data["at"]),
        reason=data["reason"],
        previous_signed_by_user_id=_opt_uuid(data.get("previous_signed_by_user_id")),
        previous_signed_at=_opt_dt(data.get("previous_signed_at")),
    )


# ---------------------------------------------------------------------------
# Reports
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ReportDailyInfo:
    id: UUID
    restaurant_id: UUID
    report_date: date
    totals: ReportTotals
    signed_by_user_id: UUID | None
    signed_at: datetime | None
    signature_log: tuple[SignatureLogEntry, ...] = ()

    @property
    def is_signed(self) -> bool:
        return self.signed_by_user_id is not None

    @classmethod
    def from_model(
        cls,
        model: ReportDailyModel,
        signatures: list[ReportSignatureModel] | None = None,
    ) -> ReportDailyInfo:
        return cls(
            id=model.id,
            restaurant_id=model.restaurant_id,
            report_date=model.report_date,
            totals=ReportTotals.from_dict(model.totals),
            signed_by_user_id=model.signed_by_user_id,
            signed_at=model.signed_at,
            signature_log=tuple(
                signature_entry_from_model(s) for s in (signatures or [])
            ),
        )

    def to_audit_dict(self) -> dict[str, Any]:
        return {
            "report_date": self.report_date.isoformat(),
            "totals": self.totals.to_dict(),
            "signed_by_user_id": str(self.signed_by_user_id) if self.signed_by_user_id else None,
            "signed_at": self.signed_at.isoformat() if self.signed_at else None,
            "signature_log": [e.to_dict() for e in self.signature_log],
        }


@dataclass(frozen=True)
class ReportPeriodInfo:
    """A weekly or monthly report.  ``period_start`` is the Monday or the 1st."""

    id: UUID
    restaurant_id: UUID
    kind: ReportKind
    period_start: date
    totals: ReportTotals
    generated_at: datetime | None = None


# ---------------------------------------------------------------------------
# Worker summaries
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class WeeklyBreakdown:
    week_start: date
    week_end: date
    minutes: int
    hours: Decimal
    earnings: Decimal
    status: str
    entries: int


@dataclass(frozen=True)
class MonthlySummary:
    membership_id: UUID
    month: date
    total_hours: Decimal
    approved_hours: Decimal
    pending_hours: Decimal
    hourly_rate: Decimal
    estimated_earnings: Decimal
    approved_earnings: Decimal
    currency: str
    weeks: tuple[WeeklyBreakdown, ...] = field(default_factory=tuple)
