"""
Module: timekeeping_kernel.models.report
Responsibility: ORM persistence for daily, weekly and monthly report
    snapshots and for the append-only signature log of daily reports.
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - One report per (restaurant, date), (restaurant, week_start) and
      (restaurant, period_month), enforced by unique constraints so that
      concurrent generation cannot produce two rows.
    - totals never change after insert (db/immutability.py).
    - report_signatures rows are never updated or deleted through the ORM.
    - ReportDaily carries a version counter; a sign racing an unsign or a
      second sign fails with StaleDataError on flush.

Audit relevance:
    A signed ReportDaily is the legal payroll record for its date.  The
    signature log preserves every sign/unsign with actor and time.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import (
    JSON,
    Date,
    ForeignKey,
    Index,
    Integer,
    Select,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, mapped_column

from timekeeping_kernel.db.base import Base, TrackedBase, UUIDString
from timekeeping_kernel.domain.values import SignatureAction


class ReportDaily(TrackedBase):
    """Totals for one restaurant-local date, plus the live signature fields."""

    __tablename__ = "report_daily"

    __table_args__ = (
        UniqueConstraint("restaurant_id", "report_date", name="uq_report_daily_period"),
    )

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    report_date: Mapped[date] = mapped_column(Date, nullable=False)

    totals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    signed_by_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    signed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    generated_by_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        state = "signed" if self.signed_by_user_id else "unsigned"
        return f"<ReportDaily {self.report_date}: {state}>"

    @property
    def is_signed(self) -> bool:
        return self.signed_by_user_id is not None


class ReportSignature(Base):
    """One append-only entry of a daily report's signature log."""

    __tablename__ = "report_signatures"

    __table_args__ = (
        UniqueConstraint("report_id", "seq", name="uq_report_signature_seq"),
        Index("idx_report_signature_report", "report_id"),
    )

    report_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("report_daily.id"),
        nullable=False,
    )

    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[SignatureAction] = mapped_column(String(20), nullable=False)

    actor_user_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    at: Mapped[datetime] = mapped_column(nullable=False)

    reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    previous_signed_by_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    previous_signed_at: Mapped[datetime | None] = mapped_column(nullable=True)

    def __repr__(self) -> str:
        return f"<ReportSignature {self.report_id}#{self.seq}: {self.action}>"


class ReportWeekly(TrackedBase):
    """Totals for a Monday-to-Sunday week, computed from time entries."""

    __tablename__ = "report_weekly"

    __table_args__ = (
        UniqueConstraint("restaurant_id", "week_start", name="uq_report_weekly_period"),
    )

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    week_start: Mapped[date] = mapped_column(Date, nullable=False)

    totals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    generated_by_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


class ReportMonthly(TrackedBase):
    """Totals for a calendar month, computed from time entries."""

    __tablename__ = "report_monthly"

    __table_args__ = (
        UniqueConstraint("restaurant_id", "period_month", name="uq_report_monthly_period"),
    )

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    period_month: Mapped[date] = mapped_column(Date, nullable=False)

    totals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    generated_by_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )


def signed_daily_report_query(restaurant_id: UUID, work_date: date) -> Select:
    """
    The question "is this date frozen?" as a statement.

    Shared by the signing ledger (run through the session, with a row lock)
    and the ORM immutability listener (run on the flushing connection).
    """
    return select(
        ReportDaily.id,
        ReportDaily.signed_by_user_id,
        ReportDaily.signed_at,
    ).where(
        ReportDaily.restaurant_id == restaurant_id,
        ReportDaily.report_date == work_date,
        ReportDaily.signed_by_user_id.is_not(None),
    )
