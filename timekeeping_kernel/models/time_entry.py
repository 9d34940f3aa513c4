"""
Module: timekeeping_kernel.models.time_entry
Responsibility: ORM persistence for worked-time records.
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - At most one open entry (clock_out IS NULL) per (membership, schedule).
      Enforced by the partial unique index uq_time_entry_open so that two
      concurrent clock-ins cannot both commit.
    - work_date is the restaurant-local date of clock_in.  It is the key the
      signing ledger freezes.
    - Once the daily report of work_date is signed the row is frozen
      (db/immutability.py).

Failure modes:
    - IntegrityError on a second open entry; the lifecycle service maps it
      to DuplicateOpenEntryError.
"""

from datetime import date, datetime
from uuid import UUID

from sqlalchemy import Date, ForeignKey, Index, Integer, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timekeeping_kernel.db.base import TrackedBase, UUIDString
from timekeeping_kernel.domain.values import TimeEntrySource, TimeEntryStatus
from timekeeping_kernel.models.restaurant import Membership


class TimeEntry(TrackedBase):
    """
    One clock-in/clock-out pair plus corrections and approval state.

    Contract:
        status moves ACTIVE -> PENDING -> APPROVED | REJECTED.  ``clock_out``
        is set exactly when status leaves ACTIVE.
    """

    __tablename__ = "time_entries"

    __table_args__ = (
        Index(
            "uq_time_entry_open",
            "membership_id",
            "schedule_id",
            unique=True,
            postgresql_where=text("clock_out IS NULL"),
            sqlite_where=text("clock_out IS NULL"),
        ),
        Index("idx_time_entry_restaurant_date", "restaurant_id", "work_date"),
        Index("idx_time_entry_membership_clock_in", "membership_id", "clock_in"),
        Index("idx_time_entry_status", "status"),
    )

    membership_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("memberships.id"),
        nullable=False,
    )

    schedule_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("schedule_categories.id"),
        nullable=False,
    )

    # Denormalised from the membership so report windows need no join
    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    clock_in: Mapped[datetime] = mapped_column(nullable=False)

    clock_out: Mapped[datetime | None] = mapped_column(nullable=True)

    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    adjustment_minutes: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )

    status: Mapped[TimeEntryStatus] = mapped_column(
        String(20),
        default=TimeEntryStatus.ACTIVE,
        nullable=False,
    )

    source: Mapped[TimeEntrySource] = mapped_column(
        String(20),
        default=TimeEntrySource.CLOCK,
        nullable=False,
    )

    reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    approved_by_user_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        nullable=True,
    )

    approved_at: Mapped[datetime | None] = mapped_column(nullable=True)

    membership: Mapped[Membership] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<TimeEntry {self.id}: {self.status} {self.work_date}>"

    @property
    def is_open(self) -> bool:
        return self.clock_out is None
