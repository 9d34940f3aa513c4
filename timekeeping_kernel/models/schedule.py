"""
Module: timekeeping_kernel.models.schedule
Responsibility: ORM persistence for schedule categories, shifts and the
    assignment of memberships to shifts.
Architecture position: Kernel > Models.  May import from db/ and domain/values.

Invariants enforced:
    - A membership is assigned to a given shift at most once
      (uq_assignment_shift_membership).
    - Shift times are validated (start < end, at most 24h) by the shift
      service before insert; overlap is checked across all categories.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from timekeeping_kernel.db.base import TrackedBase, UUIDString
from timekeeping_kernel.domain.values import AssignmentStatus


class ScheduleCategory(TrackedBase):
    """A named bucket of shifts for a restaurant, e.g. "Kitchen" or "Bar"."""

    __tablename__ = "schedule_categories"

    __table_args__ = (Index("idx_schedule_restaurant", "restaurant_id"),)

    restaurant_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<ScheduleCategory {self.name}>"


class Shift(TrackedBase):
    """A concrete interval ``[start_at, end_at)`` within one schedule category."""

    __tablename__ = "shifts"

    __table_args__ = (
        Index("idx_shift_schedule", "schedule_id"),
        Index("idx_shift_start", "start_at"),
    )

    schedule_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("schedule_categories.id"),
        nullable=False,
    )

    start_at: Mapped[datetime] = mapped_column(nullable=False)

    end_at: Mapped[datetime] = mapped_column(nullable=False)

    role_label: Mapped[str | None] = mapped_column(String(50), nullable=True)

    schedule: Mapped[ScheduleCategory] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<Shift {self.start_at.isoformat()} -> {self.end_at.isoformat()}>"


class ShiftAssignment(TrackedBase):
    """Binding of a membership to a shift."""

    __tablename__ = "shift_assignments"

    __table_args__ = (
        UniqueConstraint("shift_id", "membership_id", name="uq_assignment_shift_membership"),
        Index("idx_assignment_membership", "membership_id"),
    )

    shift_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("shifts.id"),
        nullable=False,
    )

    membership_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("memberships.id"),
        nullable=False,
    )

    status: Mapped[AssignmentStatus] = mapped_column(
        String(20),
        default=AssignmentStatus.ASSIGNED,
        nullable=False,
    )

    shift: Mapped[Shift] = relationship(lazy="joined")

    def __repr__(self) -> str:
        return f"<ShiftAssignment {self.membership_id} -> {self.shift_id}: {self.status}>"
