"""
Module: timekeeping_kernel.selectors.shift_selector
Responsibility: Read-only access to shifts and shift assignments.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - assigned_shifts() spans every schedule category of the restaurant; a
      worker's shifts are never filtered by category.
    - Results are ordered by (start, shift id), which makes "first conflict"
      deterministic.
"""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from timekeeping_kernel.domain.dtos import ShiftAssignmentInfo, ShiftInfo
from timekeeping_kernel.domain.values import AssignmentStatus
from timekeeping_kernel.models.schedule import Shift, ShiftAssignment
from timekeeping_kernel.selectors.base import BaseSelector


class ShiftSelector(BaseSelector):
    """Query shifts and who holds them."""

    def get_shift(self, shift_id: UUID) -> ShiftInfo | None:
        shift = self.session.get(Shift, shift_id)
        return ShiftInfo.from_model(shift) if shift else None

    def assigned_shifts(
        self,
        membership_id: UUID,
        statuses: Iterable[AssignmentStatus],
        exclude_shift_id: UUID | None = None,
    ) -> list[ShiftInfo]:
        """
        Shifts the membership holds with an assignment status in ``statuses``.

        ``exclude_shift_id`` removes one shift by identity, so a shift being
        edited is never compared with itself.
        """
        stmt = (
            select(Shift)
            .join(ShiftAssignment, ShiftAssignment.shift_id == Shift.id)
            .where(
                ShiftAssignment.membership_id == membership_id,
                ShiftAssignment.status.in_([AssignmentStatus(s).value for s in statuses]),
            )
            .order_by(Shift.start_at, Shift.id)
        )
        if exclude_shift_id is not None:
            stmt = stmt.where(Shift.id != exclude_shift_id)

        return [ShiftInfo.from_model(s) for s in self.session.scalars(stmt).unique()]

    def covering_shift(
        self,
        membership_id: UUID,
        instant: datetime,
        statuses: Iterable[AssignmentStatus],
    ) -> ShiftInfo | None:
        """The earliest assigned shift whose interval contains ``instant``."""
        stmt = (
            select(Shift)
            .join(ShiftAssignment, ShiftAssignment.shift_id == Shift.id)
            .where(
                ShiftAssignment.membership_id == membership_id,
                ShiftAssignment.status.in_([AssignmentStatus(s).value for s in statuses]),
                Shift.start_at <= instant,
                Shift.end_at > instant,
            )
            .order_by(Shift.start_at, Shift.id)
            .limit(1)
        )
        shift = self.session.scalars(stmt).unique().first()
        return ShiftInfo.from_model(shift) if shift else None

    def assignments_for_shift(self, shift_id: UUID) -> list[ShiftAssignmentInfo]:
        stmt = (
            select(ShiftAssignment)
            .where(ShiftAssignment.shift_id == shift_id)
            .order_by(ShiftAssignment.created_at, ShiftAssignment.id)
        )
        return [
            ShiftAssignmentInfo.from_model(a) for a in self.session.scalars(stmt).unique()
        ]
