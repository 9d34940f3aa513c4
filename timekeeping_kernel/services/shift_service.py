"""
ShiftService -- shift creation, rescheduling and assignment.

Responsibility:
    Creates shifts in a schedule category, moves them, and binds
    memberships to them.  Every write that can double-book a worker goes
    through ShiftOverlapValidator first.

Architecture position:
    Kernel > Services.

Invariants enforced:
    - Shift times pass validate_shift_times before any write.
    - Assigning or rescheduling checks every affected worker across all
      categories; the shift being moved is excluded from its own check by id.
    - Re-assigning the same membership to the same shift returns the
      existing assignment (idempotent).

Failure modes:
    - ScheduleNotFoundError, ShiftNotFoundError, MembershipNotFoundError.
    - ScheduleRestaurantMismatchError when the membership belongs to another
      restaurant.
    - ShiftOverlapError listing every conflict.
"""

from collections.abc import Iterable
from datetime import datetime
from uuid import UUID

from sqlalchemy import select

from timekeeping_kernel.domain.dtos import ShiftAssignmentInfo, ShiftInfo
from timekeeping_kernel.domain.values import AssignmentStatus
from timekeeping_kernel.exceptions import (
    MembershipNotFoundError,
    ScheduleNotFoundError,
    ScheduleRestaurantMismatchError,
    ShiftNotFoundError,
)
from timekeeping_kernel.logging_config import get_logger
from timekeeping_kernel.models.restaurant import Membership
from timekeeping_kernel.models.schedule import ScheduleCategory, Shift, ShiftAssignment
from timekeeping_kernel.services.audit_sink import (
    AuditAction,
    AuditRecord,
    AuditSink,
    record_safely,
)
from timekeeping_kernel.services.base import BaseService
from timekeeping_kernel.services.shift_overlap_validator import ShiftOverlapValidator

logger = get_logger("services.shift")


def _shift_audit(shift: Shift) -> dict:
    return {
        "schedule_id": str(shift.schedule_id),
        "start": shift.start_at.isoformat(),
        "end": shift.end_at.isoformat(),
        "role_label": shift.role_label,
    }


class ShiftService(BaseService):
    def __init__(
        self,
        session,
        clock=None,
        settings=None,
        audit_sink: AuditSink | None = None,
        validator: ShiftOverlapValidator | None = None,
    ):
        super().__init__(session, clock, settings)
        self.audit_sink = audit_sink
        self.validator = validator or ShiftOverlapValidator(session, self.clock, self.settings)

    def _get_membership(self, membership_id: UUID, schedule: ScheduleCategory) -> Membership:
        membership = self.session.get(Membership, membership_id)
        if membership is None:
            raise MembershipNotFoundError(str(membership_id))
        if membership.restaurant_id != schedule.restaurant_id:
            raise ScheduleRestaurantMismatchError(str(schedule.id), str(membership_id))
        return membership

    def _get_shift(self, shift_id: UUID, for_update: bool = False) -> Shift:
        stmt = select(Shift).where(Shift.id == shift_id)
        if for_update:
            stmt = stmt.with_for_update(of=Shift)
        shift = self.session.scalars(stmt).unique().one_or_none()
        if shift is None:
            raise ShiftNotFoundError(str(shift_id))
        return shift

    def create_shift(
        self,
        schedule_id: UUID,
        start: datetime,
        end: datetime,
        role_label: str | None = None,
        assignee_ids: Iterable[UUID] = (),
        actor_id: UUID | None = None,
    ) -> ShiftInfo:
        """
        Create a shift and optionally assign workers to it.

        Every assignee is checked for overlap before anything is written.
        """
        start, end = self.validator.validate_shift_times(start, end)

        schedule = self.session.get(ScheduleCategory, schedule_id)
        if schedule is None:
            raise ScheduleNotFoundError(str(schedule_id))

        assignee_ids = list(dict.fromkeys(assignee_ids))
        for membership_id in assignee_ids:
            self._get_membership(membership_id, schedule)
            self.validator.assert_no_overlap(membership_id, start, end)

        shift = Shift(
            schedule_id=schedule_id,
            start_at=start,
            end_at=end,
            role_label=role_label,
        )
        self.session.add(shift)
        self.session.flush()

        for membership_id in assignee_ids:
            self.session.add(
                ShiftAssignment(
                    shift_id=shift.id,
                    membership_id=membership_id,
                    status=AssignmentStatus.ASSIGNED.value,
                )
            )
        self.session.flush()

        logger.info(
            "shift_created",
            extra={
                "shift_id": str(shift.id),
                "schedule_id": str(schedule_id),
                "assignees": len(assignee_ids),
            },
        )
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=schedule.restaurant_id,
                entity_type="shift",
                entity_id=shift.id,
                action=AuditAction.SHIFT_CREATE,
                after={**_shift_audit(shift), "assignees": [str(m) for m in assignee_ids]},
            ),
        )
        return ShiftInfo.from_model(shift)

    def update_shift_times(
        self,
        shift_id: UUID,
        start: datetime,
        end: datetime,
        actor_id: UUID | None = None,
    ) -> ShiftInfo:
        """Move a shift, re-checking every current assignee against the new interval."""
        start, end = self.validator.validate_shift_times(start, end)
        shift = self._get_shift(shift_id, for_update=True)
        before = _shift_audit(shift)

        assignees = self.session.scalars(
            select(ShiftAssignment.membership_id).where(
                ShiftAssignment.shift_id == shift_id,
                ShiftAssignment.status.in_(
                    [s.value for s in self.settings.assignment_conflict_statuses]
                ),
            )
        ).all()
        for membership_id in assignees:
            self.validator.assert_no_overlap(
                membership_id, start, end, exclude_shift_id=shift_id
            )

        shift.start_at = start
        shift.end_at = end
        self.session.flush()

        logger.info(
            "shift_rescheduled",
            extra={"shift_id": str(shift_id), "start": start.isoformat(), "end": end.isoformat()},
        )
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=shift.schedule.restaurant_id,
                entity_type="shift",
                entity_id=shift.id,
                action=AuditAction.SHIFT_UPDATE,
                before=before,
                after=_shift_audit(shift),
            ),
        )
        return ShiftInfo.from_model(shift)

    def assign_shift(
        self,
        shift_id: UUID,
        membership_id: UUID,
        actor_id: UUID | None = None,
    ) -> ShiftAssignmentInfo:
        """
        Bind a worker to a shift.

        An existing assignment for the same pair is returned unchanged when
        it still occupies the worker; a declined one is reactivated after the
        overlap check.
        """
        shift = self._get_shift(shift_id)
        self._get_membership(membership_id, shift.schedule)

        existing = self.session.scalars(
            select(ShiftAssignment).where(
                ShiftAssignment.shift_id == shift_id,
                ShiftAssignment.membership_id == membership_id,
            )
        ).unique().one_or_none()
        if (
            existing is not None
            and AssignmentStatus(existing.status) in self.settings.assignment_conflict_statuses
        ):
            return ShiftAssignmentInfo.from_model(existing)

        self.validator.assert_no_overlap(
            membership_id, shift.start_at, shift.end_at, exclude_shift_id=shift_id
        )

        if existing is None:
            existing = ShiftAssignment(
                shift_id=shift_id,
                membership_id=membership_id,
                status=AssignmentStatus.ASSIGNED.value,
            )
            self.session.add(existing)
        else:
            existing.status = AssignmentStatus.ASSIGNED.value
        self.session.flush()

        logger.info(
            "shift_assigned",
            extra={"shift_id": str(shift_id), "membership_id": str(membership_id)},
        )
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=shift.schedule.restaurant_id,
                entity_type="shift",
                entity_id=shift.id,
                action=AuditAction.SHIFT_ASSIGN,
                after={"membership_id": str(membership_id), "status": existing.status},
            ),
        )
        return ShiftAssignmentInfo.from_model(existing)

    def set_assignment_status(
        self,
        shift_id: UUID,
        membership_id: UUID,
        status: AssignmentStatus | str,
        actor_id: UUID | None = None,
    ) -> ShiftAssignmentInfo:
        """
        Change an assignment's status.

        Moving a declined assignment back to a conflicting status re-runs the
        overlap check.
        """
        status = AssignmentStatus(status)
        assignment = self.session.scalars(
            select(ShiftAssignment).where(
                ShiftAssignment.shift_id == shift_id,
                ShiftAssignment.membership_id == membership_id,
            )
        ).unique().one_or_none()
        if assignment is None:
            raise ShiftNotFoundError(str(shift_id))

        occupies_now = (
            AssignmentStatus(assignment.status) in self.settings.assignment_conflict_statuses
        )
        occupies_after = status in self.settings.assignment_conflict_statuses
        if occupies_after and not occupies_now:
            shift = assignment.shift
            self.validator.assert_no_overlap(
                membership_id, shift.start_at, shift.end_at, exclude_shift_id=shift_id
            )

        previous = assignment.status
        assignment.status = status.value
        self.session.flush()
        logger.info(
            "shift_assignment_status_changed",
            extra={
                "shift_id": str(shift_id),
                "membership_id": str(membership_id),
                "status": status.value,
            },
        )
        record_safely(
            self.audit_sink,
            AuditRecord(
                actor_id=actor_id,
                restaurant_id=assignment.shift.schedule.restaurant_id,
                entity_type="shift",
                entity_id=shift_id,
                action=AuditAction.SHIFT_ASSIGNMENT_STATUS,
                before={"membership_id": str(membership_id), "status": previous},
                after={"membership_id": str(membership_id), "status": status.value},
            ),
        )
        return ShiftAssignmentInfo.from_model(assignment)
