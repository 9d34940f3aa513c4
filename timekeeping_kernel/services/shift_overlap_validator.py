"""
ShiftOverlapValidator -- conflict detection for shift assignments.

Responsibility:
    Decide whether a candidate interval collides with shifts a worker
    already holds.  Every call site that creates, edits or assigns a shift
    delegates here; there is no second implementation of the predicate.

Architecture position:
    Kernel > Services.  Reads through ShiftSelector; the predicate itself
    is ``domain.intervals.overlaps``.

Invariants enforced:
    - Overlap is checked across ALL schedule categories of the worker.
    - Only assignments with a conflicting status (assigned, completed by
      default) take part; declined assignments never conflict.
    - A shift is excluded from its own comparison set by id only.  Two
      different shifts with identical start and end still conflict.
    - ``check_overlap`` returns the earliest conflict by (start, shift id);
      ``validate_no_overlap`` returns every conflict in input order.

Failure modes:
    - InvalidShiftTimesError from validate_shift_times.
    - ShiftOverlapError from assert_no_overlap.
"""

from collections.abc import Sequence
from datetime import datetime, timedelta
from uuid import UUID

from timekeeping_kernel.domain.dtos import (
    BatchOverlapResult,
    OverlapConflict,
    OverlapResult,
    ShiftConflict,
    ShiftInfo,
)
from timekeeping_kernel.domain.intervals import (
    Interval,
    duration_minutes,
    intersection,
    overlaps,
)
from timekeeping_kernel.domain.time_entry import ensure_aware
from timekeeping_kernel.exceptions import InvalidShiftTimesError, ShiftOverlapError
from timekeeping_kernel.logging_config import get_logger
from timekeeping_kernel.selectors.shift_selector import ShiftSelector
from timekeeping_kernel.services.base import BaseService

logger = get_logger("services.shift_overlap")


def validate_shift_times(
    start: datetime, end: datetime, max_hours: int = 24
) -> tuple[datetime, datetime]:
    """
    Hard rejection of malformed shift intervals.

    Returns the bounds converted to UTC; the length limit is elapsed time.

    Raises:
        NaiveDatetimeError: either bound lacks an offset.
        InvalidShiftTimesError: ``start >= end`` or longer than ``max_hours``.
    """
    start = ensure_aware(start, "start")
    end = ensure_aware(end, "end")
    if start >= end:
        raise InvalidShiftTimesError(
            start.isoformat(), end.isoformat(), "start must be before end"
        )
    if end - start > timedelta(hours=max_hours):
        raise InvalidShiftTimesError(
            start.isoformat(),
            end.isoformat(),
            f"shift cannot be longer than {max_hours} hours",
        )
    return start, end


def validate_no_overlap(
    candidate: Interval,
    existing: Sequence[ShiftInfo],
    candidate_shift_id: UUID | None = None,
) -> BatchOverlapResult:
    """
    All conflicts between ``candidate`` and an in-memory set of shifts.

    Conflicts keep the order of ``existing``.  An element whose id equals
    ``candidate_shift_id`` is the candidate itself and is skipped.
    """
    candidate = Interval(
        ensure_aware(candidate.start, "start"), ensure_aware(candidate.end, "end")
    )
    conflicts = []
    for shift in existing:
        if candidate_shift_id is not None and shift.id == candidate_shift_id:
            continue
        held = Interval(ensure_aware(shift.start, "start"), ensure_aware(shift.end, "end"))
        shared = intersection(candidate, held)
        if shared is None:
            continue
        conflicts.append(
            OverlapConflict(
                shift_id=shift.id,
                start=shift.start,
                end=shift.end,
                overlap_start=shared.start,
                overlap_end=shared.end,
                overlap_minutes=duration_minutes(shared),
            )
        )
    return BatchOverlapResult(has_overlap=bool(conflicts), conflicts=tuple(conflicts))


class ShiftOverlapValidator(BaseService):
    """
    Store-backed overlap checks for one worker.

    Contract:
        Read-only.  Never flushes.
    """

    def __init__(self, session, clock=None, settings=None):
        super().__init__(session, clock, settings)
        self._shifts = ShiftSelector(session)

    def validate_shift_times(self, start: datetime, end: datetime) -> tuple[datetime, datetime]:
        return validate_shift_times(start, end, self.settings.max_shift_hours)

    def check_overlap(
        self,
        membership_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: UUID | None = None,
    ) -> OverlapResult:
        """First conflict for ``membership_id`` against ``[start, end)``."""
        candidate = Interval(ensure_aware(start, "start"), ensure_aware(end, "end"))

        held = self._shifts.assigned_shifts(
            membership_id,
            self.settings.assignment_conflict_statuses,
            exclude_shift_id=exclude_shift_id,
        )
        for shift in held:
            if overlaps(candidate, Interval(shift.start, shift.end)):
                return OverlapResult(
                    has_overlap=True,
                    conflict=ShiftConflict(
                        shift_id=shift.id,
                        schedule_id=shift.schedule_id,
                        schedule_name=shift.schedule_name,
                        start=shift.start,
                        end=shift.end,
                    ),
                )
        return OverlapResult(has_overlap=False)

    def find_all_conflicts(
        self,
        membership_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: UUID | None = None,
    ) -> BatchOverlapResult:
        held = self._shifts.assigned_shifts(
            membership_id, self.settings.assignment_conflict_statuses
        )
        candidate = Interval(ensure_aware(start, "start"), ensure_aware(end, "end"))
        return validate_no_overlap(candidate, held, exclude_shift_id)

    def assert_no_overlap(
        self,
        membership_id: UUID,
        start: datetime,
        end: datetime,
        exclude_shift_id: UUID | None = None,
    ) -> None:
        """
        Raise ShiftOverlapError listing every conflict, if there are any.

        Raises:
            ShiftOverlapError
        """
        result = self.find_all_conflicts(membership_id, start, end, exclude_shift_id)
        if not result.has_overlap:
            return
        conflicts = [c.to_dict() for c in result.conflicts]
        logger.warning(
            "shift_overlap_rejected",
            extra={
                "membership_id": str(membership_id),
                "candidate_start": start.isoformat(),
                "candidate_end": end.isoformat(),
                "conflict_count": len(conflicts),
            },
        )
        raise ShiftOverlapError(str(membership_id), conflicts)
