"""
ShiftOverlapValidator against stored assignments.

Verifies:
- Conflicts are found across every schedule category of the worker
- Declined assignments never conflict
- A shift is excluded from its own check by id only
- The first conflict is the earliest by start; the batch form lists all
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from timekeeping_kernel.domain.dtos import ShiftInfo
from timekeeping_kernel.domain.intervals import Interval
from timekeeping_kernel.domain.values import AssignmentStatus
from timekeeping_kernel.exceptions import InvalidShiftTimesError, ShiftOverlapError
from timekeeping_kernel.services.shift_overlap_validator import (
    ShiftOverlapValidator,
    validate_no_overlap,
    validate_shift_times,
)


def utc(day, hour, minute=0) -> datetime:
    return datetime(2025, 1, day, hour, minute, tzinfo=timezone.utc)


WARSAW = ZoneInfo("Europe/Warsaw")


@pytest.fixture
def validator(session, deterministic_clock, settings):
    return ShiftOverlapValidator(session, deterministic_clock, settings)


class TestValidateShiftTimes:
    def test_start_must_precede_end(self):
        with pytest.raises(InvalidShiftTimesError):
            validate_shift_times(utc(6, 10), utc(6, 10))

    def test_longer_than_24_hours_rejected(self):
        with pytest.raises(InvalidShiftTimesError) as exc_info:
            validate_shift_times(utc(6, 8), utc(7, 8, 1))
        assert "24 hours" in exc_info.value.reason

    def test_exactly_24_hours_allowed(self):
        validate_shift_times(utc(6, 8), utc(7, 8))

    def test_limit_is_elapsed_time_on_fall_back_day(self):
        with pytest.raises(InvalidShiftTimesError):
            validate_shift_times(
                datetime(2025, 10, 26, 0, 0, tzinfo=WARSAW),
                datetime(2025, 10, 27, 0, 0, tzinfo=WARSAW),
            )

    def test_bounds_returned_in_utc(self):
        start, end = validate_shift_times(
            datetime(2025, 3, 30, 0, 0, tzinfo=WARSAW),
            datetime(2025, 3, 31, 0, 0, tzinfo=WARSAW),
        )

        assert start == datetime(2025, 3, 29, 23, 0, tzinfo=timezone.utc)
        assert end - start == timedelta(hours=23)


class TestCheckOverlap:
    def test_midnight_crossing_shift_conflicts_next_morning(
        self, validator, create_shift, schedule, membership
    ):
        night = create_shift(schedule, utc(6, 22), utc(7, 2), assignees=(membership,))

        result = validator.check_overlap(membership.id, utc(7, 1), utc(7, 5))

        assert result.has_overlap
        assert result.conflict.shift_id == night.id
        assert result.conflict.schedule_name == "Kitchen"

    def test_candidate_starting_at_end_does_not_conflict(
        self, validator, create_shift, schedule, membership
    ):
        create_shift(schedule, utc(6, 22), utc(7, 2), assignees=(membership,))

        result = validator.check_overlap(membership.id, utc(7, 2), utc(7, 6))

        assert not result.has_overlap
        assert result.conflict is None

    def test_conflicts_across_categories(
        self, validator, create_shift, create_schedule, restaurant, schedule, membership
    ):
        bar = create_schedule(restaurant, "Bar")
        create_shift(bar, utc(6, 18), utc(6, 23), assignees=(membership,))

        result = validator.check_overlap(membership.id, utc(6, 20), utc(6, 22))

        assert result.has_overlap
        assert result.conflict.schedule_name == "Bar"

    def test_declined_assignment_never_conflicts(
        self, validator, create_shift, schedule, membership
    ):
        create_shift(
            schedule,
            utc(6, 8),
            utc(6, 16),
            assignees=(membership,),
            status=AssignmentStatus.DECLINED,
        )

        assert not validator.check_overlap(membership.id, utc(6, 9), utc(6, 10)).has_overlap

    def test_other_workers_shifts_ignored(
        self, validator, create_shift, create_membership, restaurant, schedule, membership
    ):
        colleague = create_membership(restaurant)
        create_shift(schedule, utc(6, 8), utc(6, 16), assignees=(colleague,))

        assert not validator.check_overlap(membership.id, utc(6, 9), utc(6, 10)).has_overlap

    def test_exclude_by_id_keeps_identical_twin(
        self, validator, create_shift, schedule, membership
    ):
        edited = create_shift(schedule, utc(6, 8), utc(6, 16), assignees=(membership,))
        twin = create_shift(schedule, utc(6, 8), utc(6, 16), assignees=(membership,))

        result = validator.check_overlap(
            membership.id, utc(6, 8), utc(6, 16), exclude_shift_id=edited.id
        )

        assert result.has_overlap
        assert result.conflict.shift_id == twin.id

    def test_first_conflict_is_earliest(self, validator, create_shift, schedule, membership):
        create_shift(schedule, utc(6, 14), utc(6, 18), assignees=(membership,))
        early = create_shift(schedule, utc(6, 8), utc(6, 12), assignees=(membership,))

        result = validator.check_overlap(membership.id, utc(6, 10), utc(6, 16))

        assert result.conflict.shift_id == early.id


class TestAllConflicts:
    def test_assert_no_overlap_lists_every_conflict(
        self, validator, create_shift, schedule, membership
    ):
        create_shift(schedule, utc(6, 8), utc(6, 12), assignees=(membership,))
        create_shift(schedule, utc(6, 14), utc(6, 18), assignees=(membership,))

        with pytest.raises(ShiftOverlapError) as exc_info:
            validator.assert_no_overlap(membership.id, utc(6, 10), utc(6, 16))

        conflicts = exc_info.value.conflicts
        assert [c["overlap_minutes"] for c in conflicts] == [120, 120]

    def test_in_memory_batch_keeps_input_order(self, schedule):
        later = ShiftInfo(
            id=uuid4(), schedule_id=schedule.id, schedule_name="Kitchen",
            start=utc(6, 14), end=utc(6, 18),
        )
        earlier = ShiftInfo(
            id=uuid4(), schedule_id=schedule.id, schedule_name="Kitchen",
            start=utc(6, 8), end=utc(6, 12),
        )

        result = validate_no_overlap(Interval(utc(6, 11), utc(6, 15)), [later, earlier])

        assert result.has_overlap
        assert [c.shift_id for c in result.conflicts] == [later.id, earlier.id]
        assert [c.overlap_minutes for c in result.conflicts] == [60, 60]

    def test_in_memory_batch_skips_candidate_itself(self, schedule):
        shift = ShiftInfo(
            id=uuid4(), schedule_id=schedule.id, schedule_name="Kitchen",
            start=utc(6, 8), end=utc(6, 12),
        )

        result = validate_no_overlap(
            Interval(utc(6, 8), utc(6, 12)), [shift], candidate_shift_id=shift.id
        )

        assert not result.has_overlap
        assert result.conflicts == ()
