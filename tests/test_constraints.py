"""Tests for the constraint checker and constraint validation."""

import datetime as dt
from types import SimpleNamespace

import pytest

from shift_scheduler.domain.types import ConstraintSet, PlannedAssignment, ShiftInstance
from shift_scheduler.errors import ValidationError
from shift_scheduler.services.constraints import (
    check_assignment,
    consecutive_run_length,
    effective_constraints,
    validate_assignment_constraints,
    validate_constraint_values,
)
from shift_scheduler.services.timeplan import TimeRange

MONDAY = dt.date(2025, 3, 3)
DEFAULTS = ConstraintSet()


def day(offset):
    return MONDAY + dt.timedelta(days=offset)


def shift(offset, start, end, shift_id=1, overnight=False):
    return ShiftInstance(shift_id=shift_id, date=day(offset), time_range=TimeRange.parse(start, end, overnight))


def held(offset, start, end, shift_id=99, overnight=False, emp_id=1):
    return PlannedAssignment.for_shift(emp_id, shift(offset, start, end, shift_id, overnight))


def test_overlap_rejection():
    """Employee holding Mon 09:00-13:00 cannot take Mon 12:00-15:00."""
    result = check_assignment(shift(0, "12:00", "15:00"), [held(0, "09:00", "13:00")], DEFAULTS)
    assert not result.eligible
    assert result.reason == "double_booked"


def test_back_to_back_is_not_double_booking():
    limits = ConstraintSet(min_hours_between_shifts=0)
    result = check_assignment(shift(0, "12:00", "15:00"), [held(0, "09:00", "12:00")], limits)
    assert result.eligible
    assert result.reason is None


def test_overnight_shift_double_books_next_morning():
    committed = [held(0, "22:00", "06:00", overnight=True)]
    result = check_assignment(shift(1, "05:00", "09:00"), committed, ConstraintSet(min_hours_between_shifts=0))
    assert result.reason == "double_booked"


def test_daily_hour_cap():
    limits = ConstraintSet(max_hours_per_day=8, min_hours_between_shifts=0)
    committed = [held(0, "06:00", "11:00")]
    assert check_assignment(shift(0, "12:00", "15:00"), committed, limits).eligible
    result = check_assignment(shift(0, "12:00", "16:00"), committed, limits)
    assert result.reason == "max_hours_per_day"


def test_rest_period_before_and_after():
    committed = [held(1, "09:00", "17:00")]

    # Previous day late shift ends 23:00, next starts 09:00: 10h rest is enough
    assert check_assignment(shift(0, "15:00", "23:00"), committed, DEFAULTS).eligible

    # Ends at 00:00, only 9h before the next shift
    result = check_assignment(shift(0, "16:00", "24:00"), committed, DEFAULTS)
    assert result.reason == "min_hours_between_shifts"

    # Candidate after the held shift: 17:00 -> 02:00 next day is 9h
    result = check_assignment(shift(2, "02:00", "06:00"), committed, DEFAULTS)
    assert result.reason == "min_hours_between_shifts"


def test_consecutive_day_cap():
    committed = [held(i, "09:00", "13:00", shift_id=i) for i in range(5)]
    result = check_assignment(shift(5, "09:00", "13:00"), committed, DEFAULTS)
    assert result.reason == "max_consecutive_days"

    # A gap day resets the run
    committed = [held(i, "09:00", "13:00", shift_id=i) for i in (0, 1, 2, 4)]
    assert check_assignment(shift(5, "09:00", "13:00"), committed, DEFAULTS).eligible


def test_consecutive_run_counts_both_sides():
    worked = [day(0), day(1), day(3), day(4)]
    assert consecutive_run_length(worked, day(2)) == 5
    assert consecutive_run_length([], day(2)) == 1


def test_weekly_hour_cap():
    limits = ConstraintSet(max_weekly_hours=20)
    committed = [held(i, "09:00", "13:00", shift_id=i) for i in range(4)]  # 16h
    assert check_assignment(shift(4, "09:00", "13:00"), committed, limits).eligible
    result = check_assignment(shift(4, "09:00", "14:00"), committed, limits)
    assert result.reason == "max_weekly_hours"


def test_checks_run_in_order():
    # Overlapping and over the daily cap: double-booking is reported first
    limits = ConstraintSet(max_hours_per_day=4)
    result = check_assignment(shift(0, "10:00", "14:00"), [held(0, "09:00", "13:00")], limits)
    assert result.reason == "double_booked"


def test_check_is_pure():
    committed = [held(0, "09:00", "13:00")]
    check_assignment(shift(1, "09:00", "13:00"), committed, DEFAULTS)
    assert len(committed) == 1


def test_validate_constraint_values():
    validate_constraint_values(max_weekly_hours=168, max_consecutive_days=7)
    validate_constraint_values(max_weekly_hours=0, max_consecutive_days=1)

    with pytest.raises(ValidationError, match="weekly hours"):
        validate_constraint_values(max_weekly_hours=169)
    with pytest.raises(ValidationError, match="consecutive days"):
        validate_constraint_values(max_consecutive_days=8)
    with pytest.raises(ValidationError, match="hours per day"):
        validate_constraint_values(max_hours_per_day=0)
    with pytest.raises(ValidationError):
        validate_constraint_values(min_hours_between_shifts=-1)


def test_effective_constraints_merge_levels():
    org_default = SimpleNamespace(
        max_hours_per_day=10, min_hours_between_shifts=None, max_consecutive_days=6, max_weekly_hours=None
    )
    override = SimpleNamespace(
        max_hours_per_day=None, min_hours_between_shifts=8, max_consecutive_days=None, max_weekly_hours=30
    )

    merged = effective_constraints(DEFAULTS, org_default, override)
    assert merged == ConstraintSet(
        max_hours_per_day=10, min_hours_between_shifts=8, max_consecutive_days=6, max_weekly_hours=30
    )

    capped = effective_constraints(DEFAULTS, org_default, None, weekly_hours_ceiling=24)
    assert capped.max_weekly_hours == 24
    assert capped.min_hours_between_shifts == 10


def test_validate_assignment_constraints():
    ok = [held(0, "09:00", "13:00"), held(1, "09:00", "13:00", shift_id=2)]
    validate_assignment_constraints(ok, {1: DEFAULTS})

    overlapping = [held(0, "09:00", "13:00"), held(0, "12:00", "15:00", shift_id=2)]
    with pytest.raises(ValidationError, match="overlapping"):
        validate_assignment_constraints(overlapping, {1: DEFAULTS})

    short_rest = [held(0, "14:00", "22:00"), held(1, "06:00", "10:00", shift_id=2)]
    with pytest.raises(ValidationError, match="rests only"):
        validate_assignment_constraints(short_rest, {1: DEFAULTS})

    too_long = [held(i, "09:00", "13:00", shift_id=i) for i in range(6)]
    with pytest.raises(ValidationError, match="consecutive"):
        validate_assignment_constraints(too_long, {}, default=DEFAULTS)

    over_week = [held(i, "09:00", "17:00", shift_id=i) for i in range(3)]
    with pytest.raises(ValidationError, match="weekly hard cap"):
        validate_assignment_constraints(over_week, {1: ConstraintSet(max_weekly_hours=20)})
