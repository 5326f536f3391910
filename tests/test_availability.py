"""Tests for availability/preference resolution and write-time validation."""

import datetime as dt

import pytest

from shift_scheduler.domain.types import AvailabilityWindow, PreferenceEntry, ShiftInstance
from shift_scheduler.errors import ValidationError
from shift_scheduler.services.availability import (
    find_preference_conflicts,
    preference_score,
    resolve,
    validate_availability,
    validate_availability_slot,
    validate_preferences,
)
from shift_scheduler.services.timeplan import TimeBucket, TimeRange, Weekday

MONDAY = dt.date(2025, 3, 3)


def window(emp_id, day, start, end):
    return AvailabilityWindow(emp_id, day, TimeRange.parse(start, end))


def shift_on(day, start, end, shift_id=1, overnight=False):
    return ShiftInstance(shift_id=shift_id, date=day, time_range=TimeRange.parse(start, end, overnight))


def test_eligible_when_shift_fits_window():
    availability = [window(1, Weekday.MONDAY, "09:00", "17:00")]
    prefs = [PreferenceEntry(1, Weekday.MONDAY, TimeBucket.MORNING, "preferred")]

    res = resolve(availability, prefs, shift_on(MONDAY, "09:00", "12:00"))

    assert res.eligible
    assert res.preference_score == 2.0


def test_ineligible_when_shift_exceeds_window():
    availability = [window(1, Weekday.MONDAY, "09:00", "17:00")]
    res = resolve(availability, [], shift_on(MONDAY, "15:00", "18:00"))
    assert not res.eligible


def test_ineligible_without_window_that_day():
    availability = [window(1, Weekday.TUESDAY, "00:00", "24:00")]
    res = resolve(availability, [], shift_on(MONDAY, "09:00", "12:00"))
    assert not res.eligible


def test_overnight_shift_never_fits_single_day_window():
    availability = [window(1, Weekday.MONDAY, "00:00", "24:00")]
    res = resolve(availability, [], shift_on(MONDAY, "22:00", "06:00", overnight=True))
    assert not res.eligible


def test_time_off_blocks_date():
    availability = [window(1, Weekday.MONDAY, "09:00", "17:00")]
    res = resolve(availability, [], shift_on(MONDAY, "09:00", "12:00"), blocked_dates={MONDAY})
    assert not res.eligible


def test_preference_score_levels_and_neutral_default():
    prefs = [
        PreferenceEntry(1, Weekday.MONDAY, TimeBucket.MORNING, "preferred"),
        PreferenceEntry(1, Weekday.MONDAY, TimeBucket.EVENING, "avoid"),
    ]
    assert preference_score(prefs, Weekday.MONDAY, TimeBucket.MORNING) == 2.0
    assert preference_score(prefs, Weekday.MONDAY, TimeBucket.EVENING) == 0.0
    assert preference_score(prefs, Weekday.MONDAY, TimeBucket.AFTERNOON) == 1.0
    assert preference_score(prefs, Weekday.TUESDAY, TimeBucket.MORNING) == 1.0

    custom = {"preferred": 1.5, "neutral": 1.0, "avoid": 0.5}
    assert preference_score(prefs, Weekday.MONDAY, TimeBucket.MORNING, custom) == 1.5


def test_avoid_keeps_employee_eligible():
    availability = [window(1, Weekday.MONDAY, "00:00", "24:00")]
    prefs = [PreferenceEntry(1, Weekday.MONDAY, TimeBucket.EVENING, "avoid")]
    res = resolve(availability, prefs, shift_on(MONDAY, "18:00", "22:00"))
    assert res.eligible
    assert res.preference_score == 0.0


def test_validate_availability_slot_messages():
    existing = [TimeRange.parse("09:00", "12:00")]

    with pytest.raises(ValidationError, match="Invalid start time format"):
        validate_availability_slot(TimeRange.parse("9am", "12:00"), [])
    with pytest.raises(ValidationError, match="Invalid end time format"):
        validate_availability_slot(TimeRange.parse("09:00", "noon"), [])
    with pytest.raises(ValidationError, match="Start time must be before end time"):
        validate_availability_slot(TimeRange.parse("12:00", "09:00"), [])
    with pytest.raises(ValidationError, match="overlaps"):
        validate_availability_slot(TimeRange.parse("11:00", "14:00"), existing)
    with pytest.raises(ValidationError, match="cross midnight"):
        validate_availability_slot(TimeRange.parse("22:00", "06:00", overnight=True), [])

    # Touching windows are fine
    validate_availability_slot(TimeRange.parse("12:00", "15:00"), existing)


def test_validate_availability_is_per_employee_and_day():
    validate_availability(
        [
            window(1, Weekday.MONDAY, "09:00", "12:00"),
            window(1, Weekday.TUESDAY, "09:00", "12:00"),
            window(2, Weekday.MONDAY, "09:00", "12:00"),
        ]
    )
    with pytest.raises(ValidationError, match="Employee 1 on Monday"):
        validate_availability(
            [window(1, Weekday.MONDAY, "09:00", "12:00"), window(1, Weekday.MONDAY, "10:00", "11:00")]
        )


def test_duplicate_preferences_rejected():
    prefs = [
        PreferenceEntry(1, Weekday.MONDAY, TimeBucket.MORNING, "preferred"),
        PreferenceEntry(1, Weekday.MONDAY, TimeBucket.MORNING, "avoid"),
        PreferenceEntry(2, Weekday.MONDAY, TimeBucket.MORNING, "sometimes"),
    ]
    conflicts = find_preference_conflicts(prefs)
    assert len(conflicts) == 2
    with pytest.raises(ValidationError, match="conflicting preferences"):
        validate_preferences(prefs)
