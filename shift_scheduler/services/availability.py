"""Availability/preference resolution and write-time validation of both."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date
from typing import AbstractSet, Dict, Iterable, List, Mapping, Optional

from shift_scheduler.domain.types import AvailabilityWindow, PreferenceEntry, ShiftInstance
from shift_scheduler.errors import ValidationError
from shift_scheduler.services.timeplan import (
    TimeBucket,
    TimeRange,
    Weekday,
    is_contained,
    is_valid_range,
    ranges_overlap,
    time_bucket_for,
)

PREFERENCE_LEVELS = ("preferred", "neutral", "avoid")

DEFAULT_WEIGHTS: Dict[str, float] = {
    "preferred": 2.0,
    "neutral": 1.0,
    "avoid": 0.0,
}


@dataclass(frozen=True)
class Resolution:
    eligible: bool
    preference_score: float


def is_available(availability: Iterable[AvailabilityWindow], shift_range: TimeRange, weekday: Weekday) -> bool:
    """True if the shift range fits inside one availability window on that weekday."""
    for window in availability:
        if window.weekday != weekday:
            continue
        if is_contained(shift_range, window.time_range):
            return True
    return False


def preference_score(
    preferences: Iterable[PreferenceEntry],
    weekday: Weekday,
    bucket: TimeBucket,
    weights: Optional[Mapping[str, float]] = None,
) -> float:
    """Weight of the employee's preference for a day/bucket; neutral when absent."""
    weights = weights or DEFAULT_WEIGHTS
    for pref in preferences:
        if pref.weekday == weekday and pref.bucket == bucket:
            return float(weights[pref.level])
    return float(weights["neutral"])


def resolve(
    availability: Iterable[AvailabilityWindow],
    preferences: Iterable[PreferenceEntry],
    shift: ShiftInstance,
    weekday: Optional[Weekday] = None,
    bucket: Optional[TimeBucket] = None,
    weights: Optional[Mapping[str, float]] = None,
    blocked_dates: Optional[AbstractSet[date]] = None,
) -> Resolution:
    """
    Decide whether one employee may take a shift and how much they want it.

    Args:
        availability: The employee's availability windows
        preferences: The employee's preference entries
        shift: Candidate shift instance
        weekday: Weekday of the shift (derived from its date when omitted)
        bucket: Time bucket of the shift (derived from its start when omitted)
        weights: Score per preference level
        blocked_dates: Dates covered by approved time off

    Returns:
        Resolution with the eligibility flag and preference score
    """
    weekday = Weekday.of(shift.date) if weekday is None else weekday
    bucket = time_bucket_for(shift.time_range.start) if bucket is None else bucket
    score = preference_score(preferences, weekday, bucket, weights)

    if blocked_dates and shift.date in blocked_dates:
        return Resolution(False, score)
    return Resolution(is_available(availability, shift.time_range, weekday), score)


def group_by_employee(records: Iterable) -> Dict[int, List]:
    grouped: Dict[int, List] = defaultdict(list)
    for record in records:
        grouped[record.employee_id].append(record)
    return grouped


def validate_availability_slot(new: TimeRange, existing: Iterable[TimeRange]) -> None:
    """
    Reject an availability window that is invalid or overlaps an existing one.

    ``existing`` must hold the same employee's windows for the same weekday.

    Raises:
        ValidationError: On invalid bounds or overlap
    """
    if new.start is None:
        raise ValidationError("Invalid start time format")
    if new.end is None:
        raise ValidationError("Invalid end time format")
    if new.overnight:
        raise ValidationError("Availability windows cannot cross midnight; split them per day")
    if not is_valid_range(new):
        raise ValidationError("Start time must be before end time")

    for slot in existing:
        if ranges_overlap(new, slot):
            raise ValidationError(f"Time slot {new} overlaps with existing availability {slot}")


def validate_availability(windows: Iterable[AvailabilityWindow]) -> None:
    """Validate a full set of windows, one at a time against those before it."""
    seen: Dict[tuple, List[TimeRange]] = defaultdict(list)
    for window in windows:
        key = (window.employee_id, window.weekday)
        try:
            validate_availability_slot(window.time_range, seen[key])
        except ValidationError as e:
            raise ValidationError(
                f"Employee {window.employee_id} on {window.weekday.name.title()}: {e}"
            )
        seen[key].append(window.time_range)


def find_preference_conflicts(preferences: Iterable[PreferenceEntry]) -> List[str]:
    """List duplicate employee/day/bucket entries and unknown levels."""
    errors: List[str] = []
    seen = set()
    for pref in preferences:
        if pref.level not in PREFERENCE_LEVELS:
            errors.append(f"Employee {pref.employee_id} has unknown preference level '{pref.level}'")
        key = (pref.employee_id, pref.weekday, pref.bucket)
        if key in seen:
            errors.append(
                f"Employee {pref.employee_id} has conflicting preferences for "
                f"{pref.bucket.value} on {pref.weekday.name.title()}"
            )
        seen.add(key)
    return errors


def validate_preferences(preferences: Iterable[PreferenceEntry]) -> None:
    errors = find_preference_conflicts(preferences)
    if errors:
        raise ValidationError("; ".join(errors))
