"""Plain value records passed between the store boundary and the engine.

These are parsed once from ORM rows (or CSV) and never touch the database,
so the engine can run without a live store.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Dict, List, Optional, Set, Tuple

from shift_scheduler.services.timeplan import TimeBucket, TimeRange, Weekday, duration_hours, interval_on


@dataclass(frozen=True)
class EmployeeInput:
    employee_id: int
    name: str = ""
    weekly_hours_ceiling: Optional[float] = None


@dataclass(frozen=True)
class ShiftInstance:
    """A shift occurring on one concrete date."""

    shift_id: int
    date: date
    time_range: TimeRange
    name: str = ""
    role: Optional[str] = None

    @property
    def weekday(self) -> Weekday:
        return Weekday.of(self.date)

    @property
    def hours(self) -> float:
        return duration_hours(self.time_range)

    @property
    def interval(self) -> Tuple[datetime, datetime]:
        return interval_on(self.date, self.time_range)

    @property
    def sort_key(self) -> Tuple[date, int, int]:
        """Processing order: date, then start time, then shift id."""
        start = self.time_range.start
        return (self.date, start.minutes if start is not None else -1, self.shift_id)


@dataclass(frozen=True)
class AvailabilityWindow:
    employee_id: int
    weekday: Weekday
    time_range: TimeRange


@dataclass(frozen=True)
class PreferenceEntry:
    employee_id: int
    weekday: Weekday
    bucket: TimeBucket
    level: str  # preferred, neutral, avoid


@dataclass(frozen=True)
class ConstraintSet:
    max_hours_per_day: float = 8.0
    min_hours_between_shifts: float = 10.0
    max_consecutive_days: int = 5
    max_weekly_hours: float = 40.0


@dataclass(frozen=True)
class PlannedAssignment:
    """Assignment produced by a scheduler run (not yet persisted)."""

    employee_id: int
    shift_id: int
    date: date
    time_range: TimeRange
    preference_score: float = 1.0
    score: float = 0.0

    @property
    def hours(self) -> float:
        return duration_hours(self.time_range)

    @property
    def interval(self) -> Tuple[datetime, datetime]:
        return interval_on(self.date, self.time_range)

    @classmethod
    def for_shift(cls, employee_id: int, shift: ShiftInstance, preference_score: float = 1.0, score: float = 0.0):
        return cls(
            employee_id=employee_id,
            shift_id=shift.shift_id,
            date=shift.date,
            time_range=shift.time_range,
            preference_score=preference_score,
            score=score,
        )


@dataclass
class ScheduleStats:
    total_shifts: int
    assigned_count: int
    mean_preference_score: float
    employee_hours: Dict[int, float]

    @property
    def unassigned_count(self) -> int:
        return self.total_shifts - self.assigned_count


@dataclass
class ScheduleResult:
    assignments: List[PlannedAssignment]
    unassigned_shifts: List[ShiftInstance]
    stats: ScheduleStats


@dataclass
class SchedulingInput:
    """Everything a scheduler needs for one organization/week."""

    employees: List[EmployeeInput]
    shifts: List[ShiftInstance]
    availability: List[AvailabilityWindow]
    preferences: List[PreferenceEntry]
    constraints: Dict[int, ConstraintSet] = field(default_factory=dict)
    default_constraints: ConstraintSet = field(default_factory=ConstraintSet)
    time_off: Dict[int, Set[date]] = field(default_factory=dict)

    def constraints_for(self, employee_id: int) -> ConstraintSet:
        """Explicit entry if present, else the defaults capped by the employee's weekly-hours ceiling."""
        if employee_id in self.constraints:
            return self.constraints[employee_id]
        ceiling = next(
            (e.weekly_hours_ceiling for e in self.employees if e.employee_id == employee_id), None
        )
        if ceiling is None:
            return self.default_constraints
        return replace(
            self.default_constraints,
            max_weekly_hours=min(self.default_constraints.max_weekly_hours, float(ceiling)),
        )
