"""Constraint checking and validation for scheduling."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from shift_scheduler.domain.types import ConstraintSet, PlannedAssignment, ShiftInstance
from shift_scheduler.errors import ValidationError

EPSILON = 1e-9

CONSTRAINT_FIELDS = (
    "max_hours_per_day",
    "min_hours_between_shifts",
    "max_consecutive_days",
    "max_weekly_hours",
)


@dataclass(frozen=True)
class CheckResult:
    eligible: bool
    reason: Optional[str] = None

    def __bool__(self) -> bool:
        return self.eligible


OK = CheckResult(True)


def _hours_between(earlier, later) -> float:
    return (later - earlier).total_seconds() / 3600.0


def consecutive_run_length(worked_dates: Iterable[date], anchor: date) -> int:
    """Length of the run of contiguous worked dates through ``anchor`` (anchor counts)."""
    dates = set(worked_dates)
    dates.add(anchor)
    run = 1
    day = anchor - timedelta(days=1)
    while day in dates:
        run += 1
        day -= timedelta(days=1)
    day = anchor + timedelta(days=1)
    while day in dates:
        run += 1
        day += timedelta(days=1)
    return run


def check_assignment(
    candidate: ShiftInstance,
    committed: Sequence[PlannedAssignment],
    constraints: ConstraintSet,
) -> CheckResult:
    """
    Check if an employee can take a candidate shift given what they already hold.

    Runs, in order and stopping at the first failure: double-booking, daily
    hour cap, rest period, consecutive-day cap, weekly hour cap. Pure: nothing
    is recorded.

    Args:
        candidate: Shift instance under consideration
        committed: The employee's assignments already made this week
        constraints: Effective constraints for the employee

    Returns:
        CheckResult; ``reason`` names the failed rule
    """
    cand_start, cand_end = candidate.interval
    cand_hours = candidate.hours

    # 1. No double-booking
    for a in committed:
        a_start, a_end = a.interval
        if cand_start < a_end and a_start < cand_end:
            return CheckResult(False, "double_booked")

    # 2. Daily hour cap
    day_hours = sum(a.hours for a in committed if a.date == candidate.date)
    if day_hours + cand_hours > constraints.max_hours_per_day + EPSILON:
        return CheckResult(False, "max_hours_per_day")

    # 3. Rest period before and after
    min_rest = constraints.min_hours_between_shifts
    prev_end = None
    next_start = None
    for a in committed:
        a_start, a_end = a.interval
        if a_end <= cand_start and (prev_end is None or a_end > prev_end):
            prev_end = a_end
        if a_start >= cand_end and (next_start is None or a_start < next_start):
            next_start = a_start
    if prev_end is not None and _hours_between(prev_end, cand_start) + EPSILON < min_rest:
        return CheckResult(False, "min_hours_between_shifts")
    if next_start is not None and _hours_between(cand_end, next_start) + EPSILON < min_rest:
        return CheckResult(False, "min_hours_between_shifts")

    # 4. Consecutive-day cap
    run = consecutive_run_length((a.date for a in committed), candidate.date)
    if run > constraints.max_consecutive_days:
        return CheckResult(False, "max_consecutive_days")

    # 5. Weekly hour cap
    week_hours = sum(a.hours for a in committed)
    if week_hours + cand_hours > constraints.max_weekly_hours + EPSILON:
        return CheckResult(False, "max_weekly_hours")

    return OK


def validate_constraint_values(
    max_hours_per_day: Optional[float] = None,
    min_hours_between_shifts: Optional[float] = None,
    max_consecutive_days: Optional[int] = None,
    max_weekly_hours: Optional[float] = None,
) -> None:
    """
    Validate constraint values before they are stored (None means inherit).

    Raises:
        ValidationError: If a value is out of range
    """
    if max_weekly_hours is not None and not 0 <= max_weekly_hours <= 168:
        raise ValidationError("Maximum weekly hours must be between 0 and 168")
    if max_consecutive_days is not None and not 1 <= max_consecutive_days <= 7:
        raise ValidationError("Maximum consecutive days must be between 1 and 7")
    if max_hours_per_day is not None and not 0 < max_hours_per_day <= 24:
        raise ValidationError("Maximum hours per day must be between 0 and 24")
    if min_hours_between_shifts is not None and min_hours_between_shifts < 0:
        raise ValidationError("Minimum hours between shifts must not be negative")


def effective_constraints(
    defaults: ConstraintSet,
    org_default=None,
    override=None,
    weekly_hours_ceiling: Optional[float] = None,
) -> ConstraintSet:
    """
    Merge constraint levels field by field: override, then org default, then config.

    ``org_default`` and ``override`` are any objects exposing the constraint
    attributes (e.g. SchedulingConstraint rows); None attributes inherit.
    The employee's weekly-hours ceiling further caps ``max_weekly_hours``.
    """
    values: Dict[str, float] = {}
    for name in CONSTRAINT_FIELDS:
        value = getattr(defaults, name)
        for level in (org_default, override):
            level_value = getattr(level, name, None) if level is not None else None
            if level_value is not None:
                value = level_value
        values[name] = value

    if weekly_hours_ceiling is not None:
        values["max_weekly_hours"] = min(values["max_weekly_hours"], float(weekly_hours_ceiling))

    return ConstraintSet(
        max_hours_per_day=float(values["max_hours_per_day"]),
        min_hours_between_shifts=float(values["min_hours_between_shifts"]),
        max_consecutive_days=int(values["max_consecutive_days"]),
        max_weekly_hours=float(values["max_weekly_hours"]),
    )


def validate_assignment_constraints(
    assignments: Iterable[PlannedAssignment],
    constraints: Mapping[int, ConstraintSet],
    default: Optional[ConstraintSet] = None,
) -> None:
    """
    Validate a complete set of assignments against all hard constraints.

    Args:
        assignments: Assignments to validate
        constraints: Effective constraints per employee id
        default: Constraints for employees missing from ``constraints``

    Raises:
        ValidationError: If any constraint is violated
    """
    default = default or ConstraintSet()
    by_employee: Dict[int, List[PlannedAssignment]] = defaultdict(list)
    for a in assignments:
        by_employee[a.employee_id].append(a)

    for emp_id, emp_assignments in by_employee.items():
        limits = constraints.get(emp_id, default)
        ordered = sorted(emp_assignments, key=lambda a: a.interval)

        # 1. Overlaps and rest periods between neighbours
        for prev, cur in zip(ordered, ordered[1:]):
            prev_end = prev.interval[1]
            cur_start = cur.interval[0]
            if cur_start < prev_end:
                raise ValidationError(
                    f"Employee {emp_id} has overlapping assignments: "
                    f"shift {prev.shift_id} on {prev.date} overlaps shift {cur.shift_id} on {cur.date}"
                )
            gap = _hours_between(prev_end, cur_start)
            if gap + EPSILON < limits.min_hours_between_shifts:
                raise ValidationError(
                    f"Employee {emp_id} rests only {gap:.1f}h between shift {prev.shift_id} "
                    f"and shift {cur.shift_id} (minimum {limits.min_hours_between_shifts}h)"
                )

        # 2. Daily hours
        daily: Dict[date, float] = defaultdict(float)
        for a in ordered:
            daily[a.date] += a.hours
        for day, hours in daily.items():
            if hours > limits.max_hours_per_day + EPSILON:
                raise ValidationError(
                    f"Employee {emp_id} works {hours:.1f}h on {day} (cap {limits.max_hours_per_day}h)"
                )

        # 3. Consecutive days
        for day in daily:
            run = consecutive_run_length(daily.keys(), day)
            if run > limits.max_consecutive_days:
                raise ValidationError(
                    f"Employee {emp_id} works {run} consecutive days (cap {limits.max_consecutive_days})"
                )

        # 4. Weekly hours
        total = sum(daily.values())
        if total > limits.max_weekly_hours + EPSILON:
            raise ValidationError(
                f"Employee {emp_id} exceeds weekly hard cap: {total:.1f}h > {limits.max_weekly_hours}h"
            )
