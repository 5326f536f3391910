"""Single-pass greedy assignment engine.

Shifts are processed in ``(date, start_time)`` order and each one goes to
the best-scoring eligible employee at that moment. The processing order is
part of the contract: changing it changes results.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from shift_scheduler.config import SchedulerConfig
from shift_scheduler.domain.types import (
    AvailabilityWindow,
    ConstraintSet,
    EmployeeInput,
    PlannedAssignment,
    PreferenceEntry,
    ScheduleResult,
    SchedulingInput,
    ShiftInstance,
)
from shift_scheduler.services.availability import group_by_employee, resolve
from shift_scheduler.services.constraints import check_assignment
from shift_scheduler.services.scoring import calculate_candidate_score, pick_best
from shift_scheduler.services.timeplan import is_valid_range, time_bucket_for

from .base import BaseScheduler, build_stats, ordered_shifts

logger = logging.getLogger(__name__)


class GreedyScheduler(BaseScheduler):
    """Deterministic greedy heuristic; not globally optimal."""

    name = "greedy"

    def assign(self, data: SchedulingInput, cfg: SchedulerConfig) -> ScheduleResult:
        weights = cfg.preference_weights.as_dict()
        buckets = cfg.time_buckets
        availability = group_by_employee(data.availability)
        preferences = group_by_employee(data.preferences)

        employees = sorted(data.employees, key=lambda e: e.employee_id)
        committed: Dict[int, List[PlannedAssignment]] = {e.employee_id: [] for e in employees}
        weekly_hours: Dict[int, float] = {e.employee_id: 0.0 for e in employees}

        assignments: List[PlannedAssignment] = []
        unassigned: List[ShiftInstance] = []

        for shift in ordered_shifts(data.shifts):
            if not is_valid_range(shift.time_range):
                logger.warning("Shift %s on %s has invalid range %s; leaving unassigned",
                               shift.shift_id, shift.date, shift.time_range)
                unassigned.append(shift)
                continue

            weekday = shift.weekday
            bucket = time_bucket_for(shift.time_range.start, buckets.morning_until, buckets.afternoon_until)

            # Candidate set: resolver-eligible and checker-eligible against this run
            scored = []
            pref_scores: Dict[int, float] = {}
            for emp in employees:
                emp_id = emp.employee_id
                resolution = resolve(
                    availability.get(emp_id, []),
                    preferences.get(emp_id, []),
                    shift,
                    weekday=weekday,
                    bucket=bucket,
                    weights=weights,
                    blocked_dates=data.time_off.get(emp_id),
                )
                if not resolution.eligible:
                    continue

                limits = data.constraints_for(emp_id)
                if not check_assignment(shift, committed[emp_id], limits).eligible:
                    continue

                score = calculate_candidate_score(
                    resolution.preference_score, weekly_hours[emp_id], limits.max_weekly_hours
                )
                scored.append((emp_id, score))
                pref_scores[emp_id] = resolution.preference_score

            best = pick_best(scored)
            if best is None:
                logger.debug("No eligible employee for shift %s on %s", shift.shift_id, shift.date)
                unassigned.append(shift)
                continue

            winner_id, winner_score = best
            planned = PlannedAssignment.for_shift(
                winner_id, shift, preference_score=pref_scores[winner_id], score=winner_score
            )
            assignments.append(planned)
            committed[winner_id].append(planned)
            weekly_hours[winner_id] += planned.hours

        stats = build_stats(data, assignments)
        logger.info(
            "Greedy run: %d/%d shifts assigned, %d unassigned",
            stats.assigned_count, stats.total_shifts, len(unassigned),
        )
        return ScheduleResult(assignments=assignments, unassigned_shifts=unassigned, stats=stats)


def assign(
    employees: Iterable[EmployeeInput],
    shifts: Iterable[ShiftInstance],
    availability: Iterable[AvailabilityWindow],
    preferences: Iterable[PreferenceEntry],
    constraints: Optional[Mapping[int, ConstraintSet]] = None,
    cfg: Optional[SchedulerConfig] = None,
    default_constraints: Optional[ConstraintSet] = None,
) -> ScheduleResult:
    """
    Pure entry point: run the greedy engine over in-memory records.

    Args:
        employees: Employees to consider
        shifts: Dated shift instances for the week
        availability: Availability windows for those employees
        preferences: Preference entries for those employees
        constraints: Effective constraints per employee id
        cfg: Scheduler configuration (defaults when None)
        default_constraints: Constraints for employees without an entry;
            taken from ``cfg.default_constraints`` when None

    Returns:
        ScheduleResult
    """
    cfg = cfg or SchedulerConfig()
    if default_constraints is None:
        default_constraints = cfg.default_constraints.as_constraint_set()
    data = SchedulingInput(
        employees=list(employees),
        shifts=list(shifts),
        availability=list(availability),
        preferences=list(preferences),
        constraints=dict(constraints or {}),
        default_constraints=default_constraints,
    )
    return GreedyScheduler().assign(data, cfg)
