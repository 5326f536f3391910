"""CP-SAT constraint-based scheduler for optimal shift assignments."""

from __future__ import annotations

import logging
import math
from collections import defaultdict
from datetime import date, timedelta
from typing import Dict, List, Tuple

from ortools.sat.python import cp_model

from shift_scheduler.config import SchedulerConfig
from shift_scheduler.domain.types import PlannedAssignment, ScheduleResult, SchedulingInput, ShiftInstance
from shift_scheduler.services.availability import group_by_employee, resolve
from shift_scheduler.services.timeplan import is_valid_range, time_bucket_for

from .base import BaseScheduler, build_stats, ordered_shifts
from .greedy import GreedyScheduler

logger = logging.getLogger(__name__)

# Preference weights are scaled to integers for the model
PREF_SCALE = 100


def _minutes(hours: float) -> int:
    """Whole minutes in a cap, rounding down so the cap is never exceeded."""
    return int(math.floor(hours * 60 + 1e-6))


class CpSatScheduler(BaseScheduler):
    """
    CP-SAT based scheduler that optimizes coverage, preference and balance.

    Uses Google OR-Tools CP-SAT solver with the same hard constraints as the
    greedy engine:
    - Availability, time off and the one-employee-per-shift rule
    - No double-booking and the minimum rest between shifts
    - Daily and weekly hour caps
    - Maximum consecutive working days

    The objective is lexicographic: assigned shifts first, then summed
    preference score, then the spread between the most- and least-loaded
    employee. A single worker with a fixed seed keeps runs reproducible.
    """

    name = "cp_sat"

    def assign(self, data: SchedulingInput, cfg: SchedulerConfig) -> ScheduleResult:
        shifts = ordered_shifts(data.shifts)
        valid = [s for s in shifts if is_valid_range(s.time_range)]
        for s in shifts:
            if not is_valid_range(s.time_range):
                logger.warning("Shift %s on %s has invalid range %s; leaving unassigned",
                               s.shift_id, s.date, s.time_range)

        employees = sorted(data.employees, key=lambda e: e.employee_id)
        if not valid or not employees:
            return ScheduleResult(assignments=[], unassigned_shifts=shifts, stats=build_stats(data, []))

        model = cp_model.CpModel()

        # Decision variables and helper structures
        x, pref_scores = self._create_variables(model, data, cfg, valid, employees)

        # Hard constraints
        self._add_coverage_constraints(model, x, valid)
        hours_vars = self._add_employee_constraints(model, x, data, valid, employees)

        # Objective
        self._build_objective(model, x, pref_scores, hours_vars, valid)

        solver = cp_model.CpSolver()
        solver.parameters.max_time_in_seconds = float(cfg.cp_sat.max_time_in_seconds)
        solver.parameters.num_workers = 1
        solver.parameters.random_seed = int(cfg.cp_sat.random_seed)

        logger.info("Solving CP-SAT model: %d shifts, %d employees, %d candidate pairs",
                    len(valid), len(employees), len(x))
        status = solver.Solve(model)

        if status not in (cp_model.OPTIMAL, cp_model.FEASIBLE):
            logger.warning(
                "CP-SAT found no solution (status: %s); falling back to greedy", solver.StatusName(status)
            )
            return GreedyScheduler().assign(data, cfg)

        logger.info("CP-SAT solution found (status: %s)", solver.StatusName(status))
        return self._extract_solution(solver, x, pref_scores, data, shifts)

    def _create_variables(
        self,
        model: cp_model.CpModel,
        data: SchedulingInput,
        cfg: SchedulerConfig,
        shifts: List[ShiftInstance],
        employees,
    ) -> Tuple[Dict[Tuple[int, int], cp_model.IntVar], Dict[Tuple[int, int], float]]:
        """
        One boolean per (shift index, employee) the resolver allows.

        Returns:
            (x, pref_scores) keyed by (shift index, employee id)
        """
        weights = cfg.preference_weights.as_dict()
        buckets = cfg.time_buckets
        availability = group_by_employee(data.availability)
        preferences = group_by_employee(data.preferences)

        x: Dict[Tuple[int, int], cp_model.IntVar] = {}
        pref_scores: Dict[Tuple[int, int], float] = {}
        for idx, shift in enumerate(shifts):
            bucket = time_bucket_for(shift.time_range.start, buckets.morning_until, buckets.afternoon_until)
            for emp in employees:
                emp_id = emp.employee_id
                limits = data.constraints_for(emp_id)
                if shift.hours > limits.max_hours_per_day + 1e-9 or shift.hours > limits.max_weekly_hours + 1e-9:
                    continue
                resolution = resolve(
                    availability.get(emp_id, []),
                    preferences.get(emp_id, []),
                    shift,
                    weekday=shift.weekday,
                    bucket=bucket,
                    weights=weights,
                    blocked_dates=data.time_off.get(emp_id),
                )
                if not resolution.eligible:
                    continue
                x[(idx, emp_id)] = model.NewBoolVar(f"assign_s{shift.shift_id}_d{shift.date}_e{emp_id}")
                pref_scores[(idx, emp_id)] = resolution.preference_score
        return x, pref_scores

    def _add_coverage_constraints(self, model: cp_model.CpModel, x: Dict, shifts: List[ShiftInstance]) -> None:
        """Each shift goes to at most one employee."""
        by_shift = defaultdict(list)
        for (idx, _), var in x.items():
            by_shift[idx].append(var)
        for vars_ in by_shift.values():
            if len(vars_) > 1:
                model.Add(sum(vars_) <= 1)

    def _add_employee_constraints(
        self,
        model: cp_model.CpModel,
        x: Dict,
        data: SchedulingInput,
        shifts: List[ShiftInstance],
        employees,
    ) -> Dict[int, cp_model.IntVar]:
        """Overlap, rest, hour caps and consecutive days; returns minutes worked per candidate employee."""
        by_employee: Dict[int, List[int]] = defaultdict(list)
        for idx, emp_id in x:
            by_employee[emp_id].append(idx)

        total_minutes = sum(_minutes(s.hours) for s in shifts)
        first_day = min(s.date for s in shifts)
        last_day = max(s.date for s in shifts)
        calendar = [first_day + timedelta(days=i) for i in range((last_day - first_day).days + 1)]

        hours_vars: Dict[int, cp_model.IntVar] = {}
        for emp in employees:
            emp_id = emp.employee_id
            indices = sorted(by_employee.get(emp_id, []))
            if not indices:
                continue
            limits = data.constraints_for(emp_id)
            minutes_var = model.NewIntVar(0, total_minutes, f"minutes_e{emp_id}")
            hours_vars[emp_id] = minutes_var

            # 1. Pairwise conflicts: overlap or too little rest
            min_rest = limits.min_hours_between_shifts
            for i, a in enumerate(indices):
                a_start, a_end = shifts[a].interval
                for b in indices[i + 1:]:
                    b_start, b_end = shifts[b].interval
                    if a_start < b_end and b_start < a_end:
                        model.Add(x[(a, emp_id)] + x[(b, emp_id)] <= 1)
                        continue
                    gap = (b_start - a_end) if b_start >= a_end else (a_start - b_end)
                    if gap.total_seconds() / 3600.0 + 1e-9 < min_rest:
                        model.Add(x[(a, emp_id)] + x[(b, emp_id)] <= 1)

            # 2. Daily hours and worked-day indicators
            per_day: Dict[date, List[int]] = defaultdict(list)
            for idx in indices:
                per_day[shifts[idx].date].append(idx)
            worked: Dict[date, cp_model.IntVar] = {}
            for day, day_indices in per_day.items():
                model.Add(
                    sum(x[(idx, emp_id)] * _minutes(shifts[idx].hours) for idx in day_indices)
                    <= _minutes(limits.max_hours_per_day)
                )
                flag = model.NewBoolVar(f"worked_e{emp_id}_d{day}")
                for idx in day_indices:
                    model.AddImplication(x[(idx, emp_id)], flag)
                model.Add(flag <= sum(x[(idx, emp_id)] for idx in day_indices))
                worked[day] = flag

            # 3. Consecutive days: any window of cap + 1 calendar days has a day off
            window = limits.max_consecutive_days + 1
            for start in range(0, len(calendar) - window + 1):
                flags = [worked[d] for d in calendar[start:start + window] if d in worked]
                if len(flags) == window:
                    model.Add(sum(flags) <= limits.max_consecutive_days)

            # 4. Weekly hours
            model.Add(minutes_var == sum(x[(idx, emp_id)] * _minutes(shifts[idx].hours) for idx in indices))
            model.Add(minutes_var <= _minutes(limits.max_weekly_hours))

        return hours_vars

    def _build_objective(
        self,
        model: cp_model.CpModel,
        x: Dict,
        pref_scores: Dict,
        hours_vars: Dict[int, cp_model.IntVar],
        shifts: List[ShiftInstance],
    ) -> None:
        """
        Build objective function: coverage, then preference, then balance.

        Weights are chosen so that no amount of a lower tier can outweigh one
        unit of a higher tier.
        """
        total_minutes = sum(_minutes(s.hours) for s in shifts)
        max_pref = max((int(round(p * PREF_SCALE)) for p in pref_scores.values()), default=0)
        balance_weight = 1
        pref_weight = total_minutes + 1
        coverage_weight = pref_weight * (max_pref * len(shifts) + 1)

        objective_terms = []

        # 1. Coverage
        objective_terms.append(coverage_weight * sum(x.values()))

        # 2. Preference
        objective_terms.append(
            pref_weight * sum(var * int(round(pref_scores[key] * PREF_SCALE)) for key, var in x.items())
        )

        # 3. Balance (minimize max - min minutes worked)
        loads = list(hours_vars.values())
        if len(loads) >= 2:
            max_load = model.NewIntVar(0, total_minutes, "max_load")
            min_load = model.NewIntVar(0, total_minutes, "min_load")
            model.AddMaxEquality(max_load, loads)
            model.AddMinEquality(min_load, loads)
            objective_terms.append(-balance_weight * (max_load - min_load))

        model.Maximize(sum(objective_terms))

    def _extract_solution(
        self,
        solver: cp_model.CpSolver,
        x: Dict,
        pref_scores: Dict,
        data: SchedulingInput,
        shifts: List[ShiftInstance],
    ) -> ScheduleResult:
        """Build the result in processing order from the solver's values."""
        valid = [s for s in shifts if is_valid_range(s.time_range)]
        winners: Dict[int, int] = {}
        for (idx, emp_id), var in sorted(x.items()):
            if solver.Value(var) == 1:
                winners[idx] = emp_id

        assignments: List[PlannedAssignment] = []
        assigned_keys = set()
        for idx, shift in enumerate(valid):
            emp_id = winners.get(idx)
            if emp_id is None:
                continue
            pref = pref_scores[(idx, emp_id)]
            assignments.append(PlannedAssignment.for_shift(emp_id, shift, preference_score=pref, score=pref))
            assigned_keys.add((shift.shift_id, shift.date))

        unassigned = [s for s in shifts if (s.shift_id, s.date) not in assigned_keys]
        stats = build_stats(data, assignments)
        logger.info(
            "CP-SAT run: %d/%d shifts assigned, %d unassigned",
            stats.assigned_count, stats.total_shifts, len(unassigned),
        )
        return ScheduleResult(assignments=assignments, unassigned_shifts=unassigned, stats=stats)
