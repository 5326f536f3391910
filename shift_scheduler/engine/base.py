"""Base scheduler interface that all schedulers must implement."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, List

from shift_scheduler.config import SchedulerConfig
from shift_scheduler.domain.types import PlannedAssignment, ScheduleResult, ScheduleStats, SchedulingInput, ShiftInstance


class BaseScheduler(ABC):
    """
    Abstract base class for all schedulers.

    A scheduler maps a week's shift instances to employees. It is pure: it
    reads nothing from the store and writes nothing back.
    """

    name: str = "base"

    @abstractmethod
    def assign(self, data: SchedulingInput, cfg: SchedulerConfig) -> ScheduleResult:
        """
        Generate assignments for the given input.

        Args:
            data: Employees, shifts, availability, preferences, constraints
            cfg: SchedulerConfig with weights and time buckets

        Returns:
            ScheduleResult with assignments, unassigned shifts and stats.
            Shifts that nobody can take are reported as unassigned, never raised.
        """
        pass


def build_stats(
    data: SchedulingInput,
    assignments: List[PlannedAssignment],
) -> ScheduleStats:
    """Aggregate stats for a finished run; every employee appears in the hour totals."""
    employee_hours: Dict[int, float] = {emp.employee_id: 0.0 for emp in data.employees}
    for a in assignments:
        employee_hours[a.employee_id] = employee_hours.get(a.employee_id, 0.0) + a.hours

    mean_pref = 0.0
    if assignments:
        mean_pref = sum(a.preference_score for a in assignments) / len(assignments)

    return ScheduleStats(
        total_shifts=len(data.shifts),
        assigned_count=len(assignments),
        mean_preference_score=mean_pref,
        employee_hours=employee_hours,
    )


def ordered_shifts(shifts: List[ShiftInstance]) -> List[ShiftInstance]:
    """Shifts in processing order: date, start time, shift id."""
    return sorted(shifts, key=lambda s: s.sort_key)
