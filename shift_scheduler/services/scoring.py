"""Scoring functions for candidate selection and workload balance."""

from __future__ import annotations

from typing import Iterable, Optional, Tuple


def workload_balance_factor(hours_assigned: float, max_weekly_hours: float) -> float:
    """
    Favor less-loaded employees: ``1 - hours / max_weekly_hours``, clamped to [0, 1].

    Args:
        hours_assigned: Hours already assigned to the employee this week
        max_weekly_hours: Employee's effective weekly cap

    Returns:
        Factor in [0, 1] (0 for a zero cap)
    """
    if max_weekly_hours <= 0:
        return 0.0
    factor = 1.0 - (hours_assigned / max_weekly_hours)
    return max(0.0, min(1.0, factor))


def calculate_candidate_score(preference_score: float, hours_assigned: float, max_weekly_hours: float) -> float:
    """Higher score = better candidate."""
    return preference_score * workload_balance_factor(hours_assigned, max_weekly_hours)


def pick_best(candidates: Iterable[Tuple[int, float]]) -> Optional[Tuple[int, float]]:
    """
    Select the ``(employee_id, score)`` with the highest score.

    Ties go to the lowest employee id. Returns None for no candidates.
    """
    best: Optional[Tuple[int, float]] = None
    for emp_id, score in candidates:
        if best is None or score > best[1] or (score == best[1] and emp_id < best[0]):
            best = (emp_id, score)
    return best


def calculate_hours_spread(employee_hours: Iterable[float]) -> float:
    """Difference between the most- and least-loaded employee (0 when empty)."""
    hours = list(employee_hours)
    if not hours:
        return 0.0
    return max(hours) - min(hours)
