"""Summaries of a scheduling run for the CLI and exports."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

import pandas as pd

from shift_scheduler.domain.types import ScheduleResult
from shift_scheduler.services.scoring import calculate_hours_spread


@dataclass
class RunSummary:
    coverage: pd.DataFrame  # date, total, assigned, unassigned
    hours: pd.DataFrame  # employee_id, name, hours, shifts
    mean_preference_score: float
    hours_spread: float


def summarize_result(result: ScheduleResult, names: Optional[Dict[int, str]] = None) -> RunSummary:
    """
    Coverage per date and hours per employee for a finished run.

    Args:
        result: ScheduleResult from any scheduler
        names: Optional employee id -> display name

    Returns:
        RunSummary
    """
    names = names or {}

    shifts = pd.DataFrame(
        [{"date": s.date, "shift_id": s.shift_id} for s in result.assignments]
        + [{"date": s.date, "shift_id": s.shift_id} for s in result.unassigned_shifts],
        columns=["date", "shift_id"],
    )
    assigned = pd.DataFrame(
        [{"date": a.date, "employee_id": a.employee_id, "hours": a.hours} for a in result.assignments],
        columns=["date", "employee_id", "hours"],
    )

    # 1. Coverage per date
    total = shifts.groupby("date").size().rename("total")
    filled = assigned.groupby("date").size().rename("assigned")
    coverage = pd.concat([total, filled], axis=1).fillna(0).astype(int).reset_index()
    coverage["unassigned"] = coverage["total"] - coverage["assigned"]

    # 2. Hours per employee (every employee, including those with no shifts)
    per_employee = assigned.groupby("employee_id").size()
    hours = pd.DataFrame(
        {
            "employee_id": list(result.stats.employee_hours.keys()),
            "hours": list(result.stats.employee_hours.values()),
        },
        columns=["employee_id", "hours"],
    )
    hours["shifts"] = hours["employee_id"].map(per_employee).fillna(0).astype(int)
    hours.insert(1, "name", hours["employee_id"].map(lambda i: names.get(i, "")))
    hours = hours.sort_values("employee_id").reset_index(drop=True)

    return RunSummary(
        coverage=coverage,
        hours=hours,
        mean_preference_score=result.stats.mean_preference_score,
        hours_spread=calculate_hours_spread(result.stats.employee_hours.values()),
    )


def format_summary(summary: RunSummary) -> str:
    lines = ["Coverage:", summary.coverage.to_string(index=False), "", "Hours:", summary.hours.to_string(index=False)]
    lines.append("")
    lines.append(f"Mean preference score: {summary.mean_preference_score:.2f}")
    lines.append(f"Hours spread: {summary.hours_spread:.1f}h")
    return "\n".join(lines)
