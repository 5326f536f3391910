"""CSV export utilities."""

from __future__ import annotations

import logging
from pathlib import Path

import pandas as pd

from shift_scheduler.errors import ValidationError
from shift_scheduler.services.timeplan import Weekday

logger = logging.getLogger(__name__)

ASSIGNMENT_COLUMNS = [
    "schedule_id",
    "version",
    "date",
    "weekday",
    "shift_id",
    "shift_name",
    "start_time",
    "end_time",
    "employee_id",
    "employee_name",
    "preference_score",
]

EMPLOYEE_COLUMNS = ["employee_id", "name", "email", "role", "weekly_hours_ceiling"]


def assignments_frame(store, schedule_id: int) -> pd.DataFrame:
    """One row per assignment of a schedule version, ordered by date and start time."""
    schedule = store.get_schedule(schedule_id)
    if schedule is None:
        raise ValidationError(f"Schedule {schedule_id} not found")

    rows = []
    for a in store.get_assignments(schedule_id):
        shift = store.get_shift(a.shift_id)
        employee = store.get_employee(a.emp_id)
        rows.append(
            {
                "schedule_id": schedule.id,
                "version": schedule.version,
                "date": a.date.isoformat(),
                "weekday": Weekday.of(a.date).name.title(),
                "shift_id": a.shift_id,
                "shift_name": shift.name if shift else None,
                "start_time": shift.start_time if shift else None,
                "end_time": shift.end_time if shift else None,
                "employee_id": a.emp_id,
                "employee_name": employee.name if employee else None,
                "preference_score": a.preference_score,
            }
        )

    df = pd.DataFrame(rows, columns=ASSIGNMENT_COLUMNS)
    return df.sort_values(["date", "start_time", "shift_id"], kind="stable").reset_index(drop=True)


def export_assignments_csv(store, schedule_id: int, csv_path: str | Path) -> int:
    """
    Export a schedule version's assignments to CSV.

    Args:
        store: ScheduleStore
        schedule_id: Schedule version to export
        csv_path: Output path

    Returns:
        Number of assignments exported
    """
    df = assignments_frame(store, schedule_id)
    df.to_csv(csv_path, index=False)
    logger.info("Exported %d assignments to %s", len(df), csv_path)
    return len(df)


def export_employees_csv(store, org_id: int, csv_path: str | Path) -> int:
    """Export an organization's active employees to CSV."""
    employees = store.fetch_employees(org_id)
    df = pd.DataFrame(
        [
            {
                "employee_id": e.employee_id,
                "name": e.name,
                "email": e.email,
                "role": e.role,
                "weekly_hours_ceiling": e.weekly_hours_ceiling,
            }
            for e in employees
        ],
        columns=EMPLOYEE_COLUMNS,
    )
    df.to_csv(csv_path, index=False)
    logger.info("Exported %d employees to %s", len(df), csv_path)
    return len(df)
