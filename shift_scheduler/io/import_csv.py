"""CSV import utilities to load data into the database."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List

import pandas as pd

from shift_scheduler.domain.models import Availability, Employee, Shift
from shift_scheduler.domain.store import SqlAlchemyStore
from shift_scheduler.domain.types import AvailabilityWindow, PreferenceEntry
from shift_scheduler.errors import ValidationError
from shift_scheduler.services.availability import validate_availability, validate_preferences
from shift_scheduler.services.timeplan import TimeBucket, TimeRange, Weekday, require_valid_range

logger = logging.getLogger(__name__)

TRUE_VALUES = {"TRUE", "T", "1", "YES", "Y"}


def _read(csv_path: str | Path, required: List[str]) -> pd.DataFrame:
    df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)

    # Normalize column names
    df.columns = df.columns.str.lower().str.strip()
    df = df.apply(lambda col: col.str.strip())

    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValidationError(f"{csv_path}: missing columns {missing}")
    return df


def _optional(row: pd.Series, key: str):
    value = row.get(key, "")
    return value if value != "" else None


def _flag(row: pd.Series, key: str) -> bool:
    return str(row.get(key, "")).upper() in TRUE_VALUES


def _weekday(value, where: str) -> Weekday:
    try:
        return Weekday.parse(value)
    except ValueError as e:
        raise ValidationError(f"{where}: {e}")


def import_employees_csv(store: SqlAlchemyStore, csv_path: str | Path, org_id: int) -> int:
    """
    Import employees from CSV into database.

    Columns: name, [employee_id, email, role, weekly_hours_ceiling]

    Args:
        store: SqlAlchemyStore
        csv_path: Path to employees CSV
        org_id: Organization the employees belong to

    Returns:
        Number of employees imported
    """
    df = _read(csv_path, ["name"])

    if "role" in df.columns:
        df["role"] = df["role"].str.lower()

    employees = []
    for i, row in df.iterrows():
        role = _optional(row, "role") or "employee"
        if role not in ("employee", "manager"):
            raise ValidationError(f"{csv_path} row {i + 2}: unknown role '{role}'")
        ceiling = _optional(row, "weekly_hours_ceiling")
        emp_id = _optional(row, "employee_id")
        employees.append(
            Employee(
                employee_id=int(emp_id) if emp_id is not None else None,
                organization_id=org_id,
                name=row["name"],
                email=_optional(row, "email"),
                role=role,
                weekly_hours_ceiling=float(ceiling) if ceiling is not None else None,
            )
        )

    # Bulk insert
    with store.transaction() as session:
        session.add_all(employees)

    logger.info("Imported %d employees from %s", len(employees), csv_path)
    return len(employees)


def import_shifts_csv(store: SqlAlchemyStore, csv_path: str | Path, org_id: int) -> int:
    """
    Import shifts from CSV into database.

    Columns: name, start_time, end_time, [shift_id|id, role, date, day_of_week, overnight, color].
    A row with ``date`` is a one-off shift, one with ``day_of_week`` recurs
    weekly, and one with neither recurs daily.

    Returns:
        Number of shifts imported
    """
    df = _read(csv_path, ["name", "start_time", "end_time"])
    df.rename(columns={"id": "shift_id"}, inplace=True)

    # Convert date
    if "date" in df.columns:
        df["date"] = pd.to_datetime(df["date"], errors="coerce").dt.date

    shifts = []
    for i, row in df.iterrows():
        where = f"{csv_path} row {i + 2}"
        time_range = TimeRange.parse(row["start_time"], row["end_time"], _flag(row, "overnight"))
        try:
            require_valid_range(time_range)
        except ValidationError as e:
            raise ValidationError(f"{where}: {e}")

        shift_date = row.get("date")
        if shift_date is not None and pd.isna(shift_date):
            shift_date = None
        day = _optional(row, "day_of_week")
        shift_id = _optional(row, "shift_id")
        shifts.append(
            Shift(
                shift_id=int(shift_id) if shift_id is not None else None,
                organization_id=org_id,
                name=row["name"],
                role=_optional(row, "role"),
                color=_optional(row, "color"),
                start_time=str(time_range.start),
                end_time=str(time_range.end),
                overnight=time_range.overnight,
                date=shift_date,
                day_of_week=int(_weekday(day, where)) if day is not None else None,
            )
        )

    # Bulk insert
    with store.transaction() as session:
        session.add_all(shifts)

    logger.info("Imported %d shifts from %s", len(shifts), csv_path)
    return len(shifts)


def import_availability_csv(store: SqlAlchemyStore, csv_path: str | Path) -> int:
    """
    Import availability windows from CSV.

    Columns: employee_id, day_of_week, start_time, end_time. Windows are
    validated against each other and against what is already stored.

    Raises:
        ValidationError: On an invalid or overlapping window (nothing is imported)
    """
    df = _read(csv_path, ["employee_id", "day_of_week", "start_time", "end_time"])

    new_windows = []
    for i, row in df.iterrows():
        new_windows.append(
            AvailabilityWindow(
                employee_id=int(row["employee_id"]),
                weekday=_weekday(row["day_of_week"], f"{csv_path} row {i + 2}"),
                time_range=TimeRange.parse(row["start_time"], row["end_time"]),
            )
        )

    employee_ids = sorted({w.employee_id for w in new_windows})
    existing = [
        AvailabilityWindow(a.employee_id, Weekday(a.day_of_week), TimeRange.parse(a.start_time, a.end_time))
        for a in store.fetch_availability(employee_ids)
    ]
    validate_availability(existing + new_windows)

    with store.transaction() as session:
        session.add_all(
            Availability(
                employee_id=w.employee_id,
                day_of_week=int(w.weekday),
                start_time=str(w.time_range.start),
                end_time=str(w.time_range.end),
            )
            for w in new_windows
        )

    logger.info("Imported %d availability windows from %s", len(new_windows), csv_path)
    return len(new_windows)


def import_preferences_csv(store: SqlAlchemyStore, csv_path: str | Path) -> int:
    """
    Import shift preferences from CSV.

    Columns: employee_id, day_of_week, time_bucket, preference_level.
    Duplicate employee/day/bucket rows in the file are rejected; rows for a
    slot that already has a preference replace it.
    """
    df = _read(csv_path, ["employee_id", "day_of_week", "time_bucket", "preference_level"])
    df["time_bucket"] = df["time_bucket"].str.lower()
    df["preference_level"] = df["preference_level"].str.lower()

    entries = []
    for i, row in df.iterrows():
        where = f"{csv_path} row {i + 2}"
        try:
            bucket = TimeBucket(row["time_bucket"])
        except ValueError:
            raise ValidationError(f"{where}: unknown time bucket '{row['time_bucket']}'")
        entries.append(
            PreferenceEntry(
                employee_id=int(row["employee_id"]),
                weekday=_weekday(row["day_of_week"], where),
                bucket=bucket,
                level=row["preference_level"],
            )
        )
    validate_preferences(entries)

    for entry in entries:
        store.set_preference(entry.employee_id, entry.weekday, entry.bucket.value, entry.level)

    logger.info("Imported %d preferences from %s", len(entries), csv_path)
    return len(entries)
