"""Tests for CSV import/export functionality."""

import pandas as pd
import pytest

from shift_scheduler.domain.models import Availability, Employee, Shift, ShiftPreference
from shift_scheduler.domain.repositories import EmployeeRepository, ShiftRepository
from shift_scheduler.engine.orchestrator import generate_schedule
from shift_scheduler.errors import ValidationError
from shift_scheduler.io.export_csv import ASSIGNMENT_COLUMNS, export_assignments_csv, export_employees_csv
from shift_scheduler.io.import_csv import (
    import_availability_csv,
    import_employees_csv,
    import_preferences_csv,
    import_shifts_csv,
)


def write_csv(tmp_path, name, content):
    path = tmp_path / name
    path.write_text(content)
    return path


def test_import_employees_csv(store, org, tmp_path):
    """Test importing employees from CSV."""
    csv_file = write_csv(
        tmp_path,
        "employees.csv",
        """employee_id,name,email,role,weekly_hours_ceiling
1001,Max Hayes,max@example.com,MANAGER,
1002,Ben Park,,employee,24
1003, Ana Ruiz ,,,
""",
    )

    count = import_employees_csv(store, csv_file, org.id)
    assert count == 3

    manager = EmployeeRepository.get_by_id(store.session, 1001)
    assert manager.is_manager
    assert manager.email == "max@example.com"
    assert manager.weekly_hours_ceiling is None

    ben = EmployeeRepository.get_by_id(store.session, 1002)
    assert ben.role == "employee"
    assert ben.weekly_hours_ceiling == 24.0
    assert ben.email is None

    # Whitespace is stripped and role defaults to employee
    ana = EmployeeRepository.get_by_id(store.session, 1003)
    assert ana.name == "Ana Ruiz"
    assert ana.role == "employee"


def test_import_employees_rejects_unknown_role(store, org, tmp_path):
    csv_file = write_csv(tmp_path, "employees.csv", "name,role\nMax,MANAGER\nBen,barista\n")

    with pytest.raises(ValidationError, match="row 3"):
        import_employees_csv(store, csv_file, org.id)
    assert store.session.query(Employee).count() == 0


def test_import_missing_columns(store, org, tmp_path):
    csv_file = write_csv(tmp_path, "shifts.csv", "name,start_time\nMorning,08:00\n")
    with pytest.raises(ValidationError, match="missing columns"):
        import_shifts_csv(store, csv_file, org.id)


def test_import_shifts_csv(store, org, tmp_path):
    """Test importing shifts from CSV."""
    csv_file = write_csv(
        tmp_path,
        "shifts.csv",
        """id,name,start_time,end_time,role,date,day_of_week,overnight
1,Open,06:00,12:00,counter,,,
2,Close,14:00,22:00,counter,,Friday,
3,Inventory,09:00,17:00,,2025-03-05,,
4,Night bake,22:00,06:00,baker,,sat,TRUE
""",
    )

    count = import_shifts_csv(store, csv_file, org.id)
    assert count == 4

    shifts = {s.shift_id: s for s in ShiftRepository.get_by_organization(store.session, org.id)}
    assert shifts[1].date is None and shifts[1].day_of_week is None
    assert shifts[2].day_of_week == 4
    assert str(shifts[3].date) == "2025-03-05"
    assert shifts[3].role is None
    assert shifts[4].overnight
    assert (shifts[4].start_time, shifts[4].end_time) == ("22:00", "06:00")


def test_import_shifts_rejects_wrapping_range_without_flag(store, org, tmp_path):
    csv_file = write_csv(
        tmp_path,
        "shifts.csv",
        "name,start_time,end_time\nOpen,06:00,12:00\nNight,22:00,06:00\n",
    )

    with pytest.raises(ValidationError, match="row 3"):
        import_shifts_csv(store, csv_file, org.id)
    assert store.session.query(Shift).count() == 0


def test_import_availability_csv(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    csv_file = write_csv(
        tmp_path,
        "availability.csv",
        f"""employee_id,day_of_week,start_time,end_time
{emp.employee_id},Monday,08:00,12:00
{emp.employee_id},monday,13:00,18:00
{emp.employee_id},2,09:00,17:00
""",
    )

    assert import_availability_csv(store, csv_file) == 3
    rows = store.fetch_availability([emp.employee_id])
    assert sorted((r.day_of_week, r.start_time) for r in rows) == [(0, "08:00"), (0, "13:00"), (2, "09:00")]


def test_import_availability_rejects_overlap(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    csv_file = write_csv(
        tmp_path,
        "availability.csv",
        f"""employee_id,day_of_week,start_time,end_time
{emp.employee_id},Tuesday,09:00,17:00
{emp.employee_id},Tuesday,16:00,20:00
""",
    )

    with pytest.raises(ValidationError, match="overlaps"):
        import_availability_csv(store, csv_file)
    assert store.session.query(Availability).count() == 0


def test_import_availability_checks_stored_windows(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    store.add_availability(emp.employee_id, "tuesday", "09:00", "17:00")
    csv_file = write_csv(
        tmp_path,
        "availability.csv",
        f"employee_id,day_of_week,start_time,end_time\n{emp.employee_id},tue,12:00,14:00\n",
    )

    with pytest.raises(ValidationError):
        import_availability_csv(store, csv_file)
    assert store.session.query(Availability).count() == 1


def test_import_availability_rejects_midnight_crossing(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    csv_file = write_csv(
        tmp_path,
        "availability.csv",
        f"employee_id,day_of_week,start_time,end_time\n{emp.employee_id},Friday,20:00,02:00\n",
    )

    with pytest.raises(ValidationError):
        import_availability_csv(store, csv_file)


def test_import_preferences_csv(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    store.set_preference(emp.employee_id, "monday", "morning", "avoid")
    csv_file = write_csv(
        tmp_path,
        "preferences.csv",
        f"""employee_id,day_of_week,time_bucket,preference_level
{emp.employee_id},Monday,Morning,Preferred
{emp.employee_id},Monday,evening,avoid
""",
    )

    assert import_preferences_csv(store, csv_file) == 2
    levels = {
        (p.day_of_week, p.time_bucket): p.preference_level
        for p in store.fetch_preferences([emp.employee_id])
    }
    # The stored morning preference is replaced
    assert levels == {(0, "morning"): "preferred", (0, "evening"): "avoid"}


def test_import_preferences_rejects_duplicates(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    csv_file = write_csv(
        tmp_path,
        "preferences.csv",
        f"""employee_id,day_of_week,time_bucket,preference_level
{emp.employee_id},Monday,morning,preferred
{emp.employee_id},Monday,morning,avoid
""",
    )

    with pytest.raises(ValidationError, match="conflicting preferences"):
        import_preferences_csv(store, csv_file)
    assert store.session.query(ShiftPreference).count() == 0


def test_import_preferences_rejects_unknown_bucket(store, org, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    csv_file = write_csv(
        tmp_path,
        "preferences.csv",
        f"employee_id,day_of_week,time_bucket,preference_level\n{emp.employee_id},Monday,night,preferred\n",
    )

    with pytest.raises(ValidationError, match="unknown time bucket"):
        import_preferences_csv(store, csv_file)


def test_export_employees_csv(store, org, tmp_path):
    """Test exporting employees to CSV."""
    store.add_employee(org.id, "Max", role="manager", email="max@example.com")
    store.add_employee(org.id, "Ben", weekly_hours_ceiling=20)

    output_file = tmp_path / "employees_export.csv"
    count = export_employees_csv(store, org.id, output_file)
    assert count == 2

    df = pd.read_csv(output_file)
    assert list(df.columns) == ["employee_id", "name", "email", "role", "weekly_hours_ceiling"]
    assert set(df["name"]) == {"Max", "Ben"}


def test_export_assignments_csv(store, org, week_start, tmp_path):
    emp = store.add_employee(org.id, "Ana")
    store.add_availability(emp.employee_id, "monday", "06:00", "18:00")
    store.add_shift(org.id, "Late", "12:00", "16:00", day_of_week="monday")
    store.add_shift(org.id, "Early", "06:00", "10:00", day_of_week="monday")
    store.set_constraints(org.id, None, min_hours_between_shifts=0)
    outcome = generate_schedule(store, org.id, week_start)

    output_file = tmp_path / "assignments.csv"
    assert export_assignments_csv(store, outcome.schedule_id, output_file) == 2

    df = pd.read_csv(output_file)
    assert list(df.columns) == ASSIGNMENT_COLUMNS
    # Ordered by start time within the day
    assert list(df["shift_name"]) == ["Early", "Late"]
    assert set(df["weekday"]) == {"Monday"}
    assert set(df["employee_name"]) == {"Ana"}
    assert set(df["version"]) == {1}


def test_export_missing_schedule(store, tmp_path):
    with pytest.raises(ValidationError):
        export_assignments_csv(store, 42, tmp_path / "out.csv")
