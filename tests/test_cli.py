"""End-to-end tests for the command-line interface."""

import pandas as pd
import pytest

from shift_scheduler.cli import main

pytestmark = pytest.mark.integration


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'scheduler.db'}"


@pytest.fixture
def csv_dir(tmp_path):
    (tmp_path / "employees.csv").write_text(
        "employee_id,name,role\n1,Mia,manager\n2,Ana,employee\n3,Ben,employee\n"
    )
    (tmp_path / "shifts.csv").write_text(
        "id,name,start_time,end_time,day_of_week\n1,Open,08:00,12:00,monday\n2,Close,13:00,17:00,monday\n"
    )
    (tmp_path / "availability.csv").write_text(
        "employee_id,day_of_week,start_time,end_time\n2,monday,08:00,18:00\n3,monday,08:00,18:00\n"
    )
    (tmp_path / "preferences.csv").write_text(
        "employee_id,day_of_week,time_bucket,preference_level\n3,monday,morning,preferred\n"
    )
    return tmp_path


def test_full_workflow(db_url, csv_dir, capsys):
    main(["--db", db_url, "init-db", "--org-name", "Corner Bakery"])
    assert "[OK] Created organization 1: Corner Bakery" in capsys.readouterr().out

    main([
        "--db", db_url, "import-csv", "--org", "1",
        "--employees", str(csv_dir / "employees.csv"),
        "--shifts", str(csv_dir / "shifts.csv"),
        "--availability", str(csv_dir / "availability.csv"),
        "--preferences", str(csv_dir / "preferences.csv"),
    ])
    assert "[OK] CSV import complete" in capsys.readouterr().out

    out_csv = csv_dir / "assignments.csv"
    main(["--db", db_url, "generate", "--org", "1", "--week", "2025-03-05", "--out", str(out_csv), "--summary"])
    out = capsys.readouterr().out
    assert "[OK] Schedule 1 v1: 2/2 shifts assigned" in out
    assert "Hours spread" in out

    df = pd.read_csv(out_csv)
    # Ben prefers mornings; Ana takes the afternoon
    assert list(zip(df["shift_name"], df["employee_name"])) == [("Open", "Ben"), ("Close", "Ana")]

    main(["--db", db_url, "validate", "--schedule", "1"])
    assert "[OK] Validation passed" in capsys.readouterr().out

    main(["--db", db_url, "publish", "--schedule", "1", "--actor", "1"])
    assert "published" in capsys.readouterr().out


def test_swap_commands(db_url, csv_dir, capsys):
    main(["--db", db_url, "init-db", "--org-name", "Corner Bakery"])
    main([
        "--db", db_url, "import-csv", "--org", "1",
        "--employees", str(csv_dir / "employees.csv"),
        "--shifts", str(csv_dir / "shifts.csv"),
        "--availability", str(csv_dir / "availability.csv"),
    ])
    main(["--db", db_url, "generate", "--org", "1", "--week", "2025-03-03"])
    capsys.readouterr()

    export = csv_dir / "out.csv"
    main(["--db", db_url, "export", "--schedule", "1", "--assignments", str(export)])
    rows = pd.read_csv(export)
    first = rows.iloc[0]
    holder = int(first["employee_id"])
    other = 3 if holder == 2 else 2
    capsys.readouterr()

    main([
        "--db", db_url, "swap-request",
        "--actor", str(holder), "--assignment", "1", "--target", str(other),
    ])
    assert "[OK] Swap request 1 created (pending)" in capsys.readouterr().out

    main(["--db", db_url, "swap-respond", "--request", "1", "--actor", str(other), "--action", "reject"])
    assert "[OK] Swap request 1 rejected" in capsys.readouterr().out

    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db_url, "swap-respond", "--request", "1", "--actor", str(other), "--action", "approve"])
    assert exc_info.value.code == 1
    assert "no longer pending" in capsys.readouterr().out


def test_errors_exit_nonzero(db_url, capsys):
    main(["--db", db_url, "init-db"])
    capsys.readouterr()

    with pytest.raises(SystemExit) as exc_info:
        main(["--db", db_url, "generate", "--org", "1", "--week", "someday"])
    assert exc_info.value.code == 1
    assert capsys.readouterr().out.startswith("[INFO]")

    with pytest.raises(SystemExit):
        main(["--db", db_url, "publish", "--schedule", "99", "--actor", "1"])
    assert "[ERROR] publish failed" in capsys.readouterr().out
