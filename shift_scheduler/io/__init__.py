"""I/O utilities for CSV import/export."""

from .export_csv import export_assignments_csv, export_employees_csv
from .import_csv import (
    import_availability_csv,
    import_employees_csv,
    import_preferences_csv,
    import_shifts_csv,
)

__all__ = [
    "import_employees_csv",
    "import_shifts_csv",
    "import_availability_csv",
    "import_preferences_csv",
    "export_assignments_csv",
    "export_employees_csv",
]
