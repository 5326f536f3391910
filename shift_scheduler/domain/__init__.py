"""Domain models and data access layer."""

from .models import (
    Assignment,
    Availability,
    Base,
    Employee,
    Organization,
    Schedule,
    ScheduleChange,
    SchedulingConstraint,
    Shift,
    ShiftPreference,
    SwapRequest,
    TimeOff,
)
from .repositories import (
    AssignmentRepository,
    AvailabilityRepository,
    ConstraintRepository,
    EmployeeRepository,
    OrganizationRepository,
    PreferenceRepository,
    ScheduleChangeRepository,
    ScheduleRepository,
    ShiftRepository,
    SwapRequestRepository,
    TimeOffRepository,
)

__all__ = [
    "Base",
    "Organization",
    "Employee",
    "Shift",
    "Availability",
    "ShiftPreference",
    "SchedulingConstraint",
    "TimeOff",
    "Schedule",
    "Assignment",
    "ScheduleChange",
    "SwapRequest",
    "OrganizationRepository",
    "EmployeeRepository",
    "ShiftRepository",
    "AvailabilityRepository",
    "PreferenceRepository",
    "ConstraintRepository",
    "TimeOffRepository",
    "ScheduleRepository",
    "AssignmentRepository",
    "ScheduleChangeRepository",
    "SwapRequestRepository",
]
