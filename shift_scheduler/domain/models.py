"""SQLAlchemy models for the shift scheduling system."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import DeclarativeBase, relationship


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


ROLE_EMPLOYEE = "employee"
ROLE_MANAGER = "manager"

ASSIGNMENT_STATUSES = ("assigned", "pending", "rejected")
SCHEDULE_STATUSES = ("draft", "review", "published")
SWAP_STATUSES = ("pending", "approved", "rejected")
PREFERENCE_LEVELS = ("preferred", "neutral", "avoid")
CHANGE_TYPES = ("added", "removed", "modified")


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(Integer, primary_key=True)
    name = Column(String(120), nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    employees = relationship("Employee", back_populates="organization")
    shifts = relationship("Shift", back_populates="organization")

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, name='{self.name}')>"


class Employee(Base):
    """Employee (or manager) belonging to one organization."""

    __tablename__ = "employees"

    employee_id = Column(Integer, primary_key=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    name = Column(String(200), nullable=False)
    email = Column(String(200), nullable=True)
    role = Column(String(20), nullable=False, default=ROLE_EMPLOYEE)  # employee, manager
    weekly_hours_ceiling = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    organization = relationship("Organization", back_populates="employees")
    availability = relationship("Availability", back_populates="employee")
    preferences = relationship("ShiftPreference", back_populates="employee")
    assignments = relationship("Assignment", back_populates="employee")

    @property
    def is_manager(self) -> bool:
        return (self.role or "").lower() == ROLE_MANAGER

    def __repr__(self) -> str:
        return f"<Employee(id={self.employee_id}, name='{self.name}', role='{self.role}')>"


class Shift(Base):
    """
    Named time-of-day range with a required role.

    A shift is either date-scoped (``date`` set), weekly recurring
    (``day_of_week`` set) or daily recurring (neither set).
    """

    __tablename__ = "shifts"

    shift_id = Column(Integer, primary_key=True, name="id")
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    name = Column(String(100), nullable=False)
    role = Column(String(50), nullable=True)
    color = Column(String(20), nullable=True)
    start_time = Column(String(5), nullable=False)  # HH:MM
    end_time = Column(String(5), nullable=False)  # HH:MM
    overnight = Column(Boolean, nullable=False, default=False)
    date = Column(Date, nullable=True)
    day_of_week = Column(Integer, nullable=True)  # 0 = Monday

    organization = relationship("Organization", back_populates="shifts")
    assignments = relationship("Assignment", back_populates="shift")

    def __repr__(self) -> str:
        return f"<Shift(id={self.shift_id}, name='{self.name}', {self.start_time}-{self.end_time})>"


class Availability(Base):
    """Window in which an employee can work on a given weekday."""

    __tablename__ = "availability"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)  # 0 = Monday
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)

    employee = relationship("Employee", back_populates="availability")

    def __repr__(self) -> str:
        return f"<Availability(emp={self.employee_id}, day={self.day_of_week}, {self.start_time}-{self.end_time})>"


class ShiftPreference(Base):
    __tablename__ = "shift_preferences"
    __table_args__ = (
        UniqueConstraint("employee_id", "day_of_week", "time_bucket", name="uq_preference_slot"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    day_of_week = Column(Integer, nullable=False)
    time_bucket = Column(String(20), nullable=False)  # morning, afternoon, evening
    preference_level = Column(String(20), nullable=False, default="neutral")

    employee = relationship("Employee", back_populates="preferences")

    def __repr__(self) -> str:
        return (
            f"<ShiftPreference(emp={self.employee_id}, day={self.day_of_week}, "
            f"bucket={self.time_bucket}, level={self.preference_level})>"
        )


class SchedulingConstraint(Base):
    """
    Hard limits; ``employee_id`` NULL is the organization default.

    NULL limit columns fall back to the next level (org default, then config).
    """

    __tablename__ = "scheduling_constraints"
    __table_args__ = (
        UniqueConstraint("organization_id", "employee_id", name="uq_constraint_scope"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=True)
    max_hours_per_day = Column(Float, nullable=True)
    min_hours_between_shifts = Column(Float, nullable=True)
    max_consecutive_days = Column(Integer, nullable=True)
    max_weekly_hours = Column(Float, nullable=True)


class TimeOff(Base):
    """Approved time off blocks every shift on the covered dates."""

    __tablename__ = "time_off"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    reason = Column(Text, nullable=True)


class Schedule(Base):
    """Week-bounded, versioned container of assignments."""

    __tablename__ = "schedules"
    __table_args__ = (
        UniqueConstraint("organization_id", "week_start", "version", name="uq_schedule_version"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    organization_id = Column(Integer, ForeignKey("organizations.id"), nullable=False)
    week_start = Column(Date, nullable=False)
    week_end = Column(Date, nullable=False)
    version = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="draft")  # draft, review, published
    created_by = Column(Integer, ForeignKey("employees.employee_id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    published_at = Column(DateTime, nullable=True)

    assignments = relationship("Assignment", back_populates="schedule", order_by="Assignment.id")
    changes = relationship("ScheduleChange", back_populates="schedule", order_by="ScheduleChange.id")

    def __repr__(self) -> str:
        return (
            f"<Schedule(id={self.id}, org={self.organization_id}, week={self.week_start}, "
            f"v{self.version}, status={self.status})>"
        )


class Assignment(Base):
    """Employee working a shift on a specific date within a schedule version."""

    __tablename__ = "assignments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False)
    emp_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    date = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="assigned")  # assigned, pending, rejected
    preference_score = Column(Float, nullable=True)

    schedule = relationship("Schedule", back_populates="assignments")
    shift = relationship("Shift", back_populates="assignments")
    employee = relationship("Employee", back_populates="assignments")

    def __repr__(self) -> str:
        return f"<Assignment(id={self.id}, shift={self.shift_id}, emp={self.emp_id}, date={self.date})>"


class ScheduleChange(Base):
    """Change log entry between schedule versions or from an approved swap."""

    __tablename__ = "schedule_changes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(Integer, ForeignKey("schedules.id"), nullable=False)
    change_type = Column(String(20), nullable=False)  # added, removed, modified
    shift_id = Column(Integer, ForeignKey("shifts.id"), nullable=False)
    date = Column(Date, nullable=False)
    old_employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=True)
    new_employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=True)
    note = Column(String(200), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    schedule = relationship("Schedule", back_populates="changes")


class SwapRequest(Base):
    __tablename__ = "swap_requests"
    __table_args__ = (
        Index(
            "uq_swap_pending_assignment",
            "from_assignment_id",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    from_assignment_id = Column(Integer, ForeignKey("assignments.id"), nullable=False)
    requesting_employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    target_employee_id = Column(Integer, ForeignKey("employees.employee_id"), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending, approved, rejected
    responded_by = Column(Integer, ForeignKey("employees.employee_id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=True)

    assignment = relationship("Assignment")

    def __repr__(self) -> str:
        return (
            f"<SwapRequest(id={self.id}, assignment={self.from_assignment_id}, "
            f"{self.requesting_employee_id}->{self.target_employee_id}, status={self.status})>"
        )
