"""Repository classes for data access."""

from __future__ import annotations

from datetime import date
from typing import Iterable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .models import (
    Assignment,
    Availability,
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


class OrganizationRepository:
    """Repository for organization data access."""

    @staticmethod
    def get_by_id(session: Session, org_id: int) -> Optional[Organization]:
        return session.get(Organization, org_id)

    @staticmethod
    def create(session: Session, organization: Organization) -> Organization:
        """Create a new organization."""
        session.add(organization)
        session.commit()
        session.refresh(organization)
        return organization


class EmployeeRepository:
    """Repository for employee data access."""

    @staticmethod
    def get_by_id(session: Session, employee_id: int) -> Optional[Employee]:
        """Get employee by ID."""
        return session.query(Employee).filter(Employee.employee_id == employee_id).first()

    @staticmethod
    def get_by_organization(session: Session, org_id: int, active_only: bool = True) -> List[Employee]:
        """Get employees of an organization, ordered by id."""
        query = session.query(Employee).filter(Employee.organization_id == org_id)
        if active_only:
            query = query.filter(Employee.is_active.is_(True))
        return query.order_by(Employee.employee_id).all()


class ShiftRepository:
    """Repository for shift data access."""

    @staticmethod
    def get_by_id(session: Session, shift_id: int) -> Optional[Shift]:
        """Get shift by ID."""
        return session.query(Shift).filter(Shift.shift_id == shift_id).first()

    @staticmethod
    def get_by_organization(session: Session, org_id: int) -> List[Shift]:
        return session.query(Shift).filter(Shift.organization_id == org_id).order_by(Shift.shift_id).all()

    @staticmethod
    def get_for_range(session: Session, org_id: int, start: date, end: date) -> List[Shift]:
        """Date-scoped shifts inside [start, end] plus all recurring shifts of the organization."""
        return (
            session.query(Shift)
            .filter(Shift.organization_id == org_id)
            .filter(or_(Shift.date.is_(None), Shift.date.between(start, end)))
            .order_by(Shift.shift_id)
            .all()
        )


class AvailabilityRepository:
    @staticmethod
    def get_for_employees(session: Session, employee_ids: Iterable[int]) -> List[Availability]:
        ids = list(employee_ids)
        if not ids:
            return []
        return (
            session.query(Availability)
            .filter(Availability.employee_id.in_(ids))
            .order_by(Availability.employee_id, Availability.day_of_week, Availability.start_time)
            .all()
        )

    @staticmethod
    def get_for_employee_day(session: Session, employee_id: int, day_of_week: int) -> List[Availability]:
        return (
            session.query(Availability)
            .filter(Availability.employee_id == employee_id, Availability.day_of_week == day_of_week)
            .all()
        )


class PreferenceRepository:
    @staticmethod
    def get_for_employees(session: Session, employee_ids: Iterable[int]) -> List[ShiftPreference]:
        ids = list(employee_ids)
        if not ids:
            return []
        return (
            session.query(ShiftPreference)
            .filter(ShiftPreference.employee_id.in_(ids))
            .order_by(ShiftPreference.employee_id, ShiftPreference.day_of_week, ShiftPreference.time_bucket)
            .all()
        )

    @staticmethod
    def get_slot(session: Session, employee_id: int, day_of_week: int, time_bucket: str) -> Optional[ShiftPreference]:
        return (
            session.query(ShiftPreference)
            .filter(
                ShiftPreference.employee_id == employee_id,
                ShiftPreference.day_of_week == day_of_week,
                ShiftPreference.time_bucket == time_bucket,
            )
            .first()
        )


class ConstraintRepository:
    @staticmethod
    def get_for_organization(session: Session, org_id: int) -> List[SchedulingConstraint]:
        """Organization default (employee_id NULL) and all per-employee overrides."""
        return session.query(SchedulingConstraint).filter(SchedulingConstraint.organization_id == org_id).all()

    @staticmethod
    def get_scope(session: Session, org_id: int, employee_id: Optional[int]) -> Optional[SchedulingConstraint]:
        query = session.query(SchedulingConstraint).filter(SchedulingConstraint.organization_id == org_id)
        if employee_id is None:
            query = query.filter(SchedulingConstraint.employee_id.is_(None))
        else:
            query = query.filter(SchedulingConstraint.employee_id == employee_id)
        return query.first()


class TimeOffRepository:
    @staticmethod
    def get_approved(session: Session, employee_ids: Iterable[int], start: date, end: date) -> List[TimeOff]:
        """Approved time off overlapping [start, end]."""
        ids = list(employee_ids)
        if not ids:
            return []
        return (
            session.query(TimeOff)
            .filter(TimeOff.employee_id.in_(ids))
            .filter(TimeOff.status == "approved")
            .filter(TimeOff.start_date <= end, TimeOff.end_date >= start)
            .all()
        )


class ScheduleRepository:
    @staticmethod
    def get_by_id(session: Session, schedule_id: int) -> Optional[Schedule]:
        return session.get(Schedule, schedule_id)

    @staticmethod
    def get_latest(session: Session, org_id: int, week_start: date) -> Optional[Schedule]:
        """Highest version for an organization/week."""
        return (
            session.query(Schedule)
            .filter(Schedule.organization_id == org_id, Schedule.week_start == week_start)
            .order_by(Schedule.version.desc())
            .first()
        )


class AssignmentRepository:
    """Repository for assignment data access."""

    @staticmethod
    def get_by_id(session: Session, assignment_id: int) -> Optional[Assignment]:
        return session.get(Assignment, assignment_id)

    @staticmethod
    def get_by_schedule(session: Session, schedule_id: int) -> List[Assignment]:
        """Get all assignments of a schedule version."""
        return (
            session.query(Assignment)
            .filter(Assignment.schedule_id == schedule_id)
            .order_by(Assignment.date, Assignment.shift_id, Assignment.id)
            .all()
        )

    @staticmethod
    def get_by_employee(session: Session, emp_id: int, schedule_id: Optional[int] = None) -> List[Assignment]:
        """Get assignments for an employee, optionally within one schedule."""
        query = session.query(Assignment).filter(Assignment.emp_id == emp_id)
        if schedule_id is not None:
            query = query.filter(Assignment.schedule_id == schedule_id)
        return query.order_by(Assignment.date).all()


class ScheduleChangeRepository:
    @staticmethod
    def get_by_schedule(session: Session, schedule_id: int) -> List[ScheduleChange]:
        return (
            session.query(ScheduleChange)
            .filter(ScheduleChange.schedule_id == schedule_id)
            .order_by(ScheduleChange.id)
            .all()
        )


class SwapRequestRepository:
    @staticmethod
    def get_by_id(session: Session, request_id: int) -> Optional[SwapRequest]:
        return session.get(SwapRequest, request_id)

    @staticmethod
    def get_pending_for_assignment(session: Session, assignment_id: int) -> Optional[SwapRequest]:
        return (
            session.query(SwapRequest)
            .filter(SwapRequest.from_assignment_id == assignment_id, SwapRequest.status == "pending")
            .first()
        )
