"""Persistence collaborator used by the orchestrator and the swap workflow.

``ScheduleStore`` is the interface the core depends on; ``SqlAlchemyStore``
implements it over a SQLAlchemy session. Tests may pass any object with the
same methods.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import date
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Protocol, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from shift_scheduler.domain.types import PlannedAssignment
from shift_scheduler.errors import ConcurrentRunError, StoreError, SwapError, ValidationError
from shift_scheduler.services.availability import PREFERENCE_LEVELS, validate_availability_slot
from shift_scheduler.services.constraints import validate_constraint_values
from shift_scheduler.services.timeplan import TimeBucket, TimeRange, Weekday, require_valid_range

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
    utcnow,
)
from .repositories import (
    AssignmentRepository,
    AvailabilityRepository,
    ConstraintRepository,
    EmployeeRepository,
    OrganizationRepository,
    PreferenceRepository,
    ScheduleRepository,
    ShiftRepository,
    SwapRequestRepository,
    TimeOffRepository,
)

logger = logging.getLogger(__name__)


class ScheduleStore(Protocol):
    """Read/write access the scheduling core needs from persistence."""

    def fetch_organization(self, org_id: int) -> Optional[Organization]: ...

    def fetch_employees(self, org_id: int) -> List[Employee]: ...

    def fetch_shifts(self, org_id: int, start: date, end: date) -> List[Shift]: ...

    def fetch_availability(self, employee_ids: Iterable[int]) -> List[Availability]: ...

    def fetch_preferences(self, employee_ids: Iterable[int]) -> List[ShiftPreference]: ...

    def fetch_constraints(self, org_id: int, employee_ids: Iterable[int]) -> List[SchedulingConstraint]: ...

    def fetch_time_off(self, employee_ids: Iterable[int], start: date, end: date) -> List[TimeOff]: ...

    def commit_schedule(
        self,
        org_id: int,
        week_start: date,
        week_end: date,
        assignments: List[PlannedAssignment],
        created_by: Optional[int] = None,
    ) -> Schedule: ...


def diff_assignments(
    old: Dict[Tuple[int, date], int],
    new: Dict[Tuple[int, date], int],
) -> List[Tuple[str, int, date, Optional[int], Optional[int]]]:
    """
    Change log entries between two versions keyed by (shift_id, date).

    Returns:
        Sorted list of (change_type, shift_id, date, old_employee_id, new_employee_id)
    """
    changes = []
    for key in sorted(set(old) | set(new), key=lambda k: (k[1], k[0])):
        shift_id, day = key
        before, after = old.get(key), new.get(key)
        if before is None:
            changes.append(("added", shift_id, day, None, after))
        elif after is None:
            changes.append(("removed", shift_id, day, before, None))
        elif before != after:
            changes.append(("modified", shift_id, day, before, after))
    return changes


class SqlAlchemyStore:
    """ScheduleStore backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        self.session = session

    # ---- transactions ---------------------------------------------------

    @contextmanager
    def transaction(self, on_conflict: Optional[Callable[[IntegrityError], Exception]] = None) -> Iterator[Session]:
        """
        Commit everything done inside the block, or nothing.

        Args:
            on_conflict: Builds the exception raised for an IntegrityError;
                a StoreError is raised when omitted
        """
        try:
            yield self.session
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            if on_conflict is not None:
                raise on_conflict(e) from e
            raise StoreError(f"Integrity error: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Store write failed: %s", e)
            raise StoreError(f"Store write failed: {e}") from e
        except Exception:
            self.session.rollback()
            raise

    def _read(self, what: str, fn: Callable, *args):
        try:
            return fn(self.session, *args)
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error("Failed to fetch %s: %s", what, e)
            raise StoreError(f"Failed to fetch {what}: {e}") from e

    def expire_all(self) -> None:
        """Drop cached state so the next read goes to the database."""
        self.session.expire_all()

    # ---- reads ----------------------------------------------------------

    def fetch_organization(self, org_id: int) -> Optional[Organization]:
        return self._read("organization", OrganizationRepository.get_by_id, org_id)

    def fetch_employees(self, org_id: int) -> List[Employee]:
        return self._read("employees", EmployeeRepository.get_by_organization, org_id)

    def fetch_shifts(self, org_id: int, start: date, end: date) -> List[Shift]:
        return self._read("shifts", ShiftRepository.get_for_range, org_id, start, end)

    def fetch_availability(self, employee_ids: Iterable[int]) -> List[Availability]:
        return self._read("availability", AvailabilityRepository.get_for_employees, list(employee_ids))

    def fetch_preferences(self, employee_ids: Iterable[int]) -> List[ShiftPreference]:
        return self._read("preferences", PreferenceRepository.get_for_employees, list(employee_ids))

    def fetch_constraints(self, org_id: int, employee_ids: Iterable[int]) -> List[SchedulingConstraint]:
        ids = set(employee_ids)
        rows = self._read("constraints", ConstraintRepository.get_for_organization, org_id)
        return [r for r in rows if r.employee_id is None or r.employee_id in ids]

    def fetch_time_off(self, employee_ids: Iterable[int], start: date, end: date) -> List[TimeOff]:
        return self._read("time off", TimeOffRepository.get_approved, list(employee_ids), start, end)

    def get_employee(self, employee_id: int) -> Optional[Employee]:
        return self._read("employee", EmployeeRepository.get_by_id, employee_id)

    def get_shift(self, shift_id: int) -> Optional[Shift]:
        return self._read("shift", ShiftRepository.get_by_id, shift_id)

    def get_schedule(self, schedule_id: int) -> Optional[Schedule]:
        return self._read("schedule", ScheduleRepository.get_by_id, schedule_id)

    def get_assignment(self, assignment_id: int) -> Optional[Assignment]:
        return self._read("assignment", AssignmentRepository.get_by_id, assignment_id)

    def get_assignments(self, schedule_id: int) -> List[Assignment]:
        return self._read("assignments", AssignmentRepository.get_by_schedule, schedule_id)

    def get_employee_assignments(self, employee_id: int, schedule_id: int) -> List[Assignment]:
        return self._read("assignments", AssignmentRepository.get_by_employee, employee_id, schedule_id)

    def get_swap_request(self, request_id: int) -> Optional[SwapRequest]:
        return self._read("swap request", SwapRequestRepository.get_by_id, request_id)

    def find_pending_swap(self, assignment_id: int) -> Optional[SwapRequest]:
        return self._read("swap request", SwapRequestRepository.get_pending_for_assignment, assignment_id)

    # ---- schedule writes ------------------------------------------------

    def commit_schedule(
        self,
        org_id: int,
        week_start: date,
        week_end: date,
        assignments: List[PlannedAssignment],
        created_by: Optional[int] = None,
    ) -> Schedule:
        """
        Persist a new draft version with its assignments and change log.

        All rows are written in one transaction. A concurrent run that
        claimed the same version makes this raise ConcurrentRunError.
        """
        previous = self._read("schedule", ScheduleRepository.get_latest, org_id, week_start)
        version = (previous.version + 1) if previous else 1
        old: Dict[Tuple[int, date], int] = {}
        if previous is not None:
            old = {(a.shift_id, a.date): a.emp_id for a in self.get_assignments(previous.id)}

        def _conflict(e: IntegrityError) -> Exception:
            return ConcurrentRunError(
                f"Schedule version {version} for organization {org_id}, week {week_start} "
                f"was claimed by another run"
            )

        with self.transaction(on_conflict=_conflict):
            schedule = Schedule(
                organization_id=org_id,
                week_start=week_start,
                week_end=week_end,
                version=version,
                status="draft",
                created_by=created_by,
            )
            self.session.add(schedule)
            self.session.flush()

            self.session.add_all(
                Assignment(
                    schedule_id=schedule.id,
                    shift_id=a.shift_id,
                    emp_id=a.employee_id,
                    date=a.date,
                    status="assigned",
                    preference_score=a.preference_score,
                )
                for a in assignments
            )

            new = {(a.shift_id, a.date): a.employee_id for a in assignments}
            for change_type, shift_id, day, before, after in diff_assignments(old, new):
                self.session.add(
                    ScheduleChange(
                        schedule_id=schedule.id,
                        change_type=change_type,
                        shift_id=shift_id,
                        date=day,
                        old_employee_id=before,
                        new_employee_id=after,
                        note=f"generated v{version}",
                    )
                )

        logger.info(
            "Committed schedule %s (org=%s, week=%s, v%d) with %d assignments",
            schedule.id, org_id, week_start, version, len(assignments),
        )
        return schedule

    def update_schedule_status(self, schedule_id: int, status: str) -> Schedule:
        with self.transaction():
            schedule = ScheduleRepository.get_by_id(self.session, schedule_id)
            schedule.status = status
            if status == "published":
                schedule.published_at = utcnow()
        return schedule

    # ---- swap writes ----------------------------------------------------

    def create_swap_request(self, assignment_id: int, requesting_employee_id: int, target_employee_id: int) -> SwapRequest:
        def _duplicate(e: IntegrityError) -> Exception:
            return SwapError(
                "duplicate_pending",
                "A pending swap request already exists for this shift",
            )

        with self.transaction(on_conflict=_duplicate):
            request = SwapRequest(
                from_assignment_id=assignment_id,
                requesting_employee_id=requesting_employee_id,
                target_employee_id=target_employee_id,
                status="pending",
            )
            self.session.add(request)
        return request

    def update_swap_request(self, request_id: int, status: str, responded_by: Optional[int] = None) -> SwapRequest:
        """Set a swap request's status. Does not commit; call inside ``transaction()``."""
        request = SwapRequestRepository.get_by_id(self.session, request_id)
        if request is None:
            raise SwapError("not_found", f"Swap request {request_id} not found")
        # Reload so a response committed elsewhere is seen
        self.session.refresh(request)
        if request.status != "pending":
            raise SwapError("not_pending", "Swap request is no longer pending")
        request.status = status
        request.responded_by = responded_by
        request.updated_at = utcnow()
        self.session.flush()
        return request

    def reassign_shift(self, assignment_id: int, new_employee_id: int, note: Optional[str] = None) -> Assignment:
        """Move an assignment to another employee and log it. Does not commit."""
        assignment = AssignmentRepository.get_by_id(self.session, assignment_id)
        if assignment is None:
            raise SwapError("not_found", f"Assignment {assignment_id} not found")
        old_employee_id = assignment.emp_id
        assignment.emp_id = new_employee_id
        self.session.add(
            ScheduleChange(
                schedule_id=assignment.schedule_id,
                change_type="modified",
                shift_id=assignment.shift_id,
                date=assignment.date,
                old_employee_id=old_employee_id,
                new_employee_id=new_employee_id,
                note=note,
            )
        )
        self.session.flush()
        return assignment

    def apply_swap_approval(self, request_id: int, responded_by: int) -> SwapRequest:
        """Approve a swap: status, reassignment and change entry in one transaction."""
        with self.transaction():
            request = self.update_swap_request(request_id, "approved", responded_by)
            self.reassign_shift(
                request.from_assignment_id,
                request.target_employee_id,
                note=f"swap request {request_id}",
            )
        return request

    def reject_swap(self, request_id: int, responded_by: int) -> SwapRequest:
        with self.transaction():
            request = self.update_swap_request(request_id, "rejected", responded_by)
        return request

    # ---- master data writes (validated at write time) -------------------

    def add_employee(
        self,
        org_id: int,
        name: str,
        role: str = "employee",
        weekly_hours_ceiling: Optional[float] = None,
        employee_id: Optional[int] = None,
        email: Optional[str] = None,
    ) -> Employee:
        if role not in ("employee", "manager"):
            raise ValidationError(f"Unknown employee role '{role}'")
        with self.transaction():
            employee = Employee(
                employee_id=employee_id,
                organization_id=org_id,
                name=name,
                email=email,
                role=role,
                weekly_hours_ceiling=weekly_hours_ceiling,
            )
            self.session.add(employee)
        return employee

    def add_shift(
        self,
        org_id: int,
        name: str,
        start_time: str,
        end_time: str,
        role: Optional[str] = None,
        shift_date: Optional[date] = None,
        day_of_week=None,
        overnight: bool = False,
        color: Optional[str] = None,
        shift_id: Optional[int] = None,
    ) -> Shift:
        time_range = require_valid_range(TimeRange.parse(start_time, end_time, overnight))
        weekday = Weekday.parse(day_of_week) if day_of_week is not None else None
        with self.transaction():
            shift = Shift(
                shift_id=shift_id,
                organization_id=org_id,
                name=name,
                role=role,
                color=color,
                start_time=str(time_range.start),
                end_time=str(time_range.end),
                overnight=time_range.overnight,
                date=shift_date,
                day_of_week=int(weekday) if weekday is not None else None,
            )
            self.session.add(shift)
        return shift

    def add_availability(self, employee_id: int, day_of_week, start_time: str, end_time: str) -> Availability:
        """
        Record an availability window.

        Raises:
            ValidationError: If the window is invalid or overlaps an existing one that day
        """
        weekday = Weekday.parse(day_of_week)
        new_range = TimeRange.parse(start_time, end_time)
        existing = [
            TimeRange.parse(a.start_time, a.end_time)
            for a in AvailabilityRepository.get_for_employee_day(self.session, employee_id, int(weekday))
        ]
        validate_availability_slot(new_range, existing)

        with self.transaction():
            window = Availability(
                employee_id=employee_id,
                day_of_week=int(weekday),
                start_time=str(new_range.start),
                end_time=str(new_range.end),
            )
            self.session.add(window)
        return window

    def set_preference(self, employee_id: int, day_of_week, time_bucket: str, level: str) -> ShiftPreference:
        """Create or replace the preference for an employee/day/bucket."""
        weekday = Weekday.parse(day_of_week)
        try:
            bucket = TimeBucket(str(time_bucket).lower())
        except ValueError:
            raise ValidationError(f"Unknown time bucket '{time_bucket}'")
        level = str(level).lower()
        if level not in PREFERENCE_LEVELS:
            raise ValidationError(f"Unknown preference level '{level}'")

        with self.transaction():
            pref = PreferenceRepository.get_slot(self.session, employee_id, int(weekday), bucket.value)
            if pref is None:
                pref = ShiftPreference(employee_id=employee_id, day_of_week=int(weekday), time_bucket=bucket.value)
                self.session.add(pref)
            pref.preference_level = level
        return pref

    def set_constraints(self, org_id: int, employee_id: Optional[int] = None, **values) -> SchedulingConstraint:
        """Create or update the organization default (employee_id None) or an employee override."""
        unknown = set(values) - {
            "max_hours_per_day",
            "min_hours_between_shifts",
            "max_consecutive_days",
            "max_weekly_hours",
        }
        if unknown:
            raise ValidationError(f"Unknown constraint fields: {sorted(unknown)}")
        validate_constraint_values(**values)

        with self.transaction():
            row = ConstraintRepository.get_scope(self.session, org_id, employee_id)
            if row is None:
                row = SchedulingConstraint(organization_id=org_id, employee_id=employee_id)
                self.session.add(row)
            for name, value in values.items():
                setattr(row, name, value)
        return row

    def add_time_off(
        self, employee_id: int, start_date: date, end_date: date, status: str = "approved", reason: Optional[str] = None
    ) -> TimeOff:
        if end_date < start_date:
            raise ValidationError("Time off must not end before it starts")
        with self.transaction():
            row = TimeOff(employee_id=employee_id, start_date=start_date, end_date=end_date, status=status, reason=reason)
            self.session.add(row)
        return row
