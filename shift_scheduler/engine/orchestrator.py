"""Orchestrator - loads a week's data, runs the configured scheduler and persists the result."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Set

from shift_scheduler.config import SchedulerConfig
from shift_scheduler.domain.types import (
    AvailabilityWindow,
    ConstraintSet,
    EmployeeInput,
    PreferenceEntry,
    ScheduleResult,
    SchedulingInput,
    ShiftInstance,
)
from shift_scheduler.errors import ScheduleStateError, SchedulerError, StoreError, ValidationError
from shift_scheduler.events import SCHEDULE_GENERATED, SCHEDULE_PUBLISHED, EventBus
from shift_scheduler.services.availability import PREFERENCE_LEVELS
from shift_scheduler.services.constraints import effective_constraints
from shift_scheduler.services.timeplan import TimeBucket, TimeRange, Weekday, align_week_start, is_valid_range, week_bounds

from .base import BaseScheduler
from .cp_sat import CpSatScheduler
from .greedy import GreedyScheduler

logger = logging.getLogger(__name__)

SCHEDULERS = {
    "greedy": GreedyScheduler,
    "cp_sat": CpSatScheduler,
}

# Allowed lifecycle transitions: target status -> statuses it may come from
TRANSITIONS = {
    "review": {"draft"},
    "published": {"draft", "review"},
}


@dataclass
class GenerationOutcome:
    result: ScheduleResult
    schedule_id: int
    version: int


def _parse_week_start(week_start) -> date:
    if isinstance(week_start, datetime):
        return week_start.date()
    if isinstance(week_start, date):
        return week_start
    if isinstance(week_start, str):
        try:
            return date.fromisoformat(week_start.strip())
        except ValueError:
            pass
    raise ValidationError(f"Week start must be a date (YYYY-MM-DD), got {week_start!r}")


def expand_shifts(shift_rows, week_start: date) -> List[ShiftInstance]:
    """
    Turn shift rows into dated instances for the 7 days from ``week_start``.

    Rows with a date occur once; rows with a weekday occur on that weekday;
    rows with neither occur every day.
    """
    days = [week_start + timedelta(days=i) for i in range(7)]
    instances: List[ShiftInstance] = []
    for row in shift_rows:
        time_range = TimeRange.parse(row.start_time, row.end_time, bool(row.overnight))
        if row.date is not None:
            dates = [row.date] if week_start <= row.date <= days[-1] else []
        elif row.day_of_week is not None:
            dates = [d for d in days if d.weekday() == int(row.day_of_week)]
        else:
            dates = days
        for d in dates:
            instances.append(
                ShiftInstance(shift_id=row.shift_id, date=d, time_range=time_range, name=row.name or "", role=row.role)
            )
    return instances


def to_availability(rows) -> List[AvailabilityWindow]:
    windows = []
    for row in rows:
        time_range = TimeRange.parse(row.start_time, row.end_time)
        if not is_valid_range(time_range):
            logger.warning("Ignoring invalid availability %s for employee %s", time_range, row.employee_id)
            continue
        windows.append(AvailabilityWindow(row.employee_id, Weekday(int(row.day_of_week)), time_range))
    return windows


def to_preferences(rows) -> List[PreferenceEntry]:
    entries = []
    for row in rows:
        if row.preference_level not in PREFERENCE_LEVELS:
            logger.warning("Ignoring unknown preference level '%s' for employee %s",
                           row.preference_level, row.employee_id)
            continue
        entries.append(
            PreferenceEntry(row.employee_id, Weekday(int(row.day_of_week)), TimeBucket(row.time_bucket), row.preference_level)
        )
    return entries


def to_time_off(rows, start: date, end: date) -> Dict[int, Set[date]]:
    blocked: Dict[int, Set[date]] = {}
    for row in rows:
        day = max(row.start_date, start)
        while day <= min(row.end_date, end):
            blocked.setdefault(row.employee_id, set()).add(day)
            day += timedelta(days=1)
    return blocked


class Orchestrator:
    """
    Orchestrator runs one scheduling pass for an organization and week.

    It reads everything through the store, hands plain records to the
    configured scheduler, and commits the result as a new draft version.
    """

    def __init__(self, cfg: SchedulerConfig | None = None, events: EventBus | None = None):
        """
        Initialize orchestrator with configuration.

        Args:
            cfg: SchedulerConfig (defaults when None); ``cfg.solver`` picks the scheduler
            events: Optional event bus notified after commit
        """
        self.cfg = cfg or SchedulerConfig()
        self.events = events
        self.scheduler: BaseScheduler = SCHEDULERS[self.cfg.solver]()

    def load_input(self, store, org_id: int, week_start: date) -> SchedulingInput:
        """
        Fetch and convert everything the scheduler needs.

        Raises:
            ValidationError: If the organization does not exist
            StoreError: If any read fails
        """
        start, end = week_bounds(week_start)
        try:
            if store.fetch_organization(org_id) is None:
                raise ValidationError(f"Organization {org_id} not found")
            employee_rows = store.fetch_employees(org_id)
            employee_ids = [e.employee_id for e in employee_rows]
            shift_rows = store.fetch_shifts(org_id, start, end)
            availability_rows = store.fetch_availability(employee_ids)
            preference_rows = store.fetch_preferences(employee_ids)
            constraint_rows = store.fetch_constraints(org_id, employee_ids)
            time_off_rows = store.fetch_time_off(employee_ids, start, end)
        except SchedulerError:
            raise
        except Exception as e:
            logger.error("Failed to load scheduling data for organization %s: %s", org_id, e)
            raise StoreError(f"Failed to load scheduling data: {e}") from e

        defaults: ConstraintSet = self.cfg.default_constraints.as_constraint_set()
        org_default = next((c for c in constraint_rows if c.employee_id is None), None)
        overrides = {c.employee_id: c for c in constraint_rows if c.employee_id is not None}

        employees = [EmployeeInput(e.employee_id, e.name, e.weekly_hours_ceiling) for e in employee_rows]
        constraints = {
            e.employee_id: effective_constraints(
                defaults, org_default, overrides.get(e.employee_id), e.weekly_hours_ceiling
            )
            for e in employees
        }

        return SchedulingInput(
            employees=employees,
            shifts=expand_shifts(shift_rows, start),
            availability=to_availability(availability_rows),
            preferences=to_preferences(preference_rows),
            constraints=constraints,
            default_constraints=defaults,
            time_off=to_time_off(time_off_rows, start, end),
        )

    def generate(self, store, org_id: int, week_start, created_by: Optional[int] = None) -> GenerationOutcome:
        """
        Generate and persist a schedule for one organization/week.

        Args:
            store: ScheduleStore
            org_id: Organization id
            week_start: Any date in the week (aligned to the configured week start)
            created_by: Id of the actor triggering the run

        Returns:
            GenerationOutcome with the result and the new draft's id/version
        """
        if org_id is None:
            raise ValidationError("Organization id is required")
        day = _parse_week_start(week_start)
        week_start = align_week_start(day, self.cfg.week_starts_on)
        week_end = week_bounds(week_start)[1]

        logger.info("Generating %s schedule for organization %s, week %s", self.scheduler.name, org_id, week_start)

        # 1. Load
        data = self.load_input(store, org_id, week_start)

        # 2. Schedule
        result = self.scheduler.assign(data, self.cfg)

        # 3. Persist
        schedule = store.commit_schedule(org_id, week_start, week_end, result.assignments, created_by)

        outcome = GenerationOutcome(result=result, schedule_id=schedule.id, version=schedule.version)
        logger.info(
            "Schedule %s v%d: %d/%d shifts assigned",
            schedule.id, schedule.version, result.stats.assigned_count, result.stats.total_shifts,
        )

        # 4. Notify
        if self.events is not None:
            organization = store.fetch_organization(org_id)
            self.events.emit(
                SCHEDULE_GENERATED,
                {
                    "organization_id": org_id,
                    "organization_name": organization.name,
                    "schedule_id": schedule.id,
                    "version": schedule.version,
                    "week_start": week_start.isoformat(),
                    "assigned": result.stats.assigned_count,
                    "unassigned": result.stats.unassigned_count,
                },
            )
        return outcome


def generate_schedule(
    store,
    org_id: int,
    week_start,
    cfg: SchedulerConfig | None = None,
    events: EventBus | None = None,
    created_by: Optional[int] = None,
) -> GenerationOutcome:
    """
    Convenience function to generate a week schedule using the orchestrator.

    Args:
        store: ScheduleStore
        org_id: Organization id
        week_start: Any date in the target week
        cfg: SchedulerConfig
        events: Optional event bus
        created_by: Actor id recorded on the schedule

    Returns:
        GenerationOutcome
    """
    return Orchestrator(cfg, events).generate(store, org_id, week_start, created_by)


def _transition(store, schedule_id: int, target: str):
    schedule = store.get_schedule(schedule_id)
    if schedule is None:
        raise ValidationError(f"Schedule {schedule_id} not found")
    if schedule.status not in TRANSITIONS[target]:
        raise ScheduleStateError(f"Cannot move schedule {schedule_id} from {schedule.status} to {target}")
    return store.update_schedule_status(schedule_id, target)


def submit_for_review(store, schedule_id: int):
    """Move a draft schedule to review."""
    schedule = _transition(store, schedule_id, "review")
    logger.info("Schedule %s submitted for review", schedule_id)
    return schedule


def publish_schedule(store, schedule_id: int, actor_id: int, events: EventBus | None = None):
    """
    Publish a draft or reviewed schedule.

    Raises:
        ScheduleStateError: If the actor is not a manager or the schedule is already published
    """
    actor = store.get_employee(actor_id)
    if actor is None or not actor.is_manager:
        raise ScheduleStateError(f"Employee {actor_id} may not publish schedules")

    schedule = _transition(store, schedule_id, "published")
    logger.info("Schedule %s v%d published by %s", schedule.id, schedule.version, actor_id)
    if events is not None:
        events.emit(
            SCHEDULE_PUBLISHED,
            {
                "organization_id": schedule.organization_id,
                "schedule_id": schedule.id,
                "version": schedule.version,
                "week_start": schedule.week_start.isoformat(),
                "published_by": actor_id,
                "published_by_name": actor.name,
            },
        )
    return schedule
