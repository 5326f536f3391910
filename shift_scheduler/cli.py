"""Command-line interface for the shift scheduler."""

from __future__ import annotations

import argparse
import logging
import sys
from contextlib import contextmanager

from shift_scheduler.config import load_config
from shift_scheduler.domain.db import DEFAULT_DB_URL, get_session, init_database, reset_database
from shift_scheduler.domain.models import Organization
from shift_scheduler.domain.repositories import OrganizationRepository
from shift_scheduler.domain.store import SqlAlchemyStore
from shift_scheduler.domain.types import PlannedAssignment
from shift_scheduler.engine.orchestrator import Orchestrator, publish_schedule, submit_for_review
from shift_scheduler.errors import SchedulerError, ValidationError
from shift_scheduler.events import EventBus
from shift_scheduler.io.export_csv import export_assignments_csv, export_employees_csv
from shift_scheduler.io.import_csv import (
    import_availability_csv,
    import_employees_csv,
    import_preferences_csv,
    import_shifts_csv,
)
from shift_scheduler.reporting import format_summary, summarize_result
from shift_scheduler.services.constraints import validate_assignment_constraints
from shift_scheduler.services.timeplan import TimeRange
from shift_scheduler.swaps import request_swap, respond_to_swap


@contextmanager
def _store(args: argparse.Namespace):
    session = get_session(args.db or DEFAULT_DB_URL)
    try:
        yield SqlAlchemyStore(session)
    finally:
        session.close()


def _cmd_init_db(args: argparse.Namespace) -> None:
    """Initialize the database."""
    db_url = args.db or DEFAULT_DB_URL
    if args.reset:
        reset_database(db_url)
        print(f"[WARN] Database reset: {db_url}")
    else:
        init_database(db_url)
        print(f"[OK] Database initialized: {db_url}")

    if args.org_name:
        with _store(args) as store:
            org = OrganizationRepository.create(store.session, Organization(name=args.org_name))
            print(f"[OK] Created organization {org.id}: {org.name}")


def _cmd_import_csv(args: argparse.Namespace) -> None:
    """Import CSV data into database."""
    with _store(args) as store:
        if args.employees:
            count = import_employees_csv(store, args.employees, args.org)
            print(f"[OK] Imported {count} employees")

        if args.shifts:
            count = import_shifts_csv(store, args.shifts, args.org)
            print(f"[OK] Imported {count} shifts")

        if args.availability:
            count = import_availability_csv(store, args.availability)
            print(f"[OK] Imported {count} availability windows")

        if args.preferences:
            count = import_preferences_csv(store, args.preferences)
            print(f"[OK] Imported {count} preferences")

    print("[OK] CSV import complete")


def _cmd_generate(args: argparse.Namespace) -> None:
    """Generate schedule for a week."""
    cfg = load_config(args.config)
    print(f"[INFO] Generating schedule for organization {args.org}, week of {args.week} ({cfg.solver})")

    with _store(args) as store:
        outcome = Orchestrator(cfg, EventBus()).generate(store, args.org, args.week, created_by=args.actor)
        stats = outcome.result.stats
        print(
            f"[OK] Schedule {outcome.schedule_id} v{outcome.version}: "
            f"{stats.assigned_count}/{stats.total_shifts} shifts assigned"
        )
        for shift in outcome.result.unassigned_shifts:
            print(f"[WARN] Unassigned: shift {shift.shift_id} on {shift.date} ({shift.time_range})")

        if args.summary:
            names = {e.employee_id: e.name for e in store.fetch_employees(args.org)}
            print(format_summary(summarize_result(outcome.result, names)))

        if args.out:
            count = export_assignments_csv(store, outcome.schedule_id, args.out)
            print(f"[OK] Exported {count} assignments to {args.out}")


def _cmd_publish(args: argparse.Namespace) -> None:
    """Submit a schedule for review or publish it."""
    with _store(args) as store:
        if args.review:
            schedule = submit_for_review(store, args.schedule)
            print(f"[OK] Schedule {schedule.id} v{schedule.version} submitted for review")
        else:
            schedule = publish_schedule(store, args.schedule, args.actor, EventBus())
            print(f"[OK] Schedule {schedule.id} v{schedule.version} published")


def _cmd_export(args: argparse.Namespace) -> None:
    """Export data from database to CSV."""
    with _store(args) as store:
        if args.assignments:
            if args.schedule is None:
                raise ValidationError("--schedule is required to export assignments")
            count = export_assignments_csv(store, args.schedule, args.assignments)
            print(f"[OK] Exported {count} assignments to {args.assignments}")

        if args.employees:
            if args.org is None:
                raise ValidationError("--org is required to export employees")
            count = export_employees_csv(store, args.org, args.employees)
            print(f"[OK] Exported {count} employees to {args.employees}")


def _cmd_validate(args: argparse.Namespace) -> None:
    """Validate a stored schedule version against the hard constraints."""
    cfg = load_config(args.config)

    with _store(args) as store:
        schedule = store.get_schedule(args.schedule)
        if schedule is None:
            raise ValidationError(f"Schedule {args.schedule} not found")

        data = Orchestrator(cfg).load_input(store, schedule.organization_id, schedule.week_start)
        planned = []
        for a in store.get_assignments(schedule.id):
            shift = store.get_shift(a.shift_id)
            planned.append(
                PlannedAssignment(
                    employee_id=a.emp_id,
                    shift_id=a.shift_id,
                    date=a.date,
                    time_range=TimeRange.parse(shift.start_time, shift.end_time, bool(shift.overnight)),
                )
            )

        validate_assignment_constraints(planned, data.constraints, data.default_constraints)
        print(f"[OK] Validation passed for schedule {schedule.id} v{schedule.version} ({len(planned)} assignments)")


def _cmd_swap_request(args: argparse.Namespace) -> None:
    """Request that another employee take over a shift."""
    with _store(args) as store:
        request = request_swap(store, args.actor, args.assignment, args.target, EventBus())
        print(f"[OK] Swap request {request.id} created (pending)")


def _cmd_swap_respond(args: argparse.Namespace) -> None:
    """Approve or reject a pending swap request."""
    cfg = load_config(args.config)
    with _store(args) as store:
        request = respond_to_swap(
            store, args.request, args.actor, args.action, cfg.swap_approvers, EventBus()
        )
        print(f"[OK] Swap request {request.id} {request.status}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shift-scheduler",
        description="Shift scheduling: generate, publish and swap weekly schedules",
    )

    # Global options
    parser.add_argument("--db", help=f"Database URL (default: {DEFAULT_DB_URL})")
    parser.add_argument("--config", help="Path to config YAML (defaults apply when omitted)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log progress to stderr")

    sub = parser.add_subparsers(dest="command", required=True)

    # init-db command
    init = sub.add_parser("init-db", help="Initialize database")
    init.add_argument("--org-name", help="Also create an organization with this name")
    init.add_argument("--reset", action="store_true", help="Drop and recreate all tables (deletes all data)")
    init.set_defaults(func=_cmd_init_db)

    # import-csv command
    imp = sub.add_parser("import-csv", help="Import CSV data into database")
    imp.add_argument("--org", type=int, required=True, help="Organization id")
    imp.add_argument("--employees", help="Path to employees CSV")
    imp.add_argument("--shifts", help="Path to shifts CSV")
    imp.add_argument("--availability", help="Path to availability CSV")
    imp.add_argument("--preferences", help="Path to preferences CSV")
    imp.set_defaults(func=_cmd_import_csv)

    # generate command
    gen = sub.add_parser("generate", help="Generate schedule for a week")
    gen.add_argument("--org", type=int, required=True, help="Organization id")
    gen.add_argument("--week", required=True, help="Any date in the week (YYYY-MM-DD)")
    gen.add_argument("--actor", type=int, help="Employee id recorded as creator")
    gen.add_argument("--out", help="Optional: export assignments to CSV")
    gen.add_argument("--summary", action="store_true", help="Print coverage and hours tables")
    gen.set_defaults(func=_cmd_generate)

    # publish command
    pub = sub.add_parser("publish", help="Publish a schedule version")
    pub.add_argument("--schedule", type=int, required=True, help="Schedule id")
    pub.add_argument("--actor", type=int, help="Manager employee id (required to publish)")
    pub.add_argument("--review", action="store_true", help="Only submit the draft for review")
    pub.set_defaults(func=_cmd_publish)

    # export command
    exp = sub.add_parser("export", help="Export data from database to CSV")
    exp.add_argument("--schedule", type=int, help="Schedule id for --assignments")
    exp.add_argument("--org", type=int, help="Organization id for --employees")
    exp.add_argument("--assignments", help="Path to export assignments CSV")
    exp.add_argument("--employees", help="Path to export employees CSV")
    exp.set_defaults(func=_cmd_export)

    # validate command
    val = sub.add_parser("validate", help="Validate a stored schedule version")
    val.add_argument("--schedule", type=int, required=True, help="Schedule id to validate")
    val.set_defaults(func=_cmd_validate)

    # swap-request command
    swr = sub.add_parser("swap-request", help="Request a shift swap")
    swr.add_argument("--actor", type=int, required=True, help="Employee holding the shift")
    swr.add_argument("--assignment", type=int, required=True, help="Assignment id to give away")
    swr.add_argument("--target", type=int, required=True, help="Employee asked to take it")
    swr.set_defaults(func=_cmd_swap_request)

    # swap-respond command
    sws = sub.add_parser("swap-respond", help="Approve or reject a swap request")
    sws.add_argument("--request", type=int, required=True, help="Swap request id")
    sws.add_argument("--actor", type=int, required=True, help="Responding employee id")
    sws.add_argument("--action", choices=["approve", "reject"], required=True)
    sws.set_defaults(func=_cmd_swap_respond)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        args.func(args)
    except SchedulerError as e:
        print(f"[ERROR] {args.command} failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
