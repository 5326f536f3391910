"""Tests for run summaries and workflow events."""

import datetime as dt

import pytest

from shift_scheduler.domain.types import PlannedAssignment, ScheduleResult, ScheduleStats, ShiftInstance
from shift_scheduler.events import SCHEDULE_GENERATED, SWAP_APPROVED, EventBus
from shift_scheduler.reporting import format_summary, summarize_result
from shift_scheduler.services.timeplan import TimeRange

MONDAY = dt.date(2025, 3, 3)
TUESDAY = MONDAY + dt.timedelta(days=1)


@pytest.fixture
def result():
    morning = TimeRange.parse("08:00", "12:00")
    late = TimeRange.parse("14:00", "20:00")
    return ScheduleResult(
        assignments=[
            PlannedAssignment(1, 10, MONDAY, morning, preference_score=2.0),
            PlannedAssignment(2, 11, MONDAY, late, preference_score=1.0),
            PlannedAssignment(1, 10, TUESDAY, morning, preference_score=1.0),
        ],
        unassigned_shifts=[ShiftInstance(11, TUESDAY, late)],
        stats=ScheduleStats(
            total_shifts=4,
            assigned_count=3,
            mean_preference_score=4.0 / 3,
            employee_hours={1: 8.0, 2: 6.0, 3: 0.0},
        ),
    )


def test_summarize_result(result):
    summary = summarize_result(result, {1: "Ana", 2: "Ben", 3: "Carl"})

    coverage = summary.coverage.set_index("date")
    assert coverage.loc[MONDAY, "assigned"] == 2
    assert coverage.loc[TUESDAY, "total"] == 2
    assert coverage.loc[TUESDAY, "unassigned"] == 1

    hours = summary.hours.set_index("employee_id")
    assert hours.loc[1, "name"] == "Ana"
    assert hours.loc[1, "shifts"] == 2
    assert hours.loc[3, "shifts"] == 0
    assert summary.hours_spread == 8.0


def test_summary_of_empty_run():
    empty = ScheduleResult([], [], ScheduleStats(0, 0, 0.0, {}))
    summary = summarize_result(empty)

    assert summary.coverage.empty
    assert summary.hours.empty
    assert summary.mean_preference_score == 0.0
    assert summary.hours_spread == 0.0


def test_format_summary(result):
    text = format_summary(summarize_result(result))
    assert "Coverage:" in text
    assert "Mean preference score: 1.33" in text
    assert "Hours spread: 8.0h" in text


def test_event_bus_delivers_to_subscribers():
    bus = EventBus()
    received = []
    bus.subscribe(SWAP_APPROVED, lambda name, payload: received.append((name, payload["request_id"])))

    bus.emit(SCHEDULE_GENERATED, {"schedule_id": 1})
    bus.emit(SWAP_APPROVED, {"request_id": 7})

    assert received == [(SWAP_APPROVED, 7)]
    assert [name for name, _ in bus.history] == [SCHEDULE_GENERATED, SWAP_APPROVED]


def test_failing_handler_does_not_stop_others(caplog):
    bus = EventBus()
    received = []

    def broken(name, payload):
        raise RuntimeError("mail server down")

    bus.subscribe(SCHEDULE_GENERATED, broken)
    bus.subscribe(SCHEDULE_GENERATED, lambda name, payload: received.append(payload))

    bus.emit(SCHEDULE_GENERATED, {"schedule_id": 3})

    assert received == [{"schedule_id": 3}]
    assert "mail server down" in caplog.text


def test_unknown_event_rejected():
    with pytest.raises(ValueError):
        EventBus().subscribe("schedule.deleted", lambda name, payload: None)
