"""Time-of-day primitives: weekdays, time buckets, ranges and hour arithmetic.

Day names and "HH:MM" strings are parsed once at the boundary into
``Weekday`` and ``TimeOfDay`` values; nothing below re-parses strings.

A range whose end is before its start is only valid when it is flagged
``overnight``, in which case it ends on the following calendar day.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum, IntEnum
from typing import Optional, Tuple

from shift_scheduler.errors import ValidationError

MINUTES_PER_DAY = 24 * 60


class Weekday(IntEnum):
    """Day of week, Monday first (matches ``date.weekday()``)."""

    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        return cls(day.weekday())

    @classmethod
    def parse(cls, value) -> "Weekday":
        """
        Parse a weekday from an int (0=Monday) or an English day name.

        Raises:
            ValidationError: If the value is not a recognizable weekday
        """
        if isinstance(value, Weekday):
            return value
        if isinstance(value, bool):
            raise ValidationError(f"Invalid weekday: {value!r}")
        if isinstance(value, int):
            if 0 <= value <= 6:
                return cls(value)
            raise ValidationError(f"Weekday out of range 0-6: {value}")

        text = str(value or "").strip().upper()
        if text.isdigit():
            return cls.parse(int(text))
        for day in cls:
            if day.name == text or day.name[:3] == text:
                return day
        raise ValidationError(f"Invalid weekday: {value!r}")


class TimeBucket(str, Enum):
    """Coarse part of the day a shift falls in, derived from its start hour."""

    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"


@dataclass(frozen=True, order=True)
class TimeOfDay:
    """Wall-clock time stored as minutes since midnight (24:00 allowed as an end bound)."""

    minutes: int

    def __post_init__(self):
        if not 0 <= self.minutes <= MINUTES_PER_DAY:
            raise ValidationError(f"Time of day out of range: {self.minutes} minutes")

    @classmethod
    def of(cls, hour: int, minute: int = 0) -> "TimeOfDay":
        return cls(hour * 60 + minute)

    @property
    def hour(self) -> int:
        return self.minutes // 60

    @property
    def minute(self) -> int:
        return self.minutes % 60

    def __str__(self) -> str:
        return f"{self.hour:02d}:{self.minute:02d}"


def try_parse_time(value) -> Optional[TimeOfDay]:
    """Parse ``HH:MM``/``HH:MM:SS`` strings or ``datetime.time``; None if unparsable."""
    if value is None:
        return None
    if isinstance(value, TimeOfDay):
        return value
    if isinstance(value, time):
        return TimeOfDay.of(value.hour, value.minute)

    parts = str(value).strip().split(":")
    if len(parts) not in (2, 3):
        return None
    try:
        h, m = int(parts[0]), int(parts[1])
        s = int(parts[2]) if len(parts) == 3 else 0
    except ValueError:
        return None
    if h == 24 and m == 0 and s == 0:
        return TimeOfDay(MINUTES_PER_DAY)
    if not (0 <= h <= 23 and 0 <= m <= 59 and 0 <= s <= 59):
        return None
    return TimeOfDay.of(h, m)


def parse_time_string(value) -> TimeOfDay:
    """
    Parse a time-of-day value.

    Raises:
        ValidationError: If the value cannot be parsed
    """
    parsed = try_parse_time(value)
    if parsed is None:
        raise ValidationError(f"Invalid time of day: {value!r}")
    return parsed


@dataclass(frozen=True)
class TimeRange:
    """Time-of-day interval; ``overnight`` means the end falls on the next day."""

    start: Optional[TimeOfDay]
    end: Optional[TimeOfDay]
    overnight: bool = False

    @classmethod
    def parse(cls, start, end, overnight: bool = False) -> "TimeRange":
        """Build a range from raw bounds; unparsable bounds become None."""
        return cls(try_parse_time(start), try_parse_time(end), bool(overnight))

    @property
    def end_minutes(self) -> int:
        """End bound in minutes from the start day's midnight."""
        return self.end.minutes + (MINUTES_PER_DAY if self.overnight else 0)

    def __str__(self) -> str:
        suffix = " (+1d)" if self.overnight else ""
        return f"{self.start}-{self.end}{suffix}"


def is_valid_range(r: TimeRange) -> bool:
    if r is None or r.start is None or r.end is None:
        return False
    if r.overnight:
        return r.end < r.start and r.start.minutes < MINUTES_PER_DAY
    return r.start < r.end


def require_valid_range(r: TimeRange) -> TimeRange:
    if not is_valid_range(r):
        raise ValidationError(f"Invalid time range: {r}")
    return r


def ranges_overlap(a: TimeRange, b: TimeRange) -> bool:
    """True iff the ranges share an instant on the same day; touching ends do not count."""
    return a.start.minutes < b.end_minutes and b.start.minutes < a.end_minutes


def duration_hours(r: TimeRange) -> float:
    """
    Length of a range in hours.

    Raises:
        ValidationError: If the range is invalid (including unflagged wraparound)
    """
    require_valid_range(r)
    return (r.end_minutes - r.start.minutes) / 60.0


def is_contained(inner: TimeRange, outer: TimeRange) -> bool:
    return inner.start >= outer.start and inner.end_minutes <= outer.end_minutes


def interval_on(day: date, r: TimeRange) -> Tuple[datetime, datetime]:
    """Absolute start/end datetimes of a range worked on ``day``."""
    midnight = datetime.combine(day, time(0, 0))
    return (
        midnight + timedelta(minutes=r.start.minutes),
        midnight + timedelta(minutes=r.end_minutes),
    )


def time_bucket_for(
    start: TimeOfDay,
    morning_until: TimeOfDay = TimeOfDay.of(12),
    afternoon_until: TimeOfDay = TimeOfDay.of(17),
) -> TimeBucket:
    """Classify a shift start into morning/afternoon/evening."""
    if start < morning_until:
        return TimeBucket.MORNING
    if start < afternoon_until:
        return TimeBucket.AFTERNOON
    return TimeBucket.EVENING


def week_bounds(week_start: date) -> Tuple[date, date]:
    """Inclusive first and last date of the week starting at ``week_start``."""
    return week_start, week_start + timedelta(days=6)


def align_week_start(day: date, starts_on: Weekday = Weekday.MONDAY) -> date:
    """Move ``day`` back to the most recent configured week start."""
    offset = (day.weekday() - int(starts_on)) % 7
    return day - timedelta(days=offset)
