"""Load and validate scheduler configuration (YAML)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, FrozenSet, Optional

import yaml

from shift_scheduler.domain.types import ConstraintSet
from shift_scheduler.errors import ConfigError
from shift_scheduler.services.timeplan import TimeOfDay, Weekday, try_parse_time

logger = logging.getLogger(__name__)

SOLVERS = {"greedy", "cp_sat"}
APPROVER_KINDS = {"target", "manager"}


@dataclass
class ConstraintDefaults:
    max_hours_per_day: float = 8.0
    min_hours_between_shifts: float = 10.0
    max_consecutive_days: int = 5
    max_weekly_hours: float = 40.0

    def as_constraint_set(self) -> ConstraintSet:
        return ConstraintSet(
            max_hours_per_day=float(self.max_hours_per_day),
            min_hours_between_shifts=float(self.min_hours_between_shifts),
            max_consecutive_days=int(self.max_consecutive_days),
            max_weekly_hours=float(self.max_weekly_hours),
        )


@dataclass
class PreferenceWeights:
    preferred: float = 2.0
    neutral: float = 1.0
    avoid: float = 0.0

    def as_dict(self) -> Dict[str, float]:
        return {"preferred": self.preferred, "neutral": self.neutral, "avoid": self.avoid}


@dataclass
class TimeBuckets:
    morning_until: TimeOfDay = field(default_factory=lambda: TimeOfDay.of(12))
    afternoon_until: TimeOfDay = field(default_factory=lambda: TimeOfDay.of(17))


@dataclass
class CpSatOptions:
    max_time_in_seconds: float = 10.0
    random_seed: int = 0


@dataclass
class SchedulerConfig:
    default_constraints: ConstraintDefaults = field(default_factory=ConstraintDefaults)
    preference_weights: PreferenceWeights = field(default_factory=PreferenceWeights)
    time_buckets: TimeBuckets = field(default_factory=TimeBuckets)
    solver: str = "greedy"
    cp_sat: CpSatOptions = field(default_factory=CpSatOptions)
    swap_approvers: FrozenSet[str] = frozenset({"target"})
    week_starts_on: Weekday = Weekday.MONDAY


def _section(raw: Dict, key: str) -> Dict:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return value


def _number(section: Dict, key: str, default, cast=float):
    if key not in section or section[key] is None:
        return default
    try:
        return cast(section[key])
    except (TypeError, ValueError):
        raise ConfigError(f"Config value '{key}' must be numeric, got {section[key]!r}")


def _time(section: Dict, key: str, default: TimeOfDay) -> TimeOfDay:
    if key not in section:
        return default
    parsed = try_parse_time(section[key])
    if parsed is None:
        raise ConfigError(f"Config value '{key}' must be HH:MM, got {section[key]!r}")
    return parsed


def config_from_dict(raw: Dict | None) -> SchedulerConfig:
    """
    Build a SchedulerConfig from a parsed mapping, applying defaults.

    Raises:
        ConfigError: If any value is invalid
    """
    raw = raw or {}
    base = SchedulerConfig()

    dc = _section(raw, "default_constraints")
    defaults = ConstraintDefaults(
        max_hours_per_day=_number(dc, "max_hours_per_day", base.default_constraints.max_hours_per_day),
        min_hours_between_shifts=_number(
            dc, "min_hours_between_shifts", base.default_constraints.min_hours_between_shifts
        ),
        max_consecutive_days=_number(dc, "max_consecutive_days", base.default_constraints.max_consecutive_days, int),
        max_weekly_hours=_number(dc, "max_weekly_hours", base.default_constraints.max_weekly_hours),
    )
    if defaults.max_hours_per_day <= 0 or defaults.max_hours_per_day > 24:
        raise ConfigError("max_hours_per_day must be within (0, 24]")
    if defaults.min_hours_between_shifts < 0:
        raise ConfigError("min_hours_between_shifts must not be negative")
    if not 1 <= defaults.max_consecutive_days <= 7:
        raise ConfigError("max_consecutive_days must be between 1 and 7")
    if not 0 <= defaults.max_weekly_hours <= 168:
        raise ConfigError("max_weekly_hours must be between 0 and 168")

    pw = _section(raw, "preference_weights")
    weights = PreferenceWeights(
        preferred=_number(pw, "preferred", base.preference_weights.preferred),
        neutral=_number(pw, "neutral", base.preference_weights.neutral),
        avoid=_number(pw, "avoid", base.preference_weights.avoid),
    )
    if not weights.preferred > weights.neutral > weights.avoid >= 0:
        raise ConfigError("preference_weights must satisfy preferred > neutral > avoid >= 0")

    tb = _section(raw, "time_buckets")
    buckets = TimeBuckets(
        morning_until=_time(tb, "morning_until", base.time_buckets.morning_until),
        afternoon_until=_time(tb, "afternoon_until", base.time_buckets.afternoon_until),
    )
    if not buckets.morning_until < buckets.afternoon_until:
        raise ConfigError("time_buckets.morning_until must be before afternoon_until")

    solver = str(raw.get("solver", base.solver)).lower()
    if solver not in SOLVERS:
        raise ConfigError(f"Unknown solver '{solver}', expected one of {sorted(SOLVERS)}")

    cs = _section(raw, "cp_sat")
    cp_sat = CpSatOptions(
        max_time_in_seconds=_number(cs, "max_time_in_seconds", base.cp_sat.max_time_in_seconds),
        random_seed=_number(cs, "random_seed", base.cp_sat.random_seed, int),
    )

    approvers_raw = raw.get("swap_approvers", sorted(base.swap_approvers))
    if isinstance(approvers_raw, str):
        approvers_raw = [approvers_raw]
    approvers = frozenset(str(a).lower() for a in approvers_raw or [])
    if not approvers or not approvers <= APPROVER_KINDS:
        raise ConfigError(f"swap_approvers must be a non-empty subset of {sorted(APPROVER_KINDS)}")

    try:
        week_starts_on = Weekday.parse(raw.get("week_starts_on", base.week_starts_on))
    except ValueError as e:
        raise ConfigError(str(e))

    return SchedulerConfig(
        default_constraints=defaults,
        preference_weights=weights,
        time_buckets=buckets,
        solver=solver,
        cp_sat=cp_sat,
        swap_approvers=approvers,
        week_starts_on=week_starts_on,
    )


def load_config(path: str | Path | None = None) -> SchedulerConfig:
    """
    Load configuration from a YAML file; defaults when path is None.

    Args:
        path: Path to YAML config

    Returns:
        SchedulerConfig
    """
    if path is None:
        return SchedulerConfig()

    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    with path.open("r", encoding="utf-8") as fh:
        try:
            raw: Optional[Dict] = yaml.safe_load(fh)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {path}: {e}")

    if raw is not None and not isinstance(raw, dict):
        raise ConfigError(f"Config root in {path} must be a mapping")

    cfg = config_from_dict(raw)
    logger.info("Loaded scheduler config from %s (solver=%s)", path, cfg.solver)
    return cfg
