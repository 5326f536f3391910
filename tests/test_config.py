"""Tests for configuration loading."""

from pathlib import Path

import pytest

from shift_scheduler.config import config_from_dict, load_config
from shift_scheduler.domain.types import ConstraintSet
from shift_scheduler.errors import ConfigError
from shift_scheduler.services.timeplan import TimeOfDay, Weekday

SAMPLE_CONFIG = Path(__file__).resolve().parent.parent / "scheduler_config.yaml"


def test_defaults_without_file():
    cfg = load_config(None)
    assert cfg.solver == "greedy"
    assert cfg.default_constraints.as_constraint_set() == ConstraintSet()
    assert cfg.preference_weights.as_dict() == {"preferred": 2.0, "neutral": 1.0, "avoid": 0.0}
    assert cfg.swap_approvers == frozenset({"target"})
    assert cfg.week_starts_on is Weekday.MONDAY


def test_sample_config_loads():
    cfg = load_config(SAMPLE_CONFIG)
    assert cfg.time_buckets.morning_until == TimeOfDay.of(12)
    assert cfg.time_buckets.afternoon_until == TimeOfDay.of(17)
    assert cfg.default_constraints.max_weekly_hours == 40


def test_overrides(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text(
        """
default_constraints:
  max_weekly_hours: 32
  max_consecutive_days: 4
preference_weights:
  preferred: 1.5
  neutral: 1.0
  avoid: 0.5
solver: cp_sat
swap_approvers: [target, manager]
week_starts_on: sunday
"""
    )
    cfg = load_config(path)

    limits = cfg.default_constraints.as_constraint_set()
    assert limits.max_weekly_hours == 32.0
    assert limits.max_consecutive_days == 4
    assert limits.max_hours_per_day == 8.0
    assert cfg.preference_weights.avoid == 0.5
    assert cfg.solver == "cp_sat"
    assert cfg.swap_approvers == frozenset({"target", "manager"})
    assert cfg.week_starts_on is Weekday.SUNDAY


@pytest.mark.parametrize(
    "raw",
    [
        {"default_constraints": {"max_weekly_hours": 200}},
        {"default_constraints": {"max_consecutive_days": 0}},
        {"default_constraints": {"max_hours_per_day": "lots"}},
        {"preference_weights": {"preferred": 1.0, "neutral": 1.0}},
        {"time_buckets": {"morning_until": "18:00"}},
        {"time_buckets": {"afternoon_until": "5pm"}},
        {"solver": "simulated_annealing"},
        {"swap_approvers": ["anyone"]},
        {"swap_approvers": []},
        {"week_starts_on": "funday"},
        {"default_constraints": ["not", "a", "mapping"]},
    ],
)
def test_invalid_values_rejected(raw):
    with pytest.raises(ConfigError):
        config_from_dict(raw)


def test_missing_file_rejected(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "missing.yaml")


def test_non_mapping_root_rejected(tmp_path):
    path = tmp_path / "cfg.yaml"
    path.write_text("- just\n- a list\n")
    with pytest.raises(ConfigError):
        load_config(path)
