"""Scheduling engine: greedy and CP-SAT schedulers plus orchestration."""

from .base import BaseScheduler
from .cp_sat import CpSatScheduler
from .greedy import GreedyScheduler, assign
from .orchestrator import GenerationOutcome, Orchestrator, generate_schedule, publish_schedule, submit_for_review

__all__ = [
    "BaseScheduler",
    "GreedyScheduler",
    "CpSatScheduler",
    "assign",
    "Orchestrator",
    "GenerationOutcome",
    "generate_schedule",
    "submit_for_review",
    "publish_schedule",
]
