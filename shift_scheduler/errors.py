"""Exception types raised by the scheduling core."""

from __future__ import annotations


class SchedulerError(Exception):
    """Base class for all scheduling errors."""


class ValidationError(SchedulerError, ValueError):
    """Input was rejected before any computation or write took place."""


class ConfigError(ValidationError):
    """Configuration file is missing values or holds invalid ones."""


class StoreError(SchedulerError, RuntimeError):
    """The persistence collaborator failed; the operation may be retried."""

    transient = True


class ConcurrentRunError(StoreError):
    """Another generation run already claimed this schedule version."""


class ScheduleStateError(SchedulerError, ValueError):
    """Illegal schedule lifecycle transition."""


class SwapError(SchedulerError, ValueError):
    """
    Swap request rejected because an invariant would be violated.

    Attributes:
        reason: Short machine-readable code (e.g. "not_pending")
    """

    def __init__(self, reason: str, message: str):
        super().__init__(message)
        self.reason = reason


class SwapAtomicityError(StoreError):
    """Swap request status and assignment holder diverged after a commit."""

    transient = False
