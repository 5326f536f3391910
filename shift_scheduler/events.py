"""In-process notification hooks for schedule and swap transitions."""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

SCHEDULE_GENERATED = "schedule.generated"
SCHEDULE_PUBLISHED = "schedule.published"
SWAP_REQUESTED = "swap.requested"
SWAP_APPROVED = "swap.approved"
SWAP_REJECTED = "swap.rejected"

EVENT_NAMES = (SCHEDULE_GENERATED, SCHEDULE_PUBLISHED, SWAP_REQUESTED, SWAP_APPROVED, SWAP_REJECTED)

Handler = Callable[[str, Dict[str, Any]], None]


class EventBus:
    """
    Synchronous publish/subscribe for workflow events.

    Events are emitted after the state they describe has been committed, so a
    failing handler is logged and never undoes anything.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Handler]] = defaultdict(list)
        self.history: List[tuple] = []

    def subscribe(self, name: str, handler: Handler) -> None:
        if name not in EVENT_NAMES:
            raise ValueError(f"Unknown event '{name}'")
        self._handlers[name].append(handler)

    def emit(self, name: str, payload: Dict[str, Any]) -> None:
        self.history.append((name, payload))
        logger.info("Event %s: %s", name, payload)
        for handler in list(self._handlers.get(name, [])):
            try:
                handler(name, payload)
            except Exception:
                logger.exception("Handler %r failed for event %s", handler, name)
