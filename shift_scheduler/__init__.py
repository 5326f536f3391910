"""Shift scheduling for small organizations.

Modules:
- config: load and validate YAML configuration
- errors: exception taxonomy
- domain: ORM models, repositories and the schedule store
- services: time primitives, availability resolution, constraint checks, scoring
- engine: greedy and CP-SAT schedulers and the orchestrator
- swaps: shift swap request workflow
- events: notification hooks
- io: CSV import/export
- reporting: run summaries
- cli: command-line interface entrypoints
"""

__all__ = [
    "config",
    "errors",
    "domain",
    "services",
    "engine",
    "swaps",
    "events",
    "io",
    "reporting",
    "cli",
]
