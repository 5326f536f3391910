"""Services for scheduling logic.

- timeplan: weekdays, times of day, ranges and buckets
- availability: availability/preference resolution
- constraints: hard constraint checks
- scoring: candidate scores
"""

__all__ = [
    "timeplan",
    "availability",
    "constraints",
    "scoring",
]
