from .intervals import coverage_percent, merge_interval, normalize_intervals, total_watched
from .store import sessions, trackers

__all__ = [
    "sessions",
    "trackers",
    "merge_interval",
    "normalize_intervals",
    "coverage_percent",
    "total_watched",
]
