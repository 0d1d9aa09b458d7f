"""Interval set normalization and unique-coverage math."""

from __future__ import annotations

import math
from typing import Iterable

from models import Interval


def normalize_intervals(intervals: Iterable[Interval]) -> list[Interval]:
    """
    Sort and merge intervals into normal form.

    The result is sorted by start and, for consecutive intervals i, j,
    i.end < j.start. Touching intervals (i.end == j.start) are merged.
    """
    ordered = sorted(intervals, key=lambda i: (i.start, i.end))
    if not ordered:
        return []

    merged: list[Interval] = []
    current = ordered[0]
    for nxt in ordered[1:]:
        if nxt.start <= current.end:
            if nxt.end > current.end:
                current = Interval(current.start, nxt.end)
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def merge_interval(existing: Iterable[Interval], new: Interval) -> list[Interval]:
    """Return the normalized set of existing plus new. existing is not mutated."""
    return normalize_intervals([*existing, new])


def total_watched(intervals: Iterable[Interval]) -> float:
    return sum(i.end - i.start for i in intervals)


def coverage_percent(intervals: Iterable[Interval], duration: float | None) -> float:
    """
    Percentage of duration covered by intervals, clamped to [0, 100].

    An unknown duration (None, zero, negative or non-finite) yields 0.0.
    intervals must already be normalized or overlaps are double counted.
    """
    if duration is None or not math.isfinite(duration) or duration <= 0:
        return 0.0
    pct = 100.0 * total_watched(intervals) / duration
    return max(0.0, min(pct, 100.0))
