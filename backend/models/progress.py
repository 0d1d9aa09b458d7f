from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from .interval import Interval

logger = logging.getLogger(__name__)


@dataclass
class ProgressRecord:
    intervals: list[Interval] = field(default_factory=list)
    last_position: float = 0.0             # resume marker, seconds
    updated_at: int | None = None          # epoch millis of the write

    @staticmethod
    def empty() -> ProgressRecord:
        return ProgressRecord()

    @staticmethod
    def from_dict(d: Any) -> ProgressRecord:
        """
        Parse a stored progress document.

        Corrupt documents never fail a session start: unusable intervals are
        dropped and a bad position falls back to 0.
        """
        if not isinstance(d, dict):
            logger.warning("[progress] Ignoring non-object progress document: %r", type(d).__name__)
            return ProgressRecord.empty()

        intervals: list[Interval] = []
        raw_intervals = d.get("intervals")
        if isinstance(raw_intervals, list):
            for raw in raw_intervals:
                try:
                    intervals.append(Interval.from_dict(raw))
                except (KeyError, TypeError, ValueError):
                    logger.info("[progress] Dropping malformed interval %r", raw)
        elif raw_intervals is not None:
            logger.warning("[progress] intervals field is %s, not a list; ignoring", type(raw_intervals).__name__)

        return ProgressRecord(
            intervals=intervals,
            last_position=_as_position(d.get("lastPosition")),
            updated_at=_as_millis(d.get("updatedAt")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "intervals": [i.to_dict() for i in self.intervals],
            "lastPosition": float(self.last_position),
            "updatedAt": self.updated_at,
        }


def _as_position(raw: Any) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return 0.0
    if not math.isfinite(value) or value < 0:
        return 0.0
    return value


def _as_millis(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError, OverflowError):
        return None
