from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True, order=True)
class Interval:
    start: float               # seconds from media start
    end: float                 # exclusive upper bound, always > start

    def __post_init__(self) -> None:
        if not (math.isfinite(self.start) and math.isfinite(self.end)):
            raise ValueError(f"Interval bounds must be finite, got ({self.start}, {self.end})")
        if not self.start < self.end:
            raise ValueError(f"Interval requires start < end, got ({self.start}, {self.end})")

    @property
    def length(self) -> float:
        return self.end - self.start

    @classmethod
    def rounded(cls, start: float, end: float) -> Interval | None:
        """
        Build an interval from a raw watched segment, rounding outward
        (start floored, end ceiled) so sub-second jitter still merges.

        Returns None for a zero-length, inverted or non-finite segment.
        """
        if not (math.isfinite(start) and math.isfinite(end)) or start >= end:
            return None
        return cls(float(math.floor(start)), float(math.ceil(end)))

    def to_dict(self) -> dict[str, float]:
        return {"start": self.start, "end": self.end}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> Interval:
        return cls(float(d["start"]), float(d["end"]))
