"""Per-session watch progress: canonical interval set, coverage and persistence."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable, Protocol

from models import Interval, PlayerEvent, PlayerEventType, ProgressRecord
from services.config import DEFAULT_JUMP_THRESHOLD_SECONDS, DEFAULT_SAVE_DEBOUNCE_SECONDS
from services.debounce import DebouncedSaver
from services.intervals import coverage_percent, merge_interval, normalize_intervals, total_watched
from services.progress_store import ProgressStore
from services.segment_detector import Segment, SegmentDetector

logger = logging.getLogger(__name__)


class PlaybackSource(Protocol):
    """The one command the tracker sends back to the player."""

    def seek_to(self, position: float) -> None: ...


def _now_ms() -> int:
    return int(time.time() * 1000)


class WatchProgressTracker:
    """
    Track what one viewer has watched of one media item.

    The interval set is only ever replaced by a normalized list, so readers
    never observe an unmerged state. Mutations arm a debounced save when a
    store is configured; without one (anonymous viewer) progress lives in
    memory for the session only.
    """

    def __init__(
        self,
        user_scope: str,
        media_id: str,
        *,
        store: ProgressStore | None = None,
        player: PlaybackSource | None = None,
        jump_threshold: float = DEFAULT_JUMP_THRESHOLD_SECONDS,
        save_delay: float = DEFAULT_SAVE_DEBOUNCE_SECONDS,
        on_change: Callable[[dict[str, Any]], None] | None = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self.user_scope = user_scope
        self.media_id = media_id
        self.player = player
        self.detector = SegmentDetector(jump_threshold=jump_threshold)
        self.save_error: str | None = None
        self._store = store
        self._on_change = on_change
        self._clock = clock
        self._intervals: list[Interval] = []
        self._duration: float = 0.0
        self._last_position: float = 0.0
        self._restore_pending = False
        self._last_synced_at: int | None = None
        self._saver = DebouncedSaver(self.persist, delay=save_delay, name=f"{user_scope}/{media_id}") if store is not None else None

    # --- read side ---

    @property
    def intervals(self) -> tuple[Interval, ...]:
        return tuple(self._intervals)

    @property
    def duration(self) -> float:
        return self._duration

    @property
    def last_position(self) -> float:
        return self._last_position

    @property
    def coverage(self) -> float:
        return coverage_percent(self._intervals, self._duration)

    @property
    def saver(self) -> DebouncedSaver | None:
        return self._saver

    def to_record(self) -> ProgressRecord:
        return ProgressRecord(
            intervals=list(self._intervals),
            last_position=self._last_position,
            updated_at=self._last_synced_at,
        )

    def snapshot(self) -> dict[str, Any]:
        return {
            "media_id": self.media_id,
            "intervals": [i.to_dict() for i in self._intervals],
            "watched_seconds": total_watched(self._intervals),
            "coverage": self.coverage,
            "duration": self._duration,
            "last_position": self._last_position,
            "state": self.detector.state.value,
            "save_error": self.save_error,
        }

    # --- hydration ---

    def hydrate(self, record: ProgressRecord | None) -> None:
        """Load prior progress at session start. None means nothing saved yet."""
        if record is None:
            logger.info("[tracker] No saved progress for %s/%s", self.user_scope, self.media_id)
            record = ProgressRecord.empty()
        self._intervals = normalize_intervals(record.intervals)
        self._last_position = record.last_position
        self._last_synced_at = record.updated_at
        self._restore_pending = record.last_position > 0
        logger.info(
            "[tracker] Hydrated %s/%s: intervals=%d last_position=%.2f",
            self.user_scope,
            self.media_id,
            len(self._intervals),
            self._last_position,
        )
        self._maybe_restore_position()
        self._changed(save=False)

    def apply_external_update(self, record: ProgressRecord) -> bool:
        """
        Replace local progress with a document written elsewhere.

        Echoes of our own saves and records no newer than the last one we
        synced are ignored. Returns True if the record was applied.
        """
        if (
            record.updated_at is not None
            and self._last_synced_at is not None
            and record.updated_at <= self._last_synced_at
        ):
            return False
        self._intervals = normalize_intervals(record.intervals)
        if not self.detector.cursor.is_playing:
            self._last_position = record.last_position
        self._last_synced_at = record.updated_at
        logger.info(
            "[tracker] External update for %s/%s: intervals=%d",
            self.user_scope,
            self.media_id,
            len(self._intervals),
        )
        self._changed(save=False)
        return True

    # --- mutation ---

    def add_segment(self, start: float, end: float) -> bool:
        """Merge a closed watched segment. Zero-length or inverted segments are dropped."""
        added = self._merge(start, end)
        if added:
            self._changed(save=True)
        return added

    def add_segments(self, segments: list[Segment]) -> int:
        """Merge a batch of closed segments with a single save and notification."""
        added = sum(1 for start, end in segments if self._merge(start, end))
        if added:
            self._changed(save=True)
        return added

    def _merge(self, start: float, end: float) -> bool:
        interval = Interval.rounded(start, end)
        if interval is None:
            logger.debug("[tracker] Dropping empty segment (%.2f, %.2f)", start, end)
            return False
        self._intervals = merge_interval(self._intervals, interval)
        logger.debug(
            "[tracker] Merged (%.2f, %.2f) -> %d intervals, coverage=%.2f%%",
            start,
            end,
            len(self._intervals),
            self.coverage,
        )
        return True

    def metadata_ready(self, duration: float) -> None:
        self._duration = duration if duration and math.isfinite(duration) and duration > 0 else 0.0
        self._maybe_restore_position()
        self._changed(save=False)

    def handle(self, event: PlayerEvent) -> dict[str, Any]:
        """Feed one player signal through the detector and return the new snapshot."""
        d = self.detector
        t = event.type
        if t is PlayerEventType.METADATA_READY:
            self.metadata_ready(event.duration or 0.0)
            return self.snapshot()

        if t is PlayerEventType.PLAY:
            self._apply(d.play(event.position), position=event.position, save=False)
        elif t is PlayerEventType.PAUSE:
            self._apply(d.pause(event.position), position=event.position, save=True)
        elif t is PlayerEventType.ENDED:
            if event.duration and math.isfinite(event.duration) and event.duration > 0:
                self._duration = event.duration
            segment = d.ended(self._duration or None)
            self._apply(segment, position=d.cursor.last_observed_position, save=True)
        elif t is PlayerEventType.POSITION_UPDATE:
            segment = d.position_update(event.position, event.playback_rate)
            self._apply(segment, position=event.position, save=segment is not None)
        elif t is PlayerEventType.SEEK_START:
            self._apply(d.seek_start(event.position), position=None, save=False)
        elif t is PlayerEventType.SEEK_END:
            self._apply(d.seek_end(event.position), position=event.position, save=True)
        return self.snapshot()

    async def persist(self) -> None:
        """
        Write the current state to the store.

        Failures never propagate: the in-memory set stays authoritative, the
        error is exposed as save_error and the next save retries.
        """
        if self._store is None:
            logger.info("[tracker] No progress store for %s/%s; not persisting", self.user_scope, self.media_id)
            return
        previous = self._last_synced_at
        stamp = self._clock()
        if previous is not None and stamp <= previous:
            stamp = previous + 1
        record = self.to_record()
        record.updated_at = stamp
        # Set before the write so the store's change notification is seen as our echo.
        self._last_synced_at = stamp
        try:
            await self._store.save(self.user_scope, self.media_id, record)
        except Exception as exc:  # noqa: BLE001
            self._last_synced_at = previous
            self.save_error = f"{type(exc).__name__}: {exc}"
            logger.warning(
                "[tracker] Saving progress for %s/%s failed; will retry on next change: %s",
                self.user_scope,
                self.media_id,
                self.save_error,
            )
            self._notify()
            return
        cleared = self.save_error is not None
        self.save_error = None
        logger.info(
            "[tracker] Progress saved %s/%s: intervals=%d coverage=%.2f%%",
            self.user_scope,
            self.media_id,
            len(record.intervals),
            self.coverage,
        )
        if cleared:
            self._notify()

    async def close(self) -> None:
        """Flush any pending save."""
        if self._saver is not None:
            await self._saver.flush()

    # --- internals ---

    def _apply(self, segment: Segment | None, *, position: float | None, save: bool) -> None:
        changed = False
        if segment is not None:
            changed = self._merge(*segment)
        if position is not None:
            self._last_position = position
        self._changed(save=save or changed)

    def _maybe_restore_position(self) -> None:
        if not self._restore_pending or self._duration <= 0 or self.player is None:
            return
        self._restore_pending = False
        logger.info("[tracker] Restoring playback position %.2f", self._last_position)
        self.player.seek_to(self._last_position)

    def _changed(self, *, save: bool) -> None:
        if save and self._saver is not None:
            self._saver.schedule()
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.snapshot())
