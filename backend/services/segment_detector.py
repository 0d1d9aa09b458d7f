"""Turns raw media element signals into closed watched segments."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from models import PlaybackState
from services.config import DEFAULT_JUMP_THRESHOLD_SECONDS

logger = logging.getLogger(__name__)

Segment = tuple[float, float]


@dataclass
class PlaybackCursor:
    segment_start: float | None = None   # where the open segment began; None before any play
    last_observed_position: float = 0.0  # most recent position seen
    is_seeking: bool = False
    is_playing: bool = False

    @property
    def state(self) -> PlaybackState:
        if self.is_seeking:
            return PlaybackState.SEEKING
        if self.is_playing:
            return PlaybackState.PLAYING
        return PlaybackState.IDLE


class SegmentDetector:
    """
    Single-segment cursor over a playback event stream.

    Position updates arrive several times a second and only move the cursor;
    a segment is closed (returned to the caller) at pause, seek start, end of
    media, or when a position update jumps further than the threshold scaled
    by playback rate. Every handler returns the closed (start, end) segment,
    or None when nothing was closed.
    """

    def __init__(self, *, jump_threshold: float = DEFAULT_JUMP_THRESHOLD_SECONDS) -> None:
        self._threshold = jump_threshold
        self.cursor = PlaybackCursor()

    @property
    def jump_threshold(self) -> float:
        return self._threshold

    @property
    def state(self) -> PlaybackState:
        return self.cursor.state

    def play(self, position: float) -> Segment | None:
        c = self.cursor
        if c.is_playing:
            logger.debug("[segment_detector] play at %.2f while already playing; ignored", position)
            return None
        c.is_playing = True
        c.segment_start = position
        c.last_observed_position = position
        return None

    def pause(self, position: float) -> Segment | None:
        c = self.cursor
        was_playing = c.is_playing
        c.is_playing = False
        c.last_observed_position = position
        if not was_playing or c.is_seeking:
            # While seeking the segment was already closed at seek start.
            return None
        return _closed(c.segment_start, position)

    def ended(self, duration: float | None) -> Segment | None:
        """
        Credit the open segment through to the end of the media.

        Browsers fire pause just before ended; segment_start survives that
        pause so the gap between the last reported position and the real
        duration is still credited.
        """
        c = self.cursor
        end = duration if duration and duration > 0 else c.last_observed_position
        start = None if c.is_seeking else c.segment_start
        c.is_playing = False
        c.segment_start = None
        c.last_observed_position = end
        return _closed(start, end)

    def position_update(self, position: float, playback_rate: float = 1.0) -> Segment | None:
        c = self.cursor
        segment = None
        if c.is_playing and not c.is_seeking:
            delta = position - c.last_observed_position
            rate = playback_rate if playback_rate > 0 else 1.0
            if delta > 0 and delta > self._threshold * rate:
                logger.debug(
                    "[segment_detector] Jump %.2f -> %.2f (delta=%.2f rate=%.2f); closing segment",
                    c.last_observed_position,
                    position,
                    delta,
                    rate,
                )
                segment = _closed(c.segment_start, c.last_observed_position)
                c.segment_start = position
        c.last_observed_position = position
        return segment

    def seek_start(self, position: float) -> Segment | None:
        c = self.cursor
        already_seeking = c.is_seeking
        c.is_seeking = True
        if not c.is_playing:
            # Paused seek: the paused segment no longer ends where the cursor is.
            c.segment_start = None
            return None
        if already_seeking:
            return None
        return _closed(c.segment_start, c.last_observed_position)

    def seek_end(self, position: float) -> Segment | None:
        c = self.cursor
        c.is_seeking = False
        if c.is_playing:
            c.segment_start = position
        c.last_observed_position = position
        return None


def _closed(start: float | None, end: float) -> Segment | None:
    if start is None or start >= end:
        return None
    return (start, end)
