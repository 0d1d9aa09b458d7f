from dataclasses import dataclass
from enum import Enum


class PlayerEventType(str, Enum):
    METADATA_READY = "metadata_ready"
    PLAY = "play"
    PAUSE = "pause"
    ENDED = "ended"
    POSITION_UPDATE = "position_update"
    SEEK_START = "seek_start"
    SEEK_END = "seek_end"


class PlaybackState(str, Enum):
    IDLE = "idle"
    PLAYING = "playing"
    SEEKING = "seeking"


@dataclass
class PlayerEvent:
    type: PlayerEventType
    position: float = 0.0          # media element currentTime, seconds
    playback_rate: float = 1.0     # only meaningful for position_update
    duration: float | None = None  # only meaningful for metadata_ready / ended
