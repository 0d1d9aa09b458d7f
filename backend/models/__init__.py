from .events import PlaybackState, PlayerEvent, PlayerEventType
from .interval import Interval
from .progress import ProgressRecord
from .session import SessionStatus, ViewingSession

__all__ = [
    "Interval",
    "ProgressRecord",
    "PlayerEvent",
    "PlayerEventType",
    "PlaybackState",
    "ViewingSession",
    "SessionStatus",
]
