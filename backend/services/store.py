"""In-memory session registry. Keyed by session ID."""

from models.session import ViewingSession
from services.tracker import WatchProgressTracker

sessions: dict[str, ViewingSession] = {}
trackers: dict[str, WatchProgressTracker] = {}


def clear() -> None:
    sessions.clear()
    trackers.clear()
