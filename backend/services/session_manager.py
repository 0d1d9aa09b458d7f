"""Viewing session lifecycle: open (hydrate + follow store), close (flush)."""

from __future__ import annotations

import asyncio
import logging
import secrets
from contextlib import suppress
from datetime import datetime, timezone
from typing import Any

from models import ProgressRecord, SessionStatus, ViewingSession
from services import store
from services.config import get_jump_threshold_seconds, get_save_debounce_seconds
from services.progress_hub import ProgressHub, progress_hub
from services.progress_store import ProgressStore, get_progress_store, progress_key
from services.tracker import WatchProgressTracker

logger = logging.getLogger(__name__)

# Avoid 0/O, 1/I/l so IDs read back unambiguously from logs and URLs.
_SESSION_ALPHABET = "23456789abcdefghjkmnpqrstuvwxyz"
_SESSION_ID_LENGTH = 12

_followers: dict[str, asyncio.Task[None]] = {}


class PendingCommands:
    """
    Player stand-in for HTTP clients: seek_to() is recorded and handed back
    in the next response instead of being sent to a media element.
    """

    def __init__(self) -> None:
        self._seek_to: float | None = None

    def seek_to(self, position: float) -> None:
        self._seek_to = position

    def take_seek(self) -> float | None:
        pos, self._seek_to = self._seek_to, None
        return pos


players: dict[str, PendingCommands] = {}


def generate_session_id() -> str:
    return "".join(secrets.choice(_SESSION_ALPHABET) for _ in range(_SESSION_ID_LENGTH))


async def open_session(
    user_scope: str,
    media_id: str,
    *,
    progress_store: ProgressStore | None = None,
    hub: ProgressHub | None = None,
) -> tuple[ViewingSession, WatchProgressTracker]:
    """Create a viewing session and hydrate its tracker from the progress store."""
    progress_store = progress_store or get_progress_store()
    hub = hub or progress_hub
    session = ViewingSession(id=generate_session_id(), user_scope=user_scope, media_id=media_id)
    player = PendingCommands()

    def _publish(snapshot: dict[str, Any]) -> None:
        hub.publish_nowait(session.id, snapshot)

    tracker = WatchProgressTracker(
        user_scope,
        media_id,
        store=progress_store,
        player=player,
        jump_threshold=get_jump_threshold_seconds(),
        save_delay=get_save_debounce_seconds(),
        on_change=_publish,
    )

    try:
        record = await progress_store.load(user_scope, media_id)
    except Exception as e:  # noqa: BLE001
        logger.warning("[session_manager] Loading progress for %s failed; starting empty: %s", session.progress_key, e)
        record = None
    tracker.hydrate(record)

    store.sessions[session.id] = session
    store.trackers[session.id] = tracker
    players[session.id] = player

    if progress_store.changes is not None:
        changes = progress_store.changes
        queue = await changes.subscribe(progress_key(user_scope, media_id))
        _followers[session.id] = asyncio.create_task(_follow_changes(session, tracker, changes, queue))

    logger.info(
        "[session_manager] Session opened: session_id=%s key=%s coverage=%.2f%%",
        session.id,
        session.progress_key,
        tracker.coverage,
    )
    return session, tracker


async def _follow_changes(
    session: ViewingSession,
    tracker: WatchProgressTracker,
    changes: ProgressHub,
    queue: asyncio.Queue[dict[str, Any]],
) -> None:
    key = progress_key(session.user_scope, session.media_id)
    try:
        while True:
            doc = await queue.get()
            tracker.apply_external_update(ProgressRecord.from_dict(doc))
    finally:
        await changes.unsubscribe(key, queue)


async def close_session(session_id: str) -> ViewingSession | None:
    """
    Flush pending progress, stop following store updates and forget the session.

    Closed sessions leave the registry, so a long-running server only holds
    the sessions that are still open.
    """
    session = store.sessions.get(session_id)
    if session is None:
        return None

    follower = _followers.pop(session_id, None)
    if follower is not None:
        follower.cancel()
        with suppress(asyncio.CancelledError):
            await follower

    tracker = store.trackers.get(session_id)
    if tracker is not None:
        await tracker.close()

    session.status = SessionStatus.CLOSED
    session.closed_at = datetime.now(timezone.utc)
    store.sessions.pop(session_id, None)
    store.trackers.pop(session_id, None)
    players.pop(session_id, None)
    logger.info("[session_manager] Session closed: session_id=%s", session_id)
    return session


async def close_all() -> None:
    for session_id in list(store.sessions):
        await close_session(session_id)
