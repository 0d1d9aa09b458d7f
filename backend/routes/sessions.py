"""Viewing session REST API: open a session, post player events, read progress."""

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from models import PlayerEvent, PlayerEventType, SessionStatus, ViewingSession
from services import session_manager, store
from services.tracker import WatchProgressTracker

router = APIRouter(tags=["sessions"])
logger = logging.getLogger(__name__)

# Both parts of the progress key; "/" would let two (user_scope, media_id) pairs share a document.
_KEY_PART = r"^[^/]+$"


class IntervalBody(BaseModel):
    start: float = Field(..., ge=0, allow_inf_nan=False)
    end: float = Field(..., ge=0, allow_inf_nan=False)


class SessionCreateRequest(BaseModel):
    user_scope: str = Field(..., min_length=1, pattern=_KEY_PART, description="Opaque viewer key the progress is stored under.")
    media_id: str = Field(..., min_length=1, pattern=_KEY_PART, description="Identifier of the media item being watched.")


class ProgressResponse(BaseModel):
    """Progress snapshot. GET /api/sessions/{id} and every event response."""

    session_id: str
    status: SessionStatus
    media_id: str
    intervals: list[IntervalBody]
    watched_seconds: float
    coverage: float
    duration: float
    last_position: float
    state: str
    save_error: str | None = None
    seek_to: float | None = None


class SessionCreateResponse(ProgressResponse):
    resume_position: float


class PlayerEventRequest(BaseModel):
    type: PlayerEventType
    position: float = Field(0.0, ge=0, allow_inf_nan=False)
    playback_rate: float = Field(1.0, gt=0, allow_inf_nan=False)
    duration: float | None = Field(None, ge=0, allow_inf_nan=False)


def _lookup(session_id: str) -> WatchProgressTracker:
    if session_id not in store.sessions:
        raise HTTPException(status_code=404, detail="Session not found")
    return store.trackers[session_id]


def _progress(session_id: str, *, seek_to: float | None = None) -> ProgressResponse:
    return _response(store.sessions[session_id], store.trackers[session_id], seek_to=seek_to)


def _response(
    session: ViewingSession, tracker: WatchProgressTracker, *, seek_to: float | None = None
) -> ProgressResponse:
    return ProgressResponse(session_id=session.id, status=session.status, seek_to=seek_to, **tracker.snapshot())


@router.post("/sessions", response_model=SessionCreateResponse, status_code=201)
async def create_session(body: SessionCreateRequest) -> SessionCreateResponse:
    """Open a viewing session, hydrated from any saved progress."""
    logger.info("[sessions] POST /api/sessions user_scope=%s media_id=%s", body.user_scope, body.media_id)
    session, tracker = await session_manager.open_session(body.user_scope, body.media_id)
    progress = _progress(session.id)
    return SessionCreateResponse(**progress.model_dump(), resume_position=tracker.last_position)


@router.get("/sessions/{session_id}", response_model=ProgressResponse)
def get_session(session_id: str) -> ProgressResponse:
    _lookup(session_id)
    return _progress(session_id)


@router.post("/sessions/{session_id}/events", response_model=ProgressResponse)
async def post_event(session_id: str, body: PlayerEventRequest) -> ProgressResponse:
    """Feed one media element signal into the session's tracker."""
    tracker = _lookup(session_id)
    tracker.handle(
        PlayerEvent(
            type=body.type,
            position=body.position,
            playback_rate=body.playback_rate,
            duration=body.duration,
        )
    )
    player = session_manager.players.get(session_id)
    seek_to = player.take_seek() if player is not None else None
    if seek_to is not None:
        logger.info("[sessions] Telling player for session %s to seek to %.2f", session_id, seek_to)
    return _progress(session_id, seek_to=seek_to)


@router.put("/sessions/{session_id}/intervals", response_model=ProgressResponse)
async def add_intervals(session_id: str, body: list[IntervalBody]) -> ProgressResponse:
    """Merge already-closed segments, e.g. from a client that detects segments itself."""
    tracker = _lookup(session_id)
    tracker.add_segments([(i.start, i.end) for i in body])
    return _progress(session_id)


@router.delete("/sessions/{session_id}", response_model=ProgressResponse)
async def delete_session(session_id: str) -> ProgressResponse:
    """Close the session after flushing its progress. The id is unknown afterwards."""
    tracker = _lookup(session_id)
    session = await session_manager.close_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail="Session not found")
    return _response(session, tracker)
