from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from services import store
from services.progress_hub import progress_hub

router = APIRouter(tags=["progress"])
logger = logging.getLogger(__name__)


@router.websocket("/ws/sessions/{session_id}/progress")
async def ws_session_progress(websocket: WebSocket, session_id: str) -> None:
    """
    Stream progress snapshots for a viewing session to the progress bar.

    The current snapshot is sent on connect, then one message per change
    (latest-wins, intermediate snapshots may be skipped). Payload schema:
      {
        "media_id": str,
        "intervals": [{"start": float, "end": float}, ...],
        "watched_seconds": float,
        "coverage": float,
        "duration": float,
        "last_position": float,
        "state": "idle" | "playing" | "seeking",
        "save_error": str | null,
      }
    """
    logger.info("[progress_ws] Client connecting for session_id=%r", session_id)
    try:
        await websocket.accept()
    except Exception as e:
        logger.warning("[progress_ws] accept() failed session_id=%r: %s", session_id, e)
        return
    tracker = store.trackers.get(session_id)
    if tracker is None:
        await websocket.send_json({"error": "Session not found."})
        await websocket.close()
        return

    q = await progress_hub.subscribe(session_id)
    logger.info("[progress_ws] Subscribed session_id=%r", session_id)
    try:
        await websocket.send_json(tracker.snapshot())
        while True:
            payload: dict[str, Any] = await q.get()
            await websocket.send_json(payload)
    except WebSocketDisconnect:
        return
    finally:
        await progress_hub.unsubscribe(session_id, q)
