from fastapi.testclient import TestClient

from app.main import app
from services import store
from services.progress_store import InMemoryProgressStore, set_progress_store


def test_health() -> None:
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_progress_websocket_streams_snapshots() -> None:
    set_progress_store(InMemoryProgressStore())
    store.clear()
    try:
        with TestClient(app) as client:
            created = client.post("/api/sessions", json={"user_scope": "u1", "media_id": "m"})
            assert created.status_code == 201
            session_id = created.json()["session_id"]

            with client.websocket_connect(f"/api/ws/sessions/{session_id}/progress") as ws:
                first = ws.receive_json()
                assert first["intervals"] == []
                client.post(f"/api/sessions/{session_id}/events", json={"type": "metadata_ready", "duration": 20.0})
                update = ws.receive_json()
                assert update["duration"] == 20.0
    finally:
        set_progress_store(None)
        store.clear()


def test_progress_websocket_unknown_session() -> None:
    client = TestClient(app)
    with client.websocket_connect("/api/ws/sessions/missing/progress") as ws:
        assert ws.receive_json() == {"error": "Session not found."}
