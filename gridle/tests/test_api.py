import asyncio
import time

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

import gridle.api.app as app_module
from gridle.common.config import Settings


def _configure(monkeypatch, tmp_path, **overrides):
    options = {"db_path": str(tmp_path / "api.db"), "enable_tick_loop": False, "api_key": None}
    options.update(overrides)
    monkeypatch.setattr(app_module, "settings", Settings(**options))
    # Each TestClient runs its own event loop.
    monkeypatch.setattr(app_module, "engine_lock", asyncio.Lock())
    monkeypatch.setattr(app_module, "attempt_listeners_lock", asyncio.Lock())


@pytest.fixture
def client(tmp_path, monkeypatch):
    _configure(monkeypatch, tmp_path)
    with TestClient(app_module.app) as test_client:
        yield test_client

def test_challenge_for_date(client):
    resp = client.get("/challenge/2024-01-01")
    assert resp.status_code == 200
    assert resp.json() == {
        "date": "2024-01-01",
        "seed": 1778108650,
        "cols": 12,
        "rows": 34,
        "opponent_count": 4,
        "ticks_per_second": 15,
    }


@pytest.mark.parametrize("bad", ["2024-13-01", "yesterday", "2023-02-29"])
def test_challenge_rejects_bad_dates(client, bad):
    assert client.get(f"/challenge/{bad}").status_code == 400


def test_challenge_today(client):
    body = client.get("/challenge/today").json()
    assert 12 <= body["cols"] <= 20


def test_attempt_flow(client):
    started = client.post("/attempts", json={"date": "2024-01-01"}).json()
    attempt_id = started["attempt_id"]
    assert started["challenge"]["opponent_count"] == 4

    state = client.get(f"/attempts/{attempt_id}").json()
    assert state["status"] == "running"
    assert state["player"]["pos"] == [3, 6]
    assert len(state["opponents"]) == 4

    resp = client.post(f"/attempts/{attempt_id}/heading", json={"direction": "LEFT"}).json()
    assert resp == {"accepted": False, "heading": "RIGHT"}
    resp = client.post(f"/attempts/{attempt_id}/heading", json={"direction": "DOWN"}).json()
    assert resp == {"accepted": True, "heading": "DOWN"}

    state = client.post(f"/attempts/{attempt_id}/tick").json()
    assert state["tick"] == 1
    assert state["player"]["pos"] == [3, 7]
    assert state["trails"][7][3] == "#00f3ff"

    assert client.post(f"/attempts/{attempt_id}/pause").json()["status"] == "paused"
    assert client.post(f"/attempts/{attempt_id}/pause").status_code == 409
    assert client.post(f"/attempts/{attempt_id}/tick").json()["tick"] == 1
    assert client.post(f"/attempts/{attempt_id}/resume").json()["status"] == "running"

    share = client.get(f"/attempts/{attempt_id}/share").json()["text"]
    assert share.startswith("Gridle 2024-01-01")

    assert client.post(f"/attempts/{attempt_id}/abandon").json()["status"] == "abandoned"
    assert client.post(f"/attempts/{attempt_id}/abandon").status_code == 409

    history = client.get("/history").json()
    assert history[0]["attempt_id"] == attempt_id
    assert history[0]["status"] == "abandoned"


def test_start_attempt_without_body(client):
    resp = client.post("/attempts")
    assert resp.status_code == 200
    assert resp.json()["attempt_id"]


def test_invalid_heading_value(client):
    attempt_id = client.post("/attempts").json()["attempt_id"]
    resp = client.post(f"/attempts/{attempt_id}/heading", json={"direction": "NORTH"})
    assert resp.status_code == 422


def test_unknown_attempt(client):
    assert client.get("/attempts/missing").status_code == 404
    assert client.post("/attempts/missing/tick").status_code == 404


def test_streak_and_countdown(client):
    assert client.get("/streak").json() == {
        "streak": 0,
        "last_win_date": None,
        "last_win_ms": None,
    }
    body = client.get("/countdown").json()
    assert body["next_challenge_at"].endswith("00:00:00+00:00")
    assert len(body["remaining"]) == 8


def test_api_key_enforced(tmp_path, monkeypatch):
    _configure(monkeypatch, tmp_path, api_key="secret")
    with TestClient(app_module.app) as client:
        assert client.get("/challenge/2024-01-01").status_code == 401
        resp = client.get("/challenge/2024-01-01", headers={"X-Api-Key": "secret"})
        assert resp.status_code == 200


def test_websocket_streams_snapshots_until_loss(client):
    attempt_id = client.post("/attempts", json={"date": "2024-01-01"}).json()["attempt_id"]
    with client.websocket_connect(f"/attempts/{attempt_id}/ws") as ws:
        initial = ws.receive_json()
        assert initial["attempt_id"] == attempt_id
        assert initial["status"] == "running"
        assert initial["tick"] == 0
        assert initial["player"]["pos"] == [3, 6]

        client.post(f"/attempts/{attempt_id}/heading", json={"direction": "UP"})
        for _ in range(7):
            last = client.post(f"/attempts/{attempt_id}/tick").json()
        assert last["status"] == "lost"
        assert last["events"]["deaths"] == ["player"]

        # Snapshots are latest-only, so intermediate ticks may be skipped.
        received = ws.receive_json()
        while received["status"] == "running":
            received = ws.receive_json()
        assert received["status"] == "lost"
        assert received["tick"] == 7
        assert received["player"]["pos"] == [3, 0]


def test_websocket_unknown_attempt_closes(client):
    with pytest.raises(WebSocketDisconnect) as excinfo:
        with client.websocket_connect("/attempts/missing/ws") as ws:
            ws.receive_json()
    assert excinfo.value.code == 4404


def test_tick_loop_runs_attempt_to_completion(tmp_path, monkeypatch):
    _configure(monkeypatch, tmp_path, enable_tick_loop=True)
    with TestClient(app_module.app) as client:
        attempt_id = client.post("/attempts", json={"date": "2024-01-01"}).json()["attempt_id"]
        deadline = time.monotonic() + 10
        state = client.get(f"/attempts/{attempt_id}").json()
        while state["status"] == "running" and time.monotonic() < deadline:
            time.sleep(0.05)
            state = client.get(f"/attempts/{attempt_id}").json()

        # Heading RIGHT from (3, 6) on a 12-column grid reaches the wall on tick 9.
        assert state["status"] == "lost"
        assert state["tick"] == 9
        assert state["player"]["pos"] == [11, 6]

        while attempt_id in app_module.tick_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        assert attempt_id not in app_module.tick_tasks

        history = client.get("/history").json()
        assert history[0]["attempt_id"] == attempt_id
        assert history[0]["ticks"] == 9


def test_archived_win_leaves_streak_alone(client):
    attempt_id = client.post("/attempts", json={"date": "2020-06-15"}).json()["attempt_id"]
    attempt = app_module.manager.get(attempt_id)
    for bot in attempt.opponents:
        bot.alive = False
    assert client.post(f"/attempts/{attempt_id}/tick").json()["status"] == "won"
    assert client.get("/streak").json()["streak"] == 0


def test_history_cap_comes_from_settings(tmp_path, monkeypatch):
    _configure(monkeypatch, tmp_path, history_max_rows=2)
    with TestClient(app_module.app) as client:
        ids = []
        for _ in range(3):
            attempt_id = client.post("/attempts", json={"date": "2024-01-01"}).json()["attempt_id"]
            client.post(f"/attempts/{attempt_id}/abandon")
            ids.append(attempt_id)
        history = client.get("/history").json()
        assert [row["attempt_id"] for row in history] == [ids[2], ids[1]]
