import threading
from datetime import datetime, timedelta, timezone

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

import aorb_match.main as m
import aorb_match.routes.match as match_routes
from aorb_match.services.state_machine import MatchState
from aorb_match.services.trigger import MatchTrigger


def _client(store, calls, state=None):
    def fake_round(now):
        calls.append(now)
        return {"matched_pairs": len(calls), "strategy": "stable"}

    trigger = MatchTrigger(state or MatchState(), fake_round, interval_seconds=3600, spawn=lambda fn: fn())
    return TestClient(m.create_app(store=store, trigger=trigger)), trigger


def test_any_request_triggers_due_round_once(store):
    calls = []
    client, _ = _client(store, calls)

    assert client.get("/health").json() == {"status": "ok"}
    assert len(calls) == 1
    assert client.get("/health").status_code == 200
    assert len(calls) == 1

    status = client.get("/match/status").json()
    assert status["status"] == "idle"
    assert status["last_completed_at"] is not None
    assert status["last_failed_at"] is None
    assert status["running_since"] is None


def test_forced_round_requires_admin_token(store, monkeypatch):
    monkeypatch.setattr(match_routes, "ADMIN_TOKEN", "secret")
    calls = []
    client, _ = _client(store, calls)

    assert client.post("/admin/match/run").status_code == 401
    assert client.post("/admin/match/run", headers={"X-Admin-Token": "wrong"}).status_code == 401

    res = client.post("/admin/match/run?wait=true", headers={"X-Admin-Token": "secret"})
    assert res.status_code == 200
    body = res.json()
    assert body["triggered"] is True
    assert body["status"] == "idle"
    assert body["summary"] == {"matched_pairs": 2, "strategy": "stable"}
    assert len(calls) == 2


def test_forced_round_refused_while_running(store, monkeypatch):
    monkeypatch.setattr(match_routes, "ADMIN_TOKEN", "secret")
    state = MatchState()
    state.try_begin(datetime.now(timezone.utc), timedelta(hours=1))
    calls = []
    client, _ = _client(store, calls, state=state)

    res = client.post("/admin/match/run", headers={"X-Admin-Token": "secret"})
    assert res.status_code == 409
    assert calls == []
    assert client.get("/match/status").json()["status"] == "running"


def test_score_report_endpoint(store, populate, monkeypatch):
    monkeypatch.setattr(match_routes, "ADMIN_TOKEN", "secret")
    monkeypatch.setattr(match_routes, "MIN_ANSWERED_FOR_MATCHING", 1)
    populate(
        {1: 0.5, 2: 0.5},
        {
            1: (1, "similar", {1: 0, 2: 0}),
            2: (1, "similar", {1: 1, 2: 0}),
        },
    )
    calls = []
    client, _ = _client(store, calls)

    assert client.get("/admin/match/report").status_code == 401
    report = client.get("/admin/match/report", headers={"X-Admin-Token": "secret"}).json()
    assert report["eligible_users"] == 2
    assert report["candidate_pair_count"] == 1
    assert report["partition"] == {"side_a": 1, "side_b": 1}


def test_heartbeat_triggers_due_round_without_requests(store):
    stop = threading.Event()
    calls = []

    def fake_round(now):
        calls.append(now)
        stop.set()

    trigger = MatchTrigger(MatchState(), fake_round, interval_seconds=3600, spawn=lambda fn: fn())
    m._heartbeat_loop(trigger, stop, 0.01)

    assert len(calls) == 1
    assert trigger.current_status()[0] == "idle"


def test_forced_round_started_by_middleware_is_not_a_conflict(store, monkeypatch):
    monkeypatch.setattr(match_routes, "ADMIN_TOKEN", "secret")
    pending = []
    trigger = MatchTrigger(MatchState(), lambda now: {}, interval_seconds=3600, spawn=pending.append)
    client = TestClient(m.create_app(store=store, trigger=trigger))

    res = client.post("/admin/match/run", headers={"X-Admin-Token": "secret"})
    assert res.status_code == 200
    assert res.json()["triggered"] is True
    assert res.json()["status"] == "running"
    assert len(pending) == 1
