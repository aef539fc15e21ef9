from datetime import datetime

import pytest
from fastapi.testclient import TestClient

import web.backend.routers.common as common
from conftest import TODAY
from momentum.persona_service import PersonaService
from momentum.store import RecordStore
from web.backend.app import create_app

DAILY = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


@pytest.fixture
def client(isolated_runtime, monkeypatch):
    def _service():
        # fresh store per request, like the real dependency
        return PersonaService(
            store=RecordStore(path=isolated_runtime.records_path),
            event_log_path=isolated_runtime.event_log,
            today_provider=lambda: TODAY,
        )

    monkeypatch.setattr(common, "get_persona_service", _service)
    return TestClient(create_app())


@pytest.fixture
def seeded(isolated_runtime):
    store = RecordStore(path=isolated_runtime.records_path)
    persona = store.add_persona("Writer", created_at=datetime(2026, 10, 1, 9, 0))
    benchmark = store.add_benchmark(persona.id, "Finish draft")
    action = store.add_action(benchmark.id, "Write 500 words", DAILY)
    return persona, benchmark, action


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"


def test_onboard_then_list(client):
    resp = client.post("/api/v1/personas/onboard", json={
        "name": "Runner",
        "benchmarks": [{"title": "10k", "actions": [{"title": "Run", "frequency": ["Mon", "Thu"]}]}],
    })
    assert resp.status_code == 200
    body = resp.json()
    assert body["persona"]["name"] == "Runner"
    assert body["actions"][0]["frequency"] == ["Monday", "Thursday"]

    listing = client.get("/api/v1/personas").json()
    assert listing["has_onboarded"] is True
    assert listing["active_persona_id"] == body["persona"]["id"]


def test_toggle_returns_log_and_scores(client, seeded):
    persona, _, action = seeded

    resp = client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-18"})

    assert resp.status_code == 200
    body = resp.json()
    assert body["log"]["status"] is True
    assert body["log"]["log_date"] == "2026-10-18"
    assert body["scores"]["momentum"] == 14

    again = client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-18T10:00:00"}).json()
    assert again["log"]["id"] == body["log"]["id"]
    assert again["log"]["status"] is False

    scores = client.get(f"/api/v1/personas/{persona.id}/scores").json()
    assert scores["momentum"] == 0


def test_toggle_unknown_action_is_404(client, seeded):
    resp = client.post("/api/v1/actions/act_missing/toggle", json={"date": "2026-10-18"})
    assert resp.status_code == 404


def test_calendar_month_and_day(client, seeded):
    persona, _, action = seeded
    client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-17"})
    client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-18"})

    month = client.get(f"/api/v1/calendar/{persona.id}", params={"year": 2026, "month": 10}).json()
    assert len(month["days"]) == 42
    by_date = {d["date"]: d for d in month["days"]}
    assert by_date["2026-10-18"]["has_streak"] is True
    assert by_date["2026-10-18"]["is_today"] is True
    assert by_date["2026-10-16"]["state"] == "missed"

    day = client.get(f"/api/v1/calendar/{persona.id}/days/2026-10-18").json()
    assert day["completed_count"] == 1
    assert day["actions"][0]["title"] == "Write 500 words"


def test_calendar_rejects_bad_month(client, seeded):
    persona, _, _ = seeded
    resp = client.get(f"/api/v1/calendar/{persona.id}", params={"year": 2026, "month": 13})
    assert resp.status_code == 400


def test_calendar_toggle_refuses_future_day(client, seeded):
    persona, _, action = seeded

    resp = client.post(
        f"/api/v1/calendar/{persona.id}/days/2026-10-19/toggle",
        json={"action_id": action.id},
    )

    assert resp.status_code == 400
    assert "future" in resp.json()["detail"].lower()
    day = client.get(f"/api/v1/calendar/{persona.id}/days/2026-10-19").json()
    assert day["completed_count"] == 0


def test_calendar_toggle_requires_action_of_persona(client, seeded, isolated_runtime):
    _, _, action = seeded
    other = RecordStore(path=isolated_runtime.records_path).add_persona("Runner")

    resp = client.post(
        f"/api/v1/calendar/{other.id}/days/2026-10-18/toggle",
        json={"action_id": action.id},
    )
    assert resp.status_code == 404


def test_delete_benchmark_cascades(client, seeded):
    persona, benchmark, action = seeded
    client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-18"})

    resp = client.delete(f"/api/v1/benchmarks/{benchmark.id}")

    assert resp.status_code == 200
    assert resp.json()["scores"]["momentum"] == 0
    detail = client.get(f"/api/v1/personas/{persona.id}").json()
    assert detail["benchmarks"] == []
    assert detail["actions"] == []
    assert detail["logs"] == []
    assert client.delete(f"/api/v1/benchmarks/{benchmark.id}").status_code == 404


def test_progress_and_context(client, seeded):
    persona, benchmark, action = seeded
    client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-18"})

    progress = client.get(f"/api/v1/personas/{persona.id}/progress").json()
    assert progress["benchmarks"][0]["benchmark_id"] == benchmark.id
    assert progress["benchmarks"][0]["progress"] == 6  # 1 of 18

    context = client.get(f"/api/v1/personas/{persona.id}/context").json()
    assert context["current_streak"] == 1
    assert context["monthly"]["persona_stage"] == "building"


def test_reflections(client, seeded):
    resp = client.post("/api/v1/reflections", json={
        "period_type": "weekly",
        "user_input": "Slow week",
        "ai_feedback": "Try the two-minute version",
    })
    assert resp.status_code == 200
    assert resp.json()["reflection"]["momentum_score"] == 0

    bad = client.post("/api/v1/reflections", json={"period_type": "weekly", "momentum_score": 150})
    assert bad.status_code == 400

    listing = client.get("/api/v1/reflections").json()
    assert len(listing["reflections"]) == 1


def test_action_toggle_refuses_future_day(client, seeded):
    persona, _, action = seeded

    resp = client.post(f"/api/v1/actions/{action.id}/toggle", json={"date": "2026-10-21"})

    assert resp.status_code == 400
    month = client.get(f"/api/v1/calendar/{persona.id}", params={"year": 2026, "month": 10}).json()
    by_date = {d["date"]: d for d in month["days"]}
    assert by_date["2026-10-21"]["completed_count"] == 0
    assert by_date["2026-10-21"]["state"] == "neutral"


def test_calendar_month_zero_is_rejected(client, seeded):
    persona, _, _ = seeded
    resp = client.get(f"/api/v1/calendar/{persona.id}", params={"year": 2026, "month": 0})
    assert resp.status_code == 400


def test_duplicate_persona_name_is_rejected(client, seeded):
    resp = client.post("/api/v1/personas", json={"name": "Writer"})
    assert resp.status_code == 400
    assert len(client.get("/api/v1/personas").json()["personas"]) == 1
