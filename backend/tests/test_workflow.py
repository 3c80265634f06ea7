from __future__ import annotations

import datetime as dt
import json

from fastapi.testclient import TestClient

from hourglass.config import settings
from hourglass.errors import StoreWriteError
from hourglass.gemini import GeminiError
from hourglass.main import app, get_gemini_client
from hourglass.state import RuntimeState


def _seed_logs(client: TestClient) -> None:
    for day, hours in (("2024-01-01", 3), ("2024-01-01", 2), ("2024-01-02", 5)):
        resp = client.post("/logs", json={"hours": hours, "date": day})
        assert resp.status_code == 201


def test_manual_logging_and_stats(client: TestClient) -> None:
    _seed_logs(client)

    logs = client.get("/logs").json()
    assert logs == [
        {"date": "2024-01-01", "hours": 3.0},
        {"date": "2024-01-01", "hours": 2.0},
        {"date": "2024-01-02", "hours": 5.0},
    ]

    stats = client.get("/stats").json()
    assert stats["totalHours"] == 10
    assert stats["remainingHours"] == 9990
    assert stats["dailyAverageHours"] == 5
    assert stats["activeDays"] == 2
    assert stats["entryCount"] == 3
    assert stats["totalReadable"] == "10 hours"
    assert stats["dailyTotals"] == [
        {"date": "2024-01-01", "hours": 5.0},
        {"date": "2024-01-02", "hours": 5.0},
    ]
    assert stats["level"]["level"] == 2
    assert stats["level"]["title"] == "Novice"

    level = client.get("/level").json()
    assert level == stats["level"]


def test_manual_entry_defaults_to_today(client: TestClient) -> None:
    resp = client.post("/logs", json={"hours": 1.5})
    assert resp.status_code == 201
    assert dt.date.fromisoformat(resp.json()["date"]) >= dt.date(2024, 1, 1)


def test_manual_entry_limits(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "max_manual_hours", 16.0)
    too_many = client.post("/logs", json={"hours": 20})
    assert too_many.status_code == 400
    assert too_many.json()["detail"] == "Daily cap is 16 hours."
    assert client.post("/logs", json={"hours": 0}).status_code == 422
    assert client.get("/logs").json() == []


def test_projection_from_historical_pace(client: TestClient) -> None:
    _seed_logs(client)
    resp = client.post("/projection", json={"fixedDailyHours": None, "now": "2024-01-01T00:00:00Z"})
    assert resp.status_code == 200
    data = resp.json()
    assert data["effectivePace"] == 5
    assert data["remainingDays"] == 1998
    expected = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc) + dt.timedelta(days=1998)
    assert dt.datetime.fromisoformat(data["estimatedEndDate"]) == expected
    assert data["narrative"] is None


def test_projection_uses_configured_fixed_pace_by_default(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(settings, "default_fixed_daily_hours", 16.0)
    _seed_logs(client)
    data = client.post("/projection", json={"now": "2024-01-01T00:00:00Z"}).json()
    assert data["effectivePace"] == 16
    assert data["fixedDailyHours"] == 16
    assert data["remainingDays"] == 625  # ceil(9990 / 16)


def test_projection_with_explicit_inputs(client: TestClient) -> None:
    resp = client.post(
        "/projection",
        json={
            "totalHoursLogged": 9999,
            "dailyAverageHours": 1,
            "fixedDailyHours": None,
            "now": "2024-01-01T00:00:00Z",
        },
    )
    data = resp.json()
    assert data["remainingDays"] == 1
    assert data["estimatedEndDate"] == "2024-01-02T00:00:00+00:00"


def test_projection_when_goal_is_reached(client: TestClient) -> None:
    data = client.post(
        "/projection",
        json={"totalHoursLogged": 10000, "dailyAverageHours": 0, "now": "2024-03-01T08:00:00Z"},
    ).json()
    assert data["remainingDays"] == 0
    assert data["estimatedEndDate"] == "2024-03-01T08:00:00+00:00"


def test_projection_without_pace_is_rejected(client: TestClient) -> None:
    resp = client.post("/projection", json={"fixedDailyHours": None})
    assert resp.status_code == 422
    assert resp.json()["detail"] == "Cannot project with zero or negative daily hours."

    resp = client.post("/projection", json={"fixedDailyHours": 0, "dailyAverageHours": 3})
    assert resp.status_code == 422


class _Narrator:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    def describe_projection(self, total, average, fixed, result):
        self.calls.append((total, average, fixed, result.remaining_days))
        if self.fail:
            raise GeminiError("rate_limited")
        return "About 500 more days at this pace."


def test_projection_narrative_is_decoration_only(client: TestClient) -> None:
    narrator = _Narrator()
    app.dependency_overrides[get_gemini_client] = lambda: narrator
    payload = {"totalHoursLogged": 5000, "dailyAverageHours": 2, "fixedDailyHours": 10, "narrate": True}
    data = client.post("/projection", json=payload).json()
    assert data["narrative"] == "About 500 more days at this pace."
    assert data["remainingDays"] == 500
    assert narrator.calls == [(5000, 2, 10, 500)]


def test_projection_survives_narrative_failure(client: TestClient) -> None:
    app.dependency_overrides[get_gemini_client] = lambda: _Narrator(fail=True)
    payload = {"totalHoursLogged": 5000, "dailyAverageHours": 2, "fixedDailyHours": 10, "narrate": True}
    resp = client.post("/projection", json=payload)
    assert resp.status_code == 200
    assert resp.json()["narrative"] is None
    assert resp.json()["remainingDays"] == 500


def test_timer_flow_logs_elapsed_hours(client: TestClient, clock) -> None:
    assert client.get("/timer").json()["state"] == "idle"
    assert client.post("/timer/start").json()["state"] == "running"
    clock.advance(1800)

    running_log = client.post("/timer/log")
    assert running_log.status_code == 409

    paused = client.post("/timer/pause").json()
    assert paused == {"state": "paused", "elapsedSeconds": 1800, "elapsedHours": 0.5, "display": "00:30:00"}

    logged = client.post("/timer/log")
    assert logged.status_code == 201
    assert logged.json()["entry"]["hours"] == 0.5
    assert logged.json()["timer"]["state"] == "idle"
    assert client.get("/stats").json()["totalHours"] == 0.5

    assert client.post("/timer/log").status_code == 409
    assert client.post("/timer/pause").status_code == 409


def test_timer_reset_discards_time(client: TestClient, clock) -> None:
    client.post("/timer/start")
    clock.advance(90)
    client.post("/timer/pause")
    client.post("/timer/resume")
    clock.advance(10)
    assert client.get("/timer").json()["elapsedSeconds"] == 100
    assert client.post("/timer/reset").json()["elapsedSeconds"] == 0
    assert client.get("/logs").json() == []


def test_project_lifecycle(client: TestClient) -> None:
    created = client.post("/projects", json={"name": "  Thesis ", "deadline": "2099-01-01T00:00:00Z"})
    assert created.status_code == 201
    project = created.json()
    assert project["name"] == "Thesis"
    assert project["isActive"] is False
    project_id = project["id"]

    client.post("/projects", json={"name": "Marathon", "deadline": "2099-06-01T00:00:00Z"})
    names = [p["name"] for p in client.get("/projects").json()]
    assert names == ["Thesis", "Marathon"]

    assert client.get("/projects/active/countdowns").json() == []

    toggled = client.post(f"/projects/{project_id}/toggle").json()
    assert toggled["isActive"] is True
    countdowns = client.get("/projects/active/countdowns").json()
    assert [c["project"]["id"] for c in countdowns] == [project_id]
    assert countdowns[0]["isPastDeadline"] is False
    assert 0 <= countdowns[0]["percentElapsed"] <= 100

    patched = client.patch(f"/projects/{project_id}", json={"isActive": False}).json()
    assert patched["isActive"] is False


def test_countdown_for_expired_project(client: TestClient) -> None:
    project = client.post("/projects", json={"name": "Old", "deadline": "2000-01-01T00:00:00Z"}).json()
    data = client.get(f"/projects/{project['id']}/countdown").json()
    assert data["isPastDeadline"] is True
    assert data["percentElapsed"] == 100
    assert data["label"] == "Deadline Passed"
    assert data["remaining"] == {"days": 0, "hours": 0, "minutes": 0, "seconds": 0}


def test_unknown_project_and_blank_name(client: TestClient) -> None:
    assert client.post("/projects/missing/toggle").status_code == 404
    assert client.patch("/projects/missing", json={"isActive": True}).status_code == 404
    assert client.get("/projects/missing/countdown").status_code == 404
    blank = client.post("/projects", json={"name": "   ", "deadline": "2099-01-01T00:00:00Z"})
    assert blank.status_code == 400


def test_export_reset_and_import(client: TestClient) -> None:
    _seed_logs(client)
    client.post("/projects", json={"name": "Thesis", "deadline": "2099-01-01T00:00:00Z"})

    exported = client.get("/data/export")
    assert exported.status_code == 200
    assert "hourglass-horizons-backup.json" in exported.headers["content-disposition"]
    backup = json.loads(exported.content)
    assert backup["totalHours"] == 10
    assert len(backup["projects"]) == 1

    reset = client.post("/data/reset").json()
    assert reset == {"logs": [], "projects": [], "totalHours": 0.0}
    assert client.get("/stats").json()["totalHours"] == 0

    restored = client.post("/data/import", json=backup)
    assert restored.status_code == 200
    assert client.get("/logs").json() == backup["logs"]
    assert client.get("/projects").json() == backup["projects"]
    assert client.get("/stats").json()["totalHours"] == 10


def test_import_rejects_malformed_backup(client: TestClient) -> None:
    resp = client.post("/data/import", json={"logs": [{"date": "yesterday", "hours": 1}]})
    assert resp.status_code == 422


def test_import_rejects_wrongly_shaped_logs(client: TestClient) -> None:
    assert client.post("/data/import", json={"logs": 5}).status_code == 422
    resp = client.post("/data/import", json={"logs": [{"date": "2024-01-01", "hours": [1]}]})
    assert resp.status_code == 422


def test_import_rejects_total_that_disagrees_with_logs(client: TestClient) -> None:
    client.post("/logs", json={"hours": 1, "date": "2024-01-01"})
    resp = client.post(
        "/data/import",
        json={"logs": [{"date": "2024-01-01", "hours": 3}], "totalHours": 9000},
    )
    assert resp.status_code == 422
    assert client.get("/stats").json()["totalHours"] == 1


def test_reload_of_wrongly_shaped_store_is_unavailable(client: TestClient, store_path) -> None:
    store_path.write_text(json.dumps({"logs": 5}), encoding="utf-8")
    assert client.post("/data/reload").status_code == 503


def test_failed_save_keeps_state(client: TestClient, state: RuntimeState, monkeypatch) -> None:
    client.post("/logs", json={"hours": 1, "date": "2024-01-01"})

    def failing_write(document):
        raise StoreWriteError("disk full")

    monkeypatch.setattr(state.store, "write", failing_write)
    resp = client.post("/logs", json={"hours": 2, "date": "2024-01-02"})
    assert resp.status_code == 503
    assert resp.json()["detail"].startswith("Could not save your data.")
    assert client.get("/stats").json()["totalHours"] == 1


def test_reload_after_external_change(client: TestClient, store_path) -> None:
    store_path.write_text(json.dumps({"logs": [{"date": "2024-02-02", "hours": 4}]}), encoding="utf-8")
    reloaded = client.post("/data/reload").json()
    assert reloaded["totalHours"] == 4
    assert client.get("/healthz").json() == {"status": "ok", "store": "loaded"}


def test_reload_of_corrupt_store_is_unavailable(client: TestClient, store_path) -> None:
    store_path.write_text("{oops", encoding="utf-8")
    resp = client.post("/data/reload")
    assert resp.status_code == 503
