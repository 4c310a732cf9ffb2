from __future__ import annotations

import time

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import closetguard.api.routes as routes_module
from closetguard.api.routes import router
from closetguard.services.report import REPORT_FAILED_TEXT, ReportService

from conftest import ScriptedDrift


class FakeGenerator:
    async def generate(self, prompt: str, system_instruction: str) -> str:
        return "Keep the door ajar."


class BrokenGenerator:
    async def generate(self, prompt: str, system_instruction: str) -> str:
        raise RuntimeError("service unavailable")


@pytest.fixture()
def loop_svc(make_loop):
    return make_loop(rng=ScriptedDrift(), humidity=55.0)


def _make_app(loop_svc, reports: ReportService) -> FastAPI:
    app = FastAPI()
    app.dependency_overrides[routes_module.get_loop] = lambda: loop_svc
    app.dependency_overrides[routes_module.get_reports] = lambda: reports
    app.include_router(router, prefix="/api")
    return app


@pytest.fixture()
def client(loop_svc) -> TestClient:
    return TestClient(_make_app(loop_svc, ReportService(FakeGenerator())))


def test_live_snapshot(client: TestClient) -> None:
    body = client.get("/api/live").json()

    assert body["reading"]["humidity"] == 55.0
    assert body["status"] == {"humidity": "normal", "mold": "normal"}
    assert body["actuators"] == {"ventilation": False, "drying": False, "sterilization": False}
    assert body["mode"] == "automatic"
    assert body["automation_enabled"] is True
    assert body["thresholds"]["max_humidity_percent"] == 65.0


def test_live_status_flags(make_loop) -> None:
    svc = make_loop(humidity=70.0, mold_index=60.0)
    body = TestClient(_make_app(svc, ReportService(FakeGenerator()))).get("/api/live").json()
    assert body["status"] == {"humidity": "warning", "mold": "critical"}


def test_toggle_rejected_while_automatic(client: TestClient, loop_svc) -> None:
    resp = client.post("/api/actuators/ventilation/toggle")

    assert resp.status_code == 409
    assert "automation" in resp.json()["detail"]
    assert not loop_svc.snapshot().actuators.ventilation


def test_toggle_after_disabling_automation(client: TestClient) -> None:
    assert client.post("/api/automation/disable").json()["automation_enabled"] is False

    resp = client.post("/api/actuators/sterilization/toggle")
    assert resp.status_code == 200
    assert resp.json() == {"ok": True, "actuator": "sterilization", "state": True}

    live = client.get("/api/live").json()
    assert live["actuators"]["sterilization"] is True
    assert live["mode"] == "manual"

    actions = client.get("/api/actions").json()["rows"]
    assert actions[-1]["source"] == "manual"


def test_automation_toggle_and_enable(client: TestClient) -> None:
    assert client.post("/api/automation/toggle").json()["mode"] == "manual"
    assert client.post("/api/automation/toggle").json()["mode"] == "automatic"
    assert client.post("/api/automation/enable").json()["automation_enabled"] is True


def test_unknown_actuator(client: TestClient) -> None:
    client.post("/api/automation/disable")
    assert client.post("/api/actuators/heater/toggle").status_code == 404


def test_thresholds_update_and_validation(client: TestClient, loop_svc) -> None:
    resp = client.put("/api/thresholds", json={"max_humidity_percent": 50, "uv_trigger_period_hours": 12})
    assert resp.status_code == 200
    assert client.get("/api/thresholds").json() == {
        "max_humidity_percent": 50.0,
        "uv_trigger_period_hours": 12.0,
    }

    loop_svc.tick_once()
    assert client.get("/api/live").json()["actuators"]["drying"] is True

    assert client.put("/api/thresholds", json={"max_humidity_percent": 95}).status_code == 422
    assert client.put("/api/thresholds", json={"max_humidity_percent": 20}).status_code == 422


def test_history_and_reset(client: TestClient, loop_svc) -> None:
    for _ in range(8):
        loop_svc.tick_once()

    body = client.get("/api/history").json()
    assert body["count"] == 8
    assert body["rows"][0]["over_threshold"] is False

    assert client.get("/api/history", params={"limit": 3}).json()["count"] == 3

    resp = client.post("/api/history/reset")
    assert resp.json() == {"ok": True, "count": 20}

    resp = client.post("/api/history/reset", json={"count": 5, "spacing_s": 1.0})
    assert resp.json()["count"] == 5


def test_report_roundtrip(loop_svc) -> None:
    reports = ReportService(FakeGenerator())
    with TestClient(_make_app(loop_svc, reports)) as client:
        assert client.get("/api/report").json()["text"] is None

        assert client.post("/api/report").status_code == 202
        for _ in range(100):
            body = client.get("/api/report").json()
            if not body["busy"] and body["text"]:
                break
            time.sleep(0.01)

    assert body["text"] == "Keep the door ajar."
    assert body["ok"] is True


def test_report_failure_is_not_an_error(loop_svc) -> None:
    reports = ReportService(BrokenGenerator())
    with TestClient(_make_app(loop_svc, reports)) as client:
        assert client.post("/api/report").status_code == 202
        for _ in range(100):
            body = client.get("/api/report").json()
            if not body["busy"] and body["text"]:
                break
            time.sleep(0.01)

    assert body["text"] == REPORT_FAILED_TEXT
    assert body["ok"] is False


def test_settings_masks_api_key(client: TestClient, monkeypatch) -> None:
    monkeypatch.setattr(routes_module.settings, "gemini_api_key", "top-secret")
    body = client.get("/api/settings").json()["settings"]
    assert body["gemini_api_key"] == "***"
    assert body["history_capacity"] == 50


def test_main_app_starts_and_serves() -> None:
    from closetguard import main

    with TestClient(main.app) as client:
        assert main.control_loop.running
        body = client.get("/api/live").json()
        assert body["thresholds"]["max_humidity_percent"] == 65.0
        assert len(client.get("/api/history").json()["rows"]) == 20

    assert not main.control_loop.running
