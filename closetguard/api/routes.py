from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ..core.config import settings
from ..core.timeutil import now_utc
from ..domain.errors import ManualControlRejected, ReportBusy
from ..domain.models import Actuator, ControlMode, SensorReading, Thresholds
from ..services.control_loop import ControlLoopService
from ..services.report import ReportService
from .schemas import HistoryResetRequest, ThresholdsIn

logger = logging.getLogger(__name__)

router = APIRouter()


# --- Dependency getters ---
# main.py swaps these for the real singletons via app.dependency_overrides.
def get_loop() -> ControlLoopService:  # overridden in main
    raise RuntimeError("Control loop dependency not configured")

def get_reports() -> ReportService:  # overridden in main
    raise RuntimeError("Report service dependency not configured")


def _reading_out(r: SensorReading, max_humidity: Optional[float] = None) -> dict:
    out = {
        "ts_utc": r.ts_utc.isoformat(),
        "temperature": r.temperature,
        "humidity": r.humidity,
        "mold_index": r.mold_index,
    }
    if max_humidity is not None:
        out["over_threshold"] = r.humidity > max_humidity
    return out


def _thresholds_out(t: Thresholds) -> dict:
    return {
        "max_humidity_percent": t.max_humidity_percent,
        "uv_trigger_period_hours": t.uv_trigger_period_hours,
    }


def _parse_actuator(name: str) -> Actuator:
    try:
        return Actuator(name)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown actuator: {name}")


@router.get("/live")
async def get_live(svc: ControlLoopService = Depends(get_loop)):
    snap = svc.snapshot()
    r, t, a = snap.reading, snap.thresholds, snap.actuators
    return {
        "app": settings.app_name,
        "now_utc": now_utc().isoformat(),
        "reading": _reading_out(r),
        "status": {
            "humidity": "warning" if r.humidity > t.max_humidity_percent else "normal",
            "mold": "critical" if r.mold_index > settings.mold_critical_index else "normal",
        },
        "actuators": {
            "ventilation": a.ventilation,
            "drying": a.drying,
            "sterilization": a.sterilization,
        },
        "mode": a.mode.value,
        "automation_enabled": a.automation_enabled,
        "thresholds": _thresholds_out(t),
        "controller": {
            "last_reason": snap.last_reason,
            "ticks": snap.ticks,
        },
    }


@router.get("/history")
async def get_history(
    limit: Optional[int] = Query(default=None, ge=1),
    svc: ControlLoopService = Depends(get_loop),
):
    max_h = svc.thresholds.max_humidity_percent
    rows = svc.history(limit)
    return {"count": len(rows), "rows": [_reading_out(r, max_h) for r in rows]}


@router.post("/history/reset")
async def reset_history(
    req: Optional[HistoryResetRequest] = None,
    svc: ControlLoopService = Depends(get_loop),
):
    req = req or HistoryResetRequest(
        count=settings.seed_history_count,
        spacing_s=settings.seed_history_spacing_seconds,
    )
    svc.reset_history(req.count, req.spacing_s)
    return {"ok": True, "count": len(svc.history())}


@router.get("/thresholds")
async def get_thresholds(svc: ControlLoopService = Depends(get_loop)):
    return _thresholds_out(svc.thresholds)


@router.put("/thresholds")
async def put_thresholds(req: ThresholdsIn, svc: ControlLoopService = Depends(get_loop)):
    svc.set_thresholds(
        Thresholds(
            max_humidity_percent=req.max_humidity_percent,
            uv_trigger_period_hours=req.uv_trigger_period_hours,
        )
    )
    return {"ok": True, "thresholds": _thresholds_out(svc.thresholds)}


@router.post("/actuators/{name}/toggle")
async def toggle_actuator(name: str, svc: ControlLoopService = Depends(get_loop)):
    actuator = _parse_actuator(name)
    try:
        state = svc.toggle_actuator(actuator)
    except ManualControlRejected as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "actuator": actuator.value, "state": state}


@router.post("/automation/toggle")
async def automation_toggle(svc: ControlLoopService = Depends(get_loop)):
    mode = svc.toggle_automation()
    return {"ok": True, "mode": mode.value, "automation_enabled": mode is ControlMode.AUTOMATIC}


@router.post("/automation/enable")
async def automation_enable(svc: ControlLoopService = Depends(get_loop)):
    mode = svc.set_mode(ControlMode.AUTOMATIC)
    return {"ok": True, "mode": mode.value, "automation_enabled": True}


@router.post("/automation/disable")
async def automation_disable(svc: ControlLoopService = Depends(get_loop)):
    mode = svc.set_mode(ControlMode.MANUAL)
    return {"ok": True, "mode": mode.value, "automation_enabled": False}


@router.get("/actions")
async def actions(
    limit: int = Query(default=100, ge=1, le=1000),
    svc: ControlLoopService = Depends(get_loop),
):
    return {
        "rows": [
            {
                "ts_utc": a.ts_utc.isoformat(),
                "actuator": a.actuator.value,
                "state": a.state,
                "source": a.source,
                "reason": a.reason,
                "humidity": a.humidity,
                "mold_index": a.mold_index,
            }
            for a in svc.actions(limit)
        ]
    }


# --- Report endpoints ---
@router.post("/report", status_code=202)
async def request_report(
    svc: ControlLoopService = Depends(get_loop),
    reports: ReportService = Depends(get_reports),
):
    snap = svc.snapshot()
    try:
        reports.start(snap.reading, snap.history, snap.thresholds)
    except ReportBusy as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"ok": True, "busy": reports.busy}


@router.get("/report")
async def get_report(reports: ReportService = Depends(get_reports)):
    latest = reports.latest
    return {
        "busy": reports.busy,
        "text": latest.text if latest else None,
        "ok": latest.ok if latest else None,
        "generated_at": latest.generated_at.isoformat() if latest else None,
    }


# --- Settings ---
_SECRET_KEYS = frozenset({"gemini_api_key"})


@router.get("/settings")
async def get_settings():
    current = {}
    for key in type(settings).model_fields:
        value = getattr(settings, key)
        if key in _SECRET_KEYS:
            value = "***" if value else ""
        current[key] = value
    return {"settings": current}
