from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .core.config import settings
from .core.log import configure_logging
from .core.timeutil import now_utc

from .api.routes import router as api_router
import closetguard.api.routes as routes_module

from .domain.controller import AutomationController
from .domain.gate import ActuatorGate
from .domain.history import HistoryBuffer, seed_readings
from .domain.models import ControlMode, SensorReading, Thresholds
from .domain.simulator import EnvironmentSimulator
from .drivers.gemini_report import GeminiReportGenerator
from .services.control_loop import ControlLoopService
from .services.report import ReportService


logger = logging.getLogger(__name__)


# --- Singletons ---
rng = random.Random(settings.random_seed)

history = HistoryBuffer(
    settings.history_capacity,
    seed_readings(
        rng,
        now_utc(),
        settings.seed_history_count,
        settings.seed_history_spacing_seconds,
    ),
)
simulator = EnvironmentSimulator(history=history, rng=rng)
controller = AutomationController(
    humidity_hysteresis=settings.humidity_hysteresis,
    mold_on=settings.mold_on_threshold,
    mold_off=settings.mold_off_threshold,
)
gate = ActuatorGate(
    mode=ControlMode.AUTOMATIC if settings.automation_enabled else ControlMode.MANUAL,
    action_log_size=settings.action_log_size,
)
control_loop = ControlLoopService(
    simulator=simulator,
    controller=controller,
    gate=gate,
    initial=SensorReading(
        ts_utc=now_utc(),
        temperature=settings.initial_temperature,
        humidity=settings.initial_humidity,
        mold_index=settings.initial_mold_index,
    ),
    thresholds=Thresholds(
        max_humidity_percent=settings.default_max_humidity_percent,
        uv_trigger_period_hours=settings.default_uv_trigger_period_hours,
    ),
    tick_seconds=settings.tick_seconds,
)
reports = ReportService(
    generator=GeminiReportGenerator(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.report_timeout_seconds,
    ),
    history_window=settings.report_history_window,
)


def get_loop() -> ControlLoopService:
    return control_loop


def get_reports() -> ReportService:
    return reports


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    logger.info(
        "Starting %s (mode=%s, max_humidity=%.0f%%)",
        settings.app_name,
        gate.mode.value,
        control_loop.thresholds.max_humidity_percent,
    )
    if not settings.gemini_api_key:
        logger.warning("No Gemini API key configured; reports will return the fallback text")

    await control_loop.start()

    try:
        yield
    finally:
        await control_loop.stop()
        await reports.stop()
        logger.info("Shutdown complete")


app = FastAPI(title=settings.app_name, lifespan=lifespan)

# Make the dependency functions in routes resolve to the real ones
app.dependency_overrides[routes_module.get_loop] = get_loop
app.dependency_overrides[routes_module.get_reports] = get_reports

app.include_router(api_router, prefix="/api")
