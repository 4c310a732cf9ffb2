from __future__ import annotations

import os
import random
from datetime import datetime, timedelta, timezone

import pytest

# Must be set before closetguard.core.config is imported
os.environ.setdefault("CLOSETGUARD_LOG_FILE", "")
os.environ.setdefault("CLOSETGUARD_GEMINI_API_KEY", "")

from closetguard.domain.controller import AutomationController
from closetguard.domain.gate import ActuatorGate
from closetguard.domain.history import HistoryBuffer
from closetguard.domain.models import ControlMode, SensorReading, Thresholds
from closetguard.domain.simulator import EnvironmentSimulator
from closetguard.services.control_loop import ControlLoopService

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


class StepClock:
    def __init__(self, start: datetime = T0, step_s: float = 2.0) -> None:
        self.t = start
        self.step = timedelta(seconds=step_s)

    def __call__(self) -> datetime:
        self.t += self.step
        return self.t


class ScriptedDrift:
    """Stands in for random.Random inside tick(): fixed drift per call.

    tick() draws temperature drift first, then humidity drift.
    """

    def __init__(self, humidity: float = 0.0, temperature: float = 0.0) -> None:
        self.humidity = humidity
        self.temperature = temperature
        self._calls = 0

    def uniform(self, a: float, b: float) -> float:
        self._calls += 1
        return self.temperature if self._calls % 2 else self.humidity


def reading(humidity: float = 55.0, mold_index: float = 10.0, temperature: float = 24.5, ts: datetime = T0) -> SensorReading:
    return SensorReading(ts_utc=ts, temperature=temperature, humidity=humidity, mold_index=mold_index)


@pytest.fixture()
def clock() -> StepClock:
    return StepClock()


@pytest.fixture()
def make_loop(clock: StepClock):
    def _make(
        rng=None,
        humidity: float = 55.0,
        mold_index: float = 10.0,
        max_humidity: float = 65.0,
        mode: ControlMode = ControlMode.AUTOMATIC,
        capacity: int = 50,
        tick_seconds: float = 2.0,
        controller: AutomationController | None = None,
    ) -> ControlLoopService:
        simulator = EnvironmentSimulator(
            HistoryBuffer(capacity),
            rng=rng if rng is not None else random.Random(1234),
            clock=clock,
        )
        return ControlLoopService(
            simulator=simulator,
            controller=controller or AutomationController(),
            gate=ActuatorGate(mode=mode, clock=clock),
            initial=reading(humidity=humidity, mold_index=mold_index),
            thresholds=Thresholds(max_humidity_percent=max_humidity),
            tick_seconds=tick_seconds,
        )

    return _make
