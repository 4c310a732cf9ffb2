from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from ..domain.controller import AutomationController
from ..domain.gate import ActuatorGate
from ..domain.models import (
    ActionEvent,
    Actuator,
    ActuatorState,
    ControlMode,
    SensorReading,
    Thresholds,
)
from ..domain.simulator import EnvironmentSimulator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    reading: SensorReading
    history: tuple[SensorReading, ...]
    actuators: ActuatorState
    thresholds: Thresholds
    last_reason: Optional[str]
    ticks: int


class ControlLoopService:
    """
    Fixed-period scheduler for the closed loop:
    simulator tick → (automatic mode) controller → actuators.

    Runs as a single asyncio task; each tick and its controller evaluation
    complete before the next tick starts.
    """

    def __init__(
        self,
        simulator: EnvironmentSimulator,
        controller: AutomationController,
        gate: ActuatorGate,
        initial: SensorReading,
        thresholds: Thresholds,
        tick_seconds: float = 2.0,
    ) -> None:
        self._simulator = simulator
        self._controller = controller
        self._gate = gate
        self._reading = initial
        self._thresholds = thresholds
        self._tick_seconds = tick_seconds

        self._task: Optional[asyncio.Task] = None
        self._stop: Optional[asyncio.Event] = None

        self._ticks = 0
        self._last_reason: Optional[str] = None

    # --- read side ---

    @property
    def reading(self) -> SensorReading:
        return self._reading

    @property
    def thresholds(self) -> Thresholds:
        return self._thresholds

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def history(self, limit: Optional[int] = None) -> tuple[SensorReading, ...]:
        if limit is None:
            return self._simulator.history.snapshot()
        return self._simulator.history.recent(limit)

    def actions(self, limit: Optional[int] = None) -> list[ActionEvent]:
        return self._gate.actions(limit)

    def snapshot(self) -> Snapshot:
        return Snapshot(
            reading=self._reading,
            history=self._simulator.history.snapshot(),
            actuators=self._gate.snapshot(),
            thresholds=self._thresholds,
            last_reason=self._last_reason,
            ticks=self._ticks,
        )

    # --- write side (rendering layer) ---

    def set_thresholds(self, thresholds: Thresholds) -> None:
        self._thresholds = thresholds
        logger.info(
            "Thresholds updated: max_humidity=%.0f%% uv_period=%.0fh",
            thresholds.max_humidity_percent,
            thresholds.uv_trigger_period_hours,
        )

    def toggle_actuator(self, actuator: Actuator) -> bool:
        return self._gate.toggle(actuator)

    def toggle_automation(self) -> ControlMode:
        return self._gate.toggle_automation()

    def set_mode(self, mode: ControlMode) -> ControlMode:
        return self._gate.set_mode(mode)

    def reset_history(self, count: int = 20, spacing_s: float = 3.0) -> None:
        self._simulator.reseed(count, spacing_s)

    # --- loop ---

    def tick_once(self) -> SensorReading:
        """One full cycle: new reading, then (if automatic) controller."""
        actuators = self._gate.snapshot()
        reading = self._simulator.step(self._reading, actuators)
        self._reading = reading
        self._ticks += 1

        decision = self._gate.run_automation(self._controller, reading, self._thresholds)
        if decision is not None:
            self._last_reason = decision.reason
        return reading

    async def start(self) -> None:
        self._stop = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="control_loop")

    async def stop(self) -> None:
        if self._stop:
            self._stop.set()
        if self._task:
            await self._task
            self._task = None

    async def _run(self) -> None:
        assert self._stop is not None
        logger.info("Control loop started (tick_seconds=%s)", self._tick_seconds)

        while not self._stop.is_set():
            # sleep first: the live reading is already current at start-up
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._tick_seconds)
                break
            except asyncio.TimeoutError:
                pass

            try:
                self.tick_once()
            except Exception as e:
                logger.exception("Control loop error: %s", e)

        logger.info("Control loop stopped")
