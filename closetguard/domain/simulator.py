from __future__ import annotations
import logging
import random
from datetime import datetime, timedelta
from typing import Callable, Optional

from .history import HistoryBuffer, seed_readings
from .models import ActuatorState, SensorReading
from ..core.timeutil import now_utc

logger = logging.getLogger(__name__)

# Per-tick effects
TEMP_DRIFT = 0.05
HUMIDITY_DRIFT = 0.25

VENT_HUMIDITY = -0.4
VENT_TEMP = -0.05
DRYER_HUMIDITY = -1.2
DRYER_TEMP = 0.1
UV_MOLD = -2.0
UV_TEMP = 0.05

MOLD_GROWTH_HUMID = 70.0
MOLD_GROWTH_HUMID_STEP = 0.5
MOLD_GROWTH_WET = 80.0
MOLD_GROWTH_WET_STEP = 1.0  # stacks with the humid step

HUMIDITY_MIN, HUMIDITY_MAX = 30.0, 99.0
MOLD_MIN, MOLD_MAX = 0.0, 100.0

_MIN_STEP = timedelta(microseconds=1)


def _clamp(v: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, v))


def tick(
    previous: SensorReading,
    actuators: ActuatorState,
    rng: random.Random,
    ts: datetime,
) -> SensorReading:
    """Advance the closet by one step.

    Pure apart from the draws taken from `rng`. Humidity and mold index are
    clamped to their valid ranges; temperature is left unclamped.
    """
    temperature = previous.temperature + rng.uniform(-TEMP_DRIFT, TEMP_DRIFT)
    humidity = previous.humidity + rng.uniform(-HUMIDITY_DRIFT, HUMIDITY_DRIFT)
    mold = previous.mold_index

    if actuators.ventilation:
        humidity += VENT_HUMIDITY
        temperature += VENT_TEMP

    if actuators.drying:
        humidity += DRYER_HUMIDITY
        temperature += DRYER_TEMP

    if actuators.sterilization:
        mold += UV_MOLD
        temperature += UV_TEMP
    else:
        if humidity > MOLD_GROWTH_HUMID:
            mold += MOLD_GROWTH_HUMID_STEP
        if humidity > MOLD_GROWTH_WET:
            mold += MOLD_GROWTH_WET_STEP

    # Timestamps never go backwards, even if the wall clock does
    if ts <= previous.ts_utc:
        ts = previous.ts_utc + _MIN_STEP

    return SensorReading(
        ts_utc=ts,
        temperature=temperature,
        humidity=_clamp(humidity, HUMIDITY_MIN, HUMIDITY_MAX),
        mold_index=_clamp(mold, MOLD_MIN, MOLD_MAX),
    )


class EnvironmentSimulator:
    """Produces readings from `tick` and is the only writer of the history."""

    def __init__(
        self,
        history: HistoryBuffer,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self.history = history
        self.rng = rng if rng is not None else random.Random()
        self._clock = clock

    def step(self, previous: SensorReading, actuators: ActuatorState) -> SensorReading:
        reading = tick(previous, actuators, self.rng, self._clock())
        self.history.append(reading)
        logger.debug(
            "tick: temp=%.2f hum=%.2f mold=%.2f (fan=%s dryer=%s uv=%s)",
            reading.temperature,
            reading.humidity,
            reading.mold_index,
            actuators.ventilation,
            actuators.drying,
            actuators.sterilization,
        )
        return reading

    def reseed(self, count: int, spacing_s: float) -> None:
        """Replace the history with a fresh synthetic sequence."""
        self.history.replace(seed_readings(self.rng, self._clock(), count, spacing_s))
        logger.info("History reseeded with %d synthetic readings", count)
