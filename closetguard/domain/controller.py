from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Optional

from .models import ActuatorState, ControlDecision, SensorReading, Thresholds

logger = logging.getLogger(__name__)


def decide(
    reading: SensorReading,
    current: ActuatorState,
    thresholds: Thresholds,
    humidity_hysteresis: float = 5.0,
    mold_on: float = 40.0,
    mold_off: float = 5.0,
) -> ControlDecision:
    """
    Compute the next actuator booleans from the latest reading.

    Two independent hysteresis loops:
      - humidity > max               → ventilation + drying ON
      - humidity < max - hysteresis  → ventilation + drying OFF
      - mold > mold_on               → sterilization ON
      - mold < mold_off              → sterilization OFF
    Anything inside a dead band holds the current state.
    """
    vent, dry, uv = current.ventilation, current.drying, current.sterilization
    reasons: list[str] = []

    hum_on = thresholds.max_humidity_percent
    hum_off = hum_on - humidity_hysteresis

    if reading.humidity > hum_on:
        if not (vent and dry):
            vent = dry = True
            reasons.append(f"Humidity {reading.humidity:.1f}% above max ({hum_on:.0f}%)")
    elif reading.humidity < hum_off:
        if vent or dry:
            vent = dry = False
            reasons.append(f"Humidity {reading.humidity:.1f}% below max-hys ({hum_off:.0f}%)")

    if reading.mold_index > mold_on and not uv:
        uv = True
        reasons.append(f"Mold index {reading.mold_index:.1f} above {mold_on:.0f}")
    elif reading.mold_index < mold_off and uv:
        uv = False
        reasons.append(f"Mold index {reading.mold_index:.1f} below {mold_off:.0f}")

    return ControlDecision(
        ventilation=vent,
        drying=dry,
        sterilization=uv,
        changed=bool(reasons),
        reasons=tuple(reasons),
    )


@dataclass
class ControllerState:
    evaluations: int = 0
    last_decision: Optional[ControlDecision] = None


class AutomationController:
    def __init__(
        self,
        humidity_hysteresis: float = 5.0,
        mold_on: float = 40.0,
        mold_off: float = 5.0,
    ) -> None:
        self.humidity_hysteresis = humidity_hysteresis
        self.mold_on = mold_on
        self.mold_off = mold_off
        self.state = ControllerState()

    def decide(
        self,
        reading: SensorReading,
        current: ActuatorState,
        thresholds: Thresholds,
    ) -> ControlDecision:
        decision = decide(
            reading,
            current,
            thresholds,
            humidity_hysteresis=self.humidity_hysteresis,
            mold_on=self.mold_on,
            mold_off=self.mold_off,
        )
        self.state.evaluations += 1
        self.state.last_decision = decision
        if decision.changed:
            logger.info("decision: %s", decision.reason)
        return decision
