from __future__ import annotations
import logging
from collections import deque
from datetime import datetime
from threading import Lock
from typing import Callable, Optional

from .controller import AutomationController
from .errors import ManualControlRejected
from .models import (
    ActionEvent,
    Actuator,
    ActuatorState,
    ControlDecision,
    ControlMode,
    SensorReading,
    Thresholds,
)
from ..core.timeutil import now_utc

logger = logging.getLogger(__name__)


class ActuatorGate:
    """
    Owns the single live ActuatorState.

    In AUTOMATIC mode only the automation controller may write the actuators;
    in MANUAL mode only manual toggles may. Mode checks and the writes that
    depend on them happen under one lock.
    """

    def __init__(
        self,
        mode: ControlMode = ControlMode.AUTOMATIC,
        action_log_size: int = 200,
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._state = ActuatorState(mode=mode)
        self._lock = Lock()
        self._actions: deque[ActionEvent] = deque(maxlen=action_log_size)
        self._clock = clock

    @property
    def mode(self) -> ControlMode:
        return self._state.mode

    def snapshot(self) -> ActuatorState:
        with self._lock:
            return self._state.copy()

    def actions(self, limit: Optional[int] = None) -> list[ActionEvent]:
        with self._lock:
            out = list(self._actions)
        if limit is not None:
            out = out[-limit:] if limit > 0 else []
        return out

    # --- mode ---

    def set_mode(self, mode: ControlMode) -> ControlMode:
        with self._lock:
            if self._state.mode is not mode:
                self._state.mode = mode
                logger.info("Control mode → %s", mode.value)
            return self._state.mode

    def toggle_automation(self) -> ControlMode:
        with self._lock:
            self._state.mode = (
                ControlMode.MANUAL
                if self._state.mode is ControlMode.AUTOMATIC
                else ControlMode.AUTOMATIC
            )
            logger.info("Control mode → %s", self._state.mode.value)
            return self._state.mode

    # --- writers ---

    def toggle(self, actuator: Actuator) -> bool:
        """Manually flip one actuator. Rejected while automation is on."""
        with self._lock:
            if self._state.mode is ControlMode.AUTOMATIC:
                logger.warning("Manual toggle of %s rejected: automation enabled", actuator.value)
                raise ManualControlRejected(actuator)
            new_state = not self._state.get(actuator)
            self._write(actuator, new_state, "manual", "Manual toggle", None)
            return new_state

    def run_automation(
        self,
        controller: AutomationController,
        reading: SensorReading,
        thresholds: Thresholds,
    ) -> Optional[ControlDecision]:
        """Evaluate and apply the controller. Returns None in MANUAL mode."""
        with self._lock:
            if self._state.mode is not ControlMode.AUTOMATIC:
                return None
            decision = controller.decide(reading, self._state, thresholds)
            if decision.changed:
                for actuator in Actuator:
                    desired = getattr(decision, actuator.value)
                    if desired != self._state.get(actuator):
                        self._write(actuator, desired, "automation", decision.reason, reading)
            return decision

    def _write(
        self,
        actuator: Actuator,
        on: bool,
        source: str,
        reason: str,
        reading: Optional[SensorReading],
    ) -> None:
        setattr(self._state, actuator.value, on)
        self._actions.append(
            ActionEvent(
                ts_utc=self._clock(),
                actuator=actuator,
                state=on,
                source=source,
                reason=reason,
                humidity=reading.humidity if reading else None,
                mold_index=reading.mold_index if reading else None,
            )
        )
        logger.info("%s set_state=%s source=%s reason=%s", actuator.value.upper(), on, source, reason)
