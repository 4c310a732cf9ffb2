from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class SensorReading:
    ts_utc: datetime
    temperature: float  # °C
    humidity: float  # %RH, 30..99
    mold_index: float  # 0..100


class ControlMode(str, Enum):
    AUTOMATIC = "automatic"
    MANUAL = "manual"


class Actuator(str, Enum):
    VENTILATION = "ventilation"  # fan
    DRYING = "drying"  # dehumidifier
    STERILIZATION = "sterilization"  # UV lamp


@dataclass
class ActuatorState:
    ventilation: bool = False
    drying: bool = False
    sterilization: bool = False
    mode: ControlMode = ControlMode.AUTOMATIC

    @property
    def automation_enabled(self) -> bool:
        return self.mode is ControlMode.AUTOMATIC

    def get(self, actuator: Actuator) -> bool:
        return getattr(self, actuator.value)

    def copy(self) -> ActuatorState:
        return ActuatorState(
            ventilation=self.ventilation,
            drying=self.drying,
            sterilization=self.sterilization,
            mode=self.mode,
        )


@dataclass(frozen=True)
class Thresholds:
    max_humidity_percent: float = 65.0
    uv_trigger_period_hours: float = 24.0  # reserved for periodic sterilization


@dataclass(frozen=True)
class ControlDecision:
    ventilation: bool
    drying: bool
    sterilization: bool
    changed: bool
    reasons: tuple[str, ...] = field(default_factory=tuple)

    @property
    def reason(self) -> str:
        return "; ".join(self.reasons) if self.reasons else "No change"


@dataclass(frozen=True)
class ActionEvent:
    ts_utc: datetime
    actuator: Actuator
    state: bool
    source: str  # "automation" | "manual"
    reason: str
    humidity: Optional[float] = None
    mold_index: Optional[float] = None
