from __future__ import annotations
from pydantic import BaseModel, Field


class ThresholdsIn(BaseModel):
    max_humidity_percent: float = Field(ge=30, le=90)
    uv_trigger_period_hours: float = Field(default=24, ge=1, le=168)


class HistoryResetRequest(BaseModel):
    count: int = Field(default=20, ge=1, le=200)
    spacing_s: float = Field(default=3.0, gt=0)
