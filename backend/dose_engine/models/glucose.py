from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from dose_engine.core.constants import MGDL_PER_MMOL

GlucoseUnit = Literal["mg/dL", "mmol/L"]
CgmTrend = Literal["rapid_rise", "rise", "slow_rise", "stable", "slow_fall", "fall", "rapid_fall"]
GlucoseTrend = Literal["rising", "falling", "stable"]

_RISING = {"rapid_rise", "rise", "slow_rise"}
_FALLING = {"rapid_fall", "fall", "slow_fall"}


class GlucoseSample(BaseModel):
    value: float = Field(gt=0)
    unit: GlucoseUnit = "mg/dL"
    timestamp: datetime
    trend: CgmTrend = "stable"

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp")
    def _ensure_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    def to_mgdl(self) -> float:
        if self.unit == "mmol/L":
            return self.value * MGDL_PER_MMOL
        return self.value

    def request_trend(self) -> GlucoseTrend:
        """Collapse the 7-level CGM arrow into the calculator's 3-level trend."""
        if self.trend in _RISING:
            return "rising"
        if self.trend in _FALLING:
            return "falling"
        return "stable"
