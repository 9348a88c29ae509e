from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

InsulinType = Literal["rapid", "other"]
IOBSafetyStatus = Literal["safe", "warning", "dangerous"]


class DoseRecord(BaseModel):
    id: str
    units: float = Field(gt=0)
    administered_at: datetime
    insulin_type: InsulinType = "rapid"

    model_config = ConfigDict(frozen=True)

    @field_validator("administered_at")
    def _ensure_aware(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("insulin_type", mode="before")
    def _map_insulin_type(cls, v: Optional[str]) -> str:
        # long_acting / intermediate and anything unknown are not rapid
        if v is None:
            return "rapid"
        return "rapid" if str(v).lower() == "rapid" else "other"


class ActiveDose(BaseModel):
    dose_id: str
    units: float
    administered_at: datetime
    remaining_units: float
    minutes_active: int

    model_config = ConfigDict(frozen=True)


class ActiveDoseStatus(BaseModel):
    active_amount: float = 0.0
    peak_time: Optional[datetime] = None
    clearance_time: Optional[datetime] = None
    safety_status: IOBSafetyStatus = "safe"
    active_doses: List[ActiveDose] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)
