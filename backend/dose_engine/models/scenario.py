from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ScenarioOutcome(BaseModel):
    carbs: float = Field(ge=0)
    time_of_day_numeric: float = Field(ge=0, lt=24, description="Hour of day of the meal")
    peak_glucose: float
    target_glucose: Optional[float] = None  # None -> 120 mg/dL

    model_config = ConfigDict(frozen=True)
