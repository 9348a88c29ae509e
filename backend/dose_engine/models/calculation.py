from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from dose_engine.models.dose import ActiveDoseStatus
from dose_engine.models.glucose import GlucoseSample, GlucoseTrend
from dose_engine.models.profile import TimeOfDay

WarningType = Literal[
    "dose_stacking",
    "large_dose",
    "hypoglycemia_risk",
    "falling_glucose",
    "hyperglycemia",
    "carb_ratio_out_of_range",
]
Severity = Literal["low", "medium", "high", "critical"]
GlycemicLoad = Literal["low", "medium", "high"]


# --- Request ---

class CalculationRequest(BaseModel):
    carbs: float = Field(ge=0)
    current_glucose: Optional[float] = Field(default=None, gt=0)
    target_glucose: Optional[float] = Field(default=None, gt=0)
    time_of_day: TimeOfDay
    meal_type: Optional[str] = None
    glucose_trend: Optional[GlucoseTrend] = None
    correction_factor_override: Optional[float] = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_glucose_sample(
        cls,
        sample: GlucoseSample,
        *,
        carbs: float,
        time_of_day: TimeOfDay,
        **extra,
    ) -> CalculationRequest:
        return cls(
            carbs=carbs,
            current_glucose=sample.to_mgdl(),
            time_of_day=time_of_day,
            glucose_trend=sample.request_trend(),
            **extra,
        )


# --- Response ---

class DoseBreakdown(BaseModel):
    carb_coverage: float
    correction: float
    iob_subtracted: float
    learned_adjustment: float

    model_config = ConfigDict(frozen=True)


class DoseWarning(BaseModel):
    type: WarningType
    severity: Severity
    message: str
    recommendation: str

    model_config = ConfigDict(frozen=True)


class PreBolusGuidance(BaseModel):
    recommended_minutes: int
    reasoning: str
    glucose_at_dosing: float
    expected_glucose_at_meal: float

    model_config = ConfigDict(frozen=True)


class GlucosePoint(BaseModel):
    minutes: int
    glucose: int
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(frozen=True)


class PredictionPeak(BaseModel):
    glucose: int
    time_minutes: int

    model_config = ConfigDict(frozen=True)


class ExpectedRange(BaseModel):
    low: int
    high: int

    model_config = ConfigDict(frozen=True)


class GlucosePrediction(BaseModel):
    curve: List[GlucosePoint]
    peak: PredictionPeak
    expected_range: ExpectedRange
    back_to_target_minutes: Optional[int] = None
    confidence: float

    model_config = ConfigDict(frozen=True)


class CalculationResult(BaseModel):
    calculation_id: str
    recommended_dose: float
    breakdown: DoseBreakdown
    carb_ratio: str
    correction_factor: str
    iob_status: ActiveDoseStatus
    warnings: List[DoseWarning] = Field(default_factory=list)
    pre_bolus_timing: PreBolusGuidance
    prediction: GlucosePrediction
    confidence: float
    explanation: str

    model_config = ConfigDict(frozen=True)
