from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from dose_engine.models.dose import InsulinType

TimeOfDay = Literal["breakfast", "lunch", "dinner", "snack"]


class CarbRatios(BaseModel):
    # Grams of carbohydrate covered by one unit
    breakfast: float = Field(default=15.0, gt=0, description="Ratio CR (g/U)")
    lunch: float = Field(default=12.0, gt=0, description="Ratio CR (g/U)")
    dinner: float = Field(default=10.0, gt=0, description="Ratio CR (g/U)")
    snack: float = Field(default=15.0, gt=0, description="Ratio CR (g/U)")

    model_config = ConfigDict(frozen=True)

    def for_period(self, time_of_day: TimeOfDay) -> float:
        return getattr(self, time_of_day)


class UserProfile(BaseModel):
    carb_ratios: CarbRatios = Field(default_factory=CarbRatios)
    correction_factor: float = Field(default=50.0, gt=0, description="Correction factor (mg/dL/U)")
    target_glucose: float = Field(default=100.0, gt=0, description="Target glucose (mg/dL)")
    max_single_dose: float = Field(default=20.0, gt=0, description="Largest single dose (U)")
    insulin_type: InsulinType = "rapid"

    model_config = ConfigDict(frozen=True)

    @classmethod
    def default(cls) -> UserProfile:
        """Documented fallback used when the repository has no profile for the user."""
        return cls()
