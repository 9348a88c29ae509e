from dose_engine.models import (
    CalculationRequest,
    CalculationResult,
    DoseRecord,
    GlucoseSample,
    ScenarioOutcome,
    UserProfile,
)
from dose_engine.services.bolus_engine import DoseInputError, calculate

__all__ = [
    "CalculationRequest",
    "CalculationResult",
    "DoseInputError",
    "DoseRecord",
    "GlucoseSample",
    "ScenarioOutcome",
    "UserProfile",
    "calculate",
]
