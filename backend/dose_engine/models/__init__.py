from .dose import ActiveDose, ActiveDoseStatus, DoseRecord
from .glucose import GlucoseSample
from .profile import CarbRatios, UserProfile
from .scenario import ScenarioOutcome
from .calculation import (
    CalculationRequest,
    CalculationResult,
    DoseBreakdown,
    DoseWarning,
    GlucosePoint,
    GlucosePrediction,
    PreBolusGuidance,
)
