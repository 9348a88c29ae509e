import logging
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from dose_engine.core.constants import (
    BACK_TO_TARGET_TOLERANCE_MGDL,
    DEFAULT_BASELINE_MGDL,
    MGDL_PER_GRAM_CARB,
    SIMULATION_CONFIDENCE,
    SIMULATION_HORIZON_MINUTES,
    SIMULATION_STEP_MINUTES,
)
from dose_engine.models.calculation import (
    ExpectedRange,
    GlucosePoint,
    GlucosePrediction,
    PredictionPeak,
)
from dose_engine.services.math.curves import CarbCurves, InsulinCurves

logger = logging.getLogger(__name__)


class ForecastEngine:

    @staticmethod
    def simulate_series(
        dose_u: float,
        carbs_g: float,
        start_bg: float,
        isf: float,
    ) -> List[Tuple[int, float]]:
        """(minutes, bg) pairs at full precision, 0..240 every 15 min."""
        max_insulin_effect = dose_u * isf
        max_carb_effect = carbs_g * MGDL_PER_GRAM_CARB

        series: List[Tuple[int, float]] = []
        for t in range(0, SIMULATION_HORIZON_MINUTES + 1, SIMULATION_STEP_MINUTES):
            insulin_impact = InsulinCurves.glucose_effect(t, max_insulin_effect)
            carb_impact = CarbCurves.glucose_effect(t, max_carb_effect)
            series.append((t, start_bg + carb_impact - insulin_impact))
        return series

    @staticmethod
    def back_to_target(series: List[Tuple[int, float]], target_bg: float) -> Optional[int]:
        for t, bg in series:
            if abs(bg - target_bg) < BACK_TO_TARGET_TOLERANCE_MGDL:
                return t
        return None

    @staticmethod
    def predict(
        dose_u: float,
        carbs_g: float,
        current_bg: Optional[float],
        isf: float,
        target_bg: float,
        now: Optional[datetime] = None,
    ) -> GlucosePrediction:
        start_bg = current_bg if current_bg is not None else DEFAULT_BASELINE_MGDL
        series = ForecastEngine.simulate_series(dose_u, carbs_g, start_bg, isf)

        # First maximum wins on ties
        peak_t, peak_bg = series[0]
        for t, bg in series[1:]:
            if bg > peak_bg:
                peak_t, peak_bg = t, bg
        low_bg = min(bg for _, bg in series)

        curve = [
            GlucosePoint(
                minutes=t,
                glucose=round(bg),
                timestamp=now + timedelta(minutes=t) if now is not None else None,
            )
            for t, bg in series
        ]

        back = ForecastEngine.back_to_target(series, target_bg)
        logger.debug(
            "Forecast: start=%.1f dose=%.2f carbs=%.1f peak=%.1f@%d back_to_target=%s",
            start_bg,
            dose_u,
            carbs_g,
            peak_bg,
            peak_t,
            back,
        )

        return GlucosePrediction(
            curve=curve,
            peak=PredictionPeak(glucose=round(peak_bg), time_minutes=peak_t),
            expected_range=ExpectedRange(low=round(low_bg), high=round(peak_bg)),
            back_to_target_minutes=back,
            # Fixed; not yet derived from the inputs
            confidence=SIMULATION_CONFIDENCE,
        )
