from __future__ import annotations

import logging
import math
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from dose_engine.core.constants import (
    BASE_CONFIDENCE,
    DEFAULT_BASELINE_MGDL,
    HIGH_LOAD_CARBS_G,
    LARGE_MEAL_CARBS_G,
    LARGE_MEAL_PENALTY,
    LEARNING_CORRECTION_FACTOR,
    LOW_LOAD_CARBS_G,
    MAX_CONFIDENCE,
    MIN_CONFIDENCE,
    NO_GLUCOSE_PENALTY,
    NO_TARGET_PENALTY,
    PRE_BOLUS_BASE_MIN,
    PRE_BOLUS_HIGH_BG_MGDL,
    PRE_BOLUS_HIGH_BG_MIN,
    PRE_BOLUS_LOAD_STEP_MIN,
    PRE_BOLUS_LOW_BG_MGDL,
    PRE_BOLUS_MAX_MIN,
)
from dose_engine.core.logging import AUDIT_LOGGER
from dose_engine.models.calculation import (
    CalculationRequest,
    CalculationResult,
    DoseBreakdown,
    GlycemicLoad,
    PreBolusGuidance,
)
from dose_engine.models.dose import ActiveDose, ActiveDoseStatus, DoseRecord
from dose_engine.models.profile import UserProfile
from dose_engine.models.scenario import ScenarioOutcome
from dose_engine.services.forecast_engine import ForecastEngine
from dose_engine.services.iob import compute_active_doses
from dose_engine.services.learning_service import estimate_learned_adjustment
from dose_engine.services.safety import check_dose_warnings

audit_logger = logging.getLogger(AUDIT_LOGGER)

IdFactory = Callable[[], str]


class DoseInputError(ValueError):
    """Structurally invalid calculation input; raised before anything is computed."""


def _default_id() -> str:
    return str(uuid.uuid4())


def _round_units(value: float) -> float:
    # + 0.0 folds -0.0 into 0.0
    return round(value, 1) + 0.0


def _validate_inputs(request: CalculationRequest, profile: UserProfile) -> None:
    if not math.isfinite(request.carbs) or request.carbs < 0:
        raise DoseInputError(f"carbs must be a finite value >= 0, got {request.carbs!r}")
    for name in ("current_glucose", "target_glucose", "correction_factor_override"):
        value = getattr(request, name)
        if value is not None and (not math.isfinite(value) or value <= 0):
            raise DoseInputError(f"{name} must be a finite value > 0, got {value!r}")

    ratios = profile.carb_ratios
    for period in ("breakfast", "lunch", "dinner", "snack"):
        ratio = getattr(ratios, period)
        if not math.isfinite(ratio) or ratio <= 0:
            raise DoseInputError(f"carb ratio for {period} must be > 0, got {ratio!r}")
    for name in ("correction_factor", "target_glucose", "max_single_dose"):
        value = getattr(profile, name)
        if not math.isfinite(value) or value <= 0:
            raise DoseInputError(f"profile {name} must be > 0, got {value!r}")


def estimate_glycemic_load(carbs: float, meal_type: Optional[str] = None) -> GlycemicLoad:
    # meal_type is not used yet
    if carbs < LOW_LOAD_CARBS_G:
        return "low"
    if carbs < HIGH_LOAD_CARBS_G:
        return "medium"
    return "high"


def _pre_bolus_reasoning(glucose: float, load: GlycemicLoad) -> str:
    if glucose > PRE_BOLUS_HIGH_BG_MGDL:
        return "High glucose - dose early to allow insulin to start working"
    if glucose < PRE_BOLUS_LOW_BG_MGDL:
        return "Low glucose - dose at meal time or after eating"
    if load == "high":
        return "High-carb meal - dose 15-20 min before eating"
    return "Normal pre-meal dosing recommended"


def calculate_pre_bolus_timing(request: CalculationRequest, profile: UserProfile) -> PreBolusGuidance:
    """
    Lead time between dosing and eating.

    The glucose level picks the starting point (20 above 180, 0 below 80,
    otherwise 15) and the glycemic load then shifts it by 5 minutes either
    way. The result is clamped to 0..30.
    """
    glucose = request.current_glucose if request.current_glucose is not None else DEFAULT_BASELINE_MGDL

    minutes = PRE_BOLUS_BASE_MIN
    if glucose > PRE_BOLUS_HIGH_BG_MGDL:
        minutes = PRE_BOLUS_HIGH_BG_MIN
    elif glucose < PRE_BOLUS_LOW_BG_MGDL:
        minutes = 0

    load = estimate_glycemic_load(request.carbs, request.meal_type)
    if load == "high":
        minutes += PRE_BOLUS_LOAD_STEP_MIN
    elif load == "low":
        minutes -= PRE_BOLUS_LOAD_STEP_MIN

    minutes = max(0, min(PRE_BOLUS_MAX_MIN, minutes))

    return PreBolusGuidance(
        recommended_minutes=minutes,
        reasoning=_pre_bolus_reasoning(glucose, load),
        glucose_at_dosing=round(glucose),
        # No trend projection yet
        expected_glucose_at_meal=round(glucose),
    )


def calculate_confidence(request: CalculationRequest) -> float:
    confidence = BASE_CONFIDENCE
    if request.current_glucose is None:
        confidence -= NO_GLUCOSE_PENALTY
    if request.target_glucose is None:
        confidence -= NO_TARGET_PENALTY
    if request.carbs > LARGE_MEAL_CARBS_G:
        confidence -= LARGE_MEAL_PENALTY
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, confidence))


def build_explanation(carb_u: float, correction_u: float, iob_u: float, learned_u: float) -> str:
    explanation = f"Carb coverage: {carb_u:.1f}U"
    if correction_u != 0:
        explanation += f" + Correction: {'+' if correction_u > 0 else ''}{correction_u:.1f}U"
    if iob_u > 0:
        explanation += f" - IOB: {iob_u:.1f}U"
    if abs(learned_u) > 0.1:
        explanation += f" + Learned adjustment: {'+' if learned_u > 0 else ''}{learned_u:.1f}U"
    return explanation


def _present_iob(iob: ActiveDoseStatus) -> ActiveDoseStatus:
    return ActiveDoseStatus(
        active_amount=_round_units(iob.active_amount),
        peak_time=iob.peak_time,
        clearance_time=iob.clearance_time,
        safety_status=iob.safety_status,
        active_doses=[
            ActiveDose(
                dose_id=d.dose_id,
                units=d.units,
                administered_at=d.administered_at,
                remaining_units=_round_units(d.remaining_units),
                minutes_active=d.minutes_active,
            )
            for d in iob.active_doses
        ],
    )


def calculate(
    request: CalculationRequest,
    profile: UserProfile,
    recent_doses: Sequence[DoseRecord],
    scenario_history: Sequence[ScenarioOutcome],
    now: datetime,
    id_factory: Optional[IdFactory] = None,
) -> CalculationResult:
    """
    Recommend a dose for one meal/correction.

    Pure apart from id_factory: with a fixed `now` and a deterministic
    id_factory the result is reproducible. Safety findings are returned as
    warnings and never stop the calculation.
    """
    _validate_inputs(request, profile)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    # 1. Insulin on board
    iob = compute_active_doses(recent_doses, now)

    # 2. Meal
    carb_ratio = profile.carb_ratios.for_period(request.time_of_day)
    carb_u = request.carbs / carb_ratio

    # 3. Correction
    cf = request.correction_factor_override or profile.correction_factor
    target = request.target_glucose if request.target_glucose is not None else profile.target_glucose
    correction_u = 0.0
    if request.current_glucose is not None:
        correction_u = (request.current_glucose - target) / cf

    # 4. IOB + learning
    raw_u = carb_u + correction_u
    adjusted_u = max(0.0, raw_u - iob.active_amount)
    learning_cf = request.correction_factor_override or LEARNING_CORRECTION_FACTOR
    learned_u = estimate_learned_adjustment(request.carbs, request.time_of_day, scenario_history, learning_cf)
    final_u = max(0.0, adjusted_u + learned_u)

    # 5. Advisory output
    warnings = check_dose_warnings(final_u, iob, request, profile)
    timing = calculate_pre_bolus_timing(request, profile)
    prediction = ForecastEngine.predict(
        dose_u=final_u,
        carbs_g=request.carbs,
        current_bg=request.current_glucose,
        isf=profile.correction_factor,
        target_bg=profile.target_glucose,
        now=now,
    )
    confidence = calculate_confidence(request)

    calculation_id = (id_factory or _default_id)()
    audit_logger.info(
        "Dose calculated: id=%s carbs=%.1f raw=%.3f iob=%.3f learned=%.3f final=%.3f warnings=%d",
        calculation_id,
        request.carbs,
        raw_u,
        iob.active_amount,
        learned_u,
        final_u,
        len(warnings),
    )

    return CalculationResult(
        calculation_id=calculation_id,
        recommended_dose=_round_units(final_u),
        breakdown=DoseBreakdown(
            carb_coverage=_round_units(carb_u),
            correction=_round_units(correction_u),
            iob_subtracted=_round_units(iob.active_amount),
            learned_adjustment=_round_units(learned_u),
        ),
        carb_ratio=f"1:{carb_ratio:g}",
        correction_factor=f"1:{cf:g}",
        iob_status=_present_iob(iob),
        warnings=warnings,
        pre_bolus_timing=timing,
        prediction=prediction,
        confidence=round(confidence, 2),
        explanation=build_explanation(carb_u, correction_u, iob.active_amount, learned_u),
    )
