from __future__ import annotations

import logging
from typing import List

from dose_engine.core.constants import (
    CARB_RATIO_MAX,
    CARB_RATIO_MIN,
    HYPER_THRESHOLD_MGDL,
    HYPO_THRESHOLD_MGDL,
    STACKING_IOB_U,
)
from dose_engine.models.calculation import CalculationRequest, DoseWarning
from dose_engine.models.dose import ActiveDoseStatus
from dose_engine.models.profile import UserProfile

logger = logging.getLogger(__name__)


def check_dose_warnings(
    dose_u: float,
    iob: ActiveDoseStatus,
    request: CalculationRequest,
    profile: UserProfile,
) -> List[DoseWarning]:
    """
    Advisory checks on a finished recommendation.

    Each rule is evaluated on its own and the dose is never modified here;
    blocking the user is left to the caller.
    """
    warnings: List[DoseWarning] = []

    if iob.active_amount > STACKING_IOB_U and dose_u > 0:
        warnings.append(
            DoseWarning(
                type="dose_stacking",
                severity="high",
                message=f"High insulin on board detected ({iob.active_amount:.1f}U). Risk of insulin stacking.",
                recommendation="Consider waiting 1-2 hours before dosing again.",
            )
        )

    if dose_u > profile.max_single_dose:
        warnings.append(
            DoseWarning(
                type="large_dose",
                severity="critical",
                message=f"Dose ({dose_u:.1f}U) exceeds your maximum ({profile.max_single_dose:g}U).",
                recommendation="Verify carb count and glucose reading. Consult your healthcare provider.",
            )
        )

    if request.current_glucose is not None and request.current_glucose < HYPO_THRESHOLD_MGDL:
        warnings.append(
            DoseWarning(
                type="hypoglycemia_risk",
                severity="critical",
                message=f"Current glucose is low ({request.current_glucose:.0f} mg/dL). Do not administer insulin.",
                recommendation="Treat low blood sugar first with 15g fast-acting carbs.",
            )
        )

    if request.current_glucose is not None and request.current_glucose >= HYPER_THRESHOLD_MGDL:
        warnings.append(
            DoseWarning(
                type="hyperglycemia",
                severity="high",
                message=f"Current glucose is very high ({request.current_glucose:.0f} mg/dL).",
                recommendation="Check ketones and recheck glucose in 1-2 hours before any further correction.",
            )
        )

    if request.glucose_trend == "falling":
        warnings.append(
            DoseWarning(
                type="falling_glucose",
                severity="medium",
                message="Glucose is trending down.",
                recommendation="Consider reducing dose by 10-20%.",
            )
        )

    carb_ratio = profile.carb_ratios.for_period(request.time_of_day)
    if not CARB_RATIO_MIN <= carb_ratio <= CARB_RATIO_MAX:
        warnings.append(
            DoseWarning(
                type="carb_ratio_out_of_range",
                severity="low",
                message=f"Carb ratio 1:{carb_ratio:g} for {request.time_of_day} is outside the usual 1:5 to 1:30 range.",
                recommendation="Review your carb ratio settings with your healthcare provider.",
            )
        )

    if warnings:
        logger.info(
            "Dose warnings raised: %s",
            ", ".join(f"{w.type}({w.severity})" for w in warnings),
        )
    return warnings
