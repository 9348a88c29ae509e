import logging
import statistics
from typing import Sequence

from dose_engine.core.constants import (
    DEFAULT_SCENARIO_TARGET_MGDL,
    MAX_LEARNED_FRACTION,
    MIN_SCENARIO_RECORDS,
    NAIVE_CARB_RATIO,
    SIMILAR_CARBS_G,
    SIMILAR_HOURS,
    TIME_OF_DAY_HOURS,
)
from dose_engine.models.profile import TimeOfDay
from dose_engine.models.scenario import ScenarioOutcome

logger = logging.getLogger(__name__)


def time_of_day_hour(time_of_day: str) -> float:
    return TIME_OF_DAY_HOURS.get(time_of_day, TIME_OF_DAY_HOURS["lunch"])


def find_similar_scenarios(
    history: Sequence[ScenarioOutcome],
    carbs: float,
    time_of_day: TimeOfDay,
) -> list[ScenarioOutcome]:
    hour = time_of_day_hour(time_of_day)
    return [
        s
        for s in history
        if abs(s.carbs - carbs) < SIMILAR_CARBS_G and abs(s.time_of_day_numeric - hour) < SIMILAR_HOURS
    ]


def max_learned_adjustment(carbs: float) -> float:
    return (carbs / NAIVE_CARB_RATIO) * MAX_LEARNED_FRACTION


def estimate_learned_adjustment(
    carbs: float,
    time_of_day: TimeOfDay,
    history: Sequence[ScenarioOutcome],
    correction_factor: float,
) -> float:
    """
    Average how far similar past meals overshot (or undershot) their target,
    expressed in units through the correction factor.

    Positive means past meals ran high and more insulin is suggested. The
    result is capped at +/-20% of a naive carbs/15 meal dose, and is exactly 0
    when fewer than 10 scenarios are available or none is similar.
    """
    if len(history) < MIN_SCENARIO_RECORDS:
        logger.debug("Learning skipped: %d scenarios (< %d)", len(history), MIN_SCENARIO_RECORDS)
        return 0.0

    similar = find_similar_scenarios(history, carbs, time_of_day)
    if not similar:
        logger.debug("Learning skipped: no similar scenarios for %.1fg %s", carbs, time_of_day)
        return 0.0

    adjustments = []
    for scenario in similar:
        target = scenario.target_glucose or DEFAULT_SCENARIO_TARGET_MGDL
        adjustments.append((scenario.peak_glucose - target) / correction_factor)

    average = statistics.fmean(adjustments)
    cap = max_learned_adjustment(carbs)
    if cap <= 0:
        return 0.0
    clipped = max(-cap, min(cap, average))

    logger.debug(
        "Learning: matches=%d avg=%.3f cap=%.3f applied=%.3f",
        len(similar),
        average,
        cap,
        clipped,
    )
    return clipped
