from dose_engine.core.constants import (
    CARB_ABSORPTION_END_MINUTES,
    CARB_PEAK_MINUTES,
    DIA_MINUTES,
    INSULIN_PEAK_MINUTES,
    INSULIN_TAIL_FRACTION,
    SIMULATION_HORIZON_MINUTES,
)


def _clamp(value: float, min_value: float = 0.0, max_value: float = 1.0) -> float:
    return max(min_value, min(max_value, value))


def smoothstep(t: float) -> float:
    t = _clamp(t)
    return t * t * (3 - 2 * t)


class InsulinCurves:
    """
    Rapid-acting insulin models.

    remaining_fraction: share of a dose still on board (cubic ease-out over DIA).
    glucose_effect: cumulative glucose lowering of a dose, eased in up to the
    peak and then drifting down linearly to INSULIN_TAIL_FRACTION of the peak
    at the end of the simulation horizon.
    """

    @staticmethod
    def remaining_fraction(t_min: float, dia_min: float = DIA_MINUTES) -> float:
        if t_min >= dia_min:
            return 0.0
        if t_min < 0:
            return 1.0
        return 1.0 - smoothstep(t_min / dia_min)

    @staticmethod
    def glucose_effect(
        t_min: float,
        max_effect: float,
        peak_min: float = INSULIN_PEAK_MINUTES,
        horizon_min: float = SIMULATION_HORIZON_MINUTES,
    ) -> float:
        if t_min <= 0:
            return 0.0
        if t_min < peak_min:
            return max_effect * smoothstep(t_min / peak_min)
        tail = _clamp((t_min - peak_min) / (horizon_min - peak_min))
        return max_effect * (1 - tail * (1 - INSULIN_TAIL_FRACTION))


class CarbCurves:
    @staticmethod
    def glucose_effect(
        t_min: float,
        max_effect: float,
        peak_min: float = CARB_PEAK_MINUTES,
        end_min: float = CARB_ABSORPTION_END_MINUTES,
    ) -> float:
        """Triangle: linear rise to the peak, then linear fall to zero at end_min."""
        if t_min <= 0 or t_min >= end_min:
            return 0.0
        if t_min < peak_min:
            return max_effect * (t_min / peak_min)
        return max_effect * (1 - (t_min - peak_min) / (end_min - peak_min))
