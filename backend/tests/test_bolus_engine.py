import pytest
from pydantic import ValidationError

from dose_engine import DoseInputError, calculate
from dose_engine.models import CalculationRequest, UserProfile
from dose_engine.services.bolus_engine import (
    calculate_confidence,
    calculate_pre_bolus_timing,
    estimate_glycemic_load,
)


def _breakfast(**overrides):
    data = dict(carbs=45, current_glucose=120, target_glucose=100, time_of_day="breakfast")
    data.update(overrides)
    return CalculationRequest(**data)


def test_reference_breakfast(now, fixed_ids):
    res = calculate(_breakfast(), UserProfile.default(), [], [], now, id_factory=fixed_ids)

    assert res.calculation_id == "calc-0001"
    assert res.recommended_dose == 3.4
    assert res.breakdown.carb_coverage == 3.0
    assert res.breakdown.correction == 0.4
    assert res.breakdown.iob_subtracted == 0.0
    assert res.breakdown.learned_adjustment == 0.0
    assert res.carb_ratio == "1:15"
    assert res.correction_factor == "1:50"
    assert res.pre_bolus_timing.recommended_minutes == 15
    assert res.warnings == []
    assert res.confidence == pytest.approx(0.85)
    assert res.explanation == "Carb coverage: 3.0U + Correction: +0.4U"
    assert res.prediction.peak.glucose == 136
    assert res.prediction.back_to_target_minutes == 60


def test_active_insulin_is_subtracted(now, make_dose, fixed_ids):
    dose = make_dose(4.0, 75, "prev")
    res = calculate(_breakfast(), UserProfile.default(), [dose], [], now, id_factory=fixed_ids)

    # 3.4 - 3.072
    assert res.recommended_dose == 0.3
    assert res.breakdown.iob_subtracted == 3.1
    assert res.iob_status.active_amount == 3.1
    assert res.iob_status.safety_status == "warning"
    assert res.iob_status.active_doses[0].remaining_units == 3.1
    assert [w.type for w in res.warnings] == ["dose_stacking"]
    assert " - IOB: 3.1U" in res.explanation


def test_learned_adjustment_is_added(now, make_history, fixed_ids):
    history = make_history(10, peak=250.0)
    res = calculate(_breakfast(), UserProfile.default(), [], history, now, id_factory=fixed_ids)

    assert res.breakdown.learned_adjustment == 0.6
    assert res.recommended_dose == 4.0
    assert res.explanation.endswith("+ Learned adjustment: +0.6U")


def test_learned_adjustment_ignores_profile_correction_factor(now, make_history):
    history = make_history(10, peak=110.0)
    res = calculate(_breakfast(), UserProfile(correction_factor=25), [], history, now)

    # 10 mg/dL over target / 50
    assert res.breakdown.learned_adjustment == 0.2
    assert res.correction_factor == "1:25"


def test_learned_adjustment_follows_correction_factor_override(now, make_history):
    history = make_history(10, peak=110.0)
    res = calculate(_breakfast(correction_factor_override=25), UserProfile(), [], history, now)

    assert res.breakdown.learned_adjustment == 0.4


def test_final_dose_never_negative(now, make_dose, make_history):
    req = CalculationRequest(carbs=0, current_glucose=40, time_of_day="snack")
    res = calculate(
        req,
        UserProfile.default(),
        [make_dose(6.0, 10)],
        make_history(10, carbs=0.0, hour=15.0, peak=40.0),
        now,
    )
    assert res.recommended_dose == 0.0
    assert res.breakdown.correction == -1.2


def test_hypoglycemia_still_returns_a_dose(now):
    req = CalculationRequest(carbs=30, current_glucose=65, time_of_day="lunch")
    res = calculate(req, UserProfile.default(), [], [], now)

    # 30/12 + (65-100)/50
    assert res.recommended_dose == 1.8
    hypo = [w for w in res.warnings if w.type == "hypoglycemia_risk"]
    assert hypo and hypo[0].severity == "critical"
    assert res.pre_bolus_timing.recommended_minutes == 0


def test_very_high_glucose(now):
    req = CalculationRequest(carbs=30, current_glucose=300, time_of_day="lunch")
    res = calculate(req, UserProfile.default(), [], [], now)

    assert res.recommended_dose == 6.5
    assert any(w.severity in ("high", "critical") for w in res.warnings)
    assert res.pre_bolus_timing.recommended_minutes == 20


def test_dose_above_maximum_is_flagged_not_capped(now):
    req = CalculationRequest(carbs=150, current_glucose=250, time_of_day="dinner")
    res = calculate(req, UserProfile(max_single_dose=10), [], [], now)

    assert res.recommended_dose == 18.0
    assert "large_dose" in [w.type for w in res.warnings]


def test_missing_glucose_skips_correction(now):
    req = CalculationRequest(carbs=24, time_of_day="lunch")
    res = calculate(req, UserProfile.default(), [], [], now)

    assert res.breakdown.correction == 0.0
    assert res.recommended_dose == 2.0
    assert res.confidence == pytest.approx(0.7)
    assert res.explanation == "Carb coverage: 2.0U"


def test_profile_target_used_when_request_has_none(now):
    req = CalculationRequest(carbs=0, current_glucose=150, time_of_day="lunch")
    res = calculate(req, UserProfile(target_glucose=110), [], [], now)
    assert res.breakdown.correction == 0.8


def test_correction_factor_override(now):
    res = calculate(_breakfast(correction_factor_override=25), UserProfile.default(), [], [], now)
    assert res.breakdown.correction == 0.8
    assert res.correction_factor == "1:25"


def test_identical_inputs_give_identical_results(now, make_dose, make_history, fixed_ids):
    args = (
        _breakfast(glucose_trend="falling"),
        UserProfile.default(),
        [make_dose(1.5, 40), make_dose(2.0, 200)],
        make_history(12, peak=170.0),
        now,
    )
    first = calculate(*args, id_factory=fixed_ids)
    second = calculate(*args, id_factory=fixed_ids)
    assert first == second
    assert first.model_dump() == second.model_dump()


def test_default_ids_are_unique(now):
    a = calculate(_breakfast(), UserProfile.default(), [], [], now)
    b = calculate(_breakfast(), UserProfile.default(), [], [], now)
    assert a.calculation_id != b.calculation_id


def test_result_is_immutable(now):
    res = calculate(_breakfast(), UserProfile.default(), [], [], now)
    with pytest.raises(ValidationError):
        res.recommended_dose = 10.0


def test_negative_carbs_rejected():
    with pytest.raises(ValidationError):
        CalculationRequest(carbs=-5, time_of_day="lunch")


def test_non_positive_profile_bounds_rejected():
    with pytest.raises(ValidationError):
        UserProfile(max_single_dose=0)
    with pytest.raises(ValidationError):
        UserProfile(correction_factor=-10)


def test_unvalidated_input_rejected_before_computation(now):
    req = CalculationRequest.model_construct(
        carbs=-10.0,
        current_glucose=None,
        target_glucose=None,
        time_of_day="lunch",
        meal_type=None,
        glucose_trend=None,
        correction_factor_override=None,
    )
    with pytest.raises(DoseInputError, match="carbs"):
        calculate(req, UserProfile.default(), [], [], now)

    profile = UserProfile.model_construct(
        carb_ratios=UserProfile.default().carb_ratios,
        correction_factor=50.0,
        target_glucose=100.0,
        max_single_dose=0.0,
        insulin_type="rapid",
    )
    with pytest.raises(DoseInputError, match="max_single_dose"):
        calculate(_breakfast(), profile, [], [], now)


@pytest.mark.parametrize(
    "carbs,load",
    [(0, "low"), (19.9, "low"), (20, "medium"), (49.9, "medium"), (50, "high")],
)
def test_glycemic_load_buckets(carbs, load):
    assert estimate_glycemic_load(carbs) == load


@pytest.mark.parametrize(
    "glucose,carbs,minutes",
    [
        (None, 45, 15),
        (120, 10, 10),
        (150, 60, 20),
        (181, 45, 20),
        (300, 10, 15),
        (300, 60, 25),
        (75, 60, 5),
        (75, 10, 0),
    ],
)
def test_pre_bolus_timing(glucose, carbs, minutes):
    req = CalculationRequest(carbs=carbs, current_glucose=glucose, time_of_day="lunch")
    timing = calculate_pre_bolus_timing(req, UserProfile.default())
    assert timing.recommended_minutes == minutes
    assert 0 <= timing.recommended_minutes <= 30


def test_pre_bolus_reasoning_and_glucose():
    req = CalculationRequest(carbs=60, time_of_day="lunch")
    timing = calculate_pre_bolus_timing(req, UserProfile.default())
    assert timing.glucose_at_dosing == 120
    assert timing.expected_glucose_at_meal == 120
    assert timing.reasoning.startswith("High-carb meal")


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        (dict(carbs=30, current_glucose=120, target_glucose=100), 0.85),
        (dict(carbs=30, current_glucose=120), 0.80),
        (dict(carbs=30), 0.70),
        (dict(carbs=120), 0.60),
    ],
)
def test_confidence(kwargs, expected):
    req = CalculationRequest(time_of_day="lunch", **kwargs)
    assert calculate_confidence(req) == pytest.approx(expected)
