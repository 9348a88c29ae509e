import pytest

from dose_engine.models import ScenarioOutcome
from dose_engine.services.learning_service import (
    estimate_learned_adjustment,
    find_similar_scenarios,
    max_learned_adjustment,
    time_of_day_hour,
)


def test_time_of_day_hours():
    assert time_of_day_hour("breakfast") == 7
    assert time_of_day_hour("lunch") == 12
    assert time_of_day_hour("dinner") == 18
    assert time_of_day_hour("snack") == 15


@pytest.mark.parametrize("count", [0, 1, 9])
def test_fewer_than_ten_records_gives_zero(make_history, count):
    history = make_history(count, peak=400.0)
    assert estimate_learned_adjustment(45, "breakfast", history, 50) == 0


def test_no_similar_scenarios_gives_zero(make_history):
    # Dinner-time outcomes do not inform breakfast
    history = make_history(12, hour=18.0, peak=250.0)
    assert estimate_learned_adjustment(45, "breakfast", history, 50) == 0


def test_similarity_window_is_strict(make_history):
    history = (
        make_history(1, carbs=65.0)  # exactly 20 g away
        + make_history(1, carbs=64.0)
        + make_history(1, hour=9.0)  # exactly 2 h away
        + make_history(1, hour=8.5)
    )
    similar = find_similar_scenarios(history, 45, "breakfast")
    assert [(s.carbs, s.time_of_day_numeric) for s in similar] == [(64.0, 7.0), (45.0, 8.5)]


def test_small_average_passes_through(make_history):
    # peak 110 vs target 100 -> +10 / 50 = +0.2 U, cap for 45 g is 0.6 U
    history = make_history(10, peak=110.0)
    assert estimate_learned_adjustment(45, "breakfast", history, 50) == pytest.approx(0.2)


def test_negative_average(make_history):
    history = make_history(10, peak=90.0)
    assert estimate_learned_adjustment(45, "breakfast", history, 50) == pytest.approx(-0.2)


def test_adjustment_clipped_to_twenty_percent_of_naive_dose(make_history):
    high = make_history(10, peak=250.0)
    low = make_history(10, peak=40.0)

    assert estimate_learned_adjustment(45, "breakfast", high, 50) == pytest.approx(0.6)
    assert estimate_learned_adjustment(45, "breakfast", low, 50) == pytest.approx(-0.6)
    assert max_learned_adjustment(45) == pytest.approx(0.6)


def test_zero_carbs_never_adjusts(make_history):
    history = make_history(10, carbs=0.0, peak=300.0)
    assert estimate_learned_adjustment(0, "breakfast", history, 50) == 0.0


def test_missing_scenario_target_uses_120():
    history = [
        ScenarioOutcome(carbs=45, time_of_day_numeric=7, peak_glucose=130, target_glucose=None)
        for _ in range(10)
    ]
    assert estimate_learned_adjustment(45, "breakfast", history, 50) == pytest.approx(0.2)


def test_history_is_not_mutated(make_history):
    history = make_history(10, peak=130.0)
    snapshot = [s.model_dump() for s in history]
    estimate_learned_adjustment(45, "breakfast", history, 50)
    assert [s.model_dump() for s in history] == snapshot
