import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
str_path = str(ROOT)
if str_path not in sys.path:
    sys.path.insert(0, str_path)

from dose_engine.models import DoseRecord, ScenarioOutcome  # noqa: E402

NOW = datetime(2026, 3, 14, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def make_dose(now):
    def _make(units: float, minutes_ago: float, dose_id: str | None = None) -> DoseRecord:
        return DoseRecord(
            id=dose_id or f"dose-{units}-{minutes_ago}",
            units=units,
            administered_at=now - timedelta(minutes=minutes_ago),
        )

    return _make


@pytest.fixture
def make_history():
    def _make(count: int, carbs: float = 45.0, hour: float = 7.0, peak: float = 150.0, target=100.0):
        return [
            ScenarioOutcome(carbs=carbs, time_of_day_numeric=hour, peak_glucose=peak, target_glucose=target)
            for _ in range(count)
        ]

    return _make


@pytest.fixture
def fixed_ids():
    return lambda: "calc-0001"
