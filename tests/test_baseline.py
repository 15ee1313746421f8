"""Tests for personal baselines and trends."""
from datetime import date

import pandas as pd
import pytest

from bioloop.analysis.baseline import (
    HealthBaseline,
    build_baseline,
    rolling_average,
    score_trend,
)
from bioloop.analysis.daily import DailyInputs
from bioloop.common.models import ScoreKind


class TestHealthBaseline:

    def test_first_update_seeds_above_reading(self):
        baseline = HealthBaseline().update(hrv=50, resting_hr=50, sleep_hours=8, active_energy_kcal=400)
        # (50 + 10) * 0.95 + 50 * 0.05
        assert baseline.hrv == pytest.approx(59.5)
        # (50 + 5) * 0.95 + 50 * 0.05
        assert baseline.resting_hr == pytest.approx(54.75)
        assert baseline.sleep_hours == pytest.approx(8)
        assert baseline.active_energy_kcal == pytest.approx(400)

    def test_moving_average(self):
        baseline = HealthBaseline().update(hrv=50).update(hrv=50)
        assert baseline.hrv == pytest.approx(59.5 * 0.95 + 2.5)

    def test_unusable_readings_skipped(self):
        baseline = HealthBaseline().update(hrv=50)
        baseline.update(hrv=None, resting_hr=0, sleep_hours=float("nan"))
        assert baseline.hrv == pytest.approx(59.5)
        assert baseline.resting_hr is None
        assert baseline.sleep_hours is None

    def test_reset(self):
        baseline = HealthBaseline().update(hrv=50, resting_hr=50)
        baseline.reset()
        assert baseline == HealthBaseline()

    def test_update_from_inputs_respects_recency(self):
        inputs = DailyInputs(
            day=date(2025, 1, 10),
            hrv=50, resting_hr=50,
            hrv_is_recent=True, resting_hr_is_recent=False,
            sleep_hours=7,
        )
        baseline = HealthBaseline().update_from_inputs(inputs)
        assert baseline.hrv == pytest.approx(59.5)
        assert baseline.resting_hr is None
        assert baseline.sleep_hours == pytest.approx(7)
        assert baseline.active_energy_kcal is None


class TestBuildBaseline:

    def test_folds_history_in_date_order(self):
        history = pd.DataFrame({
            "date": [date(2025, 1, 2), date(2025, 1, 1)],
            "has_recovery_data": [False, True],
            "hrv_ms": [80.0, 50.0],
            "resting_hr_bpm": [40.0, 50.0],
            "sleep_hours": [0.0, 8.0],
            "active_energy_kcal": [0.0, 400.0],
        })
        baseline = build_baseline(history)
        # Day 2 has no recovery data and no sleep or energy
        assert baseline.hrv == pytest.approx(59.5)
        assert baseline.resting_hr == pytest.approx(54.75)
        assert baseline.sleep_hours == pytest.approx(8)
        assert baseline.active_energy_kcal == pytest.approx(400)

    def test_empty_history(self):
        history = pd.DataFrame(columns=["date", "hrv_ms", "resting_hr_bpm", "sleep_hours", "active_energy_kcal"])
        assert build_baseline(history) == HealthBaseline()


class TestTrends:

    def test_rolling_average(self):
        assert rolling_average(pd.Series([1.0, None, 3.0, 5.0]), days=2) == pytest.approx(4.0)
        assert rolling_average(pd.Series([2.0, 4.0]), days=7) == pytest.approx(3.0)

    def test_rolling_average_empty(self):
        assert rolling_average(pd.Series([None, None], dtype="float64")) is None

    def test_score_trend(self):
        history = pd.DataFrame({
            "date": [date(2025, 1, d) for d in (3, 1, 2)],
            "recovery_score": [70, 50, 60],
            "sleep_score": [90, 80, 85],
        })
        assert score_trend(history, ScoreKind.RECOVERY, days=2) == [60, 70]
        assert score_trend(history, "sleep") == [80, 85, 90]
        assert score_trend(history, ScoreKind.STRAIN) == []

    def test_stress_trend(self):
        history = pd.DataFrame({
            "date": [date(2025, 1, d) for d in (1, 2, 3)],
            "stress_score": [50, 65, 75],
        })
        assert score_trend(history, "stress", days=2) == [65, 75]
        assert score_trend(history, ScoreKind.STRESS) == [50, 65, 75]
