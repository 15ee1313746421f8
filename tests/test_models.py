"""Tests for sample and score records."""
import dataclasses
from datetime import datetime, timezone

import pytest

from bioloop.common.models import (
    CUMULATIVE_KINDS,
    UNITS,
    BiometricSample,
    MetricKind,
    ScoreKind,
    ScoreResult,
    parse_metric_kind,
)

NOW = datetime(2025, 11, 2, 8, tzinfo=timezone.utc)


class TestScoreResult:

    @pytest.mark.parametrize("value", [0, 1, 50, 100])
    def test_accepts_valid_range(self, value):
        assert ScoreResult(kind=ScoreKind.SLEEP, value=value, computed_at=NOW).value == value

    @pytest.mark.parametrize("value", [-1, 101, 250])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(ValueError, match="out of range"):
            ScoreResult(kind=ScoreKind.RECOVERY, value=value, computed_at=NOW)

    def test_zero_means_no_data(self):
        assert not ScoreResult(kind=ScoreKind.STRAIN, value=0, computed_at=NOW).has_data
        assert ScoreResult(kind=ScoreKind.STRAIN, value=1, computed_at=NOW).has_data

    def test_immutable(self):
        result = ScoreResult(kind=ScoreKind.SLEEP, value=80, computed_at=NOW)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.value = 90


class TestBiometricSample:

    def test_immutable(self):
        sample = BiometricSample(kind=MetricKind.HRV, value=42.0, observed_at=NOW)
        with pytest.raises(dataclasses.FrozenInstanceError):
            sample.value = 50.0

    def test_every_kind_has_a_unit(self):
        assert set(UNITS) == set(MetricKind)

    def test_cumulative_kinds(self):
        assert MetricKind.STEPS in CUMULATIVE_KINDS
        assert MetricKind.SLEEP_HOURS in CUMULATIVE_KINDS
        assert MetricKind.HRV not in CUMULATIVE_KINDS
        assert MetricKind.WEIGHT not in CUMULATIVE_KINDS


class TestParseMetricKind:

    @pytest.mark.parametrize("text,expected", [
        ("hrv", MetricKind.HRV),
        ("HRV", MetricKind.HRV),
        ("resting_heart_rate", MetricKind.RESTING_HEART_RATE),
        ("RESTING_HEART_RATE", MetricKind.RESTING_HEART_RATE),
        (" active_energy ", MetricKind.ACTIVE_ENERGY),
        (MetricKind.VO2_MAX, MetricKind.VO2_MAX),
    ])
    def test_known_kinds(self, text, expected):
        assert parse_metric_kind(text) is expected

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="Unknown metric kind"):
            parse_metric_kind("blood_glucose")
