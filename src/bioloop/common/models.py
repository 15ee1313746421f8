"""
Core record types for Bioloop.

Samples come in from the ingest layer; scores go out to whatever renders them.
Both are immutable.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class MetricKind(str, Enum):
    """Biometric quantities read from Apple Health."""

    HRV = "hrv"
    RESTING_HEART_RATE = "resting_heart_rate"
    VO2_MAX = "vo2_max"
    WEIGHT = "weight"
    STEPS = "steps"
    ACTIVE_ENERGY = "active_energy"
    SLEEP_HOURS = "sleep_hours"


class ScoreKind(str, Enum):
    RECOVERY = "recovery"
    SLEEP = "sleep"
    STRAIN = "strain"
    STRESS = "stress"


# Kinds that accumulate over a day (summed) vs. point readings (latest wins)
CUMULATIVE_KINDS = frozenset({
    MetricKind.STEPS,
    MetricKind.ACTIVE_ENERGY,
    MetricKind.SLEEP_HOURS,
})

UNITS = {
    MetricKind.HRV: "ms",
    MetricKind.RESTING_HEART_RATE: "bpm",
    MetricKind.VO2_MAX: "ml/kg/min",
    MetricKind.WEIGHT: "kg",
    MetricKind.STEPS: "count",
    MetricKind.ACTIVE_ENERGY: "kcal",
    MetricKind.SLEEP_HOURS: "hr",
}


@dataclass(frozen=True)
class BiometricSample:
    """A single timestamped reading of one metric."""
    kind: MetricKind
    value: float
    observed_at: datetime


@dataclass(frozen=True)
class ScoreResult:
    """
    A computed 0-100 score.

    A value of 0 means the inputs were insufficient, not a measured zero.
    """
    kind: ScoreKind
    value: int
    computed_at: datetime

    def __post_init__(self) -> None:
        if not 0 <= self.value <= 100:
            raise ValueError(f"{self.kind.value} score out of range: {self.value}")

    @property
    def has_data(self) -> bool:
        return self.value > 0


def parse_metric_kind(value: str | MetricKind) -> MetricKind:
    """Resolve a metric kind from its enum value or name."""
    if isinstance(value, MetricKind):
        return value
    key = str(value).strip()
    try:
        return MetricKind(key.lower())
    except ValueError:
        pass
    try:
        return MetricKind[key.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown metric kind: {value}. Available: {[k.value for k in MetricKind]}"
        ) from None
