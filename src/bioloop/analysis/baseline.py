"""
Personal baselines and short-term trends.

Baselines are slow exponential moving averages over daily inputs; trends are
the last N daily scores.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

import pandas as pd

from bioloop.common.models import ScoreKind

if TYPE_CHECKING:
    from bioloop.analysis.daily import DailyInputs

log = logging.getLogger(__name__)

# Weight given to each new day
BASELINE_ALPHA = 0.05

# First-update seeds sit a little above the first reading
HRV_SEED_OFFSET = 10.0
RHR_SEED_OFFSET = 5.0


def _ema(previous: Optional[float], value: float, seed_offset: float = 0.0) -> float:
    start = previous if previous is not None else value + seed_offset
    return start * (1 - BASELINE_ALPHA) + value * BASELINE_ALPHA


@dataclass
class HealthBaseline:
    """Rolling personal baselines."""

    hrv: Optional[float] = None  # ms
    resting_hr: Optional[float] = None  # bpm
    sleep_hours: Optional[float] = None
    active_energy_kcal: Optional[float] = None

    def update(
        self,
        hrv: Optional[float] = None,
        resting_hr: Optional[float] = None,
        sleep_hours: Optional[float] = None,
        active_energy_kcal: Optional[float] = None,
    ) -> "HealthBaseline":
        """Fold one day of readings in. Missing or non-positive readings are skipped."""
        if _usable(hrv):
            self.hrv = _ema(self.hrv, hrv, HRV_SEED_OFFSET)
        if _usable(resting_hr):
            self.resting_hr = _ema(self.resting_hr, resting_hr, RHR_SEED_OFFSET)
        if _usable(sleep_hours):
            self.sleep_hours = _ema(self.sleep_hours, sleep_hours)
        if _usable(active_energy_kcal):
            self.active_energy_kcal = _ema(self.active_energy_kcal, active_energy_kcal)
        return self

    def update_from_inputs(self, inputs: DailyInputs) -> "HealthBaseline":
        return self.update(
            hrv=inputs.hrv if inputs.hrv_is_recent else None,
            resting_hr=inputs.resting_hr if inputs.resting_hr_is_recent else None,
            sleep_hours=inputs.sleep_hours,
            active_energy_kcal=inputs.active_energy_kcal,
        )

    def reset(self) -> None:
        self.hrv = None
        self.resting_hr = None
        self.sleep_hours = None
        self.active_energy_kcal = None


def _usable(value: Optional[float]) -> bool:
    return value is not None and not pd.isna(value) and value > 0


def build_baseline(history: pd.DataFrame) -> HealthBaseline:
    """
    Fold a score-history frame (see analysis.daily.score_history) into a baseline.

    HRV/RHR only contribute on days where recovery had data.
    """
    baseline = HealthBaseline()
    for row in history.sort_values("date").itertuples(index=False):
        recovery_ok = bool(getattr(row, "has_recovery_data", True))
        baseline.update(
            hrv=row.hrv_ms if recovery_ok else None,
            resting_hr=row.resting_hr_bpm if recovery_ok else None,
            sleep_hours=row.sleep_hours,
            active_energy_kcal=row.active_energy_kcal,
        )
    log.debug("baseline from %d days: %s", len(history), baseline)
    return baseline


def rolling_average(values: pd.Series, days: int = 7) -> Optional[float]:
    """Mean of the last `days` non-null values, or None if there are none."""
    recent = values.dropna().tail(days)
    if recent.empty:
        return None
    return float(recent.mean())


def score_trend(history: pd.DataFrame, kind: ScoreKind | str, days: int = 7) -> list[int]:
    """Last `days` scores of one kind, oldest first."""
    column = f"{ScoreKind(kind).value}_score"
    if column not in history.columns:
        return []
    return [int(v) for v in history.sort_values("date")[column].tail(days)]
