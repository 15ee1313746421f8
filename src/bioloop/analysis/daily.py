"""
Daily score assembly.

Reduces a stream of biometric samples to the scalar inputs of one local
calendar day, then runs the score calculators over them. Availability flags
travel with the scores so a 0 from missing data can be told apart from a
measured low score.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from bioloop.analysis.baseline import HealthBaseline
from bioloop.analysis.scores import (
    get_score_status,
    get_stress_status,
    score_recovery,
    score_sleep,
    score_strain,
    score_stress,
)
from bioloop.common.config import get_home_timezone, get_recency_window
from bioloop.common.models import (
    CUMULATIVE_KINDS,
    BiometricSample,
    MetricKind,
    ScoreKind,
    ScoreResult,
)

log = logging.getLogger(__name__)


@dataclass
class DailyInputs:
    """Scalar inputs for one day's scores."""

    day: date

    # Point-in-time readings (latest known)
    hrv: Optional[float] = None
    hrv_observed_at: Optional[datetime] = None
    resting_hr: Optional[float] = None
    resting_hr_observed_at: Optional[datetime] = None
    vo2_max: Optional[float] = None
    weight_kg: Optional[float] = None

    # Day totals
    steps: float = 0.0
    active_energy_kcal: float = 0.0
    sleep_hours: float = 0.0

    hrv_is_recent: bool = False
    resting_hr_is_recent: bool = False

    @property
    def has_recovery_data(self) -> bool:
        return (
            self.hrv_is_recent and self.resting_hr_is_recent
            and (self.hrv or 0) > 0 and (self.resting_hr or 0) > 0
        )

    @property
    def has_sleep_data(self) -> bool:
        return self.sleep_hours > 0

    @property
    def has_strain_data(self) -> bool:
        return self.steps > 0 or self.active_energy_kcal > 0

    @property
    def has_stress_data(self) -> bool:
        return self.hrv_is_recent and (self.hrv or 0) > 0

    @property
    def missing_metrics(self) -> list[str]:
        """Metric kinds with no usable reading for this day."""
        missing = []
        if not (self.hrv_is_recent and (self.hrv or 0) > 0):
            missing.append(MetricKind.HRV.value)
        if not (self.resting_hr_is_recent and (self.resting_hr or 0) > 0):
            missing.append(MetricKind.RESTING_HEART_RATE.value)
        if self.steps <= 0:
            missing.append(MetricKind.STEPS.value)
        if self.active_energy_kcal <= 0:
            missing.append(MetricKind.ACTIVE_ENERGY.value)
        if self.sleep_hours <= 0:
            missing.append(MetricKind.SLEEP_HOURS.value)
        return missing


@dataclass
class DailyScores:
    """The scores for a day plus the inputs they came from."""

    day: date
    recovery: ScoreResult
    sleep: ScoreResult
    strain: ScoreResult
    stress: ScoreResult
    inputs: DailyInputs = field(repr=False)
    hrv_baseline: Optional[float] = None

    def get(self, kind: ScoreKind) -> ScoreResult:
        return {
            ScoreKind.RECOVERY: self.recovery,
            ScoreKind.SLEEP: self.sleep,
            ScoreKind.STRAIN: self.strain,
            ScoreKind.STRESS: self.stress,
        }[ScoreKind(kind)]

    def has_data(self, kind: ScoreKind) -> bool:
        return {
            ScoreKind.RECOVERY: self.inputs.has_recovery_data,
            ScoreKind.SLEEP: self.inputs.has_sleep_data,
            ScoreKind.STRAIN: self.inputs.has_strain_data,
            ScoreKind.STRESS: self.inputs.has_stress_data,
        }[ScoreKind(kind)]

    def status(self, kind: ScoreKind) -> tuple[str, str]:
        """Display tier (label, color) for one score."""
        if ScoreKind(kind) is ScoreKind.STRESS:
            return get_stress_status(self.stress.value, has_data=self.has_data(kind))
        return get_score_status(self.get(kind).value, has_data=self.has_data(kind))

    def as_record(self) -> dict:
        """Flat dict for building a history frame."""
        i = self.inputs
        return {
            "date": self.day,
            "recovery_score": self.recovery.value,
            "sleep_score": self.sleep.value,
            "strain_score": self.strain.value,
            "stress_score": self.stress.value,
            "has_recovery_data": i.has_recovery_data,
            "has_sleep_data": i.has_sleep_data,
            "has_strain_data": i.has_strain_data,
            "has_stress_data": i.has_stress_data,
            "hrv_ms": i.hrv,
            "resting_hr_bpm": i.resting_hr,
            "sleep_hours": i.sleep_hours,
            "steps": i.steps,
            "active_energy_kcal": i.active_energy_kcal,
            "vo2_max_ml_kg_min": i.vo2_max,
            "weight_kg": i.weight_kg,
            "hrv_baseline_ms": self.hrv_baseline,
        }


HISTORY_COLUMNS = [
    "date", "recovery_score", "sleep_score", "strain_score", "stress_score",
    "has_recovery_data", "has_sleep_data", "has_strain_data", "has_stress_data",
    "hrv_ms", "resting_hr_bpm", "sleep_hours", "steps", "active_energy_kcal",
    "vo2_max_ml_kg_min", "weight_kg", "hrv_baseline_ms",
]


def _as_aware(ts: datetime, tz: ZoneInfo) -> datetime:
    """Naive timestamps are taken as local wall-clock time."""
    return ts.replace(tzinfo=tz) if ts.tzinfo is None else ts


def _day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return start, end


def collect_daily_inputs(
    samples: Iterable[BiometricSample],
    day: date,
    recency_window: Optional[timedelta] = None,
    home_timezone: Optional[str] = None,
) -> DailyInputs:
    """
    Reduce samples to the inputs for one local calendar day.

    Point-in-time kinds take the latest sample observed before the day ends.
    HRV and resting HR only count when that sample is within recency_window
    of the end of the day. Cumulative kinds sum the samples inside the day.

    Args:
        samples: Biometric samples in any order
        day: Local calendar day to score
        recency_window: How old an HRV/RHR reading may be (default from config)
        home_timezone: IANA timezone defining the day (default from config)
    """
    tz = ZoneInfo(home_timezone or get_home_timezone())
    recency_window = recency_window if recency_window is not None else get_recency_window()
    day_start, day_end = _day_bounds(day, tz)

    latest: dict[MetricKind, BiometricSample] = {}
    totals: dict[MetricKind, float] = {kind: 0.0 for kind in CUMULATIVE_KINDS}

    for sample in samples:
        observed_at = _as_aware(sample.observed_at, tz)
        if observed_at >= day_end:
            continue
        if sample.kind in CUMULATIVE_KINDS:
            if observed_at >= day_start and sample.value > 0:
                totals[sample.kind] += sample.value
            continue
        current = latest.get(sample.kind)
        if current is None or observed_at >= _as_aware(current.observed_at, tz):
            latest[sample.kind] = sample

    def _latest(kind: MetricKind) -> tuple[Optional[float], Optional[datetime]]:
        s = latest.get(kind)
        return (s.value, _as_aware(s.observed_at, tz)) if s is not None else (None, None)

    def _recent(observed_at: Optional[datetime]) -> bool:
        return observed_at is not None and day_end - observed_at <= recency_window

    hrv, hrv_at = _latest(MetricKind.HRV)
    rhr, rhr_at = _latest(MetricKind.RESTING_HEART_RATE)

    inputs = DailyInputs(
        day=day,
        hrv=hrv,
        hrv_observed_at=hrv_at,
        resting_hr=rhr,
        resting_hr_observed_at=rhr_at,
        vo2_max=_latest(MetricKind.VO2_MAX)[0],
        weight_kg=_latest(MetricKind.WEIGHT)[0],
        steps=totals[MetricKind.STEPS],
        active_energy_kcal=totals[MetricKind.ACTIVE_ENERGY],
        sleep_hours=totals[MetricKind.SLEEP_HOURS],
        hrv_is_recent=_recent(hrv_at),
        resting_hr_is_recent=_recent(rhr_at),
    )
    log.debug(
        "inputs %s: hrv=%s rhr=%s recent=(%s,%s) steps=%.0f energy=%.0f sleep=%.2f",
        day, hrv, rhr, inputs.hrv_is_recent, inputs.resting_hr_is_recent,
        inputs.steps, inputs.active_energy_kcal, inputs.sleep_hours,
    )
    return inputs


def compute_daily_scores(
    inputs: DailyInputs,
    computed_at: Optional[datetime] = None,
    hrv_baseline: Optional[float] = None,
) -> DailyScores:
    """
    Score one day.

    Recovery is 0 unless both HRV and resting HR are recent. Stress is 0
    unless HRV is recent, and stays neutral without an HRV baseline.
    """
    computed_at = computed_at or datetime.now(timezone.utc)

    if inputs.has_recovery_data:
        recovery = score_recovery(inputs.hrv, inputs.resting_hr, inputs.sleep_hours, computed_at)
    else:
        recovery = ScoreResult(kind=ScoreKind.RECOVERY, value=0, computed_at=computed_at)

    if inputs.has_stress_data:
        stress = score_stress(inputs.hrv, hrv_baseline, computed_at)
    else:
        stress = ScoreResult(kind=ScoreKind.STRESS, value=0, computed_at=computed_at)

    scores = DailyScores(
        day=inputs.day,
        recovery=recovery,
        sleep=score_sleep(inputs.sleep_hours, computed_at),
        strain=score_strain(inputs.steps, inputs.active_energy_kcal, computed_at),
        stress=stress,
        inputs=inputs,
        hrv_baseline=hrv_baseline,
    )
    log.debug(
        "scores %s: recovery=%d sleep=%d strain=%d stress=%d missing=%s",
        inputs.day, scores.recovery.value, scores.sleep.value, scores.strain.value,
        scores.stress.value, inputs.missing_metrics,
    )
    return scores


def score_history(
    samples: Iterable[BiometricSample],
    end_day: date,
    days: int = 30,
    recency_window: Optional[timedelta] = None,
    home_timezone: Optional[str] = None,
    computed_at: Optional[datetime] = None,
) -> pd.DataFrame:
    """
    Daily scores for the `days` days ending on end_day (inclusive).

    Stress for each day is scored against the HRV baseline built from the
    days before it in the window.

    Returns:
        DataFrame with one row per day, oldest first.
    """
    if days < 1:
        raise ValueError(f"days must be at least 1 (got {days})")

    samples = list(samples)
    baseline = HealthBaseline()
    rows = []
    for offset in range(days - 1, -1, -1):
        day = end_day - timedelta(days=offset)
        inputs = collect_daily_inputs(samples, day, recency_window, home_timezone)
        rows.append(compute_daily_scores(inputs, computed_at, baseline.hrv).as_record())
        baseline.update_from_inputs(inputs)

    history = pd.DataFrame(rows, columns=HISTORY_COLUMNS)
    log.info(
        "score_history: days=%d, dates=%s..%s, recovery_days=%d",
        len(history), history["date"].min(), history["date"].max(),
        int(history["has_recovery_data"].sum()),
    )
    return history
