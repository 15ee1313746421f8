"""
Daily health score calculations.

Implements:
- Recovery Score: HRV + Resting HR, adjusted by last night's sleep
- Sleep Score: duration around an 8-hour optimum
- Strain Score: steps + active energy
- Stress Score: HRV against its personal baseline (higher means more stress)

All scores are 0-100. A score of 0 means the inputs were missing, not a
measured zero. Status thresholds used for display:
- 85-100: Excellent (Green)
- 70-84: Good (Yellow)
- 50-69: Fair (Orange)
- <50: Low (Red)
"""
from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd

from bioloop.common.models import ScoreKind, ScoreResult

# =============================================================================
# Helpers
# =============================================================================

def _is_missing(value: float | None) -> bool:
    """None, NaN and non-positive readings all count as no data."""
    if value is None or pd.isna(value):
        return True
    return value <= 0


def _finalize(score: float) -> int:
    """Clamp to 0-100 and truncate."""
    return int(max(0.0, min(100.0, score)))


def get_score_status(score: int, has_data: bool = True) -> tuple[str, str]:
    """Get status label and color for any daily score."""
    if not has_data:
        return "No Data", "gray"
    if score >= 85:
        return "Excellent", "green"
    elif score >= 70:
        return "Good", "yellow"
    elif score >= 50:
        return "Fair", "orange"
    else:
        return "Low", "red"


def get_stress_status(score: int, has_data: bool = True) -> tuple[str, str]:
    """Get status label and color for the Stress Score (higher is worse)."""
    if not has_data:
        return "No Data", "gray"
    if score >= 70:
        return "High", "red"
    elif score >= 40:
        return "Moderate", "orange"
    else:
        return "Low", "green"


# =============================================================================
# Recovery Score - Component Calculations
# =============================================================================

def calc_hrv_score(hrv_ms: float) -> float:
    """
    HRV sub-score (higher is better).

    Args:
        hrv_ms: Heart rate variability (SDNN, ms)

    Returns:
        Score 10-100
        - >=40 ms: 85, +0.5 per ms above 40 (cap 100)
        - 30-40 ms: 70 -> 85
        - 20-30 ms: 50 -> 70
        - <20 ms: hrv * 2.5 (floor 10)
    """
    if hrv_ms >= 40:
        return 85 + min(15, (hrv_ms - 40) * 0.5)
    elif hrv_ms >= 30:
        return 70 + ((hrv_ms - 30) / 10) * 15
    elif hrv_ms >= 20:
        return 50 + ((hrv_ms - 20) / 10) * 20
    else:
        return max(10, hrv_ms * 2.5)


def calc_rhr_score(resting_hr: float) -> float:
    """
    Resting heart rate sub-score (lower is better).

    Args:
        resting_hr: Resting heart rate (bpm)

    Returns:
        Score 10-100
        - <=55 bpm: 90, +0.5 per bpm below 55 (cap 100)
        - 55-65 bpm: 90 -> 75
        - 65-80 bpm: 75 -> 50
        - >80 bpm: (120 - rhr) * 0.8 (floor 10)
    """
    if resting_hr <= 55:
        return 90 + min(10, (55 - resting_hr) * 0.5)
    elif resting_hr <= 65:
        return 75 + ((65 - resting_hr) / 10) * 15
    elif resting_hr <= 80:
        return 50 + ((80 - resting_hr) / 15) * 25
    else:
        return max(10, (120 - resting_hr) * 0.8)


def calc_sleep_multiplier(sleep_hours: float | None) -> float:
    """
    Recovery adjustment for last night's sleep.

    Returns:
        1.10 for 7-9 hours, 1.0 for 6-10 hours, 0.85 otherwise.
        1.0 when sleep is unknown.
    """
    if _is_missing(sleep_hours):
        return 1.0
    if 7 <= sleep_hours <= 9:
        return 1.1
    elif 6 <= sleep_hours <= 10:
        return 1.0
    else:
        return 0.85


def compute_recovery_score(
    hrv: float | None,
    resting_hr: float | None,
    sleep_hours: float | None = None,
) -> int:
    """
    Calculate the Recovery Score.

    Average of the HRV and RHR sub-scores, scaled by the sleep multiplier.

    Args:
        hrv: Latest HRV (ms)
        resting_hr: Latest resting HR (bpm)
        sleep_hours: Last night's sleep (hours), optional

    Returns:
        Score 0-100 (0 if HRV or RHR is missing)
    """
    if _is_missing(hrv) or _is_missing(resting_hr):
        return 0

    score = (calc_hrv_score(hrv) + calc_rhr_score(resting_hr)) / 2
    score *= calc_sleep_multiplier(sleep_hours)

    return _finalize(score)


# =============================================================================
# Sleep Score
# =============================================================================

OPTIMAL_SLEEP_HOURS = 8.0


def compute_sleep_score(sleep_hours: float | None) -> int:
    """
    Calculate the Sleep Score from total sleep duration.

    Bands are chosen on the raw duration; within each band the score is a
    linear function of the deviation from 8 hours.

    Args:
        sleep_hours: Total time asleep (hours)

    Returns:
        Score 0-100 (0 if no sleep recorded)
    """
    if _is_missing(sleep_hours):
        return 0

    d = abs(sleep_hours - OPTIMAL_SLEEP_HOURS)

    if 7.5 <= sleep_hours <= 8.5:
        score = 95 + min(5, (8.5 - d) * 2)
    elif 7 <= sleep_hours <= 9:
        score = 85 + (9 - d) * 10
    elif 6.5 <= sleep_hours <= 9.5:
        score = 70 + ((9.5 - d) / 1.5) * 15
    elif 6 <= sleep_hours <= 10:
        score = 50 + ((10 - d) / 2) * 20
    elif 5 <= sleep_hours <= 11:
        score = 30 + ((11 - d) / 3) * 20
    else:
        score = max(10, 30 - d * 2)

    return _finalize(score)


# =============================================================================
# Strain Score - Component Calculations
# =============================================================================

def calc_step_score(steps: float) -> float:
    """
    Step count sub-score.

    Returns:
        Score 5-100
        - >=12000: 90 -> 100 (reached at 15000)
        - 8000-12000: 70 -> 90
        - 5000-8000: 40 -> 70
        - 2000-5000: 20 -> 40
        - <2000: 0 -> 20 (floor 5)
    """
    if steps >= 12000:
        return 90 + min(10, (steps - 12000) / 3000 * 10)
    elif steps >= 8000:
        return 70 + ((steps - 8000) / 4000) * 20
    elif steps >= 5000:
        return 40 + ((steps - 5000) / 3000) * 30
    elif steps >= 2000:
        return 20 + ((steps - 2000) / 3000) * 20
    else:
        return max(5, steps / 2000 * 20)


def calc_energy_score(active_energy_kcal: float) -> float:
    """
    Active energy sub-score.

    Returns:
        Score 5-100
        - >=600 kcal: 85 -> 100 (reached at 800)
        - 400-600: 65 -> 85
        - 200-400: 35 -> 65
        - 100-200: 15 -> 35
        - <100: 0 -> 15 (floor 5)
    """
    if active_energy_kcal >= 600:
        return 85 + min(15, (active_energy_kcal - 600) / 200 * 15)
    elif active_energy_kcal >= 400:
        return 65 + ((active_energy_kcal - 400) / 200) * 20
    elif active_energy_kcal >= 200:
        return 35 + ((active_energy_kcal - 200) / 200) * 30
    elif active_energy_kcal >= 100:
        return 15 + ((active_energy_kcal - 100) / 100) * 20
    else:
        return max(5, active_energy_kcal / 100 * 15)


STEP_WEIGHT = 0.4
ENERGY_WEIGHT = 0.6


def compute_strain_score(
    steps: float | None,
    active_energy_kcal: float | None,
) -> int:
    """
    Calculate the Strain Score.

    Args:
        steps: Step count for the day
        active_energy_kcal: Active energy burned for the day (kcal)

    Returns:
        Score 0-100 (0 if neither input is present)
    """
    steps_missing = _is_missing(steps)
    energy_missing = _is_missing(active_energy_kcal)
    if steps_missing and energy_missing:
        return 0

    step_score = calc_step_score(0.0 if steps_missing else steps)
    energy_score = calc_energy_score(0.0 if energy_missing else active_energy_kcal)

    return _finalize(step_score * STEP_WEIGHT + energy_score * ENERGY_WEIGHT)


# =============================================================================
# Stress Score
# =============================================================================

STRESS_NEUTRAL = 50.0


def compute_stress_score(hrv: float | None, hrv_baseline: float | None = None) -> int:
    """
    Calculate the Stress Score from HRV relative to the personal baseline.

    Starts at 50. HRV well below baseline raises stress; well above lowers it:
    - ratio < 0.8: +25
    - ratio < 0.9: +15
    - ratio > 1.1: -20

    Args:
        hrv: Latest HRV (ms)
        hrv_baseline: Personal HRV baseline (ms), optional

    Returns:
        Score 0-100 (0 if HRV is missing, 50 with no baseline)
    """
    if _is_missing(hrv):
        return 0

    score = STRESS_NEUTRAL
    if not _is_missing(hrv_baseline):
        ratio = hrv / hrv_baseline
        if ratio < 0.8:
            score += 25
        elif ratio < 0.9:
            score += 15
        elif ratio > 1.1:
            score -= 20

    return _finalize(score)


# =============================================================================
# ScoreResult wrappers
# =============================================================================

def _stamp(computed_at: datetime | None) -> datetime:
    return computed_at if computed_at is not None else datetime.now(timezone.utc)


def score_recovery(
    hrv: float | None,
    resting_hr: float | None,
    sleep_hours: float | None = None,
    computed_at: datetime | None = None,
) -> ScoreResult:
    return ScoreResult(
        kind=ScoreKind.RECOVERY,
        value=compute_recovery_score(hrv, resting_hr, sleep_hours),
        computed_at=_stamp(computed_at),
    )


def score_sleep(sleep_hours: float | None, computed_at: datetime | None = None) -> ScoreResult:
    return ScoreResult(
        kind=ScoreKind.SLEEP,
        value=compute_sleep_score(sleep_hours),
        computed_at=_stamp(computed_at),
    )


def score_strain(
    steps: float | None,
    active_energy_kcal: float | None,
    computed_at: datetime | None = None,
) -> ScoreResult:
    return ScoreResult(
        kind=ScoreKind.STRAIN,
        value=compute_strain_score(steps, active_energy_kcal),
        computed_at=_stamp(computed_at),
    )


def score_stress(
    hrv: float | None,
    hrv_baseline: float | None = None,
    computed_at: datetime | None = None,
) -> ScoreResult:
    return ScoreResult(
        kind=ScoreKind.STRESS,
        value=compute_stress_score(hrv, hrv_baseline),
        computed_at=_stamp(computed_at),
    )
