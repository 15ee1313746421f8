"""Score calculation and daily analysis modules."""
from .scores import (
    compute_recovery_score,
    compute_sleep_score,
    compute_strain_score,
    compute_stress_score,
    get_score_status,
    get_stress_status,
    score_recovery,
    score_sleep,
    score_strain,
    score_stress,
)
from .daily import (
    DailyInputs,
    DailyScores,
    collect_daily_inputs,
    compute_daily_scores,
    score_history,
)
from .baseline import (
    HealthBaseline,
    build_baseline,
    rolling_average,
    score_trend,
)

__all__ = [
    # Scores
    "compute_recovery_score",
    "compute_sleep_score",
    "compute_strain_score",
    "compute_stress_score",
    "get_score_status",
    "get_stress_status",
    "score_recovery",
    "score_sleep",
    "score_strain",
    "score_stress",
    # Daily
    "DailyInputs",
    "DailyScores",
    "collect_daily_inputs",
    "compute_daily_scores",
    "score_history",
    # Baselines
    "HealthBaseline",
    "build_baseline",
    "rolling_average",
    "score_trend",
]
