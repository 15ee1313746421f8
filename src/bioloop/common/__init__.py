"""Common utilities for Bioloop."""

from bioloop.common.config import Config, get_config, get_home_timezone, get_recency_window
from bioloop.common.models import (
    CUMULATIVE_KINDS,
    BiometricSample,
    MetricKind,
    ScoreKind,
    ScoreResult,
    parse_metric_kind,
)
from bioloop.common.timestamps import apply_strategy_a, localize_naive, parse_naive

__all__ = [
    "Config",
    "get_config",
    "get_home_timezone",
    "get_recency_window",
    "CUMULATIVE_KINDS",
    "BiometricSample",
    "MetricKind",
    "ScoreKind",
    "ScoreResult",
    "parse_metric_kind",
    "apply_strategy_a",
    "localize_naive",
    "parse_naive",
]
