"""Readers that turn Apple Health exports into biometric samples."""
from .hae_csv import (
    frame_to_samples,
    load_directory,
    read_samples,
    read_samples_frame,
)
from .sleep_sessions import (
    SleepSession,
    SleepStage,
    SleepStageInterval,
    build_daily_summary,
    build_sessions,
    daily_sleep_hours,
    load_sleep_csv,
    sleep_hour_samples,
)

__all__ = [
    # HAE metrics
    "frame_to_samples",
    "load_directory",
    "read_samples",
    "read_samples_frame",
    # Sleep
    "SleepSession",
    "SleepStage",
    "SleepStageInterval",
    "build_daily_summary",
    "build_sessions",
    "daily_sleep_hours",
    "load_sleep_csv",
    "sleep_hour_samples",
]
