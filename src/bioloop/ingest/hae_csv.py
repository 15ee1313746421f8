# src/bioloop/ingest/hae_csv.py
"""
HAE CSV ingestion - Health Auto Export "Health Metrics" CSV -> BiometricSample.

- Reads from: Data/Raw/HAE/CSV/
- Handles both daily-aggregated and minute-level exports: every non-empty
  cell of a scored metric becomes one sample stamped with its row time.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np
import pandas as pd

from bioloop.common.config import get_home_timezone
from bioloop.common.models import BiometricSample, MetricKind
from bioloop.common.timestamps import apply_strategy_a

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------
# Column crosswalk: HAE header -> canonical column
# ---------------------------------------------------------------------
RENAME_MAP = {
    # time
    "Date/Time": "timestamp_local",
    "Date": "timestamp_local",

    # autonomic
    "Heart Rate Variability (ms)": "hrv_ms",
    "Resting Heart Rate (count/min)": "resting_hr_bpm",
    "Resting Heart Rate (bpm)": "resting_hr_bpm",

    # fitness / body
    "VO2 Max (ml/(kg·min))": "vo2_max_ml_kg_min",
    "VO2 Max (mL/min·kg)": "vo2_max_ml_kg_min",
    "Weight (lb)": "weight_lb",
    "Weight & Body Mass (lb)": "weight_lb",
    "Body Mass (lb)": "weight_lb",
    "Weight (kg)": "weight_kg",
    "Weight & Body Mass (kg)": "weight_kg",
    "Body Mass (kg)": "weight_kg",

    # activity
    "Steps (count)": "steps",
    "Step Count (count)": "steps",
    "Active Energy (kcal)": "active_energy_kcal",
    "Active Energy (kJ)": "active_energy_kj",

    # sleep
    "Sleep Analysis [Total] (hr)": "sleep_total_hr",
    "Sleep Analysis [Asleep] (hr)": "sleep_asleep_hr",
    "Sleep Minutes Asleep (min)": "sleep_minutes_asleep",
}

LB_PER_KG = 2.20462
KJ_PER_KCAL = 4.184

# Canonical column -> metric kind, after unit normalization
METRIC_COLUMNS = {
    "hrv_ms": MetricKind.HRV,
    "resting_hr_bpm": MetricKind.RESTING_HEART_RATE,
    "vo2_max_ml_kg_min": MetricKind.VO2_MAX,
    "weight_kg": MetricKind.WEIGHT,
    "steps": MetricKind.STEPS,
    "active_energy_kcal": MetricKind.ACTIVE_ENERGY,
    "sleep_hours": MetricKind.SLEEP_HOURS,
}

SAMPLE_COLUMNS = ["observed_at", "kind", "value"]


# ---------------------------------------------------------------------
# CSV loading / normalization
# ---------------------------------------------------------------------
def load_csv(csv_path: Path) -> pd.DataFrame:
    """
    Load a raw CSV from HAE. Strip headers and apply canonical renames.
    Columns we do not score are left unmapped and ignored downstream.
    """
    df = pd.read_csv(csv_path)
    df.columns = df.columns.str.strip()

    orig_columns = list(df.columns)
    df = df.rename(columns=RENAME_MAP)
    # Two HAE headers can map to the same canonical name; keep the first
    df = df.loc[:, ~df.columns.duplicated()]

    unmapped = [c for c in orig_columns if c not in RENAME_MAP]
    if unmapped:
        log.info("unmapped_columns: %s count=%d %s", csv_path.name, len(unmapped), unmapped[:6])

    return df


def _coerce_metric_types(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce every known metric column to float."""
    numeric_cols = set(METRIC_COLUMNS) | {
        "weight_lb", "active_energy_kj",
        "sleep_total_hr", "sleep_asleep_hr", "sleep_minutes_asleep",
    }
    for c in numeric_cols:
        if c in df.columns:
            df[c] = pd.to_numeric(df[c], errors="coerce")
    return df


def _first_available(df: pd.DataFrame, columns: list[str]) -> Optional[pd.Series]:
    """Row-wise first non-null value across the columns present."""
    present = [c for c in columns if c in df.columns]
    if not present:
        return None
    return df[present].bfill(axis=1).iloc[:, 0]


def _normalize_units(df: pd.DataFrame) -> pd.DataFrame:
    """
    Convert to the units the scores expect: kg, kcal, hours.
    """
    if "weight_lb" in df.columns:
        from_lb = df["weight_lb"] / LB_PER_KG
        df["weight_kg"] = df["weight_kg"].fillna(from_lb) if "weight_kg" in df.columns else from_lb

    if "active_energy_kj" in df.columns:
        from_kj = df["active_energy_kj"] / KJ_PER_KCAL
        if "active_energy_kcal" in df.columns:
            df["active_energy_kcal"] = df["active_energy_kcal"].fillna(from_kj)
        else:
            df["active_energy_kcal"] = from_kj

    if "sleep_minutes_asleep" in df.columns:
        df["sleep_minutes_asleep_hr"] = df["sleep_minutes_asleep"] / 60.0
    sleep = _first_available(df, ["sleep_total_hr", "sleep_asleep_hr", "sleep_minutes_asleep_hr"])
    if sleep is not None:
        df["sleep_hours"] = sleep

    return df


def to_samples_frame(df: pd.DataFrame) -> pd.DataFrame:
    """
    Melt a normalized wide frame into long (observed_at, kind, value) rows.

    Empty and non-positive readings are dropped.
    """
    metric_cols = [c for c in METRIC_COLUMNS if c in df.columns]
    if not metric_cols or df.empty:
        return pd.DataFrame(columns=SAMPLE_COLUMNS)

    long = df[["timestamp_utc"] + metric_cols].melt(
        id_vars="timestamp_utc", var_name="column", value_name="value"
    )
    long = long.dropna(subset=["value"])
    long = long.loc[np.isfinite(long["value"]) & (long["value"] > 0)].copy()

    long["kind"] = long["column"].map(lambda c: METRIC_COLUMNS[c].value)
    long = long.rename(columns={"timestamp_utc": "observed_at"})

    return long[SAMPLE_COLUMNS].sort_values(["observed_at", "kind"]).reset_index(drop=True)


def frame_to_samples(frame: pd.DataFrame) -> list[BiometricSample]:
    """Convert a long samples frame to BiometricSample records."""
    return [
        BiometricSample(
            kind=MetricKind(kind),
            value=float(value),
            observed_at=pd.Timestamp(observed_at).to_pydatetime(),
        )
        for observed_at, kind, value in frame[SAMPLE_COLUMNS].itertuples(index=False, name=None)
    ]


# ---------------------------------------------------------------------
# Logging helpers
# ---------------------------------------------------------------------
def _log_samples_summary(csv_path: Path, frame: pd.DataFrame) -> None:
    """Log a per-kind count and the time window of the samples read."""
    if frame.empty:
        log.info("samples: %s → rows=0 (nothing to do)", csv_path.name)
        return
    counts = frame["kind"].value_counts().sort_index()
    top = ", ".join(f"{k}:{v}" for k, v in counts.items())
    log.info(
        "samples: %s → rows=%d, window=%s..%s, kinds=[%s]",
        csv_path.name, len(frame), frame["observed_at"].min(), frame["observed_at"].max(), top,
    )


# ---------------------------------------------------------------------
# Per-file and directory pipelines
# ---------------------------------------------------------------------
def read_samples_frame(csv_path: Path, home_timezone: Optional[str] = None) -> pd.DataFrame:
    """Load one HAE CSV into a long samples frame."""
    home_timezone = home_timezone or get_home_timezone()
    try:
        df = load_csv(csv_path)
        if "timestamp_local" not in df.columns:
            raise ValueError(f"{csv_path}: No suitable timestamp column found ('Date/Time' or 'Date')")
        df = apply_strategy_a(df, timestamp_col="timestamp_local", home_timezone=home_timezone)
        df = _coerce_metric_types(df)
        df = _normalize_units(df)
        frame = to_samples_frame(df)
        _log_samples_summary(csv_path, frame)
        return frame
    except Exception as e:
        log.error("Failed on %s: %s", csv_path, e, exc_info=True)
        raise


def read_samples(csv_path: Path, home_timezone: Optional[str] = None) -> list[BiometricSample]:
    """Load one HAE CSV into BiometricSample records."""
    return frame_to_samples(read_samples_frame(csv_path, home_timezone))


def iter_raw_csvs(raw_dir: Path) -> Iterable[Path]:
    """Iterate over CSV files in directory."""
    return sorted(Path(raw_dir).glob("*.csv"))


def load_directory(raw_dir: Path, home_timezone: Optional[str] = None) -> pd.DataFrame:
    """
    Load every CSV in raw_dir into one long samples frame.

    Overlapping exports are de-duplicated on (observed_at, kind); the file
    read last wins. Files that fail are logged and skipped.
    """
    files = list(iter_raw_csvs(raw_dir))
    if not files:
        log.info("No CSV files found in %s", raw_dir)
        return pd.DataFrame(columns=SAMPLE_COLUMNS)

    frames = []
    processed = 0
    failed = 0
    for f in files:
        try:
            frames.append(read_samples_frame(f, home_timezone))
            processed += 1
        except Exception:
            failed += 1

    log.info("Run complete. Processed=%d Failed=%d", processed, failed)

    frames = [f for f in frames if not f.empty]
    if not frames:
        return pd.DataFrame(columns=SAMPLE_COLUMNS)

    combined = pd.concat(frames, ignore_index=True)
    combined = combined.drop_duplicates(subset=["observed_at", "kind"], keep="last")
    return combined.sort_values(["observed_at", "kind"]).reset_index(drop=True)
