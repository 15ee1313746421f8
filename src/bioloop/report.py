#!/usr/bin/env python3
"""
Daily score report from Health Auto Export data.

Outputs:
- Today's Recovery / Sleep / Strain / Stress scores with status tiers
- 7-day score trends
- Personal baselines (HRV, RHR, sleep, active energy)

Usage:
    python -m bioloop.report
    python -m bioloop.report --date 2025-11-02 --days 30
    python -m bioloop.report --sleep-csv Data/Raw/HAE/Sleep/sleep.csv --output scores.csv
"""
from __future__ import annotations

import argparse
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

import pandas as pd

from bioloop.analysis.baseline import build_baseline, rolling_average, score_trend
from bioloop.analysis.daily import DailyScores, collect_daily_inputs, compute_daily_scores, score_history
from bioloop.common.config import get_config
from bioloop.common.models import UNITS, MetricKind, ScoreKind
from bioloop.ingest.hae_csv import frame_to_samples, load_directory
from bioloop.ingest.sleep_sessions import daily_sleep_hours, load_sleep_csv, sleep_hour_samples
from bioloop.paths import RAW_HAE_CSV_DIR, RAW_HAE_SLEEP_DIR, SCORE_HISTORY_PATH

log = logging.getLogger(__name__)


def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not a YYYY-MM-DD date: {value}") from None


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Calculate daily health scores")
    parser.add_argument(
        "--csv-dir",
        type=Path,
        default=RAW_HAE_CSV_DIR,
        help="Directory of HAE metrics CSVs (default: Data/Raw/HAE/CSV)",
    )
    parser.add_argument(
        "--sleep-csv",
        type=Path,
        default=None,
        help=(
            "HAE sleep-analysis CSV; replaces sleep hours from the metrics export "
            "(default: newest CSV in Data/Raw/HAE/Sleep, if any)"
        ),
    )
    parser.add_argument(
        "--date",
        type=_parse_date,
        default=None,
        help="Day to score, YYYY-MM-DD (default: today in home timezone)",
    )
    parser.add_argument(
        "--days", type=int, default=30, help="Days of history for trends and baselines (default: 30)"
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Write the score history to this CSV",
    )
    parser.add_argument(
        "--save",
        action="store_true",
        help="Write the score history to Data/Output/daily_scores.csv",
    )
    return parser


def _newest_csv(directory: Path) -> Optional[Path]:
    files = sorted(directory.glob("*.csv"), key=lambda p: p.stat().st_mtime) if directory.is_dir() else []
    return files[-1] if files else None


def load_samples(csv_dir: Path, sleep_csv: Optional[Path], home_timezone: str) -> list:
    frame = load_directory(csv_dir, home_timezone)
    if sleep_csv is not None:
        intervals = load_sleep_csv(sleep_csv, home_timezone)
        hours = daily_sleep_hours(intervals, home_timezone)
        frame = frame.loc[frame["kind"] != MetricKind.SLEEP_HOURS.value]
        return frame_to_samples(frame) + sleep_hour_samples(hours, home_timezone)
    return frame_to_samples(frame)


def print_summary(scores: DailyScores, history: pd.DataFrame) -> None:
    """Print the day's scores, trends and baselines."""
    print(f"\n{'='*60}")
    print(f"DAILY SCORES: {scores.day.isoformat()}")
    print(f"{'='*60}")

    for kind in ScoreKind:
        result = scores.get(kind)
        label, _ = scores.status(kind)
        value = f"{result.value:3d}" if scores.has_data(kind) else "  --"
        print(f"  {kind.value.title():<9} {value}  {label}")

    missing = scores.inputs.missing_metrics
    if missing:
        print(f"\n  Missing: {', '.join(missing)}")

    print(f"\n--- 7-Day Trends ---")
    for kind in ScoreKind:
        trend = score_trend(history, kind, days=7)
        print(f"  {kind.value.title():<9} {' '.join(f'{v:3d}' for v in trend)}")

    baseline = build_baseline(history)
    print(f"\n--- Baselines ({len(history)} days) ---")
    for name, value, unit in [
        ("HRV", baseline.hrv, UNITS[MetricKind.HRV]),
        ("Resting HR", baseline.resting_hr, UNITS[MetricKind.RESTING_HEART_RATE]),
        ("Sleep", baseline.sleep_hours, UNITS[MetricKind.SLEEP_HOURS]),
        ("Active energy", baseline.active_energy_kcal, UNITS[MetricKind.ACTIVE_ENERGY]),
    ]:
        shown = f"{value:.1f} {unit}" if value is not None else "--"
        print(f"  {name:<14} {shown}")

    avg_hrv = rolling_average(history["hrv_ms"].where(history["has_recovery_data"]), days=7)
    avg_rhr = rolling_average(history["resting_hr_bpm"].where(history["has_recovery_data"]), days=7)
    if avg_hrv is not None:
        print(f"  HRV 7d avg     {avg_hrv:.1f} ms")
    if avg_rhr is not None:
        print(f"  RHR 7d avg     {avg_rhr:.1f} bpm")


def main(argv: Optional[list[str]] = None) -> pd.DataFrame:
    args = build_parser().parse_args(argv)
    if args.days < 1:
        raise SystemExit("--days must be at least 1")

    config = get_config()
    for problem in config.validate():
        log.warning("config: %s", problem)
    home_timezone = config.get_home_timezone()

    day = args.date or datetime.now(ZoneInfo(home_timezone)).date()
    sleep_csv = args.sleep_csv or _newest_csv(RAW_HAE_SLEEP_DIR)
    samples = load_samples(args.csv_dir, sleep_csv, home_timezone)
    log.info("Loaded %d samples", len(samples))

    history = score_history(samples, day, days=args.days, home_timezone=home_timezone)
    hrv_baseline = history["hrv_baseline_ms"].iloc[-1]
    scores = compute_daily_scores(
        collect_daily_inputs(samples, day, home_timezone=home_timezone),
        hrv_baseline=None if pd.isna(hrv_baseline) else float(hrv_baseline),
    )

    print_summary(scores, history)

    output_path = args.output or (SCORE_HISTORY_PATH if args.save else None)
    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        history.to_csv(output_path, index=False)
        print(f"\n✅ Output saved: {output_path}")

    return history


if __name__ == "__main__":
    if not log.handlers:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(message)s",
        )
    main()
