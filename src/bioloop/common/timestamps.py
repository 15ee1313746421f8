"""
Timestamp handling utilities for Bioloop.

Health Auto Export writes wall-clock timestamps. We ignore any offset in the
source and assume the configured home timezone ("Strategy A"), which keeps
home days exact and travel days consistently shifted.
"""
from __future__ import annotations

import logging
from zoneinfo import ZoneInfo

import pandas as pd

log = logging.getLogger(__name__)

DEFAULT_HOME_TIMEZONE = "America/Los_Angeles"

# Trailing UTC offset as written by HAE, e.g. "2025-10-30 13:58:00 -0700"
_OFFSET_SUFFIX = r"\s*[+-]\d{2}:?\d{2}$"


def parse_naive(values: pd.Series) -> pd.Series:
    """Parse timestamps as naive wall-clock times, discarding any source offset."""
    if pd.api.types.is_datetime64_any_dtype(values):
        if getattr(values.dt, "tz", None) is not None:
            return values.dt.tz_localize(None)
        return values
    text = values.astype("string").str.strip().str.replace(_OFFSET_SUFFIX, "", regex=True)
    return pd.to_datetime(text, errors="coerce")


def localize_naive(
    values: pd.Series,
    home_timezone: str = DEFAULT_HOME_TIMEZONE,
    ambiguous: str = "infer",
) -> pd.Series:
    """
    Localize naive wall-clock timestamps to the home timezone.

    DST fall-back hours are inferred from ordering by default; spring-forward
    gaps shift forward to the next valid time.
    """
    tz = ZoneInfo(home_timezone)
    return values.dt.tz_localize(tz, ambiguous=ambiguous, nonexistent="shift_forward")


def apply_strategy_a(
    df: pd.DataFrame,
    timestamp_col: str = "timestamp_local",
    home_timezone: str = DEFAULT_HOME_TIMEZONE,
) -> pd.DataFrame:
    """
    Strategy A: Assumed Timezone Ingestion.

    Args:
        df: DataFrame with timestamp column (as string or naive datetime)
        timestamp_col: Name of column containing timestamps
        home_timezone: IANA timezone to assume (e.g., "America/Los_Angeles")

    Returns:
        DataFrame with:
        - timestamp_local: naive local timestamp
        - timestamp_utc: UTC timestamp
        - tz_name: timezone name used
        - tz_source: 'assumed'

    Rows with unparseable timestamps are dropped. Rows in a DST fall-back hour
    are resolved from row order when possible and dropped otherwise.
    """
    if timestamp_col not in df.columns:
        raise ValueError(f"Column '{timestamp_col}' not found in dataframe")

    df = df.copy()
    df[timestamp_col] = parse_naive(df[timestamp_col])

    null_count = int(df[timestamp_col].isna().sum())
    if null_count > 0:
        log.warning("Strategy A: Dropping %d rows with invalid timestamps", null_count)
        df = df.dropna(subset=[timestamp_col])

    df = df.sort_values(timestamp_col, kind="stable").reset_index(drop=True)

    localized = localize_naive(df[timestamp_col], home_timezone, ambiguous="NaT")
    ambiguous = localized.isna()
    if ambiguous.any():
        try:
            localized = localize_naive(df[timestamp_col], home_timezone)
        except Exception as e:
            # pandas raises ValueError or pytz.AmbiguousTimeError depending on version
            log.warning(
                "Strategy A: Dropping %d rows in an ambiguous DST hour (%s)",
                int(ambiguous.sum()), e,
            )
            df = df.loc[~ambiguous].reset_index(drop=True)
            localized = localized.loc[~ambiguous].reset_index(drop=True)

    df['timestamp_utc'] = localized.dt.tz_convert('UTC')
    df['tz_name'] = home_timezone
    df['tz_source'] = 'assumed'

    log.debug("Strategy A applied: %d rows, timezone=%s", len(df), home_timezone)

    return df


def validate_timezone(tz_name: str) -> bool:
    """Return True if tz_name is a valid IANA timezone."""
    try:
        ZoneInfo(tz_name)
        return True
    except Exception:
        return False
