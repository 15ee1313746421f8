# src/bioloop/ingest/sleep_sessions.py
"""
Sleep session reconstruction from sleep-stage intervals.

Apple Health records sleep as a stream of stage intervals (in bed, core,
deep, REM, awake...). This module:
- loads HAE "Sleep Analysis" exports into stage intervals
- groups contiguous intervals into sessions and drops naps
- summarizes a calendar day of sleep
- produces per-day asleep hours for the Sleep Score
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Iterable, Optional
from zoneinfo import ZoneInfo

import pandas as pd

from bioloop.common.config import get_config, get_home_timezone
from bioloop.common.models import BiometricSample, MetricKind
from bioloop.common.timestamps import localize_naive, parse_naive

log = logging.getLogger(__name__)


class SleepStage(str, Enum):
    IN_BED = "in_bed"
    ASLEEP_UNSPECIFIED = "asleep_unspecified"
    ASLEEP_CORE = "asleep_core"
    ASLEEP_DEEP = "asleep_deep"
    ASLEEP_REM = "asleep_rem"
    AWAKE = "awake"


ASLEEP_STAGES = frozenset({
    SleepStage.ASLEEP_UNSPECIFIED,
    SleepStage.ASLEEP_CORE,
    SleepStage.ASLEEP_DEEP,
    SleepStage.ASLEEP_REM,
})
DETAILED_STAGES = frozenset({SleepStage.ASLEEP_CORE, SleepStage.ASLEEP_DEEP, SleepStage.ASLEEP_REM})

# HAE / HealthKit stage labels -> SleepStage
HK_STAGE_PREFIX = "hkcategoryvaluesleepanalysis"

STAGE_ALIASES = {
    "inbed": SleepStage.IN_BED,
    "asleep": SleepStage.ASLEEP_UNSPECIFIED,
    "asleepunspecified": SleepStage.ASLEEP_UNSPECIFIED,
    "unspecified": SleepStage.ASLEEP_UNSPECIFIED,
    "core": SleepStage.ASLEEP_CORE,
    "asleepcore": SleepStage.ASLEEP_CORE,
    "deep": SleepStage.ASLEEP_DEEP,
    "asleepdeep": SleepStage.ASLEEP_DEEP,
    "rem": SleepStage.ASLEEP_REM,
    "asleeprem": SleepStage.ASLEEP_REM,
    "awake": SleepStage.AWAKE,
}


def parse_stage(label: str) -> Optional[SleepStage]:
    """Map an export stage label to a SleepStage, or None if it is not a sleep stage."""
    key = str(label).strip().lower()
    try:
        return SleepStage(key)
    except ValueError:
        pass
    key = key.removeprefix(HK_STAGE_PREFIX).replace("_", "").replace(" ", "")
    return STAGE_ALIASES.get(key)


@dataclass(frozen=True)
class SleepStageInterval:
    stage: SleepStage
    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass
class SleepStages:
    """Seconds spent in each stage."""
    core: float = 0.0
    deep: float = 0.0
    rem: float = 0.0
    awake: float = 0.0

    @property
    def total_asleep(self) -> float:
        return self.core + self.deep + self.rem

    @property
    def total_in_bed(self) -> float:
        return self.total_asleep + self.awake


@dataclass
class SleepSession:
    start: datetime
    end: datetime
    efficiency: float
    stages: SleepStages
    wake_events: int
    source: str
    waso_s: float = 0.0
    fragmentation_index: float = 0.0
    latency_s: float = 0.0

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    @property
    def duration_hours(self) -> float:
        return self.duration.total_seconds() / 3600


@dataclass
class DailySleepSummary:
    day: date
    primary_session: Optional[SleepSession] = None
    total_duration: timedelta = field(default_factory=timedelta)
    average_efficiency: float = 0.0
    total_wake_events: int = 0
    bedtime: Optional[datetime] = None
    wake_time: Optional[datetime] = None

    @property
    def has_data(self) -> bool:
        return self.primary_session is not None

    @property
    def duration_hours(self) -> float:
        return self.total_duration.total_seconds() / 3600


# ---------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------
START_COLUMNS = ("Start", "Start Date", "startDate")
END_COLUMNS = ("End", "End Date", "endDate")
STAGE_COLUMNS = ("Value", "Stage", "value")


def _pick_column(df: pd.DataFrame, candidates: Iterable[str], what: str, csv_path: Path) -> str:
    for c in candidates:
        if c in df.columns:
            return c
    raise ValueError(f"{csv_path}: No {what} column found (tried {list(candidates)})")


def load_sleep_csv(csv_path: Path, home_timezone: Optional[str] = None) -> list[SleepStageInterval]:
    """
    Load an HAE sleep-analysis CSV (one row per stage interval).

    Naive timestamps are read in the home timezone and returned as UTC.
    Rows with unknown stages or unparseable times are dropped.
    """
    home_timezone = home_timezone or get_home_timezone()
    try:
        df = pd.read_csv(csv_path)
        df.columns = df.columns.str.strip()

        start_col = _pick_column(df, START_COLUMNS, "start", csv_path)
        end_col = _pick_column(df, END_COLUMNS, "end", csv_path)
        stage_col = _pick_column(df, STAGE_COLUMNS, "stage", csv_path)

        df["stage"] = df[stage_col].map(parse_stage)
        df["start"] = parse_naive(df[start_col])
        df["end"] = parse_naive(df[end_col])

        before = len(df)
        df = df.dropna(subset=["stage", "start", "end"])
        dropped = before - len(df)
        if dropped:
            log.warning("sleep: %s → dropped %d rows with unknown stage or bad time", csv_path.name, dropped)

        # Stage rows are not time-ordered, so ambiguous DST hours cannot be inferred
        start = localize_naive(df["start"], home_timezone, ambiguous="NaT").dt.tz_convert("UTC")
        end = localize_naive(df["end"], home_timezone, ambiguous="NaT").dt.tz_convert("UTC")

        intervals = [
            SleepStageInterval(stage=s, start=a.to_pydatetime(), end=b.to_pydatetime())
            for s, a, b in zip(df["stage"], start, end)
            if pd.notna(a) and pd.notna(b)
        ]
        log.info("sleep: %s → intervals=%d", csv_path.name, len(intervals))
        return intervals
    except Exception as e:
        log.error("Failed on %s: %s", csv_path, e, exc_info=True)
        raise


# ---------------------------------------------------------------------
# Session building
# ---------------------------------------------------------------------
def filter_valid_intervals(
    intervals: Iterable[SleepStageInterval],
    start: datetime,
    end: datetime,
    now: Optional[datetime] = None,
) -> list[SleepStageInterval]:
    """Keep well-formed, non-future intervals overlapping [start, end)."""
    now = now or datetime.now(timezone.utc)
    valid = []
    for iv in intervals:
        if iv.end <= iv.start:
            log.debug("Invalid interval: end <= start (%s)", iv)
            continue
        if iv.end > now:
            log.debug("Future interval rejected: %s", iv.end)
            continue
        if not (iv.start < end and iv.end > start):
            continue
        valid.append(iv)
    return valid


def group_intervals(
    intervals: Iterable[SleepStageInterval],
    max_gap: timedelta,
) -> list[list[SleepStageInterval]]:
    """Group time-sorted intervals, starting a new group when the gap exceeds max_gap."""
    groups: list[list[SleepStageInterval]] = []
    group_end: Optional[datetime] = None

    for iv in sorted(intervals, key=lambda x: x.start):
        if group_end is not None and iv.start - group_end <= max_gap:
            groups[-1].append(iv)
            group_end = max(group_end, iv.end)
        else:
            groups.append([iv])
            group_end = iv.end

    return groups


def calculate_stages(intervals: Iterable[SleepStageInterval]) -> SleepStages:
    """
    Sum stage durations.

    Unspecified sleep is split over core/deep/rem in the proportions seen so
    far, or counted as core if no detailed stage has been seen yet.
    """
    stages = SleepStages()
    for iv in intervals:
        seconds = iv.duration.total_seconds()
        if iv.stage is SleepStage.ASLEEP_CORE:
            stages.core += seconds
        elif iv.stage is SleepStage.ASLEEP_DEEP:
            stages.deep += seconds
        elif iv.stage is SleepStage.ASLEEP_REM:
            stages.rem += seconds
        elif iv.stage is SleepStage.AWAKE:
            stages.awake += seconds
        elif iv.stage is SleepStage.ASLEEP_UNSPECIFIED:
            specified = stages.core + stages.deep + stages.rem
            if specified > 0:
                core_r, deep_r, rem_r = stages.core / specified, stages.deep / specified, stages.rem / specified
                stages.core += seconds * core_r
                stages.deep += seconds * deep_r
                stages.rem += seconds * rem_r
            else:
                stages.core += seconds
    return stages


def count_wake_events(intervals: Iterable[SleepStageInterval]) -> int:
    """Count transitions from sleep to awake."""
    events = 0
    was_asleep = False
    for iv in sorted(intervals, key=lambda x: x.start):
        if iv.stage in ASLEEP_STAGES:
            was_asleep = True
        elif iv.stage is SleepStage.AWAKE and was_asleep:
            events += 1
            was_asleep = False
    return events


def _session_from_group(group: list[SleepStageInterval]) -> SleepSession:
    in_bed = [iv for iv in group if iv.stage is SleepStage.IN_BED]
    if in_bed:
        start, end = in_bed[0].start, in_bed[-1].end
    else:
        # Watch-only nights often carry no in-bed record
        start, end = group[0].start, max(iv.end for iv in group)

    stages = calculate_stages(group)
    wake_events = count_wake_events(group)
    efficiency = stages.total_asleep / stages.total_in_bed if stages.total_in_bed > 0 else 0.0
    source = "Apple Watch" if any(iv.stage in DETAILED_STAGES for iv in group) else "iPhone/Manual"

    session = SleepSession(
        start=start,
        end=end,
        efficiency=efficiency,
        stages=stages,
        wake_events=wake_events,
        source=source,
    )
    session.waso_s = stages.awake
    hours = session.duration_hours
    session.fragmentation_index = wake_events / hours if wake_events > 0 and hours > 0 else 0.0
    # No onset detection yet; approximated from awake time
    session.latency_s = stages.awake * 0.1
    return session


def build_sessions(
    intervals: Iterable[SleepStageInterval],
    start: datetime,
    end: datetime,
    max_gap: Optional[timedelta] = None,
    min_session: Optional[timedelta] = None,
    now: Optional[datetime] = None,
) -> list[SleepSession]:
    """
    Reconstruct sleep sessions overlapping [start, end).

    Groups shorter than min_session (naps) are discarded.
    """
    config = get_config()
    max_gap = max_gap if max_gap is not None else config.get_sleep_max_gap()
    min_session = min_session if min_session is not None else config.get_sleep_min_session()

    valid = filter_valid_intervals(intervals, start, end, now=now)
    groups = group_intervals(valid, max_gap)

    sessions = []
    for group in groups:
        span = max(iv.end for iv in group) - group[0].start
        if span < min_session:
            log.debug("Group too short: %.2fh", span.total_seconds() / 3600)
            continue
        sessions.append(_session_from_group(group))

    log.info("sleep: intervals=%d groups=%d sessions=%d", len(valid), len(groups), len(sessions))
    return sessions


def _day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    day_start = datetime.combine(day, datetime.min.time(), tzinfo=tz)
    day_end = datetime.combine(day + timedelta(days=1), datetime.min.time(), tzinfo=tz)
    return day_start, day_end


def build_daily_summary(
    day: date,
    sessions: Iterable[SleepSession],
    home_timezone: Optional[str] = None,
) -> DailySleepSummary:
    """Summarize the sessions overlapping a local calendar day."""
    tz = ZoneInfo(home_timezone or get_home_timezone())
    day_start, day_end = _day_bounds(day, tz)

    day_sessions = [s for s in sessions if s.start < day_end and s.end > day_start]
    if not day_sessions:
        return DailySleepSummary(day=day)

    primary = max(day_sessions, key=lambda s: s.duration)
    return DailySleepSummary(
        day=day,
        primary_session=primary,
        total_duration=sum((s.duration for s in day_sessions), timedelta()),
        average_efficiency=sum(s.efficiency for s in day_sessions) / len(day_sessions),
        total_wake_events=sum(s.wake_events for s in day_sessions),
        bedtime=primary.start,
        wake_time=primary.end,
    )


# ---------------------------------------------------------------------
# Daily asleep hours
# ---------------------------------------------------------------------
def daily_sleep_hours(
    intervals: Iterable[SleepStageInterval],
    home_timezone: Optional[str] = None,
) -> pd.Series:
    """
    Asleep hours per local calendar day.

    Asleep intervals are split at local midnight so a night counts toward
    both days it spans.

    Returns:
        Series indexed by date, values in hours (sorted by date).
    """
    tz = ZoneInfo(home_timezone or get_home_timezone())
    totals: dict[date, float] = {}

    for iv in intervals:
        if iv.stage not in ASLEEP_STAGES or iv.end <= iv.start:
            continue
        # Step in UTC; same-zone datetime arithmetic ignores DST shifts
        cur = iv.start.astimezone(timezone.utc)
        stop = iv.end.astimezone(timezone.utc)
        while cur < stop:
            day = cur.astimezone(tz).date()
            _, next_midnight = _day_bounds(day, tz)
            chunk_end = min(next_midnight.astimezone(timezone.utc), stop)
            totals[day] = totals.get(day, 0.0) + (chunk_end - cur).total_seconds()
            cur = chunk_end

    series = pd.Series({d: s / 3600 for d, s in totals.items()}, dtype="float64")
    series.index.name = "date"
    return series.sort_index()


def sleep_hour_samples(
    hours_by_day: pd.Series,
    home_timezone: Optional[str] = None,
) -> list[BiometricSample]:
    """Turn per-day asleep hours into SLEEP_HOURS samples stamped at local midnight."""
    tz = ZoneInfo(home_timezone or get_home_timezone())
    samples = []
    for day, hours in hours_by_day.items():
        if pd.isna(hours) or hours <= 0:
            continue
        observed_at, _ = _day_bounds(day, tz)
        samples.append(BiometricSample(
            kind=MetricKind.SLEEP_HOURS,
            value=float(hours),
            observed_at=observed_at.astimezone(timezone.utc),
        ))
    return samples
