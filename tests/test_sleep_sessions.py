"""Tests for sleep session reconstruction."""
from datetime import date, datetime, timedelta, timezone

import pytest

from bioloop.common.models import MetricKind
from bioloop.ingest.sleep_sessions import (
    SleepStage,
    SleepStageInterval,
    build_daily_summary,
    build_sessions,
    calculate_stages,
    count_wake_events,
    daily_sleep_hours,
    filter_valid_intervals,
    group_intervals,
    load_sleep_csv,
    parse_stage,
    sleep_hour_samples,
)

UTC = timezone.utc
S = SleepStage


def at(day, hour, minute=0):
    return datetime(2025, 1, day, hour, minute, tzinfo=UTC)


def iv(stage, start, end):
    return SleepStageInterval(stage=stage, start=start, end=end)


@pytest.fixture
def night():
    """One Apple Watch night (Jan 1 22:00 - Jan 2 06:30) plus an afternoon nap."""
    return [
        iv(S.IN_BED, at(1, 22), at(2, 6, 30)),
        iv(S.ASLEEP_CORE, at(1, 22, 15), at(2, 1)),
        iv(S.ASLEEP_DEEP, at(2, 1), at(2, 2)),
        iv(S.AWAKE, at(2, 2), at(2, 2, 10)),
        iv(S.ASLEEP_REM, at(2, 2, 10), at(2, 3)),
        iv(S.ASLEEP_UNSPECIFIED, at(2, 3), at(2, 4)),
        iv(S.ASLEEP_CORE, at(2, 4), at(2, 6, 15)),
        # 45 minute nap
        iv(S.ASLEEP_CORE, at(2, 14), at(2, 14, 45)),
    ]


WINDOW = dict(start=at(1, 0), end=at(3, 0), now=at(3, 0))
GAP = timedelta(minutes=30)
MIN_SESSION = timedelta(minutes=90)


class TestParseStage:

    @pytest.mark.parametrize("label,expected", [
        ("HKCategoryValueSleepAnalysisAsleepCore", S.ASLEEP_CORE),
        ("HKCategoryValueSleepAnalysisInBed", S.IN_BED),
        ("In Bed", S.IN_BED),
        ("Core", S.ASLEEP_CORE),
        ("Deep", S.ASLEEP_DEEP),
        ("REM", S.ASLEEP_REM),
        ("Asleep", S.ASLEEP_UNSPECIFIED),
        ("Awake", S.AWAKE),
        ("asleep_rem", S.ASLEEP_REM),
    ])
    def test_known_labels(self, label, expected):
        assert parse_stage(label) is expected

    def test_unknown_label(self):
        assert parse_stage("Walking") is None


class TestIntervals:

    def test_filter_valid_intervals(self):
        intervals = [
            iv(S.ASLEEP_CORE, at(2, 1), at(2, 2)),
            iv(S.ASLEEP_CORE, at(2, 3), at(2, 3)),  # zero length
            iv(S.ASLEEP_CORE, at(2, 5), at(2, 4)),  # reversed
            iv(S.ASLEEP_CORE, at(4, 1), at(4, 2)),  # after now
            iv(S.ASLEEP_CORE, at(1, 0), at(1, 1)),  # before window
        ]
        valid = filter_valid_intervals(intervals, start=at(1, 12), end=at(3, 0), now=at(3, 0))
        assert valid == [intervals[0]]

    def test_group_gap_boundary(self):
        first = iv(S.ASLEEP_CORE, at(2, 1), at(2, 2))
        within = iv(S.ASLEEP_CORE, at(2, 2, 30), at(2, 3))
        beyond = iv(S.ASLEEP_CORE, at(2, 3, 31), at(2, 4))
        groups = group_intervals([beyond, within, first], GAP)
        assert groups == [[first, within], [beyond]]

    def test_overlapping_intervals_extend_group(self):
        long = iv(S.IN_BED, at(2, 0), at(2, 8))
        inner = iv(S.ASLEEP_CORE, at(2, 1), at(2, 2))
        later = iv(S.ASLEEP_CORE, at(2, 7, 45), at(2, 9))
        assert len(group_intervals([long, inner, later], GAP)) == 1


class TestStages:

    def test_unspecified_split_proportionally(self):
        stages = calculate_stages([
            iv(S.ASLEEP_CORE, at(2, 0), at(2, 3)),
            iv(S.ASLEEP_DEEP, at(2, 3), at(2, 4)),
            iv(S.ASLEEP_UNSPECIFIED, at(2, 4), at(2, 6)),
        ])
        # 3:1 core/deep split of 2 hours
        assert stages.core == pytest.approx(4.5 * 3600)
        assert stages.deep == pytest.approx(1.5 * 3600)
        assert stages.rem == 0
        assert stages.total_asleep == pytest.approx(6 * 3600)

    def test_unspecified_without_detail_is_core(self):
        stages = calculate_stages([iv(S.ASLEEP_UNSPECIFIED, at(2, 0), at(2, 2))])
        assert stages.core == 7200
        assert stages.total_in_bed == 7200

    def test_wake_events(self):
        intervals = [
            iv(S.AWAKE, at(2, 0), at(2, 1)),  # before falling asleep
            iv(S.ASLEEP_CORE, at(2, 1), at(2, 2)),
            iv(S.AWAKE, at(2, 2), at(2, 3)),
            iv(S.AWAKE, at(2, 3), at(2, 4)),  # still awake
            iv(S.ASLEEP_REM, at(2, 4), at(2, 5)),
            iv(S.AWAKE, at(2, 5), at(2, 6)),
        ]
        assert count_wake_events(intervals) == 2


class TestBuildSessions:

    def test_night_kept_nap_dropped(self, night):
        sessions = build_sessions(night, max_gap=GAP, min_session=MIN_SESSION, **WINDOW)
        assert len(sessions) == 1
        session = sessions[0]
        assert session.start == at(1, 22)
        assert session.end == at(2, 6, 30)
        assert session.duration_hours == pytest.approx(8.5)
        assert session.source == "Apple Watch"

    def test_session_metrics(self, night):
        session = build_sessions(night, max_gap=GAP, min_session=MIN_SESSION, **WINDOW)[0]
        asleep = 28200.0
        assert session.stages.total_asleep == pytest.approx(asleep)
        assert session.stages.awake == 600
        assert session.efficiency == pytest.approx(asleep / (asleep + 600))
        assert session.wake_events == 1
        assert session.waso_s == 600
        assert session.fragmentation_index == pytest.approx(1 / 8.5)
        assert session.latency_s == pytest.approx(60)

    def test_no_in_bed_falls_back_to_group_bounds(self):
        intervals = [iv(S.ASLEEP_UNSPECIFIED, at(2, 0), at(2, 6))]
        sessions = build_sessions(intervals, max_gap=GAP, min_session=MIN_SESSION, **WINDOW)
        assert len(sessions) == 1
        assert (sessions[0].start, sessions[0].end) == (at(2, 0), at(2, 6))
        assert sessions[0].source == "iPhone/Manual"
        assert sessions[0].efficiency == 1.0

    def test_defaults_from_config(self, night):
        assert len(build_sessions(night, **WINDOW)) == 1


class TestDailySummary:

    def test_day_with_sleep(self, night):
        sessions = build_sessions(night, max_gap=GAP, min_session=MIN_SESSION, **WINDOW)
        summary = build_daily_summary(date(2025, 1, 2), sessions, home_timezone="UTC")
        assert summary.has_data
        assert summary.primary_session is sessions[0]
        assert summary.bedtime == at(1, 22)
        assert summary.wake_time == at(2, 6, 30)
        assert summary.duration_hours == pytest.approx(8.5)
        assert summary.total_wake_events == 1

    def test_day_without_sleep(self, night):
        sessions = build_sessions(night, max_gap=GAP, min_session=MIN_SESSION, **WINDOW)
        summary = build_daily_summary(date(2025, 1, 5), sessions, home_timezone="UTC")
        assert not summary.has_data
        assert summary.duration_hours == 0
        assert summary.bedtime is None


class TestDailySleepHours:

    def test_split_at_midnight(self, night):
        hours = daily_sleep_hours(night, home_timezone="UTC")
        # Core 22:15-24:00 on Jan 1; the nap counts on Jan 2; in-bed and awake never count
        assert hours[date(2025, 1, 1)] == pytest.approx(1.75)
        assert hours[date(2025, 1, 2)] == pytest.approx(28200 / 3600 - 1.75 + 0.75)
        assert list(hours.index) == [date(2025, 1, 1), date(2025, 1, 2)]

    def test_local_midnight(self):
        # 23:00-02:00 Pacific
        intervals = [iv(S.ASLEEP_CORE, at(2, 7), at(2, 10))]
        hours = daily_sleep_hours(intervals, home_timezone="America/Los_Angeles")
        assert hours.to_dict() == {date(2025, 1, 1): pytest.approx(1.0), date(2025, 1, 2): pytest.approx(2.0)}

    def test_samples_at_local_midnight(self):
        hours = daily_sleep_hours([iv(S.ASLEEP_CORE, at(2, 9), at(2, 15))], home_timezone="America/Los_Angeles")
        samples = sleep_hour_samples(hours, home_timezone="America/Los_Angeles")
        assert len(samples) == 1
        assert samples[0].kind is MetricKind.SLEEP_HOURS
        assert samples[0].value == pytest.approx(6.0)
        assert samples[0].observed_at == datetime(2025, 1, 2, 8, tzinfo=UTC)


class TestLoadSleepCsv:

    def test_reads_intervals(self, tmp_path):
        path = tmp_path / "sleep.csv"
        path.write_text(
            "Start,End,Value\n"
            "2025-01-01 22:00:00,2025-01-02 06:30:00,In Bed\n"
            "2025-01-01 22:15:00,2025-01-02 01:00:00,Core\n"
            "2025-01-02 01:00:00,2025-01-02 02:00:00,Deep\n"
            "2025-01-02 02:00:00,2025-01-02 02:10:00,Daydreaming\n"
        )
        intervals = load_sleep_csv(path, home_timezone="UTC")
        assert [i.stage for i in intervals] == [S.IN_BED, S.ASLEEP_CORE, S.ASLEEP_DEEP]
        assert intervals[0].start == at(1, 22)
        assert intervals[0].end == at(2, 6, 30)

    def test_home_timezone_applied(self, tmp_path):
        path = tmp_path / "sleep.csv"
        path.write_text("startDate,endDate,value\n2025-01-01 23:00:00,2025-01-02 02:00:00,REM\n")
        intervals = load_sleep_csv(path, home_timezone="America/Los_Angeles")
        assert intervals[0].start == at(2, 7)

    def test_missing_columns(self, tmp_path):
        path = tmp_path / "sleep.csv"
        path.write_text("Start,Value\n2025-01-01 22:00:00,Core\n")
        with pytest.raises(ValueError, match="end"):
            load_sleep_csv(path, home_timezone="UTC")
