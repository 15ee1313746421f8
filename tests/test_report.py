"""Tests for the daily score report entry point."""
from datetime import date

import pandas as pd
import pytest

from bioloop import report
from bioloop.analysis.daily import HISTORY_COLUMNS
from bioloop.analysis.scores import compute_recovery_score
from bioloop.common.config import Config

METRICS = (
    "Date/Time,Heart Rate Variability (ms),Resting Heart Rate (count/min),"
    "Steps (count),Active Energy (kcal),Sleep Analysis [Total] (hr)\n"
    "2025-10-28 00:00:00,42,55,7000,350,7.2\n"
    "2025-10-29 00:00:00,44,54,9000,450,6.8\n"
    "2025-10-30 00:00:00,46,53,11000,550,7.5\n"
)

# 23:00-06:00 Pacific across the night into Oct 30
SLEEP = (
    "Start,End,Value\n"
    "2025-10-29 22:45:00,2025-10-30 06:15:00,In Bed\n"
    "2025-10-29 23:00:00,2025-10-30 06:00:00,Core\n"
)


@pytest.fixture
def export_dir(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("BIOLOOP_HOME_TIMEZONE", "America/Los_Angeles")
    Config.reset()
    csv_dir = tmp_path / "csv"
    csv_dir.mkdir()
    (csv_dir / "HealthMetrics.csv").write_text(METRICS)
    # Keep the default sleep directory pointed at an empty location
    monkeypatch.setattr(report, "RAW_HAE_SLEEP_DIR", tmp_path / "no-sleep")
    yield csv_dir
    Config.reset()


def run(csv_dir, *extra):
    return report.main(["--csv-dir", str(csv_dir), "--date", "2025-10-30", "--days", "3", *extra])


class TestReport:

    def test_history_and_summary(self, export_dir, capsys):
        history = run(export_dir)
        assert list(history.columns) == HISTORY_COLUMNS
        assert history["date"].tolist() == [date(2025, 10, 28), date(2025, 10, 29), date(2025, 10, 30)]
        assert history["recovery_score"].iloc[-1] == compute_recovery_score(46, 53, 7.5)

        out = capsys.readouterr().out
        assert "DAILY SCORES: 2025-10-30" in out
        assert "7-Day Trends" in out
        assert "Baselines (3 days)" in out
        assert "Stress" in out
        # First day has no HRV baseline yet
        assert history["stress_score"].iloc[0] == 50

    def test_output_csv(self, export_dir, tmp_path):
        out_path = tmp_path / "reports" / "scores.csv"
        run(export_dir, "--output", str(out_path))
        written = pd.read_csv(out_path)
        assert len(written) == 3
        assert list(written.columns) == HISTORY_COLUMNS

    def test_save_uses_default_path(self, export_dir, tmp_path, monkeypatch):
        target = tmp_path / "Output" / "daily_scores.csv"
        monkeypatch.setattr(report, "SCORE_HISTORY_PATH", target)
        run(export_dir, "--save")
        assert target.exists()

    def test_sleep_csv_replaces_export_sleep(self, export_dir, tmp_path):
        sleep_csv = tmp_path / "sleep.csv"
        sleep_csv.write_text(SLEEP)
        history = run(export_dir, "--sleep-csv", str(sleep_csv)).set_index("date")
        assert history.loc[date(2025, 10, 29), "sleep_hours"] == pytest.approx(1.0)
        assert history.loc[date(2025, 10, 30), "sleep_hours"] == pytest.approx(6.0)

    def test_newest_sleep_export_used_by_default(self, export_dir, tmp_path, monkeypatch):
        sleep_dir = tmp_path / "Sleep"
        sleep_dir.mkdir()
        (sleep_dir / "sleep.csv").write_text(SLEEP)
        monkeypatch.setattr(report, "RAW_HAE_SLEEP_DIR", sleep_dir)
        history = run(export_dir).set_index("date")
        assert history.loc[date(2025, 10, 30), "sleep_hours"] == pytest.approx(6.0)

    def test_missing_export_dir(self, export_dir, tmp_path, capsys):
        history = report.main(["--csv-dir", str(tmp_path / "nothing"), "--date", "2025-10-30", "--days", "2"])
        assert len(history) == 2
        assert not history["has_recovery_data"].any()
        assert "Missing:" in capsys.readouterr().out

    def test_days_must_be_positive(self, export_dir):
        with pytest.raises(SystemExit):
            run(export_dir, "--days", "0")

    def test_bad_date(self, export_dir):
        with pytest.raises(SystemExit):
            report.main(["--date", "30/10/2025"])
