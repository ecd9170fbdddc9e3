"""Tests for claude_stats_viz.py chart rendering."""

from __future__ import annotations

import json

import pytest

from analytics import build_dashboard_payload
from claude_stats_viz import load_daily_frame, main, render_charts


class TestLoadDailyFrame:
    def test_sorted_with_rolling_columns(self, claude_dir):
        df = load_daily_frame(build_dashboard_payload(claude_dir))
        assert list(df["messageCount"]) == [90, 10, 40]
        assert df["messages_7_day_avg"].iloc[1] == pytest.approx(50.0)
        assert df["cumulative_avg_messages"].iloc[-1] == pytest.approx(140 / 3)

    def test_empty(self):
        assert load_daily_frame({}).empty


class TestRenderCharts:
    def test_writes_pngs(self, claude_dir, tmp_path):
        written = render_charts(build_dashboard_payload(claude_dir), tmp_path / "charts")
        names = {p.name for p in written}
        assert names == {
            "daily_messages.png", "top_tools.png", "hourly_activity.png", "weekday_activity.png",
        }
        assert all(p.stat().st_size > 0 for p in written)

    def test_empty_payload_writes_nothing(self, tmp_path):
        assert render_charts({}, tmp_path / "charts") == []


class TestMain:
    def test_missing_data_file_exits(self, tmp_path):
        with pytest.raises(SystemExit):
            main([str(tmp_path / "data.json")])

    def test_renders_from_file(self, claude_dir, tmp_path, capsys):
        data_file = tmp_path / "data.json"
        data_file.write_text(json.dumps(build_dashboard_payload(claude_dir)), encoding="utf-8")
        main([str(data_file), "--output-dir", str(tmp_path / "out")])
        assert "Saved 4 charts" in capsys.readouterr().out
