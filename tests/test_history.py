"""Tests for claude_history.py (filtering, formatting and the CLI)."""

from __future__ import annotations

import pytest

from claude_history import filter_by_project, format_history, main


class TestFilterByProject:
    ENTRIES = [
        {"display": "a", "project": "/Users/me/Coding/alpha"},
        {"display": "b", "project": "/Users/me/Coding/Beta"},
        {"display": "c"},
    ]

    def test_no_filter_returns_all(self):
        assert filter_by_project(self.ENTRIES, None) == self.ENTRIES

    def test_case_insensitive_substring(self):
        assert [e["display"] for e in filter_by_project(self.ENTRIES, "beta")] == ["b"]

    def test_entries_without_project_excluded(self):
        assert [e["display"] for e in filter_by_project(self.ENTRIES, "coding")] == ["a", "b"]


class TestFormatHistory:
    def test_days_sorted_with_counts(self):
        grouped = {
            "2025-10-14": [{"display": "later", "project": "/x/alpha", "timestamp": None}],
            "2025-10-12": [
                {"display": "multi\nline   prompt", "project": None, "timestamp": None},
                {"display": "second", "project": "/x/beta", "timestamp": None},
            ],
        }
        lines = format_history(grouped)
        assert lines[0] == "2025-10-12 (2 prompts)"
        assert lines[1] == "  [--:--] ?: multi line prompt"
        assert lines[2] == "  [--:--] beta: second"
        assert lines[4] == "2025-10-14 (1 prompts)"

    def test_empty(self):
        assert format_history({}) == []


class TestMain:
    def test_prints_limited_history(self, claude_dir, capsys):
        main(["--history-file", str(claude_dir / "history.jsonl"), "--limit", "2"])
        out = capsys.readouterr().out
        assert "2025-10-12 (1 prompts)" in out
        assert "2025-10-14 (1 prompts)" in out
        assert "prompt 4" in out
        assert "prompt 0" not in out
        assert "2 prompts across 2 days" in out

    def test_project_filter_without_matches(self, claude_dir, capsys):
        main(["--history-file", str(claude_dir / "history.jsonl"), "--project", "nowhere"])
        assert "No prompts found." in capsys.readouterr().out

    def test_missing_file_exits(self, tmp_path):
        with pytest.raises(SystemExit) as exc:
            main(["--history-file", str(tmp_path / "history.jsonl")])
        assert exc.value.code == 2
