"""Shared fixtures for claude_stats tests."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from helpers import make_entry, make_stats_cache, recent, write_jsonl

HISTORY_TIMESTAMPS = [
    1_760_000_000_000,  # 2025-10-09 UTC
    1_760_100_000_000,  # 2025-10-10
    1_760_200_000_000,  # 2025-10-11
    1_760_300_000_000,  # 2025-10-12
    1_760_400_000_000,  # 2025-10-14
]


@pytest.fixture()
def claude_dir(tmp_path: Path) -> Path:
    """A small ~/.claude tree with two projects, a cache and a history log.

    alpha: two sessions, 4 messages, one Read call, branch main.
    beta: one session, 2 messages, two tool calls, branch feature.
    """
    root = tmp_path / ".claude"
    projects = root / "projects"

    alpha = projects / "C--Users-me-Coding-alpha"
    write_jsonl(alpha / "s1.jsonl", [
        make_entry("user", recent(3), git_branch="main"),
        make_entry("assistant", recent(2.9), model="claude-opus-4-1", tools=("Read",),
                   git_branch="main"),
        make_entry("user", recent(2.8), git_branch="main"),
    ])
    write_jsonl(alpha / "s2.jsonl", [make_entry("user", recent(1))])

    beta = projects / "C--Users-me-Coding-beta"
    write_jsonl(beta / "b1.jsonl", [
        {"type": "summary", "summary": "Refactor"},
        make_entry("user", recent(5), git_branch="feature"),
        make_entry("assistant", recent(4.9), model="claude-sonnet-4-5",
                   tools=("Edit", "Read"), git_branch="feature"),
    ])

    (root / "stats-cache.json").write_text(json.dumps(make_stats_cache()), encoding="utf-8")

    write_jsonl(root / "history.jsonl", [
        {"display": f"prompt {i}", "project": "/Users/me/Coding/alpha",
         "timestamp": ts, "sessionId": f"sess-{i}"}
        for i, ts in enumerate(HISTORY_TIMESTAMPS)
    ])
    return root


@pytest.fixture()
def client(claude_dir: Path):
    """TestClient for app.py with its data paths pointed at *claude_dir*."""
    import app as app_module

    with patch.object(app_module, "STATS_CACHE", claude_dir / "stats-cache.json"), \
            patch.object(app_module, "PROJECTS_DIR", claude_dir / "projects"), \
            patch.object(app_module, "HISTORY_FILE", claude_dir / "history.jsonl"):
        with TestClient(app_module.app) as tc:
            yield tc
