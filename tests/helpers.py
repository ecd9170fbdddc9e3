"""Shared test helpers for claude_stats tests.

Regular functions (not fixtures) that can be imported by any test module.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta
from pathlib import Path


def iso(dt: datetime) -> str:
    """ISO timestamp carrying the local UTC offset."""
    return dt.astimezone().isoformat()


def recent(hours_ago: float = 1, now: datetime | None = None) -> datetime:
    """A local aware datetime *hours_ago* hours before *now*."""
    now = now or datetime.now().astimezone()
    return now - timedelta(hours=hours_ago)


def make_entry(
    type: str = "user",
    timestamp: datetime | None = None,
    content: object = "hello",
    git_branch: str | None = None,
    model: str | None = None,
    tools: tuple[str, ...] = (),
) -> dict:
    """Build one session-log line as a dict.

    Args:
        type: Record type (user, assistant, summary, ...).
        timestamp: When set, stored as an ISO string.
        content: message.content; replaced by a block list when *tools*
            is non-empty.
        git_branch: Optional gitBranch value.
        model: Optional message.model value.
        tools: Names of tool_use blocks to include.
    """
    message: dict = {"role": type, "content": content}
    if tools:
        message["content"] = [{"type": "text", "text": "working on it"}] + [
            {"type": "tool_use", "id": f"toolu_{i}", "name": name, "input": {}}
            for i, name in enumerate(tools)
        ]
    if model:
        message["model"] = model
    entry: dict = {"type": type, "message": message}
    if timestamp is not None:
        entry["timestamp"] = iso(timestamp)
    if git_branch:
        entry["gitBranch"] = git_branch
    return entry


def write_jsonl(path: Path, entries: list, extra_lines: list[str] = ()) -> Path:
    """Write *entries* as JSON lines, followed by raw *extra_lines*."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [json.dumps(e) for e in entries] + list(extra_lines)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


def make_stats_cache(**overrides) -> dict:
    """A usage cache with two models and three days of activity."""
    cache = {
        "version": 1,
        "lastComputedDate": "2026-10-15",
        "totalSessions": 12,
        "totalMessages": 340,
        "firstSessionDate": "2026-06-01T09:00:00.000Z",
        "longestSession": {"sessionId": "abc", "duration": 3 * 3_600_000 + 5, "messageCount": 80},
        "modelUsage": {
            "claude-opus-4-1-20250805": {
                "inputTokens": 1_000_000,
                "outputTokens": 200_000,
                "cacheReadInputTokens": 2_000_000,
                "cacheCreationInputTokens": 0,
            },
            "claude-sonnet-4-5-20250929": {
                "inputTokens": 2_000_000,
                "outputTokens": 1_000_000,
                "cacheReadInputTokens": 0,
                "cacheCreationInputTokens": 1_000_000,
            },
        },
        "dailyActivity": [
            {"date": "2026-10-14", "messageCount": 40, "sessionCount": 2, "toolCallCount": 10},
            {"date": "2026-10-12", "messageCount": 90, "sessionCount": 3, "toolCallCount": 25},
            {"date": "2026-10-13", "messageCount": 10, "sessionCount": 1, "toolCallCount": 2},
        ],
        "dailyModelTokens": [
            {"date": "2026-10-13", "tokensByModel": {"claude-opus-4-1-20250805": 500}},
            {"date": "2026-10-12", "tokensByModel": {
                "claude-opus-4-1-20250805": 100,
                "claude-opus-4-20250514": 50,
                "claude-sonnet-4-5-20250929": 25,
            }},
        ],
        "hourCounts": {"9": 4, "14": 7},
    }
    cache.update(overrides)
    return cache
