"""Core data processing for Claude session analytics.

Scans the per-project session logs under ``~/.claude/projects``, merges them
with the precomputed ``stats-cache.json`` snapshot, and shapes the result
for the dashboard.  Used by the web server (app.py), the batch generator
(generate_data.py), the history viewer and the chart renderer.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
CLAUDE_DIR = Path.home() / ".claude"
RETENTION_DAYS = 183  # ~6 months
TOP_TOOLS = 20
TOP_BRANCHES = 15
TOP_PROJECTS = 10
WORDS_PER_TOKEN = 0.75

WEEKDAY_NAMES = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]

# USD per million tokens
PRICING: dict[str, dict[str, float]] = {
    "Claude Opus": {"input": 15.0, "output": 75.0, "cache_read": 1.5, "cache_write": 18.75},
    "default": {"input": 3.0, "output": 15.0, "cache_read": 0.3, "cache_write": 3.75},
}

# Path segments that never name a project
_PATH_MARKERS = ("Users", "Work", "Coding", "OneDrive", "Desktop")
_SKIP_SEGMENTS = {
    "Users", "home", "Work", "Coding", "OneDrive", "Desktop", "Documents",
    Path.home().name,
}
_DRIVE_PREFIX = re.compile(r"^[A-Za-z]--")


def stats_cache_path(claude_dir: Path = CLAUDE_DIR) -> Path:
    return Path(claude_dir) / "stats-cache.json"


def projects_path(claude_dir: Path = CLAUDE_DIR) -> Path:
    return Path(claude_dir) / "projects"


def history_path(claude_dir: Path = CLAUDE_DIR) -> Path:
    return Path(claude_dir) / "history.jsonl"


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------

def parse_jsonl(path: str | os.PathLike) -> list[Any]:
    """Parse a line-delimited JSON file, skipping anything unparseable.

    The whole file is read into memory and split on newlines.  Blank lines
    and lines that are not valid JSON are dropped individually.

    Args:
        path: Filesystem path to the ``.jsonl`` file.

    Returns:
        List of decoded values in file order.  Returns an empty list if the
        file is missing or cannot be read.
    """
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            text = f.read()
    except OSError as exc:
        logger.warning("Could not read %s: %s", path, exc)
        return []

    entries = []
    for line in text.split("\n"):
        if not line.strip():
            continue
        try:
            entries.append(json.loads(line))
        except json.JSONDecodeError:
            continue
    return entries


def load_stats_cache(path: str | os.PathLike) -> dict[str, Any]:
    """Load the precomputed usage cache.

    Args:
        path: Filesystem path to ``stats-cache.json``.

    Returns:
        The decoded cache dict.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file contains invalid JSON.
        ValueError: If the top-level JSON value is not an object.
    """
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object in {path}")
    return data


def load_history(path: str | os.PathLike) -> list[dict]:
    """Load prompt history entries, dropping non-object lines."""
    return [e for e in parse_jsonl(path) if isinstance(e, dict)]


# ---------------------------------------------------------------------------
# Record model
# ---------------------------------------------------------------------------

def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO-8601 string or epoch number into a local aware datetime.

    Epoch values larger than 1e11 are treated as milliseconds.  Naive ISO
    strings are taken to be local time.

    Returns:
        The datetime converted to the local timezone, or None if *value*
        is missing or unparseable.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            seconds = value / 1000 if value > 1e11 else value
            return datetime.fromtimestamp(seconds, tz=timezone.utc).astimezone()
        if isinstance(value, str) and value.strip():
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            return datetime.fromisoformat(text).astimezone()
    except (TypeError, ValueError, OSError, OverflowError):
        return None
    return None


@dataclass
class SessionRecord:
    """One line of a session log with every optional field defaulted."""

    timestamp: datetime | None = None
    type: str | None = None
    git_branch: str | None = None
    model: str | None = None
    content: str | list | None = None
    display: str | None = None

    @classmethod
    def from_dict(cls, raw: Any) -> SessionRecord | None:
        """Build a record from a decoded JSON line.

        Returns None when *raw* is not a JSON object.  Fields of the wrong
        type are treated as absent.
        """
        if not isinstance(raw, dict):
            return None
        message = raw.get("message")
        if not isinstance(message, dict):
            message = {}

        def _str(value: Any) -> str | None:
            return value if isinstance(value, str) and value else None

        content = message.get("content")
        if not isinstance(content, (str, list)):
            content = None

        return cls(
            timestamp=parse_timestamp(raw.get("timestamp")),
            type=_str(raw.get("type")),
            git_branch=_str(raw.get("gitBranch")),
            model=_str(message.get("model")),
            content=content,
            display=_str(raw.get("display")),
        )

    @property
    def is_message(self) -> bool:
        return self.type in ("user", "assistant")

    def tool_names(self) -> list[str]:
        """Names of ``tool_use`` blocks in an assistant record's content."""
        if self.type != "assistant" or not isinstance(self.content, list):
            return []
        names = []
        for block in self.content:
            if isinstance(block, dict) and block.get("type") == "tool_use":
                name = block.get("name")
                names.append(name if isinstance(name, str) and name else "unknown")
        return names

    def prompt_text(self) -> str:
        """Best-effort plain text of the prompt this record carries."""
        if self.display:
            return self.display
        if isinstance(self.content, str):
            return self.content
        if isinstance(self.content, list):
            parts = [
                b.get("text", "")
                for b in self.content
                if isinstance(b, dict) and b.get("type") == "text"
                and isinstance(b.get("text"), str)
            ]
            return " ".join(p for p in parts if p)
        return ""


def read_session(path: str | os.PathLike) -> list[SessionRecord]:
    """Parse a session file into records, dropping non-object lines."""
    records = []
    for raw in parse_jsonl(path):
        record = SessionRecord.from_dict(raw)
        if record is not None:
            records.append(record)
    return records


# ---------------------------------------------------------------------------
# Names
# ---------------------------------------------------------------------------

def extract_project_name(dir_name: str) -> str:
    """Turn an encoded project directory name into a readable project name.

    Directory names encode the project's filesystem path with separators
    replaced by dashes (``C--Users-me-Coding-myproj``).  When no known path
    segment is present the directory name is returned unchanged.
    """
    parts = _DRIVE_PREFIX.sub("", dir_name).split("-")
    if not any(p in _PATH_MARKERS for p in parts):
        return dir_name
    return parts[-1] or "-".join(parts[-2:])


def sanitize_project_name(dir_name: str) -> str:
    """Privacy-safe project name: personal path segments removed.

    Keeps at most the last two meaningful segments (longer than two
    characters and not a known path or user segment).
    """
    parts = _DRIVE_PREFIX.sub("", dir_name).split("-")
    meaningful = [p for p in parts if p not in _SKIP_SEGMENTS and len(p) > 2]
    return "-".join(meaningful[-2:]) or "Project"


def short_model_name(model: str) -> str:
    """Classify a model id into a short display name."""
    lowered = model.lower()
    if "opus" in lowered:
        return "Claude Opus"
    if "sonnet" in lowered:
        return "Claude Sonnet"
    return model


# ---------------------------------------------------------------------------
# Filesystem walk
# ---------------------------------------------------------------------------

def list_project_dirs(projects_dir: str | os.PathLike) -> list[Path]:
    """Return project subdirectories sorted by name.

    Raises:
        FileNotFoundError: If *projects_dir* does not exist.
    """
    root = Path(projects_dir)
    return sorted((p for p in root.iterdir() if p.is_dir()), key=lambda p: p.name)


def list_session_files(project_dir: str | os.PathLike) -> list[Path]:
    """Return the ``.jsonl`` session files of a project, sorted by name."""
    try:
        return sorted(
            (p for p in Path(project_dir).iterdir() if p.suffix == ".jsonl" and p.is_file()),
            key=lambda p: p.name,
        )
    except OSError as exc:
        logger.warning("Could not list %s: %s", project_dir, exc)
        return []


def _file_mtime(path: Path) -> datetime | None:
    try:
        return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc).astimezone()
    except OSError:
        return None


def find_session_file(
    projects_dir: str | os.PathLike, project: str, session_id: str,
) -> Path | None:
    """Locate a session file, falling back to the agent-named variant.

    Looks for ``<session_id>.jsonl`` first, then
    ``agent-<first 8 chars of session_id>.jsonl``.  Paths that would
    resolve outside *projects_dir* are never returned.

    Returns:
        The path of the session file, or None if neither exists.
    """
    root = Path(projects_dir).resolve()
    candidates = [
        root / project / f"{session_id}.jsonl",
        root / project / f"agent-{session_id[:8]}.jsonl",
    ]
    for candidate in candidates:
        resolved = candidate.resolve()
        if root not in resolved.parents:
            continue
        if resolved.is_file():
            return resolved
    return None


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

def _init_scan_totals() -> dict:
    """Create a fresh accumulator for a full projects scan."""
    return {
        "sessions": 0,
        "messages": 0,
        "tool_calls": 0,
        "tool_counts": {},
        "branch_counts": {},
        "model_sessions": {},
        "dates": set(),
        "hourly": [0] * 24,
        "weekday": [0] * 7,
        "timestamped_records": 0,
        "last_activity": None,
    }


def _init_session_bucket() -> dict:
    return {
        "messages": 0,
        "tool_calls": 0,
        "branch": None,
        "branches": set(),
        "models": set(),
        "start": None,
        "end": None,
    }


def _update_time_range(
    start: datetime | None,
    end: datetime | None,
    new_time: datetime,
) -> tuple[datetime, datetime]:
    """Widen a start/end range so it includes *new_time*."""
    if start is None or new_time < start:
        start = new_time
    if end is None or new_time > end:
        end = new_time
    return start, end


def _increment(counts: dict[str, int], key: str) -> None:
    counts[key] = counts.get(key, 0) + 1


def _accumulate_record(
    record: SessionRecord,
    session: dict,
    totals: dict,
    cutoff: datetime,
) -> None:
    """Fold one record into the session bucket and the scan totals.

    Args:
        record: The parsed record.
        session: Accumulator from ``_init_session_bucket``.  Modified in place.
        totals: Accumulator from ``_init_scan_totals``.  Modified in place.
        cutoff: Start of the retention window; older timestamps are not
            bucketed.
    """
    ts = record.timestamp
    if ts is not None and ts >= cutoff:
        totals["dates"].add(ts.date())
        totals["hourly"][ts.hour] += 1
        totals["weekday"][ts.weekday()] += 1
        totals["timestamped_records"] += 1
        session["start"], session["end"] = _update_time_range(
            session["start"], session["end"], ts,
        )
        if totals["last_activity"] is None or ts > totals["last_activity"]:
            totals["last_activity"] = ts

    if record.is_message:
        session["messages"] += 1
        totals["messages"] += 1

    if record.git_branch:
        session["branches"].add(record.git_branch)
        # First branch seen wins, even if the session switches later.
        if session["branch"] is None:
            session["branch"] = record.git_branch
            _increment(totals["branch_counts"], record.git_branch)

    for name in record.tool_names():
        session["tool_calls"] += 1
        totals["tool_calls"] += 1
        _increment(totals["tool_counts"], name)

    if record.model:
        display = short_model_name(record.model)
        if display not in session["models"]:
            session["models"].add(display)
            _increment(totals["model_sessions"], display)


def process_session(
    records: list[SessionRecord],
    totals: dict,
    cutoff: datetime,
) -> dict:
    """Walk one session's records in file order.

    Args:
        records: Records from ``read_session``.
        totals: Shared scan accumulator.  Modified in place.
        cutoff: Start of the retention window.

    Returns:
        The session bucket with messages, tool_calls, branch, branches,
        models, start and end.
    """
    session = _init_session_bucket()
    totals["sessions"] += 1
    for record in records:
        _accumulate_record(record, session, totals, cutoff)
    return session


def summarize_project(
    project_dir: Path,
    totals: dict,
    cutoff: datetime,
) -> dict:
    """Aggregate every session of one project directory.

    Returns:
        Dict with keys name (display name), dirName (raw key), sessions,
        messages, toolCalls, branches (sorted) and lastActivity (ISO string
        or None).
    """
    sessions = 0
    messages = 0
    tool_calls = 0
    branches: set[str] = set()
    last_activity: datetime | None = None

    for session_file in list_session_files(project_dir):
        session = process_session(read_session(session_file), totals, cutoff)
        sessions += 1
        messages += session["messages"]
        tool_calls += session["tool_calls"]
        branches.update(session["branches"])
        end = session["end"] or _file_mtime(session_file)
        if end is not None and (last_activity is None or end > last_activity):
            last_activity = end

    return {
        "name": extract_project_name(project_dir.name),
        "dirName": project_dir.name,
        "sessions": sessions,
        "messages": messages,
        "toolCalls": tool_calls,
        "branches": sorted(branches),
        "lastActivity": last_activity.isoformat() if last_activity else None,
    }


def scan_projects(
    projects_dir: str | os.PathLike,
    now: datetime | None = None,
    retention_days: int = RETENTION_DAYS,
) -> tuple[list[dict], dict]:
    """Scan every project directory and aggregate its sessions.

    Args:
        projects_dir: The ``projects`` directory holding one subdirectory
            per project.
        now: Reference time for the retention window.  Defaults to the
            current local time.
        retention_days: Length of the retention window in days.

    Returns:
        A 2-tuple of (projects, totals):
            - projects: per-project summary dicts from
              ``summarize_project``, sorted by session count descending.
            - totals: the scan accumulator with sessions, messages,
              tool_calls, tool_counts, branch_counts, model_sessions,
              dates, hourly, weekday, timestamped_records, last_activity.

    Raises:
        FileNotFoundError: If *projects_dir* does not exist.
    """
    now = now or datetime.now().astimezone()
    cutoff = now - timedelta(days=retention_days)
    totals = _init_scan_totals()

    projects = [
        summarize_project(project_dir, totals, cutoff)
        for project_dir in list_project_dirs(projects_dir)
    ]
    projects.sort(key=lambda p: p["sessions"], reverse=True)
    return projects, totals


# ---------------------------------------------------------------------------
# Ranking and cost
# ---------------------------------------------------------------------------

def top_n(counts: dict[str, int], n: int) -> list[dict]:
    """Rank a frequency mapping and keep the first *n* entries.

    The sort is stable, so ties keep the order in which keys were first
    counted.

    Returns:
        List of ``{"name", "count"}`` dicts, descending by count.
    """
    ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
    return [{"name": name, "count": count} for name, count in ranked[:n]]


def _token(usage: dict, key: str) -> float:
    value = usage.get(key, 0)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def estimate_cost(model: str, usage: dict) -> dict[str, float]:
    """Estimate the USD cost of a model's token usage.

    Args:
        model: Raw model id or display name.  Anything that does not
            classify to a priced model uses the default row.
        usage: Dict with inputTokens, outputTokens, cacheReadInputTokens
            and cacheCreationInputTokens.  Missing counts are zero.

    Returns:
        Dict with inputCost, outputCost, cacheReadCost, cacheWriteCost and
        totalCost, unrounded.
    """
    rates = PRICING.get(short_model_name(model), PRICING["default"])
    input_cost = _token(usage, "inputTokens") / 1e6 * rates["input"]
    output_cost = _token(usage, "outputTokens") / 1e6 * rates["output"]
    cache_read_cost = _token(usage, "cacheReadInputTokens") / 1e6 * rates["cache_read"]
    cache_write_cost = _token(usage, "cacheCreationInputTokens") / 1e6 * rates["cache_write"]
    return {
        "inputCost": input_cost,
        "outputCost": output_cost,
        "cacheReadCost": cache_read_cost,
        "cacheWriteCost": cache_write_cost,
        "totalCost": input_cost + output_cost + cache_read_cost + cache_write_cost,
    }


def compute_model_costs(model_usage: dict) -> dict[str, dict]:
    """Per raw model id: the cached usage plus its cost breakdown (2 dp)."""
    result = {}
    for model, usage in model_usage.items():
        if not isinstance(usage, dict):
            continue
        costs = estimate_cost(model, usage)
        result[model] = {
            **{k: round(v, 2) for k, v in costs.items()},
            **usage,
        }
    return result


def aggregate_model_usage(
    model_usage: dict,
    model_sessions: dict[str, int] | None = None,
) -> dict[str, dict]:
    """Merge cached per-model usage under short display names.

    Several model versions of the same family collapse into one row.

    Args:
        model_usage: The cache's ``modelUsage`` mapping.
        model_sessions: Scanned per-display-name session counts.

    Returns:
        Dict keyed by display name with inputTokens, outputTokens,
        cacheReadTokens, cacheWriteTokens, totalTokens, sessions and
        estimatedCost (2 dp).
    """
    model_sessions = model_sessions or {}
    merged: dict[str, dict] = {}
    for model, usage in model_usage.items():
        if not isinstance(usage, dict):
            continue
        name = short_model_name(model)
        row = merged.setdefault(name, {
            "inputTokens": 0,
            "outputTokens": 0,
            "cacheReadInputTokens": 0,
            "cacheCreationInputTokens": 0,
        })
        for key in row:
            row[key] += _token(usage, key)

    result = {}
    for name, row in merged.items():
        result[name] = {
            "inputTokens": row["inputTokens"],
            "outputTokens": row["outputTokens"],
            "cacheReadTokens": row["cacheReadInputTokens"],
            "cacheWriteTokens": row["cacheCreationInputTokens"],
            "totalTokens": row["inputTokens"] + row["outputTokens"],
            "sessions": model_sessions.get(name, 0),
            "estimatedCost": round(estimate_cost(name, row)["totalCost"], 2),
        }
    return result


# ---------------------------------------------------------------------------
# Cache-derived series
# ---------------------------------------------------------------------------

def compute_token_trends(
    daily_model_tokens: list,
    cutoff_date: str | None = None,
) -> list[dict]:
    """Per-day token totals by display model name, sorted by date.

    Args:
        daily_model_tokens: The cache's ``dailyModelTokens`` list of
            ``{date, tokensByModel}`` dicts.
        cutoff_date: ISO date; earlier days are dropped when given.
    """
    trends = []
    for day in daily_model_tokens:
        if not isinstance(day, dict) or not isinstance(day.get("date"), str):
            continue
        if cutoff_date and day["date"] < cutoff_date:
            continue
        by_model: dict[str, int] = {}
        tokens = day.get("tokensByModel")
        if isinstance(tokens, dict):
            for model, count in tokens.items():
                name = short_model_name(model)
                by_model[name] = by_model.get(name, 0) + _token(tokens, model)
        trends.append({
            "date": day["date"],
            "total": sum(by_model.values()),
            "byModel": by_model,
        })
    trends.sort(key=lambda d: d["date"])
    return trends


def compute_date_range(dates: list[str]) -> dict[str, Any]:
    """First/last date and number of distinct active days."""
    ordered = sorted(set(dates))
    return {
        "from": ordered[0] if ordered else None,
        "to": ordered[-1] if ordered else None,
        "totalDays": len(ordered),
    }


def _cache_daily_activity(cache: dict) -> list[dict]:
    daily = cache.get("dailyActivity")
    if not isinstance(daily, list):
        return []
    return sorted(
        (d for d in daily if isinstance(d, dict) and isinstance(d.get("date"), str)),
        key=lambda d: d["date"],
    )


# ---------------------------------------------------------------------------
# Insights
# ---------------------------------------------------------------------------

def _argmax(values: list[int]) -> int | None:
    if not values or max(values) <= 0:
        return None
    return values.index(max(values))


def generate_insights(
    hourly: list[int],
    weekday: list[int],
    projects: list[dict],
    tool_usage: list[dict],
    model_usage: dict[str, dict],
    active_days: int,
) -> list[str]:
    """Build short human-readable observations for the dashboard.

    Observations whose source data is empty are left out, so the list can
    be shorter than the number of candidates.
    """
    insights = []

    peak_hour = _argmax(hourly)
    if peak_hour is not None:
        insights.append(
            f"Most active hour is {peak_hour:02d}:00 with {hourly[peak_hour]:,} events"
        )

    peak_day = _argmax(weekday)
    if peak_day is not None:
        insights.append(f"{WEEKDAY_NAMES[peak_day]} is the busiest day of the week")

    if projects and projects[0]["sessions"] > 0:
        top = projects[0]
        insights.append(f"Most sessions were in {top['name']} ({top['sessions']:,} sessions)")

    if tool_usage:
        insights.append(
            f"Favourite tool is {tool_usage[0]['name']} ({tool_usage[0]['count']:,} calls)"
        )

    if model_usage:
        name, usage = max(model_usage.items(), key=lambda item: item[1]["outputTokens"])
        output_tokens = usage["outputTokens"]
        if output_tokens > 0:
            insights.append(f"{name} wrote the most output ({output_tokens:,} tokens)")
            total_output = sum(u["outputTokens"] for u in model_usage.values())
            words = int(total_output * WORDS_PER_TOKEN)
            insights.append(f"Roughly {words:,} words of output were generated")

    if active_days:
        insights.append(f"Active on {active_days:,} days in the last six months")

    return insights


# ---------------------------------------------------------------------------
# History and timeline
# ---------------------------------------------------------------------------

def group_history_by_date(
    entries: list[dict],
    limit: int = 100,
    display_chars: int = 200,
) -> dict[str, list[dict]]:
    """Group the last *limit* history entries by UTC date.

    Entries without a usable timestamp are dropped after the limit is
    applied, so fewer than *limit* entries may be returned.

    Returns:
        Dict mapping ``YYYY-MM-DD`` to lists of entries with display
        (truncated), project, timestamp and sessionId, in input order.
    """
    by_date: dict[str, list[dict]] = {}
    if limit <= 0:
        return by_date
    for entry in entries[-limit:]:
        ts = parse_timestamp(entry.get("timestamp"))
        if ts is None:
            continue
        date = ts.astimezone(timezone.utc).date().isoformat()
        display = entry.get("display")
        by_date.setdefault(date, []).append({
            "display": display[:display_chars] if isinstance(display, str) else "",
            "project": entry.get("project"),
            "timestamp": entry.get("timestamp"),
            "sessionId": entry.get("sessionId"),
        })
    return by_date


def recent_sessions(
    projects_dir: str | os.PathLike,
    now: datetime | None = None,
    days: int = 7,
    limit: int = 20,
    samples: int = 3,
    sample_chars: int = 100,
) -> list[dict]:
    """Sessions whose file was modified in the last *days* days.

    Returns:
        Newest-first list (at most *limit*) of dicts with project,
        sessionId, messageCount (user records carrying a message),
        lastModified and samplePrompts.

    Raises:
        FileNotFoundError: If *projects_dir* does not exist.
    """
    now = now or datetime.now().astimezone()
    since = now - timedelta(days=days)
    recent: list[tuple[datetime, dict]] = []
    for project_dir in list_project_dirs(projects_dir):
        for session_file in list_session_files(project_dir):
            modified = _file_mtime(session_file)
            if modified is None or modified <= since:
                continue
            user_records = [
                r for r in read_session(session_file)
                if r.type == "user" and r.content is not None
            ]
            prompts = [r.prompt_text()[:sample_chars] for r in user_records[-samples:]]
            recent.append((modified, {
                "project": extract_project_name(project_dir.name),
                "sessionId": session_file.stem,
                "messageCount": len(user_records),
                "lastModified": modified.isoformat(),
                "samplePrompts": [p for p in prompts if p],
            }))
    recent.sort(key=lambda item: item[0], reverse=True)
    return [session for _, session in recent[:limit]]


# ---------------------------------------------------------------------------
# Dashboard artifact
# ---------------------------------------------------------------------------

def _load_cache_or_empty(path: Path) -> dict[str, Any]:
    try:
        return load_stats_cache(path)
    except (OSError, ValueError) as exc:
        logger.warning("Usage cache unavailable (%s); using scanned data only", exc)
        return {}


def _round_half_up(value: float) -> int:
    return int(value + 0.5)


def _number(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def _build_summary(
    cache: dict,
    projects: list[dict],
    totals: dict,
    daily_activity: list[dict],
    now: datetime,
) -> dict[str, Any]:
    """Headline numbers: cache totals where trusted, scanned otherwise."""
    total_sessions = cache.get("totalSessions")
    if not isinstance(total_sessions, int):
        total_sessions = totals["sessions"]
    total_messages = cache.get("totalMessages")
    if not isinstance(total_messages, int):
        total_messages = totals["messages"]

    days_since_first = None
    first = parse_timestamp(cache.get("firstSessionDate"))
    if first is not None:
        days_since_first = (now - first).days

    longest = cache.get("longestSession")
    longest_ms = _number(longest.get("duration")) if isinstance(longest, dict) else 0

    peak_day = None
    for day in daily_activity:
        if _number(day.get("messageCount")) > _number((peak_day or {}).get("messageCount")):
            peak_day = day

    active_days = len(daily_activity) or len(totals["dates"])
    last_activity = totals["last_activity"]

    return {
        "totalSessions": total_sessions,
        "totalMessages": total_messages,
        "totalToolCalls": totals["tool_calls"],
        "projectCount": sum(1 for p in projects if p["sessions"] > 0),
        "activeDays": len(totals["dates"]),
        "daysSinceFirstSession": days_since_first,
        "longestSessionHours": int(longest_ms // 3_600_000),
        "avgMessagesPerSession": _round_half_up(total_messages / total_sessions) if total_sessions else 0,
        "avgMessagesPerDay": _round_half_up(total_messages / max(1, active_days)),
        "peakDay": peak_day,
        "lastActivity": last_activity.isoformat() if last_activity else None,
    }


def _public_projects(projects: list[dict], limit: int = TOP_PROJECTS) -> list[dict]:
    """Sanitized top projects for the public artifact (no raw paths)."""
    public = []
    for project in projects:
        if project["sessions"] == 0:
            continue
        last = project["lastActivity"]
        public.append({
            "name": sanitize_project_name(project["dirName"]),
            "sessions": project["sessions"],
            "messages": project["messages"],
            "toolCalls": project["toolCalls"],
            "lastActivity": last[:10] if last else None,
        })
    return public[:limit]


def build_dashboard_payload(
    claude_dir: str | os.PathLike = CLAUDE_DIR,
    now: datetime | None = None,
) -> dict[str, Any]:
    """One-call entry point: scan, merge with the cache, shape the artifact.

    Missing or malformed inputs degrade to partial data with a logged
    warning; this function does not raise for them.

    Args:
        claude_dir: Root of the Claude data directory.
        now: Reference time.  Defaults to the current local time.

    Returns:
        Dict with keys generatedAt, dateRange, summary, modelUsage,
        toolUsage, dailyActivity, hourlyActivity (24 ints),
        weekdayActivity (7 ints, Monday first), projects, gitBranches,
        tokenTrends, insights.
    """
    now = now or datetime.now().astimezone()
    cutoff_date = (now - timedelta(days=RETENTION_DAYS)).date().isoformat()
    cache = _load_cache_or_empty(stats_cache_path(claude_dir))

    try:
        projects, totals = scan_projects(projects_path(claude_dir), now=now)
    except OSError as exc:
        logger.warning("Projects directory unavailable (%s)", exc)
        projects, totals = [], _init_scan_totals()

    if cache and not totals["sessions"]:
        logger.warning("Usage cache loaded but no session files were found")

    daily_activity = _cache_daily_activity(cache)
    if daily_activity:
        date_range = compute_date_range([d["date"] for d in daily_activity])
    else:
        date_range = compute_date_range([d.isoformat() for d in totals["dates"]])

    model_usage_raw = cache.get("modelUsage")
    model_usage = aggregate_model_usage(
        model_usage_raw if isinstance(model_usage_raw, dict) else {},
        totals["model_sessions"],
    )
    daily_tokens = cache.get("dailyModelTokens")
    tool_usage = top_n(totals["tool_counts"], TOP_TOOLS)
    public_projects = _public_projects(projects)

    return {
        "generatedAt": now.isoformat(),
        "dateRange": date_range,
        "summary": _build_summary(cache, projects, totals, daily_activity, now),
        "modelUsage": model_usage,
        "toolUsage": tool_usage,
        "dailyActivity": daily_activity,
        "hourlyActivity": list(totals["hourly"]),
        "weekdayActivity": list(totals["weekday"]),
        "projects": public_projects,
        "gitBranches": top_n(totals["branch_counts"], TOP_BRANCHES),
        "tokenTrends": compute_token_trends(
            daily_tokens if isinstance(daily_tokens, list) else [], cutoff_date,
        ),
        "insights": generate_insights(
            totals["hourly"],
            totals["weekday"],
            public_projects,
            tool_usage,
            model_usage,
            len(totals["dates"]),
        ),
    }


def save_dashboard_data(payload: dict[str, Any], output_path: str | os.PathLike) -> None:
    """Write the artifact as indented JSON, creating parent directories."""
    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False)


def print_summary_report(payload: dict[str, Any], output_path: str | os.PathLike) -> None:
    """Print the batch summary report to stdout."""
    summary = payload["summary"]
    date_range = payload["dateRange"]

    print(f"\n{'=' * 60}")
    print("Claude Usage Summary")
    print(f"{'=' * 60}")
    print(f"Sessions: {summary['totalSessions']:,}")
    print(f"Messages: {summary['totalMessages']:,}")
    print(f"Tool Calls: {summary['totalToolCalls']:,}")
    print(f"Projects: {summary['projectCount']:,}")
    if date_range["from"]:
        print(f"Date Range: {date_range['from']} to {date_range['to']} "
              f"({date_range['totalDays']:,} active days)")
    if summary["daysSinceFirstSession"] is not None:
        print(f"Days Since First Session: {summary['daysSinceFirstSession']:,}")

    if payload["modelUsage"]:
        print("\nEstimated Cost by Model:")
        for name, usage in payload["modelUsage"].items():
            print(f"  {name}: ${usage['estimatedCost']:.2f} "
                  f"({usage['totalTokens']:,} tokens)")

    if payload["toolUsage"]:
        print("\nTop 5 Tools:")
        for tool in payload["toolUsage"][:5]:
            print(f"  {tool['name']}: {tool['count']:,}")

    if payload["insights"]:
        print("\nInsights:")
        for insight in payload["insights"]:
            print(f"  - {insight}")

    print(f"{'=' * 60}")
    print(f"\nDashboard data has been saved to {output_path}")
