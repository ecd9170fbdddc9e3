"""FastAPI service for the Claude Statistics Dashboard.

Serves the static dashboard from ``public/`` and read-only JSON endpoints.
Every request rescans the data files; nothing is cached between requests.

Deployment: uvicorn app:app --host 127.0.0.1 --port 3847
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

import uvicorn
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from analytics import (
    CLAUDE_DIR,
    compute_model_costs,
    find_session_file,
    group_history_by_date,
    history_path,
    list_project_dirs,
    load_history,
    load_stats_cache,
    parse_jsonl,
    projects_path,
    recent_sessions,
    scan_projects,
    stats_cache_path,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
STATS_CACHE = stats_cache_path(CLAUDE_DIR)
PROJECTS_DIR = projects_path(CLAUDE_DIR)
HISTORY_FILE = history_path(CLAUDE_DIR)
PUBLIC_DIR = Path(__file__).parent / "public"
PORT = 3847
DEFAULT_HISTORY_LIMIT = 100
_LEADING_INT = re.compile(r"\s*[+-]?\d+")

# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Claude Statistics Dashboard")


def _error(message: str, exc: Exception, status_code: int = 500) -> JSONResponse:
    logger.warning("%s: %s", message, exc)
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "details": str(exc)},
    )


def _coerce_limit(raw: str | None, default: int = DEFAULT_HISTORY_LIMIT) -> int:
    """Parse the leading integer of the ``limit`` query parameter.

    ``"5abc"`` and ``"2.5"`` read as 5 and 2; anything without a leading
    integer, or a non-positive value, falls back to *default*.
    """
    match = _LEADING_INT.match(raw or "")
    if match is None:
        return default
    value = int(match.group(0))
    return value if value > 0 else default


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@app.get("/health")
@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/api/stats")
def api_stats():
    """Return the raw usage cache."""
    try:
        return load_stats_cache(STATS_CACHE)
    except Exception as exc:
        return _error("Failed to read stats", exc)


@app.get("/api/projects")
def api_projects():
    """Return every project's totals, most sessions first."""
    try:
        projects, _ = scan_projects(PROJECTS_DIR)
        return projects
    except Exception as exc:
        return _error("Failed to read projects", exc)


@app.get("/api/history")
def api_history(limit: str | None = None):
    """Return the most recent prompts grouped by date."""
    try:
        entries = load_history(HISTORY_FILE)
        return group_history_by_date(entries, _coerce_limit(limit))
    except Exception as exc:
        return _error("Failed to read history", exc)


@app.get("/api/session/{project}/{session_id}")
def api_session(project: str, session_id: str):
    """Return every parsed record of one session."""
    try:
        session_file = find_session_file(PROJECTS_DIR, project, session_id)
        if session_file is None:
            return JSONResponse(status_code=404, content={"error": "Session not found"})
        return parse_jsonl(session_file)
    except Exception as exc:
        return _error("Failed to read session", exc)


@app.get("/api/timeline")
def api_timeline():
    """Return the last week of activity merged with cached daily stats."""
    try:
        stats = load_stats_cache(STATS_CACHE)
        return {
            "cachedStats": stats.get("dailyActivity") or [],
            "recentSessions": recent_sessions(PROJECTS_DIR),
            "tokensByDay": stats.get("dailyModelTokens") or [],
            "hourlyDistribution": stats.get("hourCounts") or {},
        }
    except Exception as exc:
        return _error("Failed to build timeline", exc)


@app.get("/api/summary")
def api_summary():
    """Return the dashboard header numbers with per-model cost estimates."""
    try:
        stats = load_stats_cache(STATS_CACHE)
        model_usage = stats.get("modelUsage")
        return {
            "totalSessions": stats.get("totalSessions"),
            "totalMessages": stats.get("totalMessages"),
            "firstSession": stats.get("firstSessionDate"),
            "longestSession": stats.get("longestSession"),
            "projectCount": len(list_project_dirs(PROJECTS_DIR)),
            "modelUsage": compute_model_costs(model_usage if isinstance(model_usage, dict) else {}),
            "lastComputed": stats.get("lastComputedDate"),
        }
    except Exception as exc:
        return _error("Failed to get summary", exc)


# Mounted last so the API routes take precedence.
app.mount("/", StaticFiles(directory=PUBLIC_DIR, html=True, check_dir=False), name="static")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    uvicorn.run(app, host="127.0.0.1", port=PORT)
