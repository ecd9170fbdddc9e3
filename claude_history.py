"""claude_history.py

Print recent prompts from the Claude history log, grouped by day.

Reads ~/.claude/history.jsonl (or --history-file), keeps the last --limit
entries and prints them under their UTC date.  Use --project to only show
prompts sent from a given project path.
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path

from analytics import group_history_by_date, history_path, load_history, parse_timestamp


def filter_by_project(entries: list[dict], project: str | None) -> list[dict]:
    """Keep entries whose project path contains *project* (case-insensitive)."""
    if not project:
        return entries
    needle = project.lower()
    return [
        e for e in entries
        if isinstance(e.get("project"), str) and needle in e["project"].lower()
    ]


def _format_time(ts: object) -> str:
    parsed = parse_timestamp(ts)
    return parsed.strftime("%H:%M") if parsed else "--:--"


def format_history(grouped: dict[str, list[dict]]) -> list[str]:
    """Render grouped history as printable lines, oldest day first."""
    lines: list[str] = []
    for date in sorted(grouped):
        entries = grouped[date]
        lines.append(f"{date} ({len(entries)} prompts)")
        for entry in entries:
            project = Path(entry["project"]).name if entry.get("project") else "?"
            display = " ".join(entry["display"].split())
            lines.append(f"  [{_format_time(entry['timestamp'])}] {project}: {display}")
        lines.append("")
    return lines


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for browsing prompt history."""
    parser = argparse.ArgumentParser(description='Show recent Claude prompts grouped by date')
    parser.add_argument('--history-file', type=Path, default=history_path(),
                        help='Path to history.jsonl (default: ~/.claude/history.jsonl)')
    parser.add_argument('--limit', '-n', type=int, default=100,
                        help='Number of most recent prompts to show (default: 100)')
    parser.add_argument('--project', '-p',
                        help='Only show prompts whose project path contains this text')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    if not args.history_file.exists():
        parser.error(f"File not found: {args.history_file}")

    entries = filter_by_project(load_history(args.history_file), args.project)
    grouped = group_history_by_date(entries, args.limit)

    if not grouped:
        print("No prompts found.")
        return

    for line in format_history(grouped):
        print(line)
    total = sum(len(v) for v in grouped.values())
    print(f"{total} prompts across {len(grouped)} days "
          f"(as of {datetime.now().strftime('%Y-%m-%d %H:%M')})")


if __name__ == '__main__':
    main()
