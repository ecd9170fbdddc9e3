"""generate_data.py

Generate sanitized, privacy-safe dashboard data for public deployment.

Scans ~/.claude once, writes the dashboard artifact (public/data.json by
default) and prints a short summary.  Missing or malformed inputs are
logged and skipped; the artifact is written with whatever data was found.
"""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

from analytics import (
    CLAUDE_DIR,
    build_dashboard_payload,
    print_summary_report,
    save_dashboard_data,
)

OUTPUT_FILE = Path(__file__).parent / "public" / "data.json"


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for generating the dashboard artifact."""
    parser = argparse.ArgumentParser(description="Generate privacy-safe Claude dashboard data")
    parser.add_argument('--claude-dir', type=Path, default=CLAUDE_DIR,
                        help='Claude data directory (default: ~/.claude)')
    parser.add_argument('--output', '-o', type=Path, default=OUTPUT_FILE,
                        help='Where to write the JSON artifact (default: public/data.json)')
    parser.add_argument('--quiet', '-q', action='store_true',
                        help='Do not print the summary report')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING, format="%(levelname)s: %(message)s")

    payload = build_dashboard_payload(args.claude_dir)

    try:
        save_dashboard_data(payload, args.output)
    except OSError as e:
        parser.error(f"Failed to write output file: {e}")

    if not args.quiet:
        print_summary_report(payload, args.output)


if __name__ == '__main__':
    main()
