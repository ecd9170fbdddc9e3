"""Render PNG charts from the dashboard artifact written by generate_data.py."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402

from analytics import WEEKDAY_NAMES  # noqa: E402

DATA_FILE = Path(__file__).parent / "public" / "data.json"
OUTPUT_DIR = Path(__file__).parent / "charts"


def load_daily_frame(payload: dict) -> pd.DataFrame:
    """Daily activity as a date-sorted DataFrame with rolling averages."""
    df = pd.DataFrame(payload.get("dailyActivity") or [])
    if df.empty:
        return df
    df['date'] = pd.to_datetime(df['date'])
    df = df.sort_values('date')
    if 'messageCount' not in df:
        df['messageCount'] = 0
    df['messages_7_day_avg'] = df['messageCount'].rolling(window=7, min_periods=1).mean()
    df['messages_28_day_avg'] = df['messageCount'].rolling(window=28, min_periods=1).mean()
    df['cumulative_avg_messages'] = df['messageCount'].expanding().mean()
    return df


def plot_daily_messages(df: pd.DataFrame, output_dir: Path) -> Path | None:
    if df.empty:
        return None
    plt.figure(figsize=(15, 8))
    plt.bar(df['date'], df['messageCount'], alpha=0.5, color='skyblue', label='Daily Messages')
    plt.plot(df['date'], df['messages_7_day_avg'], color='red', linewidth=2, label='7-day Average')
    plt.plot(df['date'], df['messages_28_day_avg'], color='green', linewidth=2, label='28-day Average')
    plt.plot(df['date'], df['cumulative_avg_messages'], color='purple', linewidth=2,
             label='Lifetime Average to Date')
    plt.title('Daily Messages with Rolling Averages', fontsize=14, pad=20)
    plt.xlabel('Date', fontsize=12)
    plt.ylabel('Number of Messages', fontsize=12)
    plt.grid(True, alpha=0.3)
    plt.legend()
    plt.xticks(rotation=45)
    plt.tight_layout()
    path = output_dir / 'daily_messages.png'
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    return path


def _bar_chart(labels: list, values: list, title: str, xlabel: str, path: Path) -> Path:
    df = pd.DataFrame({'label': labels, 'count': values})
    plt.figure(figsize=(12, 6))
    sns.barplot(data=df, x='label', y='count', color='steelblue')
    plt.title(title, fontsize=14, pad=20)
    plt.xlabel(xlabel, fontsize=12)
    plt.ylabel('Events', fontsize=12)
    plt.grid(True, axis='y', alpha=0.3)
    plt.tight_layout()
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    return path


def plot_top_tools(tool_usage: list[dict], output_dir: Path) -> Path | None:
    if not tool_usage:
        return None
    df = pd.DataFrame(tool_usage)
    plt.figure(figsize=(10, max(4, len(df) * 0.4)))
    sns.barplot(data=df, x='count', y='name', color='salmon')
    plt.title('Most Used Tools', fontsize=14, pad=20)
    plt.xlabel('Calls', fontsize=12)
    plt.ylabel('')
    plt.tight_layout()
    path = output_dir / 'top_tools.png'
    plt.savefig(path, dpi=150, bbox_inches='tight')
    plt.close()
    return path


def render_charts(payload: dict, output_dir: Path) -> list[Path]:
    """Render every chart the payload has data for.

    Returns:
        Paths of the PNG files written, in render order.
    """
    output_dir.mkdir(parents=True, exist_ok=True)
    sns.set_theme(style='whitegrid')
    written = [
        plot_daily_messages(load_daily_frame(payload), output_dir),
        plot_top_tools(payload.get("toolUsage") or [], output_dir),
    ]

    hourly = payload.get("hourlyActivity") or []
    if any(hourly):
        written.append(_bar_chart(
            [f"{h:02d}" for h in range(len(hourly))], hourly,
            'Activity by Hour of Day', 'Hour', output_dir / 'hourly_activity.png',
        ))
    weekday = payload.get("weekdayActivity") or []
    if any(weekday):
        written.append(_bar_chart(
            [name[:3] for name in WEEKDAY_NAMES[:len(weekday)]], weekday,
            'Activity by Day of Week', 'Day', output_dir / 'weekday_activity.png',
        ))
    return [p for p in written if p is not None]


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description='Render charts from the dashboard data file')
    parser.add_argument('data_file', nargs='?', type=Path, default=DATA_FILE,
                        help='Dashboard JSON written by generate_data.py')
    parser.add_argument('--output-dir', '-o', type=Path, default=OUTPUT_DIR,
                        help='Directory for PNG files (default: charts/)')
    args = parser.parse_args(argv)

    try:
        with open(args.data_file, 'r', encoding='utf-8') as f:
            payload = json.load(f)
    except FileNotFoundError:
        parser.error(f"File not found: {args.data_file} (run generate_data.py first)")
    except json.JSONDecodeError as e:
        parser.error(f"Invalid JSON in {args.data_file}: {e}")

    written = render_charts(payload, args.output_dir)
    if not written:
        print("No data to chart.")
        return
    print(f"Saved {len(written)} charts to {args.output_dir}: "
          + ", ".join(p.name for p in written))


if __name__ == '__main__':
    main()
