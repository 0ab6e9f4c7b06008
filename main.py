#!/usr/bin/env python3
"""
Replay a CSV of weight measurements through the entry processor and
print a JSON report per subject (chart data and weekly compliance).

CSV columns: subject_id, measurement_date, weight, and optionally
recorded_by and note.
"""

import argparse
import json
import logging
import sys
from datetime import datetime, time
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

from weight_analytics.clock import CalendarClock, fixed_clock
from weight_analytics.config_loader import load_config
from weight_analytics.database.database import InMemoryMeasurementStore
from weight_analytics.exceptions import WeightTrackingError
from weight_analytics.processing.processor import WeightEntryProcessor

logger = logging.getLogger("weight_analytics.cli")

REQUIRED_COLUMNS = ("subject_id", "measurement_date", "weight")


def read_measurements(csv_path: str) -> pd.DataFrame:
    """Read and normalize the measurement CSV, ordered by subject and date."""
    df = pd.read_csv(csv_path, dtype={"subject_id": str})
    missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV is missing columns: {', '.join(missing)}")

    df["measurement_date"] = pd.to_datetime(df["measurement_date"]).dt.date
    if "recorded_by" not in df.columns:
        df["recorded_by"] = "patient"
    df["recorded_by"] = df["recorded_by"].fillna("patient")
    if "note" not in df.columns:
        df["note"] = None
    df["note"] = df["note"].astype(object).where(df["note"].notna(), None)

    return df.sort_values(["subject_id", "measurement_date"], kind="stable").reset_index(drop=True)


def replay(df: pd.DataFrame, processor: WeightEntryProcessor, clock: CalendarClock) -> Dict[str, Any]:
    """
    Create every row as if it had been entered at noon on its own date.

    Rejected rows are collected instead of aborting the run.
    """
    stats = {"created": 0, "flagged": 0, "rejected": []}
    for row in df.itertuples(index=False):
        entered_at = datetime.combine(row.measurement_date, time(12), tzinfo=clock.zone)
        try:
            result = processor.create_entry(
                subject_id=row.subject_id,
                weight=float(row.weight),
                measurement_date=row.measurement_date,
                recorded_by=row.recorded_by,
                note=row.note,
                now=entered_at,
            )
        except WeightTrackingError as e:
            stats["rejected"].append({"subject_id": row.subject_id, **e.to_dict()})
            continue

        stats["created"] += 1
        if result.entry.is_outlier:
            stats["flagged"] += 1
    return stats


def build_report(processor: WeightEntryProcessor, subjects: List[str], period_days: int,
                 now: datetime) -> Dict[str, Any]:
    report = {}
    for subject_id in subjects:
        report[subject_id] = {
            "chart": processor.chart(subject_id, period_days=period_days, now=now).to_dict(),
            "overview": processor.overview(subject_id, now=now).to_dict(),
        }
    return report


def parse_now(value: Optional[str], clock: CalendarClock) -> datetime:
    """``--now`` accepts YYYY-MM-DD (end of that civil day) or an ISO timestamp."""
    if not value:
        return clock.now()
    if len(value) == 10:
        day = datetime.strptime(value, "%Y-%m-%d").date()
        return clock.end_of_day(day)
    return clock.to_local(datetime.fromisoformat(value))


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Weight tracking analytics report")
    parser.add_argument("csv_file", nargs="?", help="CSV file with measurements")
    parser.add_argument("--config", default="config.toml", help="Configuration file")
    parser.add_argument("--subject", action="append", help="Only report these subjects (repeatable)")
    parser.add_argument("--period", type=int, choices=(30, 90), default=30, help="Chart period in days")
    parser.add_argument("--now", help="Report as of this date or timestamp")
    parser.add_argument("--output", help="Write the report to this file instead of stdout")

    args = parser.parse_args(argv)

    config = load_config(args.config)
    logging.basicConfig(
        level=config.get("logging", {}).get("level", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    csv_file = args.csv_file or config["data"].get("csv_file")
    if not csv_file or not Path(csv_file).exists():
        print(f"Error: File {csv_file} not found", file=sys.stderr)
        return 1

    clock = CalendarClock(config["clock"]["timezone"])
    now = parse_now(args.now, clock)

    df = read_measurements(csv_file)
    if args.subject:
        df = df[df["subject_id"].isin(args.subject)]

    store = InMemoryMeasurementStore(config["data"].get("storage_path"))
    processor = WeightEntryProcessor(store=store, config=config, clock=fixed_clock(now, clock.tz_name))

    stats = replay(df, processor, clock)
    logger.info(
        f"Replayed {len(df)} rows: {stats['created']} created, "
        f"{stats['flagged']} flagged, {len(stats['rejected'])} rejected"
    )

    subjects = sorted(df["subject_id"].unique())
    output = {
        "generated_at": now.isoformat(),
        "profile": config.get("profile"),
        "import": stats,
        "subjects": build_report(processor, subjects, args.period, now),
    }
    text = json.dumps(output, indent=2, default=str)

    if args.output:
        Path(args.output).write_text(text)
        print(f"Report written to {args.output}")
    else:
        print(text)
    return 0


if __name__ == "__main__":
    sys.exit(main())
