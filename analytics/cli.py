"""
Offline analytics report CLI.

Usage:
    python -m analytics.cli --input data/events.jsonl
    python -m analytics.cli --input data/events.jsonl --period 30d --format csv --output report.csv
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from config.settings import LOG_FORMAT, get_settings

from .engine import ConversationAnalyticsEngine
from .errors import AnalyticsError
from .events import parse_event, parse_timestamp
from .export import render_csv
from .window import PERIOD_DAYS, parse_period

logger = logging.getLogger(__name__)


def load_records(path: str) -> List[Dict[str, Any]]:
    """
    Read event records from a JSONL file or a JSON array file.

    Lines that are not JSON objects are kept as empty records so the report
    counts them as excluded.
    """
    file_path = Path(path)
    text = file_path.read_text(encoding="utf-8")

    if file_path.suffix == ".json":
        data = json.loads(text)
        if not isinstance(data, list):
            raise AnalyticsError(f"{path}: expected a JSON array of events")
        return [item if isinstance(item, dict) else {} for item in data]

    records = []
    for line_no, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        try:
            item = json.loads(line)
        except json.JSONDecodeError:
            logger.warning(f"{path}:{line_no}: not valid JSON, skipped")
            item = {}
        records.append(item if isinstance(item, dict) else {})
    return records


def build_report(
    records: List[Dict[str, Any]],
    period: Optional[str] = None,
    output_format: str = "json",
    now: Optional[datetime] = None,
    engine: Optional[ConversationAnalyticsEngine] = None,
) -> str:
    """Analyze records and render the report as JSON or CSV text."""
    settings = get_settings()
    engine = engine or ConversationAnalyticsEngine(
        timezone_name=settings.analytics_timezone,
        flow_limit=settings.flow_limit,
        pattern_limit=settings.pattern_limit,
    )

    window = parse_period(period, now=now) if period else None
    if window is not None:
        # Invalid records pass through so they are still counted as excluded
        kept = []
        for record in records:
            event = parse_event(record)
            if event is None or window.contains(event.timestamp):
                kept.append(record)
        records = kept

    report = engine.analyze(records, window=window)
    logger.info(
        f"Analyzed {report.usage_stats.total_events} events "
        f"({report.excluded_events} excluded, {report.usage_stats.unique_sessions} sessions)"
    )

    if output_format == "csv":
        return render_csv(records, report)
    return json.dumps(report.to_dict(), ensure_ascii=False, indent=2)


def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="Jirung Conversation Analytics")
    parser.add_argument("--input", required=True, help="Events file (.jsonl or .json)")
    parser.add_argument("--period", choices=list(PERIOD_DAYS), help="Only analyze the last N days")
    parser.add_argument("--now", help="Window end as ISO-8601 (default: current time)")
    parser.add_argument("--format", dest="output_format", default="json", choices=["json", "csv"])
    parser.add_argument("--output", help="Write the report here instead of stdout")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format=LOG_FORMAT,
    )

    now = None
    if args.now:
        now = parse_timestamp(args.now)
        if now is None:
            logger.error(f"--now is not an ISO-8601 timestamp: {args.now}")
            sys.exit(2)

    try:
        records = load_records(args.input)
        output = build_report(records, period=args.period, output_format=args.output_format, now=now)
    except (OSError, ValueError, AnalyticsError) as e:
        logger.error(f"Report failed: {e}")
        sys.exit(1)

    if args.output:
        Path(args.output).write_text(output, encoding="utf-8")
        logger.info(f"Report written to {args.output}")
    else:
        sys.stdout.write(output)
        if not output.endswith("\n"):
            sys.stdout.write("\n")


if __name__ == "__main__":
    main()
