"""
CSV export of raw events plus a summary of the report.
"""

import csv
import io
from datetime import datetime, timezone
from typing import Iterable, Optional

from .engine import AnalyticsReport, EventLike
from .events import parse_event

CSV_HEADER = ["Date", "Session ID", "Text Snippet", "Topic", "Language", "LINE Clicked", "Routed"]


def _percent(value: float) -> str:
    return f"{value:.2f}%"


def render_csv(events: Iterable[EventLike], report: AnalyticsReport) -> str:
    """
    Render events as CSV rows followed by summary rows.

    Columns are fixed: timestamp, session id, snippet, topic, language,
    handoff flag, routed. Quotes inside snippets are doubled. Records
    without a session id or timestamp are skipped, as in the report.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)

    for record in events:
        event = parse_event(record)
        if event is None:
            continue
        writer.writerow([
            event.timestamp.isoformat(),
            event.session_id,
            event.text_snippet,
            event.topic.value,
            event.language.value,
            "Yes" if event.handoff_triggered else "No",
            event.routed.value,
        ])

    usage = report.usage_stats
    writer.writerow([])
    writer.writerow(["SUMMARY STATISTICS"])
    writer.writerow(["Total Questions", usage.total_events])
    writer.writerow(["Unique Sessions", usage.unique_sessions])
    writer.writerow(["LINE Click Rate", _percent(usage.handoff_rate)])
    writer.writerow(["Fallback Rate", _percent(usage.fallback_rate)])
    writer.writerow(["Abandonment Rate", _percent(report.session_analytics.abandonment_rate)])
    writer.writerow(["Conversion Rate", _percent(report.session_analytics.conversion_rate)])
    writer.writerow([])
    writer.writerow(["TOP TOPICS"])
    for stat in report.topic_analytics:
        writer.writerow([
            stat.topic.value,
            stat.count,
            _percent(stat.percentage),
            f"{_percent(stat.handoff_rate)} LINE clicks",
        ])

    return buffer.getvalue()


def csv_filename(period: str, now: Optional[datetime] = None) -> str:
    """Attachment name, e.g. ``jirung-analytics-7d-2024-05-01.csv``."""
    now = now or datetime.now(timezone.utc)
    return f"jirung-analytics-{period}-{now.date().isoformat()}.csv"
