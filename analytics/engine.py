"""
Conversation Analytics Engine for the Jirung elder-care assistant.

Turns a window of events into the admin dashboard report: topic and usage
statistics, per-session conversation flows, recurring topic sequences,
hourly and daily activity, and session-level funnel metrics.

The engine performs no I/O and keeps no state between calls. Fetching the
events is the caller's job.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from triage.topics import Language, Topic

from .errors import AnalyticsError
from .events import Event, Routed, parse_event
from .window import AnalysisWindow, date_range

logger = logging.getLogger(__name__)

EventLike = Union[Event, Mapping[str, Any]]

# Session length buckets: label, inclusive lower bound, inclusive upper bound
SESSION_LENGTH_BUCKETS: List[Tuple[str, int, Optional[int]]] = [
    ("1", 1, 1),
    ("2-3", 2, 3),
    ("4-5", 4, 5),
    ("6+", 6, None),
]


def _rate(part: int, whole: int) -> float:
    """Percentage, 0.0 when the denominator is zero."""
    return (part / whole) * 100 if whole else 0.0


# ── Report structures ────────────────────────────────────────────


@dataclass
class TopicStat:
    topic: Topic
    count: int
    percentage: float
    handoff_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "topic": self.topic.value,
            "count": self.count,
            "percentage": self.percentage,
            "handoff_rate": self.handoff_rate,
        }


@dataclass
class UsageStats:
    total_events: int = 0
    unique_sessions: int = 0
    language_distribution: Dict[str, int] = field(default_factory=dict)
    handoff_rate: float = 0.0
    fallback_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_events": self.total_events,
            "unique_sessions": self.unique_sessions,
            "language_distribution": dict(self.language_distribution),
            "handoff_rate": self.handoff_rate,
            "fallback_rate": self.fallback_rate,
        }


@dataclass
class FlowStep:
    step: int
    topic: Topic
    timestamp: datetime
    handoff_triggered: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "topic": self.topic.value,
            "timestamp": self.timestamp.isoformat(),
            "handoff_triggered": self.handoff_triggered,
        }


@dataclass
class ConversationFlow:
    """One session's events in time order."""
    session_id: str
    steps: List[FlowStep]
    duration_minutes: float
    ended_with_handoff: bool

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def topic_sequence(self) -> Tuple[Topic, ...]:
        return tuple(step.topic for step in self.steps)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "steps": [step.to_dict() for step in self.steps],
            "total_steps": self.total_steps,
            "duration_minutes": self.duration_minutes,
            "ended_with_handoff": self.ended_with_handoff,
        }


@dataclass
class Pattern:
    """A distinct ordered topic sequence and the flows that share it."""
    topics: Tuple[Topic, ...]
    frequency: int
    average_duration_minutes: float
    handoff_rate: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pattern": [topic.value for topic in self.topics],
            "frequency": self.frequency,
            "average_duration_minutes": self.average_duration_minutes,
            "handoff_rate": self.handoff_rate,
        }


@dataclass
class DailyTrend:
    day: date
    events: int = 0
    unique_sessions: int = 0
    handoffs: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "date": self.day.isoformat(),
            "events": self.events,
            "unique_sessions": self.unique_sessions,
            "handoffs": self.handoffs,
        }


@dataclass
class SessionAnalytics:
    average_events_per_session: float = 0.0
    session_length_distribution: Dict[str, int] = field(
        default_factory=lambda: {label: 0 for label, _, _ in SESSION_LENGTH_BUCKETS}
    )
    abandonment_rate: float = 0.0
    conversion_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "average_events_per_session": self.average_events_per_session,
            "session_length_distribution": dict(self.session_length_distribution),
            "abandonment_rate": self.abandonment_rate,
            "conversion_rate": self.conversion_rate,
        }


@dataclass
class AnalyticsReport:
    """Everything the admin dashboard shows for one window."""
    topic_analytics: List[TopicStat]
    usage_stats: UsageStats
    flows: List[ConversationFlow]
    patterns: List[Pattern]
    hourly_distribution: Dict[str, int]
    daily_trends: List[DailyTrend]
    session_analytics: SessionAnalytics
    excluded_events: int = 0
    window: Optional[AnalysisWindow] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "window": self.window.to_dict() if self.window else None,
            "topic_analytics": [stat.to_dict() for stat in self.topic_analytics],
            "usage_stats": self.usage_stats.to_dict(),
            "flows": [flow.to_dict() for flow in self.flows],
            "patterns": [pattern.to_dict() for pattern in self.patterns],
            "hourly_distribution": dict(self.hourly_distribution),
            "daily_trends": [trend.to_dict() for trend in self.daily_trends],
            "session_analytics": self.session_analytics.to_dict(),
            "excluded_events": self.excluded_events,
        }


# ── Engine ───────────────────────────────────────────────────────


class ConversationAnalyticsEngine:
    """
    Aggregates events into an AnalyticsReport.

    Rates are percentages in [0, 100] and are never rounded here; rounding
    belongs to the presentation layer (CSV export, dashboards).
    """

    FLOW_LIMIT = 20
    PATTERN_LIMIT = 10
    DEFAULT_TIMEZONE = "Asia/Bangkok"

    def __init__(
        self,
        timezone_name: Optional[str] = None,
        flow_limit: Optional[int] = None,
        pattern_limit: Optional[int] = None,
    ):
        """
        Initialize the engine.

        Args:
            timezone_name: IANA zone used for hour-of-day and calendar-day buckets
            flow_limit: Maximum flows returned in the report
            pattern_limit: Maximum patterns returned in the report

        Raises:
            AnalyticsError: if the timezone is unknown
        """
        name = timezone_name or self.DEFAULT_TIMEZONE
        try:
            self.tz: tzinfo = ZoneInfo(name)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise AnalyticsError(f"Unknown analytics timezone '{name}'") from e
        self.flow_limit = flow_limit if flow_limit is not None else self.FLOW_LIMIT
        self.pattern_limit = pattern_limit if pattern_limit is not None else self.PATTERN_LIMIT

    def analyze(
        self,
        events: Iterable[EventLike],
        window: Optional[AnalysisWindow] = None,
    ) -> AnalyticsReport:
        """
        Build the full report for a set of events.

        Args:
            events: Event objects or stored records. Records without a session
                id or timestamp are dropped and counted in ``excluded_events``.
            window: Requested window; fixes the days listed in daily trends.
                Events are not filtered by it.

        Returns:
            AnalyticsReport; fully zero-valued for empty input
        """
        valid, excluded = self._normalize(events)
        if excluded:
            logger.debug(f"Excluded {excluded} invalid event records")

        sessions = self._group_by_session(valid)
        all_flows = [self._build_flow(session_id, items) for session_id, items in sessions.items()]

        return AnalyticsReport(
            topic_analytics=self.topic_analytics(valid),
            usage_stats=self.usage_stats(valid, len(sessions)),
            flows=all_flows[:self.flow_limit],
            patterns=self.common_patterns(all_flows),
            hourly_distribution=self.hourly_distribution(valid),
            daily_trends=self.daily_trends(valid, window),
            session_analytics=self.session_analytics(all_flows),
            excluded_events=excluded,
            window=window,
        )

    # ── Individual aggregates ────────────────────────────────────

    def topic_analytics(self, events: List[Event]) -> List[TopicStat]:
        """Per-topic count, share and handoff rate, most frequent first."""
        counts: Dict[Topic, List[int]] = OrderedDict()
        for event in events:
            bucket = counts.setdefault(event.topic, [0, 0])
            bucket[0] += 1
            if event.handoff_triggered:
                bucket[1] += 1

        total = len(events)
        stats = [
            TopicStat(
                topic=topic,
                count=count,
                percentage=_rate(count, total),
                handoff_rate=_rate(handoffs, count),
            )
            for topic, (count, handoffs) in counts.items()
        ]
        # Stable sort keeps first-appearance order among equal counts
        stats.sort(key=lambda stat: stat.count, reverse=True)
        return stats

    def usage_stats(self, events: List[Event], unique_sessions: Optional[int] = None) -> UsageStats:
        total = len(events)
        if unique_sessions is None:
            unique_sessions = len({event.session_id for event in events})

        languages = {language.value: 0 for language in Language}
        handoffs = fallbacks = 0
        for event in events:
            languages[event.language.value] = languages.get(event.language.value, 0) + 1
            if event.handoff_triggered:
                handoffs += 1
            if event.routed is Routed.FALLBACK:
                fallbacks += 1

        return UsageStats(
            total_events=total,
            unique_sessions=unique_sessions,
            language_distribution=languages,
            handoff_rate=_rate(handoffs, total),
            fallback_rate=_rate(fallbacks, total),
        )

    def common_patterns(self, flows: List[ConversationFlow]) -> List[Pattern]:
        """Flows keyed by exact topic sequence, most frequent first."""
        grouped: Dict[Tuple[Topic, ...], List[ConversationFlow]] = OrderedDict()
        for flow in flows:
            grouped.setdefault(flow.topic_sequence, []).append(flow)

        patterns = [
            Pattern(
                topics=sequence,
                frequency=len(members),
                average_duration_minutes=sum(f.duration_minutes for f in members) / len(members),
                handoff_rate=_rate(sum(1 for f in members if f.ended_with_handoff), len(members)),
            )
            for sequence, members in grouped.items()
        ]
        patterns.sort(key=lambda pattern: pattern.frequency, reverse=True)
        return patterns[:self.pattern_limit]

    def hourly_distribution(self, events: List[Event]) -> Dict[str, int]:
        """Event counts by local hour, "00" to "23", zero-filled."""
        hours = {f"{hour:02d}": 0 for hour in range(24)}
        for event in events:
            hours[f"{event.timestamp.astimezone(self.tz).hour:02d}"] += 1
        return hours

    def daily_trends(self, events: List[Event], window: Optional[AnalysisWindow] = None) -> List[DailyTrend]:
        """
        Per-day events, sessions and handoffs, zero-filled.

        Days come from the window when given, otherwise from the first to
        the last event date. Events on days outside the window are ignored.
        """
        if window is not None:
            days = window.calendar_days(self.tz)
        elif events:
            local_dates = [event.timestamp.astimezone(self.tz).date() for event in events]
            days = date_range(min(local_dates), max(local_dates))
        else:
            return []

        trends: Dict[date, DailyTrend] = OrderedDict((day, DailyTrend(day=day)) for day in days)
        sessions: Dict[date, set] = {day: set() for day in days}

        for event in events:
            day = event.timestamp.astimezone(self.tz).date()
            trend = trends.get(day)
            if trend is None:
                continue
            trend.events += 1
            sessions[day].add(event.session_id)
            if event.handoff_triggered:
                trend.handoffs += 1

        for day, trend in trends.items():
            trend.unique_sessions = len(sessions[day])
        return list(trends.values())

    def session_analytics(self, flows: List[ConversationFlow]) -> SessionAnalytics:
        """
        Funnel metrics over sessions.

        A single-event session counts as abandoned. A session converts when
        its last event carries a handoff.
        """
        total_sessions = len(flows)
        if not total_sessions:
            return SessionAnalytics()

        distribution = {label: 0 for label, _, _ in SESSION_LENGTH_BUCKETS}
        abandoned = converted = total_events = 0
        for flow in flows:
            length = flow.total_steps
            total_events += length
            distribution[self._length_bucket(length)] += 1
            if length == 1:
                abandoned += 1
            if flow.ended_with_handoff:
                converted += 1

        return SessionAnalytics(
            average_events_per_session=total_events / total_sessions,
            session_length_distribution=distribution,
            abandonment_rate=_rate(abandoned, total_sessions),
            conversion_rate=_rate(converted, total_sessions),
        )

    # ── Helpers ──────────────────────────────────────────────────

    @staticmethod
    def _normalize(events: Iterable[EventLike]) -> Tuple[List[Event], int]:
        valid: List[Event] = []
        excluded = 0
        for record in events or []:
            event = parse_event(record)
            if event is None:
                excluded += 1
            else:
                valid.append(event)
        return valid, excluded

    @staticmethod
    def _group_by_session(events: List[Event]) -> Dict[str, List[Event]]:
        sessions: Dict[str, List[Event]] = OrderedDict()
        for event in events:
            sessions.setdefault(event.session_id, []).append(event)
        return sessions

    @staticmethod
    def _build_flow(session_id: str, events: List[Event]) -> ConversationFlow:
        ordered = sorted(events, key=lambda event: event.timestamp)
        steps = [
            FlowStep(
                step=index,
                topic=event.topic,
                timestamp=event.timestamp,
                handoff_triggered=event.handoff_triggered,
            )
            for index, event in enumerate(ordered, start=1)
        ]
        duration = (ordered[-1].timestamp - ordered[0].timestamp).total_seconds() / 60
        return ConversationFlow(
            session_id=session_id,
            steps=steps,
            duration_minutes=duration,
            ended_with_handoff=ordered[-1].handoff_triggered,
        )

    @staticmethod
    def _length_bucket(length: int) -> str:
        for label, low, high in SESSION_LENGTH_BUCKETS:
            if length >= low and (high is None or length <= high):
                return label
        return SESSION_LENGTH_BUCKETS[-1][0]
