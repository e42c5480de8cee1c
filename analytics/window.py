"""
Analysis windows and the explicit idle-session rule.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Dict, Iterable, List, Optional

from .errors import InvalidWindowError
from .events import Event

PERIOD_DAYS: Dict[str, int] = {
    "1d": 1,
    "7d": 7,
    "30d": 30,
    "90d": 90,
}
DEFAULT_PERIOD = "7d"


@dataclass(frozen=True)
class AnalysisWindow:
    """Closed time interval [start, end] in UTC."""
    start: datetime
    end: datetime

    def __post_init__(self):
        if self.start.tzinfo is None or self.end.tzinfo is None:
            raise InvalidWindowError("Window bounds must be timezone-aware")
        if self.start > self.end:
            raise InvalidWindowError(f"Window start {self.start} is after end {self.end}")

    @classmethod
    def last(cls, days: int, now: Optional[datetime] = None) -> "AnalysisWindow":
        end = now or datetime.now(timezone.utc)
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        return cls(start=end - timedelta(days=days), end=end)

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end

    def calendar_days(self, tz: tzinfo) -> List[date]:
        """Every local calendar day touched by the window, in order."""
        return date_range(self.start.astimezone(tz).date(), self.end.astimezone(tz).date())

    def to_dict(self) -> Dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def parse_period(period: Optional[str], now: Optional[datetime] = None) -> AnalysisWindow:
    """
    Window ending at ``now`` for a period code ("1d", "7d", "30d", "90d").

    Raises:
        InvalidWindowError: for any other code
    """
    code = (period or DEFAULT_PERIOD).strip().lower()
    if code not in PERIOD_DAYS:
        raise InvalidWindowError(
            f"Unknown period '{period}'. Expected one of: {', '.join(PERIOD_DAYS)}"
        )
    return AnalysisWindow.last(PERIOD_DAYS[code], now=now)


def date_range(first: date, last: date) -> List[date]:
    days = []
    current = first
    while current <= last:
        days.append(current)
        current += timedelta(days=1)
    return days


def session_is_idle(events: Iterable[Event], now: datetime, idle_after: timedelta) -> bool:
    """
    True if none of a session's events is newer than ``now - idle_after``.

    Sessions have no close signal; callers that need "ended" use this rule.
    An empty event list counts as idle.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - idle_after
    latest = max((event.timestamp for event in events), default=None)
    return latest is None or latest <= cutoff
