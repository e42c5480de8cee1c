"""
Conversation Analytics Module for the Jirung elder-care assistant.

This module handles:
- PII-safe analytics events and their storage protocol
- Session flows, recurring topic patterns and funnel metrics
- Hourly/daily activity and CSV export for the admin dashboard
"""

from .errors import AnalyticsError, EventLogError, InvalidWindowError
from .events import Event, Routed, create_event, parse_event, session_hash
from .window import AnalysisWindow, parse_period, session_is_idle
from .event_log import EventFilter, EventLog, InMemoryEventLog
from .engine import AnalyticsReport, ConversationAnalyticsEngine
from .export import render_csv

__all__ = [
    "AnalyticsError",
    "EventLogError",
    "InvalidWindowError",
    "Event",
    "Routed",
    "create_event",
    "parse_event",
    "session_hash",
    "AnalysisWindow",
    "parse_period",
    "session_is_idle",
    "EventFilter",
    "EventLog",
    "InMemoryEventLog",
    "AnalyticsReport",
    "ConversationAnalyticsEngine",
    "render_csv",
]
