"""
EventLog protocol for the Jirung elder-care assistant.

Abstracts event storage so the chat pipeline and the admin routes work
with either an in-memory list or a database backend.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Protocol, runtime_checkable

from triage.topics import Language, Topic

from .errors import EventLogError
from .events import Event, Routed
from .window import AnalysisWindow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EventFilter:
    """Optional equality filters applied on top of the time window."""
    session_id: Optional[str] = None
    topic: Optional[Topic] = None
    language: Optional[Language] = None
    routed: Optional[Routed] = None
    handoff_triggered: Optional[bool] = None

    def matches(self, event: Event) -> bool:
        if self.session_id is not None and event.session_id != self.session_id:
            return False
        if self.topic is not None and event.topic is not self.topic:
            return False
        if self.language is not None and event.language is not self.language:
            return False
        if self.routed is not None and event.routed is not self.routed:
            return False
        if self.handoff_triggered is not None and event.handoff_triggered != self.handoff_triggered:
            return False
        return True


@runtime_checkable
class EventLog(Protocol):
    """Protocol for append-only event storage.

    Implementations raise EventLogError on any storage failure; an empty
    list always means "no matching events".
    """

    async def append(self, event: Event) -> None:
        """Append one event."""
        ...

    async def query(
        self,
        window: AnalysisWindow,
        filters: Optional[EventFilter] = None,
        limit: Optional[int] = None,
    ) -> List[Event]:
        """Events inside the window, oldest first."""
        ...


class InMemoryEventLog:
    """Process-local EventLog, used by tests and when no database is configured."""

    def __init__(self, events: Optional[List[Event]] = None):
        self._events: List[Event] = list(events or [])
        self._lock = asyncio.Lock()

    async def append(self, event: Event) -> None:
        if not isinstance(event, Event):
            raise EventLogError(f"Expected Event, got {type(event).__name__}")
        async with self._lock:
            self._events.append(event)

    async def query(
        self,
        window: AnalysisWindow,
        filters: Optional[EventFilter] = None,
        limit: Optional[int] = None,
    ) -> List[Event]:
        async with self._lock:
            snapshot = list(self._events)

        matched = [
            event for event in snapshot
            if window.contains(event.timestamp) and (filters is None or filters.matches(event))
        ]
        matched.sort(key=lambda event: event.timestamp)
        if limit is not None:
            # Keep the newest events when capped
            matched = matched[-limit:] if limit > 0 else []
        return matched

    def __len__(self) -> int:
        return len(self._events)
