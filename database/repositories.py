"""
Repository classes for the Jirung data access layer.

The repository encapsulates queries on the analytics table; SqlEventLog
adapts it to the EventLog protocol used by the rest of the service.
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from analytics.errors import EventLogError
from analytics.event_log import EventFilter
from analytics.events import Event, parse_event
from analytics.window import AnalysisWindow

from .models import AnalyticsLog

logger = logging.getLogger(__name__)


class AnalyticsLogRepository:
    """Data access for analytics events."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, event: Event) -> AnalyticsLog:
        row = AnalyticsLog(
            session_id=event.session_id,
            timestamp=event.timestamp,
            text_snippet=event.text_snippet,
            topic=event.topic.value,
            language=event.language.value,
            line_clicked=event.handoff_triggered,
            routed=event.routed.value,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_between(
        self,
        start: datetime,
        end: datetime,
        filters: Optional[EventFilter] = None,
        limit: Optional[int] = None,
    ) -> List[AnalyticsLog]:
        """Rows in [start, end]; the newest ``limit`` rows when capped, oldest first."""
        q = select(AnalyticsLog).where(
            AnalyticsLog.timestamp >= start,
            AnalyticsLog.timestamp <= end,
        )
        if filters:
            if filters.session_id is not None:
                q = q.where(AnalyticsLog.session_id == filters.session_id)
            if filters.topic is not None:
                q = q.where(AnalyticsLog.topic == filters.topic.value)
            if filters.language is not None:
                q = q.where(AnalyticsLog.language == filters.language.value)
            if filters.routed is not None:
                q = q.where(AnalyticsLog.routed == filters.routed.value)
            if filters.handoff_triggered is not None:
                q = q.where(AnalyticsLog.line_clicked == filters.handoff_triggered)

        q = q.order_by(AnalyticsLog.timestamp.desc(), AnalyticsLog.id.desc())
        if limit is not None:
            q = q.limit(limit)

        result = await self.session.execute(q)
        rows = list(result.scalars().all())
        rows.reverse()
        return rows


def row_to_event(row: AnalyticsLog) -> Optional[Event]:
    return parse_event({
        "session_id": row.session_id,
        "timestamp": row.timestamp,
        "text_snippet": row.text_snippet,
        "topic": row.topic,
        "language": row.language,
        "line_clicked": row.line_clicked,
        "routed": row.routed,
    })


class SqlEventLog:
    """EventLog backed by the analytics_logs table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def append(self, event: Event) -> None:
        try:
            async with self._session_factory() as session:
                await AnalyticsLogRepository(session).add(event)
                await session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Failed to store analytics event: {e}")
            raise EventLogError("Failed to store analytics event") from e

    async def query(
        self,
        window: AnalysisWindow,
        filters: Optional[EventFilter] = None,
        limit: Optional[int] = None,
    ) -> List[Event]:
        try:
            async with self._session_factory() as session:
                rows = await AnalyticsLogRepository(session).list_between(
                    window.start, window.end, filters=filters, limit=limit,
                )
        except SQLAlchemyError as e:
            logger.error(f"Failed to fetch analytics events: {e}")
            raise EventLogError("Failed to fetch analytics events") from e

        events = [row_to_event(row) for row in rows]
        return [event for event in events if event is not None]
