"""
SQLAlchemy ORM models for the Jirung elder-care assistant.

Only analytics events are persisted; sessions, flows and patterns are
recomputed from them on demand.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class AnalyticsLog(Base):
    __tablename__ = "analytics_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    session_id = Column(String(64), nullable=False, index=True)  # hashed, never the raw id
    timestamp = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    text_snippet = Column(String(160), nullable=False, default="")  # PII-scrubbed
    topic = Column(String(30), nullable=False, default="general")
    language = Column(String(5), nullable=False, default="th")
    line_clicked = Column(Boolean, nullable=False, default=False)
    routed = Column(String(10), nullable=False, default="primary")  # primary, fallback

    __table_args__ = (
        Index("ix_analytics_timestamp", "timestamp"),
        Index("ix_analytics_topic_time", "topic", "timestamp"),
    )
