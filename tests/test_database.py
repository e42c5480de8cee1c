"""Tests for the SQL-backed event log."""

import asyncio
from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from analytics.errors import EventLogError
from analytics.event_log import EventFilter, EventLog
from analytics.events import Routed
from analytics.window import AnalysisWindow
from database.repositories import SqlEventLog
from database.session import close_db, get_session_factory, init_db, normalize_database_url
from triage.topics import Topic


def test_normalize_database_url():
    assert normalize_database_url("postgresql://u@h/db") == "postgresql+asyncpg://u@h/db"
    assert normalize_database_url("postgres://u@h/db") == "postgresql+asyncpg://u@h/db"
    assert normalize_database_url("sqlite:///x.db") == "sqlite+aiosqlite:///x.db"
    assert normalize_database_url("sqlite+aiosqlite:///x.db") == "sqlite+aiosqlite:///x.db"


def test_session_factory_requires_init():
    with pytest.raises(RuntimeError):
        get_session_factory()


class TestSqlEventLog:
    @pytest.fixture
    def database_url(self, tmp_path):
        return f"sqlite:///{tmp_path / 'events.db'}"

    def test_append_and_query(self, database_url, make_event, base_time):
        window = AnalysisWindow(start=base_time, end=base_time + timedelta(hours=1))

        async def run():
            log = SqlEventLog(await init_db(database_url))
            try:
                await log.append(make_event("B", 20, Topic.DIET, handoff=True, snippet="rice"))
                await log.append(make_event("A", 5, Topic.SLEEP, routed=Routed.FALLBACK))
                await log.append(make_event("C", 120, Topic.MOOD))
                everything = await log.query(window)
                newest = await log.query(window, limit=1)
                clicks = await log.query(window, EventFilter(handoff_triggered=True))
                return log, everything, newest, clicks
            finally:
                await close_db()

        log, everything, newest, clicks = asyncio.run(run())
        assert isinstance(log, EventLog)
        assert [e.session_id for e in everything] == ["A", "B"]
        assert everything[0].timestamp == base_time + timedelta(minutes=5)
        assert everything[0].routed == Routed.FALLBACK
        assert everything[1].text_snippet == "rice"
        assert everything[1].handoff_triggered
        assert [e.session_id for e in newest] == ["B"]
        assert [e.topic for e in clicks] == [Topic.DIET]

    def test_storage_failure_raises(self, make_event):
        class FailingSession:
            async def __aenter__(self):
                raise OperationalError("SELECT 1", {}, Exception("database is locked"))

            async def __aexit__(self, *exc):
                return False

        log = SqlEventLog(lambda: FailingSession())
        with pytest.raises(EventLogError):
            asyncio.run(log.append(make_event("A")))
