"""Tests for events, analysis windows and the in-memory event log."""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from analytics.errors import EventLogError, InvalidWindowError
from analytics.event_log import EventFilter, EventLog, InMemoryEventLog
from analytics.events import Event, Routed, create_event, parse_event, parse_timestamp, session_hash
from analytics.window import AnalysisWindow, parse_period, session_is_idle
from triage.topics import Language, Topic


class TestEvents:
    def test_create_event_scrubs_and_hashes(self):
        event = create_event(
            "0123456789abcdef", "call me on 0812345678 about sleep", Topic.SLEEP, "en",
            now=datetime(2024, 5, 6, 3, 0, tzinfo=timezone.utc),
        )
        assert event.session_id == "01234567"
        assert event.text_snippet == "call me on [PHONE] about sleep"
        assert event.topic == Topic.SLEEP
        assert event.language == Language.EN
        assert event.routed == Routed.PRIMARY
        assert not event.handoff_triggered

    def test_snippet_length(self):
        event = create_event("session-1", "x" * 500, Topic.GENERAL, Language.EN)
        assert len(event.text_snippet) == 160

    def test_session_hash_rejects_empty(self):
        with pytest.raises(ValueError):
            session_hash("  ")

    def test_record_round_trip(self):
        event = create_event("session-1", "hello", Topic.DIET, Language.TH, handoff_triggered=True)
        record = event.to_record()
        assert record["line_clicked"] is True
        assert parse_event(record) == event

    def test_parse_timestamp_forms(self):
        expected = datetime(2024, 5, 6, 3, 0, tzinfo=timezone.utc)
        assert parse_timestamp("2024-05-06T03:00:00Z") == expected
        assert parse_timestamp("2024-05-06T10:00:00+07:00") == expected
        assert parse_timestamp("2024-05-06T03:00:00") == expected
        assert parse_timestamp(expected.timestamp()) == expected
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(None) is None

    def test_parse_event_defaults(self):
        event = parse_event({"session_id": "abc", "timestamp": "2024-05-06T03:00:00Z", "topic": "unknown"})
        assert event.topic == Topic.GENERAL
        assert event.language == Language.TH
        assert event.routed == Routed.PRIMARY


class TestWindow:
    def test_parse_period(self):
        now = datetime(2024, 5, 6, 3, 0, tzinfo=timezone.utc)
        window = parse_period("30d", now=now)
        assert window.end == now
        assert window.start == now - timedelta(days=30)

    def test_default_period(self):
        now = datetime(2024, 5, 6, 3, 0, tzinfo=timezone.utc)
        assert parse_period(None, now=now).start == now - timedelta(days=7)

    def test_unknown_period(self):
        with pytest.raises(InvalidWindowError):
            parse_period("2w")

    def test_window_bounds_validated(self):
        now = datetime(2024, 5, 6, tzinfo=timezone.utc)
        with pytest.raises(InvalidWindowError):
            AnalysisWindow(start=now, end=now - timedelta(seconds=1))
        with pytest.raises(InvalidWindowError):
            AnalysisWindow(start=datetime(2024, 5, 1), end=datetime(2024, 5, 2))

    def test_contains_is_inclusive(self):
        now = datetime(2024, 5, 6, tzinfo=timezone.utc)
        window = AnalysisWindow(start=now - timedelta(days=1), end=now)
        assert window.contains(now)
        assert window.contains(now - timedelta(days=1))
        assert not window.contains(now + timedelta(seconds=1))

    def test_session_is_idle(self, make_event, base_time):
        events = [make_event("A", 0), make_event("A", 10)]
        assert not session_is_idle(events, base_time + timedelta(minutes=20), timedelta(minutes=30))
        assert session_is_idle(events, base_time + timedelta(minutes=40), timedelta(minutes=30))
        assert session_is_idle([], base_time, timedelta(minutes=30))


class TestInMemoryEventLog:
    def test_satisfies_protocol(self):
        assert isinstance(InMemoryEventLog(), EventLog)

    def test_query_window_sorted(self, make_event, base_time):
        log = InMemoryEventLog()
        window = AnalysisWindow(start=base_time, end=base_time + timedelta(hours=1))

        async def run():
            await log.append(make_event("A", 30))
            await log.append(make_event("B", 5))
            await log.append(make_event("C", 90))
            await log.append(make_event("D", -5))
            return await log.query(window)

        events = asyncio.run(run())
        assert [e.session_id for e in events] == ["B", "A"]
        assert len(log) == 4

    def test_limit_keeps_newest(self, make_event, base_time):
        log = InMemoryEventLog([make_event(f"S{i}", i) for i in range(5)])
        window = AnalysisWindow(start=base_time, end=base_time + timedelta(hours=1))
        events = asyncio.run(log.query(window, limit=2))
        assert [e.session_id for e in events] == ["S3", "S4"]

    def test_filters(self, make_event, base_time):
        log = InMemoryEventLog([
            make_event("A", 0, Topic.SLEEP, routed=Routed.FALLBACK),
            make_event("A", 1, Topic.DIET, handoff=True),
            make_event("B", 2, Topic.SLEEP, language=Language.EN),
        ])
        window = AnalysisWindow(start=base_time, end=base_time + timedelta(hours=1))

        sleep = asyncio.run(log.query(window, EventFilter(topic=Topic.SLEEP)))
        assert [e.session_id for e in sleep] == ["A", "B"]
        clicks = asyncio.run(log.query(window, EventFilter(handoff_triggered=True)))
        assert [e.topic for e in clicks] == [Topic.DIET]
        fallback = asyncio.run(log.query(window, EventFilter(session_id="A", routed=Routed.FALLBACK)))
        assert len(fallback) == 1

    def test_rejects_non_events(self):
        with pytest.raises(EventLogError):
            asyncio.run(InMemoryEventLog().append({"session_id": "A"}))

    def test_empty_window_is_empty_list(self, base_time):
        window = AnalysisWindow(start=base_time, end=base_time)
        assert asyncio.run(InMemoryEventLog().query(window)) == []
