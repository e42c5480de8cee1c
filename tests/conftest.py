"""Shared fixtures for Jirung assistant tests."""

import os
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

# Ensure we use test settings: no generator, no database, in-memory events
os.environ["OPENAI_API_KEY"] = ""
os.environ["DATABASE_URL"] = ""
os.environ["ADMIN_API_KEY"] = ""
os.environ["LINE_URL"] = "https://liff.line.me/1234567890-AbCdEfGh"
os.environ["RATE_LIMIT_PER_MINUTE"] = "10000"

from analytics.events import Event, Routed  # noqa: E402
from config.settings import get_settings  # noqa: E402
from triage.topics import Language, Topic  # noqa: E402


@pytest.fixture(autouse=True)
def fresh_settings():
    """Re-read settings from the environment around every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def client():
    """Create a FastAPI test client with freshly built services."""
    from api.main import create_app
    from api.services import reset_services

    reset_services()
    with TestClient(create_app()) as test_client:
        yield test_client
    reset_services()


@pytest.fixture
def base_time():
    """Monday 2024-05-06 10:00 Bangkok time."""
    return datetime(2024, 5, 6, 3, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_event(base_time):
    """Factory for events offset in minutes from ``base_time``."""
    def _make(
        session_id: str,
        minutes: float = 0,
        topic: Topic = Topic.GENERAL,
        language: Language = Language.TH,
        handoff: bool = False,
        routed: Routed = Routed.PRIMARY,
        snippet: str = "",
    ) -> Event:
        return Event(
            session_id=session_id,
            timestamp=base_time + timedelta(minutes=minutes),
            text_snippet=snippet,
            topic=topic,
            language=language,
            handoff_triggered=handoff,
            routed=routed,
        )
    return _make
