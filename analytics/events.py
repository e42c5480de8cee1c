"""
Analytics events: one record per processed user message.

Events are immutable. Sessions, flows and patterns are derived from them on
every analysis and never stored.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from triage.pii import safe_snippet
from triage.topics import DEFAULT_LANGUAGE, DEFAULT_TOPIC, Language, Topic

logger = logging.getLogger(__name__)

SNIPPET_LENGTH = 160
SESSION_HASH_LENGTH = 8

# Storage column -> accepted input keys, first match wins
_FIELD_ALIASES = {
    "session_id": ("session_id", "sessionId"),
    "timestamp": ("timestamp", "created_at"),
    "text_snippet": ("text_snippet", "textSnippet"),
    "topic": ("topic",),
    "language": ("language",),
    "handoff_triggered": ("handoff_triggered", "line_clicked", "lineClicked", "handoffTriggered"),
    "routed": ("routed",),
}

_TRUE_STRINGS = {"1", "true", "yes", "y", "t"}


class Routed(Enum):
    """Which path produced the reply."""
    PRIMARY = "primary"
    FALLBACK = "fallback"

    @classmethod
    def parse(cls, value: Any) -> "Routed":
        if isinstance(value, Routed):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.PRIMARY


@dataclass(frozen=True)
class Event:
    """A single analytics event."""
    session_id: str
    timestamp: datetime
    text_snippet: str = ""
    topic: Topic = DEFAULT_TOPIC
    language: Language = DEFAULT_LANGUAGE
    handoff_triggered: bool = False
    routed: Routed = Routed.PRIMARY

    def to_record(self) -> Dict[str, Any]:
        """Row shape used by the event stores and the JSONL files."""
        return {
            "session_id": self.session_id,
            "timestamp": self.timestamp.isoformat(),
            "text_snippet": self.text_snippet,
            "topic": self.topic.value,
            "language": self.language.value,
            "line_clicked": self.handoff_triggered,
            "routed": self.routed.value,
        }


def session_hash(session_id: str) -> str:
    """Shortened session id stored with events.

    Raises:
        ValueError: if the session id is empty
    """
    if not session_id or not isinstance(session_id, str) or not session_id.strip():
        raise ValueError("Invalid session ID provided")
    return session_id.strip()[:SESSION_HASH_LENGTH]


def create_event(
    session_id: str,
    message: str,
    topic: Union[Topic, str],
    language: Union[Language, str],
    handoff_triggered: bool = False,
    routed: Union[Routed, str] = Routed.PRIMARY,
    now: Optional[datetime] = None,
    snippet_length: int = SNIPPET_LENGTH,
) -> Event:
    """
    Build an Event from a raw chat message.

    The message is PII-scrubbed and cut to ``snippet_length`` characters, and
    the session id is hashed, before anything is kept.
    """
    return Event(
        session_id=session_hash(session_id),
        timestamp=_as_utc(now or datetime.now(timezone.utc)),
        text_snippet=safe_snippet(message, snippet_length),
        topic=Topic.parse(topic),
        language=Language.parse(language),
        handoff_triggered=bool(handoff_triggered),
        routed=Routed.parse(routed),
    )


def parse_event(record: Union[Event, Mapping[str, Any]]) -> Optional[Event]:
    """
    Convert a stored record to an Event.

    Missing optional fields take their zero values. Returns None when the
    record has no session id or no usable timestamp.
    """
    if isinstance(record, Event):
        if not record.session_id or not isinstance(record.timestamp, datetime):
            return None
        return replace(record, timestamp=_as_utc(record.timestamp))
    if not isinstance(record, Mapping):
        return None

    session_id = _lookup(record, "session_id")
    timestamp = parse_timestamp(_lookup(record, "timestamp"))
    if not session_id or timestamp is None:
        return None

    return Event(
        session_id=str(session_id),
        timestamp=timestamp,
        text_snippet=str(_lookup(record, "text_snippet") or ""),
        topic=Topic.parse(_lookup(record, "topic")),
        language=Language.parse(_lookup(record, "language")),
        handoff_triggered=_as_bool(_lookup(record, "handoff_triggered")),
        routed=Routed.parse(_lookup(record, "routed")),
    )


def parse_timestamp(value: Any) -> Optional[datetime]:
    """datetime, ISO-8601 string or epoch seconds to an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(text))
        except ValueError:
            logger.debug(f"Unparseable timestamp: {value!r}")
            return None
    return None


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps are taken to be UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _lookup(record: Mapping[str, Any], name: str) -> Any:
    for key in _FIELD_ALIASES[name]:
        if key in record and record[key] is not None:
            return record[key]
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return bool(value)
