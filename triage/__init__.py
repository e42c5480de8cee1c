"""
Triage Module for the Jirung elder-care assistant.

This module decides what happens to each inbound message:
- Topic classification (sleep, diet, mood, medication, emergency, ...)
- Human handoff recommendation with urgency and display text
- Fallback replies when the generator is unavailable
- PII scrubbing before anything is logged
"""

from .topics import Topic, Language, detect_language, get_topic_description
from .topic_classifier import TopicClassifier, TopicResult
from .escalation_advisor import (
    EscalationAdvisor,
    EscalationDecision,
    EscalationReason,
    HandoffChannel,
    LineHandoffChannel,
    Urgency,
    build_handoff_url,
    validate_handoff_url,
)
from .fallback_catalog import FallbackResponseCatalog, TopicUsageCounter, should_use_emergency_fallback
from .pii import scrub_pii, safe_snippet

__all__ = [
    "Topic",
    "Language",
    "detect_language",
    "get_topic_description",
    "TopicClassifier",
    "TopicResult",
    "EscalationAdvisor",
    "EscalationDecision",
    "EscalationReason",
    "HandoffChannel",
    "LineHandoffChannel",
    "Urgency",
    "build_handoff_url",
    "validate_handoff_url",
    "FallbackResponseCatalog",
    "TopicUsageCounter",
    "should_use_emergency_fallback",
    "scrub_pii",
    "safe_snippet",
]
