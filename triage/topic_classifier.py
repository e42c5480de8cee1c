"""
Topic Classification for the Jirung elder-care assistant.

Deterministic keyword scoring over the topic table in ``topics``. The result
carries the matched keywords so every classification can be audited.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional, Tuple

from .topics import (
    DEFAULT_TOPIC,
    Topic,
    keywords_for,
    validate_keyword_table,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TopicResult:
    """Result of topic classification."""
    topic: Topic
    confidence: float = 0.0
    matched_keywords: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        return {
            "topic": self.topic.value,
            "confidence": self.confidence,
            "matched_keywords": list(self.matched_keywords),
        }


class TopicClassifier:
    """
    Classifies elder-care messages into a closed set of topics.

    1. Advice pre-check: generic advice phrasing with no guard-topic keyword
       goes straight to the default topic.
    2. Each domain topic scores one point per keyword found as a
       case-insensitive substring.
    3. The single highest score wins. Ties at the top and zero scores fall
       back to the default topic.
    """

    # Score at which confidence saturates to 1.0
    CONFIDENCE_NORMALIZER = 3.0

    # Topics whose keywords cancel the advice pre-check.
    # TODO: fall, alzheimer, post_op, diabetes and night_care keywords do not
    # cancel it yet, so "please advise about a fall" is routed to general.
    ADVICE_GUARD_TOPICS: FrozenSet[Topic] = frozenset({
        Topic.SLEEP,
        Topic.DIET,
        Topic.MOOD,
        Topic.MEDICATION,
        Topic.EMERGENCY,
    })

    def __init__(self, confidence_normalizer: Optional[float] = None):
        """
        Initialize the topic classifier.

        Args:
            confidence_normalizer: Score that maps to full confidence
        """
        validate_keyword_table()
        normalizer = confidence_normalizer or self.CONFIDENCE_NORMALIZER
        self.confidence_normalizer = max(float(normalizer), 1.0)
        # Built once; read-only afterwards so concurrent calls share nothing mutable
        self._keywords: Dict[Topic, Tuple[str, ...]] = {
            topic: tuple(keywords_for(topic)) for topic in Topic
        }
        self._domain_topics: Tuple[Topic, ...] = tuple(t for t in Topic if t is not DEFAULT_TOPIC)

    def classify(self, message: Optional[str]) -> TopicResult:
        """
        Classify the topic of a message.

        Args:
            message: Raw user message (None and empty resolve to the default topic)

        Returns:
            TopicResult with topic, confidence and matched keywords
        """
        if not message or not message.strip():
            return TopicResult(topic=DEFAULT_TOPIC)

        message_lower = message.lower()

        advice_hits = self._matches(DEFAULT_TOPIC, message_lower)
        if advice_hits and not any(
            self._matches(topic, message_lower) for topic in self.ADVICE_GUARD_TOPICS
        ):
            logger.debug(f"Advice phrasing without domain keywords: {advice_hits}")
            return TopicResult(
                topic=DEFAULT_TOPIC,
                confidence=self._confidence(len(advice_hits)),
                matched_keywords=advice_hits,
            )

        topic, matched = self._score(message_lower)
        if topic is DEFAULT_TOPIC:
            return TopicResult(topic=DEFAULT_TOPIC)

        return TopicResult(
            topic=topic,
            confidence=self._confidence(len(matched)),
            matched_keywords=matched,
        )

    def _score(self, message_lower: str) -> Tuple[Topic, List[str]]:
        """Score every domain topic; return the unique winner or the default topic."""
        best_topic = DEFAULT_TOPIC
        best_matches: List[str] = []
        tied = False

        for topic in self._domain_topics:
            matched = self._matches(topic, message_lower)
            if not matched:
                continue
            if len(matched) > len(best_matches):
                best_topic, best_matches, tied = topic, matched, False
            elif len(matched) == len(best_matches):
                tied = True

        if tied:
            logger.debug(f"Topic tie at score {len(best_matches)}, using {DEFAULT_TOPIC.value}")
            return DEFAULT_TOPIC, []
        return best_topic, best_matches

    def _matches(self, topic: Topic, message_lower: str) -> List[str]:
        return [kw for kw in self._keywords[topic] if kw in message_lower]

    def _confidence(self, score: int) -> float:
        return min(score / self.confidence_normalizer, 1.0)
