"""
Human Handoff Advisor for the Jirung elder-care assistant.

Decides whether a conversation should be pointed at the human team
(the LINE channel) and how urgently. The advisor only recommends; opening
the channel is the caller's job.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Protocol, Tuple, Union
from urllib.parse import urlencode, urlparse, urlunparse

from .topics import Language, Topic, detect_language

logger = logging.getLogger(__name__)


class Urgency(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EscalationReason(Enum):
    """Reasons for recommending the human channel."""
    EMERGENCY = "emergency"
    COMPLEX_TOPIC = "complex_topic"
    COMPLEX_LANGUAGE = "complex_language"
    LONG_CONVERSATION = "long_conversation"
    MANUAL = "manual"            # User opened the channel without a recommendation
    NONE = "none"


@dataclass(frozen=True)
class EscalationDecision:
    """Outcome of an escalation check."""
    should_recommend: bool
    urgency: Urgency
    reason: EscalationReason
    display_message: str

    def to_dict(self) -> Dict[str, object]:
        return {
            "should_recommend": self.should_recommend,
            "urgency": self.urgency.value,
            "reason": self.reason.value,
            "display_message": self.display_message,
        }


# Display texts above the handoff button. Placeholders: {brand}, {channel}, {emergency_number}
HANDOFF_MESSAGES: Dict[Language, Dict[Tuple[EscalationReason, Urgency], str]] = {
    Language.TH: {
        (EscalationReason.EMERGENCY, Urgency.HIGH):
            "สถานการณ์นี้อาจต้องการความช่วยเหลือเร่งด่วน กรุณาติดต่อทีม {brand} ทาง {channel} ทันที "
            "หรือโทร {emergency_number} หากเป็นเหตุฉุกเฉิน",
        (EscalationReason.COMPLEX_TOPIC, Urgency.MEDIUM):
            "เรื่องนี้ค่อนข้างซับซ้อน ทีม {brand} สามารถให้คำแนะนำเฉพาะเจาะจงมากขึ้นทาง {channel}",
        (EscalationReason.COMPLEX_LANGUAGE, Urgency.MEDIUM):
            "ดูเหมือนว่าคุณกำลังเผชิญกับสถานการณ์ที่ยุ่งยาก ทีม {brand} พร้อมช่วยเหลือคุณทาง {channel}",
        (EscalationReason.LONG_CONVERSATION, Urgency.LOW):
            "คุณได้สอบถามหลายเรื่องแล้ว ทีม {brand} สามารถให้คำปรึกษาแบบเจาะลึกมากขึ้นทาง {channel}",
        (EscalationReason.NONE, Urgency.LOW):
            "หากต้องการความช่วยเหลือเพิ่มเติม คุยกับทีม {brand} ทาง {channel}",
    },
    Language.EN: {
        (EscalationReason.EMERGENCY, Urgency.HIGH):
            "This situation may require urgent assistance. Please contact the {brand} team via "
            "{channel} immediately or call {emergency_number} for emergencies.",
        (EscalationReason.COMPLEX_TOPIC, Urgency.MEDIUM):
            "This topic is quite complex. The {brand} team can provide more specific guidance via {channel}.",
        (EscalationReason.COMPLEX_LANGUAGE, Urgency.MEDIUM):
            "It seems you're facing a challenging situation. The {brand} team is ready to help you via {channel}.",
        (EscalationReason.LONG_CONVERSATION, Urgency.LOW):
            "You've asked several questions. The {brand} team can provide more in-depth consultation via {channel}.",
        (EscalationReason.NONE, Urgency.LOW):
            "If you need additional assistance, chat with the {brand} team via {channel}.",
    },
}

# Accepted LINE link shapes: official account, QR, LIFF app, short link
LINE_URL_PATTERNS = [
    re.compile(r"^https://line\.me/ti/p/[a-zA-Z0-9@._-]+$"),
    re.compile(r"^https://line\.me/R/ti/p/[a-zA-Z0-9@._-]+$"),
    re.compile(r"^https://liff\.line\.me/[0-9]+-[a-zA-Z0-9]+$"),
    re.compile(r"^https://lin\.ee/[a-zA-Z0-9]+$"),
]


class EscalationAdvisor:
    """
    Recommends the human channel.

    Rules, first match wins:
    1. Urgent-symptom phrase in the message   -> high, emergency
    2. Topic in the complex set                -> medium, complex_topic
    3. Distress phrasing or a very long message -> medium, complex_language
    4. More than LONG_CONVERSATION_TURNS turns  -> low, long_conversation
    5. Otherwise no recommendation
    """

    EMERGENCY_KEYWORDS = {
        Language.TH: [
            "ฉุกเฉิน", "หมดสติ", "หายใจไม่ออก", "เจ็บหน้าอก", "ชัก", "เลือดออก",
            "ล้มหนัก", "ไม่รู้สึกตัว", "ปวดหน้าอกรุนแรง", "หายใจลำบาก", "หน้าเบี้ยว",
            "พูดไม่ได้", "อาเจียนเป็นเลือด",
        ],
        Language.EN: [
            "emergency", "unconscious", "can't breathe", "cannot breathe", "chest pain",
            "seizure", "bleeding", "severe pain", "breathing difficulty",
            "difficulty breathing", "face drooping", "can't speak", "vomiting blood",
        ],
    }

    COMPLEX_SITUATION_KEYWORDS = {
        Language.TH: [
            "ไม่รู้จะทำยังไง", "ช่วยไม่ได้", "หมดหนทาง", "ซับซ้อน", "ยุ่งยาก",
            "ไม่เข้าใจ", "งงมาก", "ปัญหาใหญ่", "เครียดมาก", "ต้องการคนช่วย",
        ],
        Language.EN: [
            "don't know what to do", "can't help", "complex", "complicated",
            "confused", "need help", "stressed", "overwhelmed", "urgent",
        ],
    }

    COMPLEX_TOPICS: FrozenSet[Topic] = frozenset({
        Topic.ALZHEIMER,
        Topic.MEDICATION,
        Topic.POST_OP,
        Topic.DIABETES,
        Topic.EMERGENCY,
    })

    LONG_CONVERSATION_TURNS = 5
    COMPLEX_MESSAGE_LENGTH = 600

    def __init__(
        self,
        brand_name: str = "Jirung",
        channel_name: str = "LINE",
        emergency_number: str = "1669",
        long_conversation_turns: Optional[int] = None,
        complex_message_length: Optional[int] = None,
    ):
        self.brand_name = brand_name
        self.channel_name = channel_name
        self.emergency_number = emergency_number
        self.long_conversation_turns = (
            long_conversation_turns if long_conversation_turns is not None
            else self.LONG_CONVERSATION_TURNS
        )
        self.complex_message_length = complex_message_length or self.COMPLEX_MESSAGE_LENGTH
        self._emergency_keywords = self._flatten(self.EMERGENCY_KEYWORDS)
        self._complex_keywords = self._flatten(self.COMPLEX_SITUATION_KEYWORDS)

    def should_escalate(
        self,
        message: Optional[str],
        topic: Union[Topic, str, None],
        turn_count: int = 1,
        language: Union[Language, str, None] = None,
    ) -> EscalationDecision:
        """
        Decide whether to recommend the human channel.

        Args:
            message: The user message
            topic: Topic from the classifier (unknown values fall through)
            turn_count: User turns so far in this conversation
            language: Display language; detected from the message when omitted

        Returns:
            EscalationDecision, never raises
        """
        message = message or ""
        message_lower = message.lower()
        language = Language.parse(language) if language else detect_language(message)
        topic = Topic.parse(topic)
        turn_count = turn_count or 0

        if self.is_emergency(message_lower):
            return self._decide(EscalationReason.EMERGENCY, Urgency.HIGH, language)

        if topic in self.COMPLEX_TOPICS:
            return self._decide(EscalationReason.COMPLEX_TOPIC, Urgency.MEDIUM, language)

        if self._is_complex_language(message, message_lower):
            return self._decide(EscalationReason.COMPLEX_LANGUAGE, Urgency.MEDIUM, language)

        if turn_count > self.long_conversation_turns:
            return self._decide(EscalationReason.LONG_CONVERSATION, Urgency.LOW, language)

        return EscalationDecision(
            should_recommend=False,
            urgency=Urgency.LOW,
            reason=EscalationReason.NONE,
            display_message=self.get_display_message(EscalationReason.NONE, Urgency.LOW, language),
        )

    def is_emergency(self, message: str) -> bool:
        """True if the message contains an urgent-symptom phrase."""
        message_lower = message.lower()
        return any(kw in message_lower for kw in self._emergency_keywords)

    def get_display_message(
        self,
        reason: EscalationReason,
        urgency: Urgency,
        language: Language = Language.TH,
    ) -> str:
        """Template lookup keyed by (reason, urgency, language)."""
        templates = HANDOFF_MESSAGES.get(language, HANDOFF_MESSAGES[Language.TH])
        template = templates.get(
            (reason, urgency),
            templates[(EscalationReason.NONE, Urgency.LOW)],
        )
        return template.format(
            brand=self.brand_name,
            channel=self.channel_name,
            emergency_number=self.emergency_number,
        )

    def _decide(self, reason: EscalationReason, urgency: Urgency, language: Language) -> EscalationDecision:
        logger.debug(f"Handoff recommended: reason={reason.value} urgency={urgency.value}")
        return EscalationDecision(
            should_recommend=True,
            urgency=urgency,
            reason=reason,
            display_message=self.get_display_message(reason, urgency, language),
        )

    def _is_complex_language(self, message: str, message_lower: str) -> bool:
        if len(message) > self.complex_message_length:
            return True
        return any(kw in message_lower for kw in self._complex_keywords)

    @staticmethod
    def _flatten(table: Dict[Language, List[str]]) -> Tuple[str, ...]:
        return tuple(kw.lower() for language in Language for kw in table.get(language, []))


# ── Handoff channel ──────────────────────────────────────────────


class HandoffChannel(Protocol):
    """Opens the human channel for a session; returns the link shown to the user."""

    def open(self, session_id: str, topic: Topic, reason: EscalationReason) -> str:
        ...


def validate_handoff_url(url: Optional[str]) -> bool:
    """Check that a URL is one of the accepted LINE link shapes."""
    if not url or not isinstance(url, str):
        return False
    return any(pattern.match(url) for pattern in LINE_URL_PATTERNS)


def build_handoff_url(base_url: str, session_id: str, topic: Topic, reason: EscalationReason) -> str:
    """
    Add tracking parameters to a LINE link.

    Only LIFF links accept query parameters; other links are returned as-is.
    The session id is cut to 8 characters before it leaves the service.
    """
    if not base_url:
        return ""

    parsed = urlparse(base_url)
    if parsed.hostname != "liff.line.me":
        return base_url

    params = urlencode({
        "source": "jirung_ai",
        "session": session_id[:8],
        "topic": topic.value,
        "reason": reason.value,
    })
    query = f"{parsed.query}&{params}" if parsed.query else params
    return urlunparse(parsed._replace(query=query))


class LineHandoffChannel:
    """HandoffChannel that hands back a tracked LINE link."""

    def __init__(self, base_url: Optional[str]):
        self.base_url = base_url or ""
        if self.base_url and not validate_handoff_url(self.base_url):
            logger.warning(f"LINE_URL does not look like a LINE link: {self.base_url}")

    @property
    def is_enabled(self) -> bool:
        return bool(self.base_url.strip())

    def open(self, session_id: str, topic: Topic, reason: EscalationReason) -> str:
        url = build_handoff_url(self.base_url, session_id, topic, reason)
        logger.info(f"Handoff opened: session={session_id[:8]} topic={topic.value} reason={reason.value}")
        return url
