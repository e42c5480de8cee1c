"""
Chat Pipeline for the Jirung elder-care assistant.

Runs one inbound message through triage, generation and event logging.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from analytics.errors import EventLogError
from analytics.event_log import EventLog
from analytics.events import Routed, create_event
from triage.escalation_advisor import (
    EscalationAdvisor,
    EscalationDecision,
    LineHandoffChannel,
    build_handoff_url,
)
from triage.fallback_catalog import FallbackResponseCatalog, should_use_emergency_fallback
from triage.topic_classifier import TopicClassifier, TopicResult
from triage.topics import Language, Topic, detect_language

from .conversation_store import ConversationStore, InMemoryConversationStore
from .generator import GenerationError, Generator
from .prompt_templates import PromptTemplates

logger = logging.getLogger(__name__)

# Messages beyond this are cut before prompting
MAX_MESSAGE_LENGTH = 1000


@dataclass
class ChatRequest:
    """Request for a chat reply."""
    message: str
    session_id: Optional[str] = None
    language: Optional[str] = None


@dataclass
class ChatResponse:
    """Reply plus the triage signals behind it."""
    response: str
    session_id: str
    topic: Topic
    confidence: float
    language: Language
    routed: Routed
    turn_count: int
    escalation: EscalationDecision
    show_handoff: bool
    handoff_url: Optional[str] = None
    matched_keywords: List[str] = field(default_factory=list)
    event_logged: bool = False
    processing_time_ms: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "response": self.response,
            "session_id": self.session_id,
            "topic": self.topic.value,
            "confidence": self.confidence,
            "language": self.language.value,
            "routed": self.routed.value,
            "turn_count": self.turn_count,
            "escalation": self.escalation.to_dict(),
            "show_handoff": self.show_handoff,
            "handoff_url": self.handoff_url,
            "matched_keywords": list(self.matched_keywords),
            "event_logged": self.event_logged,
            "processing_time_ms": self.processing_time_ms,
            "timestamp": self.timestamp,
        }


class ChatPipeline:
    """
    Orchestrates one chat turn.

    Pipeline:
    1. Resolve session and language
    2. Classify topic
    3. Ask the escalation advisor
    4. Generate a reply, or use the fallback catalog if generation fails
    5. OR the generator's handoff flag with the advisor's recommendation
    6. Append a PII-scrubbed event to the event log
    """

    def __init__(
        self,
        classifier: TopicClassifier,
        advisor: EscalationAdvisor,
        catalog: FallbackResponseCatalog,
        event_log: EventLog,
        generator: Optional[Generator] = None,
        conversation_store: Optional[ConversationStore] = None,
        prompts: Optional[PromptTemplates] = None,
        handoff_channel: Optional[LineHandoffChannel] = None,
        history_turns: int = 6,
        snippet_length: int = 160,
    ):
        """
        Initialize the pipeline.

        Args:
            classifier: Topic classifier
            advisor: Escalation advisor
            catalog: Fallback reply catalog
            event_log: Where analytics events are appended
            generator: Reply generator; without one every reply is a fallback
            conversation_store: Per-session state; in-memory when omitted
            prompts: Prompt templates
            handoff_channel: Source of the handoff link shown with recommendations
            history_turns: Messages of history included in the prompt
            snippet_length: Maximum stored snippet length
        """
        self.classifier = classifier
        self.advisor = advisor
        self.catalog = catalog
        self.event_log = event_log
        self.generator = generator
        self.conversation_store = conversation_store or InMemoryConversationStore()
        self.prompts = prompts or PromptTemplates()
        self.handoff_channel = handoff_channel
        self.history_turns = history_turns
        self.snippet_length = snippet_length

    async def process(self, request: ChatRequest) -> ChatResponse:
        """
        Process a chat message.

        Args:
            request: Chat request

        Returns:
            ChatResponse; a generator failure never fails the call
        """
        start_time = time.time()

        message = (request.message or "").strip()[:MAX_MESSAGE_LENGTH]
        session_id = request.session_id or uuid.uuid4().hex
        language = Language.parse(request.language) if request.language else detect_language(message)

        history = await self.conversation_store.get_history(session_id)
        turn_count = await self.conversation_store.record_user_turn(session_id, message)

        topic_result = self.classifier.classify(message)
        decision = self.advisor.should_escalate(message, topic_result.topic, turn_count, language)

        reply_text, routed, generator_handoff = await self._reply(
            session_id, message, topic_result, language, turn_count, history,
        )
        await self.conversation_store.record_reply(session_id, reply_text)

        show_handoff = decision.should_recommend or generator_handoff
        handoff_url = None
        if show_handoff and self.handoff_channel is not None and self.handoff_channel.is_enabled:
            handoff_url = build_handoff_url(
                self.handoff_channel.base_url, session_id, topic_result.topic, decision.reason,
            )

        event_logged = await self._log_event(session_id, message, topic_result.topic, language, routed)

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            f"Chat processed: session={session_id[:8]} topic={topic_result.topic.value} "
            f"routed={routed.value} handoff={show_handoff} ({processing_time:.0f}ms)"
        )

        return ChatResponse(
            response=reply_text,
            session_id=session_id,
            topic=topic_result.topic,
            confidence=topic_result.confidence,
            language=language,
            routed=routed,
            turn_count=turn_count,
            escalation=decision,
            show_handoff=show_handoff,
            handoff_url=handoff_url,
            matched_keywords=list(topic_result.matched_keywords),
            event_logged=event_logged,
            processing_time_ms=processing_time,
        )

    async def _reply(
        self,
        session_id: str,
        message: str,
        topic_result: TopicResult,
        language: Language,
        turn_count: int,
        history: List[Dict[str, str]],
    ):
        topic = topic_result.topic
        if self.generator is not None:
            try:
                reply = await self.generator.complete(
                    self.prompts.get_user_prompt(message, self._format_history(history)),
                    system=self.prompts.get_system_prompt(topic, language),
                )
                text = reply.text
                disclaimer = self.prompts.get_response_disclaimer(topic, language)
                if disclaimer and disclaimer not in text:
                    text = f"{text}\n\n{disclaimer}"
                return text, Routed.PRIMARY, reply.needs_handoff
            except GenerationError as e:
                logger.warning(f"Generator failed, using fallback reply: {e}")

        return await self._fallback(session_id, message, topic, language, turn_count), Routed.FALLBACK, False

    async def _fallback(
        self,
        session_id: str,
        message: str,
        topic: Topic,
        language: Language,
        turn_count: int,
    ) -> str:
        if should_use_emergency_fallback(message):
            topic = Topic.EMERGENCY

        self.catalog.usage_counter.increment(topic)
        usage_count = await self.conversation_store.record_fallback(session_id, topic)
        return self.catalog.get_contextual_response(
            topic, language, turn_count=turn_count, usage_count=usage_count,
        )

    async def _log_event(
        self,
        session_id: str,
        message: str,
        topic: Topic,
        language: Language,
        routed: Routed,
    ) -> bool:
        # Clicks on the handoff link are logged as their own events
        event = create_event(
            session_id, message, topic, language,
            handoff_triggered=False, routed=routed, snippet_length=self.snippet_length,
        )
        try:
            await self.event_log.append(event)
            return True
        except EventLogError as e:
            logger.warning(f"Analytics logging failed for session {session_id[:8]}: {e}")
            return False

    def _format_history(self, history: List[Dict[str, str]]) -> Optional[str]:
        if not history:
            return None
        lines = []
        for msg in history[-self.history_turns:]:
            role = "User" if msg["role"] == "user" else "Assistant"
            lines.append(f"{role}: {msg['content']}")
        return "\n".join(lines)
