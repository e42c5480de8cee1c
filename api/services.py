"""
Service initialization and dependency injection for the Jirung API.

Creates and manages all service instances used by the API.
"""

import logging
from typing import Optional

from config.settings import get_settings, Settings
from analytics.engine import ConversationAnalyticsEngine
from analytics.event_log import EventLog, InMemoryEventLog
from llm.orchestrator import ChatPipeline
from llm.prompt_templates import PromptTemplates
from llm.generator import Generator, HANDOFF_MARKER
from triage.escalation_advisor import EscalationAdvisor, LineHandoffChannel
from triage.fallback_catalog import FallbackResponseCatalog
from triage.topic_classifier import TopicClassifier

logger = logging.getLogger(__name__)


class Services:
    """Container for all application services."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.classifier: Optional[TopicClassifier] = None
        self.advisor: Optional[EscalationAdvisor] = None
        self.catalog: Optional[FallbackResponseCatalog] = None
        self.handoff_channel: Optional[LineHandoffChannel] = None
        self.event_log: Optional[EventLog] = None
        self.generator: Optional[Generator] = None
        self.pipeline: Optional[ChatPipeline] = None
        self.engine: Optional[ConversationAnalyticsEngine] = None
        self._initialized = False

    def initialize(self):
        """Initialize all services."""
        if self._initialized:
            return

        self.settings = get_settings()
        logger.info(f"Initializing services for {self.settings.brand_name}")

        try:
            self._init_triage()
            self._init_event_log()
            self._init_generator()
            self._init_pipeline()
            self._init_engine()
            self._initialized = True
            logger.info("All services initialized successfully")
        except Exception as e:
            logger.error(f"Service initialization failed: {e}")
            # Allow API to start even if some services fail
            self._initialized = True
            logger.warning("API starting in degraded mode")

    def _init_triage(self):
        """Initialize classifier, advisor, fallback catalog and handoff channel."""
        s = self.settings
        self.classifier = TopicClassifier(confidence_normalizer=s.confidence_normalizer)
        self.advisor = EscalationAdvisor(
            brand_name=s.brand_name,
            channel_name=s.handoff_channel_name,
            emergency_number=s.emergency_number,
            long_conversation_turns=s.long_conversation_turns,
            complex_message_length=s.complex_message_length,
        )
        self.catalog = FallbackResponseCatalog(
            brand_name=s.brand_name,
            channel_name=s.handoff_channel_name,
            emergency_number=s.emergency_number,
            hotline_number=s.elderly_hotline_number,
            context_turn_threshold=s.fallback_context_turns,
        )
        self.handoff_channel = LineHandoffChannel(s.line_url)
        if not self.handoff_channel.is_enabled:
            logger.warning("LINE_URL not set, handoff links disabled")
        logger.info("Triage services ready")

    def _init_event_log(self):
        """Use the analytics table when a database is up, else keep events in memory."""
        if self.settings.database_url:
            try:
                from database.repositories import SqlEventLog
                from database.session import get_session_factory
                self.event_log = SqlEventLog(get_session_factory())
                logger.info("Event log ready: database")
                return
            except RuntimeError as e:
                logger.warning(f"Database unavailable, events kept in memory: {e}")

        self.event_log = InMemoryEventLog()
        logger.info("Event log ready: in-memory")

    def _init_generator(self):
        """Initialize the OpenAI generator when a key is configured."""
        s = self.settings
        if not s.has_generator:
            logger.warning("OPENAI_API_KEY not set, every reply uses the fallback catalog")
            return

        from llm.providers import OpenAIGenerator
        self.generator = OpenAIGenerator(
            api_key=s.openai_api_key,
            model_id=s.openai_llm_model,
            max_tokens=s.max_tokens,
            temperature=s.temperature,
            timeout_seconds=s.generation_timeout_seconds,
        )
        logger.info(f"Generator ready: {s.openai_llm_model}")

    def _init_pipeline(self):
        """Initialize the chat pipeline."""
        s = self.settings
        self.pipeline = ChatPipeline(
            classifier=self.classifier,
            advisor=self.advisor,
            catalog=self.catalog,
            event_log=self.event_log,
            generator=self.generator,
            prompts=PromptTemplates(
                brand_name=s.brand_name,
                channel_name=s.handoff_channel_name,
                emergency_number=s.emergency_number,
                handoff_marker=HANDOFF_MARKER,
            ),
            handoff_channel=self.handoff_channel,
            snippet_length=s.snippet_length,
        )
        logger.info("Chat pipeline ready")

    def _init_engine(self):
        s = self.settings
        self.engine = ConversationAnalyticsEngine(
            timezone_name=s.analytics_timezone,
            flow_limit=s.flow_limit,
            pattern_limit=s.pattern_limit,
        )

    @property
    def is_ready(self) -> bool:
        return self._initialized and self.pipeline is not None

    def health(self) -> dict:
        """Return health status of all services."""
        return {
            "initialized": self._initialized,
            "pipeline": self.pipeline is not None,
            "generator": self.generator is not None,
            "event_log": type(self.event_log).__name__ if self.event_log is not None else None,
            "handoff": bool(self.handoff_channel and self.handoff_channel.is_enabled),
            "analytics": self.engine is not None,
        }


# Singleton
_services = Services()


def get_services() -> Services:
    """Get the global services instance."""
    return _services


def initialize_services():
    """Initialize all services (called at startup)."""
    _services.initialize()


def reset_services():
    """Drop all service instances so the next startup rebuilds them."""
    global _services
    _services = Services()
