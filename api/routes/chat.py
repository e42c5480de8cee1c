"""
Chat and triage API routes for the Jirung elder-care assistant.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..middleware.metrics import (
    record_chat_latency,
    record_escalation,
    record_event_logged,
    record_fallback,
    record_topic,
)
from ..services import get_services
from analytics.events import Routed
from llm.orchestrator import ChatRequest as PipelineRequest, MAX_MESSAGE_LENGTH
from triage.fallback_catalog import should_use_emergency_fallback
from triage.topics import Language, Topic, detect_language, get_topic_description

logger = logging.getLogger(__name__)

router = APIRouter()


# ── Request / Response Models ─────────────────────────────────────

class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)
    session_id: Optional[str] = Field(default=None, max_length=128)
    language: Optional[str] = Field(default=None, pattern="^(th|en)$")


class Escalation(BaseModel):
    should_recommend: bool
    urgency: str
    reason: str
    display_message: str


class ChatResponse(BaseModel):
    response: str
    session_id: str
    topic: str
    confidence: float
    language: str
    routed: str
    turn_count: int
    escalation: Escalation
    show_handoff: bool
    handoff_url: Optional[str] = None
    matched_keywords: List[str] = []
    event_logged: bool
    processing_time_ms: float
    timestamp: str


class ClassifyRequest(BaseModel):
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH)


class ClassifyResponse(BaseModel):
    topic: str
    confidence: float
    matched_keywords: List[str] = []
    language: str
    description: str


class EscalateRequest(BaseModel):
    message: str = Field(..., max_length=MAX_MESSAGE_LENGTH)
    topic: Optional[str] = None
    turn_count: int = Field(default=1, ge=0)
    language: Optional[str] = Field(default=None, pattern="^(th|en)$")


class FallbackRequest(BaseModel):
    topic: Optional[str] = None
    language: Optional[str] = Field(default=None, pattern="^(th|en)$")
    turn_count: int = Field(default=1, ge=0)
    message: Optional[str] = Field(default=None, max_length=MAX_MESSAGE_LENGTH)


class FallbackResponse(BaseModel):
    response: str
    topic: str
    language: str
    usage_count: int


# ── Endpoints ─────────────────────────────────────────────────────

@router.post("/chat", response_model=ChatResponse)
async def chat(request: ChatRequest):
    """
    Process a chat message through the triage pipeline.

    1. Classify topic  2. Check escalation  3. Generate or fall back
    4. Log a PII-scrubbed analytics event  5. Return reply and signals
    """
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Chat pipeline not ready")

    result = await services.pipeline.process(PipelineRequest(
        message=request.message,
        session_id=request.session_id,
        language=request.language,
    ))

    record_topic(result.topic.value)
    if result.escalation.should_recommend:
        record_escalation(result.escalation.reason.value, result.escalation.urgency.value)
    if result.routed is Routed.FALLBACK:
        record_fallback(result.topic.value)
    record_event_logged("chat", result.event_logged)
    record_chat_latency(result.routed.value, result.processing_time_ms / 1000)

    return ChatResponse(**result.to_dict())


@router.post("/classify", response_model=ClassifyResponse)
async def classify(request: ClassifyRequest):
    """Classify a message without generating a reply or logging an event."""
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Classifier not ready")

    result = services.classifier.classify(request.message)
    record_topic(result.topic.value)
    return ClassifyResponse(
        **result.to_dict(),
        language=detect_language(request.message).value,
        description=get_topic_description(result.topic),
    )


@router.post("/escalate", response_model=Escalation)
async def escalate(request: EscalateRequest):
    """Ask the advisor whether a message should be pointed at the human team."""
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Advisor not ready")

    topic = request.topic or services.classifier.classify(request.message).topic
    decision = services.advisor.should_escalate(
        request.message, topic, request.turn_count, request.language,
    )
    if decision.should_recommend:
        record_escalation(decision.reason.value, decision.urgency.value)
    return Escalation(**decision.to_dict())


@router.post("/fallback", response_model=FallbackResponse)
async def fallback(request: FallbackRequest):
    """Serve a catalog reply directly, as the chat path does when generation fails."""
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Fallback catalog not ready")

    topic = Topic.parse(request.topic)
    if should_use_emergency_fallback(request.message):
        topic = Topic.EMERGENCY
    if request.language:
        language = Language.parse(request.language)
    elif request.message:
        language = detect_language(request.message)
    else:
        language = Language.parse(services.settings.default_language)

    usage_count = services.catalog.usage_counter.increment(topic)
    response = services.catalog.get_contextual_response(
        topic, language, turn_count=request.turn_count, usage_count=usage_count,
    )
    record_fallback(topic.value)

    return FallbackResponse(
        response=response,
        topic=topic.value,
        language=language.value,
        usage_count=usage_count,
    )
