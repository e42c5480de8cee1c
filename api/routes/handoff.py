"""
Handoff click tracking routes for the Jirung elder-care assistant.

A click on the LINE button is stored as its own analytics event with
handoff_triggered set, so the dashboard can measure conversion.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from ..middleware.metrics import record_event_logged, record_handoff_click
from ..services import get_services
from analytics.errors import EventLogError
from analytics.events import Routed, create_event
from triage.escalation_advisor import EscalationReason, Urgency
from triage.topics import Language, Topic

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/handoff", tags=["handoff"])

CLICK_REASONS = frozenset(r.value for r in EscalationReason if r is not EscalationReason.NONE)


class HandoffClickRequest(BaseModel):
    session_id: str = Field(..., min_length=1, max_length=128)
    topic: Optional[str] = None
    reason: str
    urgency: Optional[str] = None
    language: Optional[str] = Field(default=None, pattern="^(th|en)$")


class HandoffClickResponse(BaseModel):
    success: bool
    tracked: bool
    url: Optional[str] = None
    timestamp: str


def click_marker(reason: str, urgency: Optional[str]) -> str:
    """Snippet stored for a click event."""
    return f"[LINE_CLICK:{reason}:{urgency or 'unknown'}]"


@router.post("/click", response_model=HandoffClickResponse)
async def track_handoff_click(request: HandoffClickRequest):
    """Record a handoff click and return the tracked channel link."""
    if request.reason not in CLICK_REASONS:
        raise HTTPException(status_code=400, detail=f"Invalid reason: {request.reason}")
    if request.urgency is not None and request.urgency not in {u.value for u in Urgency}:
        raise HTTPException(status_code=400, detail=f"Invalid urgency: {request.urgency}")

    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Handoff tracking not ready")

    topic = Topic.parse(request.topic)
    reason = EscalationReason(request.reason)
    language = Language.parse(request.language or services.settings.default_language)

    url = None
    if services.handoff_channel.is_enabled:
        url = services.handoff_channel.open(request.session_id, topic, reason)

    event = create_event(
        request.session_id,
        click_marker(reason.value, request.urgency),
        topic,
        language,
        handoff_triggered=True,
        routed=Routed.PRIMARY,
    )

    tracked = False
    try:
        await services.event_log.append(event)
        tracked = True
    except EventLogError as e:
        # A lost click must not stop the user reaching the channel
        logger.warning(f"Failed to log handoff click for session {request.session_id[:8]}: {e}")

    record_handoff_click(reason.value)
    record_event_logged("handoff_click", tracked)

    return HandoffClickResponse(
        success=True,
        tracked=tracked,
        url=url,
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
