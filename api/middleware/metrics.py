"""
Prometheus metrics middleware for the Jirung API.

Exposes /metrics endpoint with request counters, latency histograms,
and triage metrics.
"""

import logging
import time

from fastapi import Request, Response
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST,
)
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger(__name__)

# Request metrics
REQUEST_COUNT = Counter(
    "jirung_http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)
REQUEST_LATENCY = Histogram(
    "jirung_http_request_duration_seconds",
    "HTTP request latency",
    ["method", "endpoint"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)
ACTIVE_REQUESTS = Gauge(
    "jirung_http_active_requests",
    "Currently active HTTP requests",
)

# Triage metrics
TOPIC_COUNT = Counter(
    "jirung_topic_classification_total",
    "Topic classifications",
    ["topic"],
)
ESCALATION_COUNT = Counter(
    "jirung_escalation_recommendations_total",
    "Handoff recommendations",
    ["reason", "urgency"],
)
FALLBACK_COUNT = Counter(
    "jirung_fallback_replies_total",
    "Replies served from the fallback catalog",
    ["topic"],
)
EVENTS_LOGGED = Counter(
    "jirung_analytics_events_total",
    "Analytics events appended",
    ["kind", "status"],
)
HANDOFF_CLICKS = Counter(
    "jirung_handoff_clicks_total",
    "Handoff link clicks",
    ["reason"],
)
GENERATION_LATENCY = Histogram(
    "jirung_chat_duration_seconds",
    "End-to-end chat reply latency",
    ["routed"],
    buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 20.0],
)


def record_topic(topic: str):
    """Record a topic classification."""
    TOPIC_COUNT.labels(topic=topic).inc()


def record_escalation(reason: str, urgency: str):
    """Record a handoff recommendation."""
    ESCALATION_COUNT.labels(reason=reason, urgency=urgency).inc()


def record_fallback(topic: str):
    FALLBACK_COUNT.labels(topic=topic).inc()


def record_event_logged(kind: str, ok: bool):
    """Record an analytics append attempt."""
    EVENTS_LOGGED.labels(kind=kind, status="ok" if ok else "failed").inc()


def record_handoff_click(reason: str):
    HANDOFF_CLICKS.labels(reason=reason).inc()


def record_chat_latency(routed: str, seconds: float):
    """Record chat reply latency."""
    GENERATION_LATENCY.labels(routed=routed).observe(seconds)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware that records HTTP request metrics."""

    async def dispatch(self, request: Request, call_next):
        ACTIVE_REQUESTS.inc()
        start = time.time()

        try:
            response = await call_next(request)
        except Exception:
            ACTIVE_REQUESTS.dec()
            raise

        duration = time.time() - start
        endpoint = request.url.path

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()
        REQUEST_LATENCY.labels(
            method=request.method,
            endpoint=endpoint,
        ).observe(duration)
        ACTIVE_REQUESTS.dec()

        return response


async def metrics_endpoint(request: Request) -> Response:
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )
