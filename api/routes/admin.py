"""
Admin API routes for the Jirung elder-care assistant.

Conversation analytics for the dashboard (JSON or CSV download) and the
fallback usage counters.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response

from ..middleware.auth import require_admin
from ..services import get_services
from analytics.errors import EventLogError, InvalidWindowError
from analytics.export import csv_filename, render_csv
from analytics.window import DEFAULT_PERIOD, parse_period

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.get("/stats")
async def get_stats(
    period: str = Query(default=DEFAULT_PERIOD, description="1d, 7d, 30d or 90d"),
    format: str = Query(default="json", pattern="^(json|csv)$"),
):
    """
    Conversation analytics for the last ``period``.

    Fetches the window from the event log (capped at the configured fetch
    limit), runs the analytics engine and returns the report, or the raw
    events plus a summary as a CSV attachment.
    """
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Analytics not ready")

    now = datetime.now(timezone.utc)
    try:
        window = parse_period(period, now=now)
    except InvalidWindowError as e:
        raise HTTPException(status_code=422, detail=str(e))

    try:
        events = await services.event_log.query(window, limit=services.settings.analytics_fetch_limit)
    except EventLogError as e:
        logger.error(f"Analytics fetch failed: {e}")
        raise HTTPException(status_code=503, detail="Analytics data unavailable")

    report = services.engine.analyze(events, window=window)
    logger.info(
        f"Admin stats: period={period} events={report.usage_stats.total_events} "
        f"sessions={report.usage_stats.unique_sessions}"
    )

    if format == "csv":
        return Response(
            content=render_csv(events, report),
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{csv_filename(period, now)}"'},
        )

    return {
        "period": period,
        "generated_at": now.isoformat(),
        **report.to_dict(),
    }


@router.get("/fallback-usage")
async def get_fallback_usage() -> Dict[str, Any]:
    """How often each topic's fallback reply has been served since startup."""
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Fallback catalog not ready")

    usage = services.catalog.usage_stats()
    return {"usage": usage, "total": sum(usage.values())}


@router.post("/fallback-usage/reset")
async def reset_fallback_usage() -> Dict[str, Any]:
    services = get_services()
    if not services.is_ready:
        raise HTTPException(status_code=503, detail="Fallback catalog not ready")

    services.catalog.reset_usage()
    return {"message": "Fallback usage counters reset"}
