# /api/analytics/*

from datetime import datetime
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Path, Query, Request
import structlog

from portalar.api.deps import analytics_rate_limit, get_analytics_service, require_admin
from portalar.middleware.rate_limit import client_ip
from portalar.schemas.analytics import (
    DEFAULT_EVENT_LIMIT,
    MAX_EVENT_LIMIT,
    EventFilters,
    EventListResponse,
    EventQuery,
    SummaryListResponse,
    SummaryResponse,
)
from portalar.schemas.content import MARKER_ID_PATTERN
from portalar.schemas.event import (
    BatchIngestResponse,
    EventBatchCreate,
    EventCreate,
    EventIngestResponse,
    EventType,
)
from portalar.services.analytics import AnalyticsService

logger = structlog.get_logger()
router = APIRouter(prefix="/api/analytics", tags=["analytics"])

MarkerId = Annotated[str, Path(min_length=1, max_length=255, pattern=MARKER_ID_PATTERN, description="Marker ID")]


@router.post("", response_model=EventIngestResponse, dependencies=[Depends(analytics_rate_limit)])
async def record_event(
        event: EventCreate,
        request: Request,
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Record an engagement event (public).

    - **eventType**: scan, viewDuration, click or share
    - **duration**: seconds, required for viewDuration

    Storage problems never fail the request; `recorded` reports the outcome.
    """
    event_id = await service.ingest(
        event,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request)
    )

    return EventIngestResponse(
        message="Event recorded" if event_id else "Event dropped",
        recorded=event_id is not None,
        event_id=event_id
    )


@router.post("/batch", response_model=BatchIngestResponse, dependencies=[Depends(analytics_rate_limit)])
async def record_events(
        batch: EventBatchCreate,
        request: Request,
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Record 1-100 events at once (public).

    Useful for offline-first clients that queue events. The batch is
    rejected as a whole if any event is invalid.
    """
    recorded = await service.ingest_batch(
        batch.events,
        user_agent=request.headers.get("user-agent"),
        ip_address=client_ip(request)
    )

    return BatchIngestResponse(
        message=f"{recorded} events recorded",
        count=len(batch.events),
        recorded=recorded
    )


@router.get("", response_model=SummaryListResponse, dependencies=[Depends(require_admin)])
async def get_all_summaries(service: AnalyticsService = Depends(get_analytics_service)):
    """Summaries for every marker with events, most scanned first (admin)"""
    summaries = await service.all_summaries()
    return SummaryListResponse(count=len(summaries), data=summaries)


@router.get("/{marker_id}", response_model=EventListResponse, dependencies=[Depends(require_admin)])
async def get_events(
        marker_id: MarkerId,
        start_date: Optional[datetime] = Query(default=None, alias="startDate"),
        end_date: Optional[datetime] = Query(default=None, alias="endDate"),
        event_type: Optional[EventType] = Query(default=None, alias="eventType"),
        limit: int = Query(default=DEFAULT_EVENT_LIMIT, ge=1, le=MAX_EVENT_LIMIT),
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Events for a marker, newest first (admin).

    - **startDate** / **endDate**: inclusive ISO-8601 bounds
    - **eventType**: only this kind of event
    - **limit**: at most this many events (max 10000)
    """
    query = EventQuery(start_date=start_date, end_date=end_date, event_type=event_type, limit=limit)
    events = await service.events(marker_id, query)

    return EventListResponse(
        marker_id=marker_id,
        count=len(events),
        filters=EventFilters(
            start_date=query.start_date,
            end_date=query.end_date,
            event_type=query.event_type
        ),
        data=events
    )


@router.get("/{marker_id}/summary", response_model=SummaryResponse, dependencies=[Depends(require_admin)])
async def get_summary(
        marker_id: MarkerId,
        service: AnalyticsService = Depends(get_analytics_service)
):
    """Aggregated engagement for one marker (admin)"""
    summary = await service.summary(marker_id)
    return SummaryResponse(data=summary)
