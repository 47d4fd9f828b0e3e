from datetime import datetime
from typing import List, Optional

from pydantic import Field, field_validator

from portalar.schemas.base import CamelModel, as_utc
from portalar.schemas.event import AnalyticsEvent, EventType

DEFAULT_EVENT_LIMIT = 1000
MAX_EVENT_LIMIT = 10000


class EventQuery(CamelModel):
    """Filters for listing a marker's events"""
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    event_type: Optional[EventType] = None
    limit: int = Field(default=DEFAULT_EVENT_LIMIT, ge=1, le=MAX_EVENT_LIMIT)

    @field_validator("start_date", "end_date")
    @classmethod
    def validate_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class AnalyticsSummary(CamelModel):
    """Aggregated engagement for one marker"""
    marker_id: str
    total_scans: int = 0
    total_clicks: int = 0
    avg_duration: float = 0.0
    last_scan: Optional[datetime] = None


class EventFilters(CamelModel):
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    event_type: Optional[EventType] = None


class EventListResponse(CamelModel):
    success: bool = True
    marker_id: str
    count: int
    filters: EventFilters
    data: List[AnalyticsEvent]


class SummaryResponse(CamelModel):
    success: bool = True
    data: AnalyticsSummary


class SummaryListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[AnalyticsSummary]
