# Pydantic schemas for analytics events

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from portalar.schemas.base import CamelModel, as_utc
from portalar.schemas.content import MARKER_ID_PATTERN

MAX_BATCH_SIZE = 100


class EventType(str, Enum):
    SCAN = "scan"
    VIEW_DURATION = "viewDuration"
    CLICK = "click"
    SHARE = "share"


class EventCreate(CamelModel):
    """Schema for a single engagement event sent by the AR client"""

    marker_id: str = Field(..., min_length=1, max_length=255, pattern=MARKER_ID_PATTERN)
    event_type: EventType
    session_id: Optional[str] = Field(default=None, max_length=128)
    timestamp: Optional[datetime] = None
    duration: Optional[float] = Field(default=None, ge=0)
    metadata: Optional[dict[str, Any]] = None

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @model_validator(mode="after")
    def validate_duration(self) -> "EventCreate":
        if self.event_type == EventType.VIEW_DURATION:
            if self.duration is None:
                raise ValueError("duration is required for viewDuration events")
        else:
            # Only viewDuration events carry a duration
            self.duration = None
        return self


class EventInput(EventCreate):
    """Event enriched with server-observed request data"""

    user_agent: Optional[str] = Field(default=None, max_length=1024)
    ip_address: Optional[str] = Field(default=None, max_length=64)


class AnalyticsEvent(CamelModel):
    """Stored analytics event"""

    id: str
    marker_id: str
    event_type: EventType
    session_id: Optional[str] = None
    timestamp: datetime
    duration: Optional[float] = None
    user_agent: Optional[str] = None
    ip_address: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None


class EventBatchCreate(CamelModel):
    """Schema for batch event creation"""

    events: list[EventCreate] = Field(..., min_length=1, max_length=MAX_BATCH_SIZE)


class EventIngestResponse(CamelModel):
    success: bool = True
    message: str
    recorded: bool
    event_id: Optional[str] = None


class BatchIngestResponse(CamelModel):
    """Response for batch ingestion"""

    success: bool = True
    message: str
    count: int
    recorded: int
