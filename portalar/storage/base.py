"""Storage adapter contract.

Every backend implements :class:`StorageAdapter` with the same observable
behavior, so the same sequence of calls yields the same logical content and
summaries whichever adapter is active.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Iterable, Optional

from portalar.schemas.analytics import AnalyticsSummary, EventQuery
from portalar.schemas.content import Content, ContentInput
from portalar.schemas.event import AnalyticsEvent, EventInput, EventType


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def next_update_time(previous: Optional[datetime]) -> datetime:
    """Current time, nudged past `previous` so updatedAt strictly increases"""
    now = utcnow()
    if previous is not None and now <= previous:
        return previous + timedelta(microseconds=1)
    return now


def content_fields(content: ContentInput) -> dict:
    """Column values for a full replace; omitted fields become None"""
    data = content.model_dump(exclude_none=False)
    data["type"] = content.type.value
    return data


class SummaryAccumulator:
    """Folds events into an AnalyticsSummary for adapters without SQL aggregates"""

    def __init__(self, marker_id: str):
        self.marker_id = marker_id
        self.total_scans = 0
        self.total_clicks = 0
        self.total_duration = 0.0
        self.duration_count = 0
        self.last_scan: Optional[datetime] = None

    def add(self, event_type: str, duration: Optional[float], timestamp: Optional[datetime]) -> None:
        if event_type == EventType.SCAN.value:
            self.total_scans += 1
            if timestamp is not None and (self.last_scan is None or timestamp > self.last_scan):
                self.last_scan = timestamp
        elif event_type == EventType.CLICK.value:
            self.total_clicks += 1
        elif event_type == EventType.VIEW_DURATION.value and duration is not None:
            self.total_duration += duration
            self.duration_count += 1

    def result(self) -> AnalyticsSummary:
        avg = self.total_duration / self.duration_count if self.duration_count else 0.0
        return AnalyticsSummary(
            marker_id=self.marker_id,
            total_scans=self.total_scans,
            total_clicks=self.total_clicks,
            avg_duration=avg,
            last_scan=self.last_scan,
        )


def sort_summaries(summaries: Iterable[AnalyticsSummary]) -> list[AnalyticsSummary]:
    return sorted(summaries, key=lambda s: (-s.total_scans, s.marker_id))


class StorageAdapter(ABC):
    """Persistence for Content and AnalyticsEvent records"""

    @abstractmethod
    async def initialize(self) -> None:
        """Connect and create the schema if absent"""

    @abstractmethod
    async def close(self) -> None:
        """Release resources; safe to call more than once"""

    # Content

    @abstractmethod
    async def get_content(self, marker_id: str) -> Optional[Content]:
        ...

    @abstractmethod
    async def set_content(self, marker_id: str, content: ContentInput) -> Content:
        """Replace-upsert: every field of `content` overwrites the stored record"""

    @abstractmethod
    async def delete_content(self, marker_id: str) -> bool:
        ...

    @abstractmethod
    async def list_all_content(self) -> list[Content]:
        """All records, most recently updated first"""

    # Analytics

    @abstractmethod
    async def record_analytics_event(self, event: EventInput) -> AnalyticsEvent:
        ...

    async def record_analytics_events(self, events: list[EventInput]) -> list[AnalyticsEvent]:
        return [await self.record_analytics_event(event) for event in events]

    @abstractmethod
    async def get_analytics(self, marker_id: str, query: EventQuery) -> list[AnalyticsEvent]:
        """Events for a marker, newest first, bounded by query.limit"""

    @abstractmethod
    async def get_analytics_summary(self, marker_id: str) -> AnalyticsSummary:
        ...

    @abstractmethod
    async def get_all_analytics_summaries(self) -> list[AnalyticsSummary]:
        """One summary per marker with events, most scanned first"""
