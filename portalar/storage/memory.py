from itertools import count
from typing import Optional

import structlog

from portalar.schemas.analytics import AnalyticsSummary, EventQuery
from portalar.schemas.content import Content, ContentInput
from portalar.schemas.event import AnalyticsEvent, EventInput
from portalar.storage.base import (
    StorageAdapter,
    SummaryAccumulator,
    content_fields,
    next_update_time,
    sort_summaries,
    utcnow,
)

logger = structlog.get_logger()


class MemoryAdapter(StorageAdapter):
    """In-process storage for tests and throwaway demos; nothing survives a restart"""

    def __init__(self):
        self._content: dict[str, Content] = {}
        self._events: list[AnalyticsEvent] = []
        self._ids = count(1)

    async def initialize(self) -> None:
        logger.info("memory_storage_ready")

    async def close(self) -> None:
        pass

    async def get_content(self, marker_id: str) -> Optional[Content]:
        return self._content.get(marker_id)

    async def set_content(self, marker_id: str, content: ContentInput) -> Content:
        previous = self._content.get(marker_id)
        record = Content(
            marker_id=marker_id,
            created_at=previous.created_at if previous else utcnow(),
            updated_at=next_update_time(previous.updated_at if previous else None),
            **content_fields(content),
        )
        self._content[marker_id] = record
        return record

    async def delete_content(self, marker_id: str) -> bool:
        return self._content.pop(marker_id, None) is not None

    async def list_all_content(self) -> list[Content]:
        return sorted(self._content.values(), key=lambda c: c.updated_at, reverse=True)

    async def record_analytics_event(self, event: EventInput) -> AnalyticsEvent:
        stored = AnalyticsEvent(
            id=str(next(self._ids)),
            timestamp=event.timestamp or utcnow(),
            **event.model_dump(exclude={"timestamp"}),
        )
        self._events.append(stored)
        return stored

    async def get_analytics(self, marker_id: str, query: EventQuery) -> list[AnalyticsEvent]:
        matches = [
            e for e in self._events
            if e.marker_id == marker_id
            and (query.start_date is None or e.timestamp >= query.start_date)
            and (query.end_date is None or e.timestamp <= query.end_date)
            and (query.event_type is None or e.event_type == query.event_type)
        ]
        matches.sort(key=lambda e: (e.timestamp, int(e.id)), reverse=True)
        return matches[:query.limit]

    async def get_analytics_summary(self, marker_id: str) -> AnalyticsSummary:
        acc = SummaryAccumulator(marker_id)
        for e in self._events:
            if e.marker_id == marker_id:
                acc.add(e.event_type.value, e.duration, e.timestamp)
        return acc.result()

    async def get_all_analytics_summaries(self) -> list[AnalyticsSummary]:
        accumulators: dict[str, SummaryAccumulator] = {}
        for e in self._events:
            acc = accumulators.setdefault(e.marker_id, SummaryAccumulator(e.marker_id))
            acc.add(e.event_type.value, e.duration, e.timestamp)
        return sort_summaries(acc.result() for acc in accumulators.values())
