from typing import Any, Mapping, Optional, Sequence, Union

import pydantic
import structlog

from portalar.core.errors import ValidationError
from portalar.schemas.analytics import AnalyticsSummary, EventQuery
from portalar.schemas.event import AnalyticsEvent, EventCreate, EventInput, MAX_BATCH_SIZE
from portalar.services.content import validation_details
from portalar.storage.facade import Storage

logger = structlog.get_logger()

EventPayload = Union[EventCreate, Mapping[str, Any]]


class AnalyticsService:
    """Engagement event ingestion and per-marker aggregates"""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def ingest(
            self,
            event: EventPayload,
            user_agent: Optional[str] = None,
            ip_address: Optional[str] = None
    ) -> Optional[str]:
        """
        Record one event.

        Returns:
            The stored event id, or None when storage failed. Storage faults
            are logged and dropped so they never break the client's flow.
        """
        prepared = self._prepare(self._validate(event), user_agent, ip_address)

        try:
            saved = await self.storage.record_analytics_event(prepared)
        except Exception as e:
            logger.error(
                "analytics_ingest_failed",
                marker_id=prepared.marker_id,
                event_type=prepared.event_type.value,
                error=str(e),
                exc_info=True
            )
            return None

        return saved.id

    async def ingest_batch(
            self,
            events: Sequence[EventPayload],
            user_agent: Optional[str] = None,
            ip_address: Optional[str] = None
    ) -> int:
        """
        Record 1-100 events, all or nothing.

        Every element is validated before anything is written; one detail
        entry is reported per malformed element.

        Returns:
            Number of events stored (0 when storage failed)
        """
        if not 1 <= len(events) <= MAX_BATCH_SIZE:
            raise ValidationError(f"Events must be an array (1-{MAX_BATCH_SIZE} items)")

        validated = []
        errors = []
        for index, event in enumerate(events):
            try:
                validated.append(self._validate(event))
            except ValidationError as e:
                errors.append({"index": index, "errors": e.details})

        if errors:
            raise ValidationError("Validation failed", details=errors)

        prepared = [self._prepare(event, user_agent, ip_address) for event in validated]

        try:
            saved = await self.storage.record_analytics_events(prepared)
        except Exception as e:
            logger.error("analytics_batch_ingest_failed", count=len(prepared), error=str(e), exc_info=True)
            return 0

        return len(saved)

    async def events(self, marker_id: str, query: Optional[EventQuery] = None) -> list[AnalyticsEvent]:
        return await self.storage.get_analytics(marker_id, query or EventQuery())

    async def summary(self, marker_id: str) -> AnalyticsSummary:
        return await self.storage.get_analytics_summary(marker_id)

    async def all_summaries(self) -> list[AnalyticsSummary]:
        return await self.storage.get_all_analytics_summaries()

    @staticmethod
    def _validate(event: EventPayload) -> EventCreate:
        if isinstance(event, EventCreate):
            return event
        try:
            return EventCreate.model_validate(event)
        except pydantic.ValidationError as e:
            raise ValidationError("Validation failed", details=validation_details(e)) from e

    @staticmethod
    def _prepare(event: EventCreate, user_agent: Optional[str], ip_address: Optional[str]) -> EventInput:
        return EventInput(
            **event.model_dump(),
            user_agent=user_agent[:1024] if user_agent else None,
            ip_address=ip_address,
        )
