"""Storage facade.

One adapter is chosen from ``Settings.database_type`` when the process starts
and every call is forwarded to it. Nothing outside :func:`build_storage`
knows which backend is active.
"""

from typing import Callable, Optional

import structlog

from portalar.core.config import Settings
from portalar.core.database import sqlite_url
from portalar.core.errors import UnconfiguredError
from portalar.schemas.analytics import AnalyticsSummary, EventQuery
from portalar.schemas.content import Content, ContentInput
from portalar.schemas.event import AnalyticsEvent, EventInput
from portalar.storage.base import StorageAdapter
from portalar.storage.firestore import FirestoreAdapter
from portalar.storage.memory import MemoryAdapter
from portalar.storage.sql import SqlAdapter

logger = structlog.get_logger()


class Storage:
    """Forwards every operation to the active adapter"""

    def __init__(self, adapter: StorageAdapter, backend: str):
        self._adapter = adapter
        self.backend = backend
        self._ready = False

    async def initialize(self) -> None:
        if self._ready:
            return
        await self._adapter.initialize()
        self._ready = True
        logger.info("storage_initialized", backend=self.backend)

    async def close(self) -> None:
        if not self._ready:
            return
        await self._adapter.close()
        self._ready = False
        logger.info("storage_closed", backend=self.backend)

    async def get_content(self, marker_id: str) -> Optional[Content]:
        return await self._adapter.get_content(marker_id)

    async def set_content(self, marker_id: str, content: ContentInput) -> Content:
        return await self._adapter.set_content(marker_id, content)

    async def delete_content(self, marker_id: str) -> bool:
        return await self._adapter.delete_content(marker_id)

    async def list_all_content(self) -> list[Content]:
        return await self._adapter.list_all_content()

    async def record_analytics_event(self, event: EventInput) -> AnalyticsEvent:
        return await self._adapter.record_analytics_event(event)

    async def record_analytics_events(self, events: list[EventInput]) -> list[AnalyticsEvent]:
        return await self._adapter.record_analytics_events(events)

    async def get_analytics(self, marker_id: str, query: Optional[EventQuery] = None) -> list[AnalyticsEvent]:
        return await self._adapter.get_analytics(marker_id, query or EventQuery())

    async def get_analytics_summary(self, marker_id: str) -> AnalyticsSummary:
        return await self._adapter.get_analytics_summary(marker_id)

    async def get_all_analytics_summaries(self) -> list[AnalyticsSummary]:
        return await self._adapter.get_all_analytics_summaries()


def _sqlite(settings: Settings) -> StorageAdapter:
    return SqlAdapter(sqlite_url(settings.sqlite_path), echo=settings.debug, timeout=settings.database_timeout)


def _postgres(settings: Settings) -> StorageAdapter:
    return SqlAdapter(settings.database_url, echo=settings.debug, timeout=settings.database_timeout)


def _firebase(settings: Settings) -> StorageAdapter:
    return FirestoreAdapter(
        project_id=settings.firebase_project_id,
        service_account=settings.firebase_service_account,
        service_account_path=settings.firebase_service_account_path,
        timeout=settings.database_timeout,
    )


def _memory(settings: Settings) -> StorageAdapter:
    return MemoryAdapter()


ADAPTERS: dict[str, Callable[[Settings], StorageAdapter]] = {
    "sqlite": _sqlite,
    "postgres": _postgres,
    "firebase": _firebase,
    "memory": _memory,
}


def build_storage(settings: Settings) -> Storage:
    """Select the adapter named by DATABASE_TYPE"""
    factory = ADAPTERS.get(settings.database_type)
    if factory is None:
        raise UnconfiguredError(f"Unsupported database type: {settings.database_type}")
    return Storage(factory(settings), settings.database_type)
