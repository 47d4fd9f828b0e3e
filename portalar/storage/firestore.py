"""Cloud Firestore storage.

Content lives in the ``content`` collection keyed by marker id; events are
auto-id documents in ``analytics``. Filtered event listings need a composite
index on (markerId, eventType, timestamp); Firestore's error message links to
the console page that creates it.
"""

from contextlib import asynccontextmanager
import json
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud.firestore_v1.base_query import FieldFilter
import structlog

from portalar.core.errors import StorageError, UnconfiguredError
from portalar.schemas.analytics import AnalyticsSummary, EventQuery
from portalar.schemas.content import Content, ContentInput
from portalar.schemas.event import AnalyticsEvent, EventInput
from portalar.storage.base import (
    StorageAdapter,
    SummaryAccumulator,
    next_update_time,
    sort_summaries,
    utcnow,
)

logger = structlog.get_logger()

APP_NAME = "portalar"
CONTENT_COLLECTION = "content"
ANALYTICS_COLLECTION = "analytics"
SUMMARY_FIELDS = ["markerId", "eventType", "duration", "timestamp"]


class FirestoreAdapter(StorageAdapter):
    """Document storage through the Firebase Admin SDK's async Firestore client"""

    def __init__(
            self,
            project_id: Optional[str] = None,
            service_account: Optional[str] = None,
            service_account_path: Optional[str] = None,
            timeout: float = 10.0
    ):
        self.project_id = project_id
        self.service_account = service_account
        self.service_account_path = service_account_path
        self.timeout = timeout
        self._app: Optional[firebase_admin.App] = None
        self._db = None

    def _credential(self):
        if self.service_account:
            return credentials.Certificate(json.loads(self.service_account))
        if self.service_account_path:
            return credentials.Certificate(self.service_account_path)
        return credentials.ApplicationDefault()

    async def initialize(self) -> None:
        if self._db is not None:
            return
        try:
            options = {"projectId": self.project_id} if self.project_id else None
            self._app = firebase_admin.initialize_app(self._credential(), options, name=APP_NAME)
            self._db = firestore_async.client(app=self._app)
        except (ValueError, OSError) as e:
            logger.error("firebase_init_failed", error=str(e))
            raise UnconfiguredError(
                "Firebase configuration missing or invalid",
                details=str(e)
            ) from e

        logger.info("firestore_storage_connected", project_id=self.project_id)

    async def close(self) -> None:
        if self._app is not None:
            firebase_admin.delete_app(self._app)
            self._app = None
            self._db = None

    @asynccontextmanager
    async def _guard(self, operation: str):
        if self._db is None:
            raise StorageError("Storage is not initialized")
        try:
            yield self._db
        except google_exceptions.GoogleAPIError as e:
            logger.error("firestore_error", operation=operation, error=str(e))
            raise StorageError("Database operation failed", details=str(e)) from e

    # Content

    async def get_content(self, marker_id: str) -> Optional[Content]:
        async with self._guard("get_content") as db:
            snapshot = await db.collection(CONTENT_COLLECTION).document(marker_id).get(timeout=self.timeout)
        if not snapshot.exists:
            return None
        return Content.model_validate({**snapshot.to_dict(), "markerId": marker_id})

    async def set_content(self, marker_id: str, content: ContentInput) -> Content:
        async with self._guard("set_content") as db:
            ref = db.collection(CONTENT_COLLECTION).document(marker_id)
            snapshot = await ref.get(timeout=self.timeout)
            previous = snapshot.to_dict() if snapshot.exists else {}

            record = Content(
                marker_id=marker_id,
                created_at=previous.get("createdAt") or utcnow(),
                updated_at=next_update_time(previous.get("updatedAt")),
                **content.model_dump(),
            )
            data = record.model_dump(by_alias=True, exclude={"marker_id"})
            data["type"] = record.type.value

            # No merge: omitted fields are dropped from the document
            await ref.set(data, timeout=self.timeout)

        logger.info("content_saved", marker_id=marker_id, type=data["type"])
        return record

    async def delete_content(self, marker_id: str) -> bool:
        async with self._guard("delete_content") as db:
            ref = db.collection(CONTENT_COLLECTION).document(marker_id)
            snapshot = await ref.get(timeout=self.timeout)
            if not snapshot.exists:
                return False
            await ref.delete(timeout=self.timeout)
            return True

    async def list_all_content(self) -> list[Content]:
        async with self._guard("list_all_content") as db:
            query = db.collection(CONTENT_COLLECTION).order_by("updatedAt", direction="DESCENDING")
            return [
                Content.model_validate({**doc.to_dict(), "markerId": doc.id})
                async for doc in query.stream(timeout=self.timeout)
            ]

    # Analytics

    async def record_analytics_event(self, event: EventInput) -> AnalyticsEvent:
        data = event.model_dump(by_alias=True)
        data["eventType"] = event.event_type.value
        data["timestamp"] = event.timestamp or utcnow()

        async with self._guard("record_analytics_event") as db:
            _, ref = await db.collection(ANALYTICS_COLLECTION).add(data, timeout=self.timeout)

        return AnalyticsEvent.model_validate({**data, "id": ref.id})

    async def get_analytics(self, marker_id: str, query: EventQuery) -> list[AnalyticsEvent]:
        async with self._guard("get_analytics") as db:
            q = db.collection(ANALYTICS_COLLECTION).where(filter=FieldFilter("markerId", "==", marker_id))
            if query.start_date:
                q = q.where(filter=FieldFilter("timestamp", ">=", query.start_date))
            if query.end_date:
                q = q.where(filter=FieldFilter("timestamp", "<=", query.end_date))
            if query.event_type:
                q = q.where(filter=FieldFilter("eventType", "==", query.event_type.value))
            q = q.order_by("timestamp", direction="DESCENDING").limit(query.limit)

            return [
                AnalyticsEvent.model_validate({**doc.to_dict(), "id": doc.id})
                async for doc in q.stream(timeout=self.timeout)
            ]

    async def get_analytics_summary(self, marker_id: str) -> AnalyticsSummary:
        acc = SummaryAccumulator(marker_id)
        async with self._guard("get_analytics_summary") as db:
            q = (
                db.collection(ANALYTICS_COLLECTION)
                .where(filter=FieldFilter("markerId", "==", marker_id))
                .select(SUMMARY_FIELDS)
            )
            async for doc in q.stream(timeout=self.timeout):
                data = doc.to_dict()
                acc.add(data.get("eventType"), data.get("duration"), data.get("timestamp"))
        return acc.result()

    async def get_all_analytics_summaries(self) -> list[AnalyticsSummary]:
        accumulators: dict[str, SummaryAccumulator] = {}
        async with self._guard("get_all_analytics_summaries") as db:
            q = db.collection(ANALYTICS_COLLECTION).select(SUMMARY_FIELDS)
            async for doc in q.stream(timeout=self.timeout):
                data = doc.to_dict()
                marker_id = data.get("markerId")
                acc = accumulators.setdefault(marker_id, SummaryAccumulator(marker_id))
                acc.add(data.get("eventType"), data.get("duration"), data.get("timestamp"))
        return sort_summaries(acc.result() for acc in accumulators.values())
