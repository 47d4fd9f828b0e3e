from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from sqlalchemy import case, delete, func, select, type_coerce
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
import structlog

from portalar.core.database import create_engine, create_session_factory
from portalar.core.errors import ConflictError, StorageError
from portalar.models.tables import AnalyticsRecord, Base, ContentRecord, UTCDateTime
from portalar.schemas.analytics import AnalyticsSummary, EventQuery
from portalar.schemas.content import Content, ContentInput
from portalar.schemas.event import AnalyticsEvent, EventInput, EventType
from portalar.storage.base import StorageAdapter, content_fields, next_update_time, utcnow

logger = structlog.get_logger()

# Both dialects share the INSERT ... ON CONFLICT DO UPDATE API
_UPSERT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class SqlAdapter(StorageAdapter):
    """Relational storage through SQLAlchemy's asyncio engine (SQLite or PostgreSQL)"""

    def __init__(self, url: str, echo: bool = False, timeout: float = 10.0):
        self.url = url
        self.echo = echo
        self.timeout = timeout
        self._engine: Optional[AsyncEngine] = None
        self._sessions: Optional[async_sessionmaker[AsyncSession]] = None

    async def initialize(self) -> None:
        if self._engine is not None:
            return
        engine = create_engine(self.url, echo=self.echo, timeout=self.timeout)
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            await engine.dispose()
            raise StorageError("Failed to initialize database", details=str(e)) from e

        self._engine = engine
        self._sessions = create_session_factory(engine)
        logger.info("sql_storage_connected", url=make_url(self.url).render_as_string(hide_password=True))

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
            self._engine = None
            self._sessions = None

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if self._sessions is None:
            raise StorageError("Storage is not initialized")

        async with self._sessions() as session:
            try:
                yield session
            except IntegrityError as e:
                await session.rollback()
                logger.error("sql_integrity_error", error=str(e.orig))
                raise ConflictError("Resource conflict (duplicate entry)") from e
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("sql_storage_error", error=str(e))
                raise StorageError("Database operation failed", details=str(e)) from e

    # Content

    async def get_content(self, marker_id: str) -> Optional[Content]:
        async with self._session() as session:
            record = await session.get(ContentRecord, marker_id)
            return _to_content(record) if record else None

    async def set_content(self, marker_id: str, content: ContentInput) -> Content:
        async with self._session() as session:
            previous = await session.scalar(
                select(ContentRecord.updated_at).where(ContentRecord.marker_id == marker_id)
            )
            now = next_update_time(previous)

            values = content_fields(content)
            values["updated_at"] = now

            insert = _UPSERT_INSERTS[self._engine.dialect.name]
            stmt = insert(ContentRecord).values(marker_id=marker_id, created_at=now, **values)
            # created_at is kept from the first insert
            stmt = stmt.on_conflict_do_update(index_elements=["marker_id"], set_=values)

            await session.execute(stmt)
            await session.commit()

            record = await session.scalar(
                select(ContentRecord).where(ContentRecord.marker_id == marker_id)
            )
            logger.info("content_saved", marker_id=marker_id, type=values["type"])
            return _to_content(record)

    async def delete_content(self, marker_id: str) -> bool:
        async with self._session() as session:
            result = await session.execute(
                delete(ContentRecord).where(ContentRecord.marker_id == marker_id)
            )
            await session.commit()
            return result.rowcount > 0

    async def list_all_content(self) -> list[Content]:
        async with self._session() as session:
            result = await session.scalars(
                select(ContentRecord).order_by(ContentRecord.updated_at.desc())
            )
            return [_to_content(record) for record in result]

    # Analytics

    async def record_analytics_event(self, event: EventInput) -> AnalyticsEvent:
        saved = await self.record_analytics_events([event])
        return saved[0]

    async def record_analytics_events(self, events: list[EventInput]) -> list[AnalyticsEvent]:
        """Insert all events in one transaction"""
        async with self._session() as session:
            records = [_to_record(event) for event in events]
            session.add_all(records)
            await session.commit()

            logger.info("events_ingested", total=len(records))
            return [_to_event(record) for record in records]

    async def get_analytics(self, marker_id: str, query: EventQuery) -> list[AnalyticsEvent]:
        stmt = select(AnalyticsRecord).where(AnalyticsRecord.marker_id == marker_id)

        if query.start_date:
            stmt = stmt.where(AnalyticsRecord.timestamp >= query.start_date)
        if query.end_date:
            stmt = stmt.where(AnalyticsRecord.timestamp <= query.end_date)
        if query.event_type:
            stmt = stmt.where(AnalyticsRecord.event_type == query.event_type.value)

        stmt = stmt.order_by(
            AnalyticsRecord.timestamp.desc(),
            AnalyticsRecord.id.desc()
        ).limit(query.limit)

        async with self._session() as session:
            result = await session.scalars(stmt)
            return [_to_event(record) for record in result]

    async def get_analytics_summary(self, marker_id: str) -> AnalyticsSummary:
        stmt = _summary_query().where(AnalyticsRecord.marker_id == marker_id)

        async with self._session() as session:
            row = (await session.execute(stmt)).first()

        if row is None:
            return AnalyticsSummary(marker_id=marker_id)
        return _to_summary(row)

    async def get_all_analytics_summaries(self) -> list[AnalyticsSummary]:
        stmt = _summary_query().order_by(
            func.count(case((AnalyticsRecord.event_type == EventType.SCAN.value, 1))).desc(),
            AnalyticsRecord.marker_id
        )

        async with self._session() as session:
            result = await session.execute(stmt)
            return [_to_summary(row) for row in result]


def _summary_query():
    event_type = AnalyticsRecord.event_type
    return select(
        AnalyticsRecord.marker_id,
        func.count(case((event_type == EventType.SCAN.value, 1))).label("total_scans"),
        func.count(case((event_type == EventType.CLICK.value, 1))).label("total_clicks"),
        func.avg(
            case((event_type == EventType.VIEW_DURATION.value, AnalyticsRecord.duration))
        ).label("avg_duration"),
        type_coerce(
            func.max(case((event_type == EventType.SCAN.value, AnalyticsRecord.timestamp))),
            UTCDateTime()
        ).label("last_scan"),
    ).group_by(AnalyticsRecord.marker_id)


def _to_summary(row) -> AnalyticsSummary:
    return AnalyticsSummary(
        marker_id=row.marker_id,
        total_scans=row.total_scans or 0,
        total_clicks=row.total_clicks or 0,
        avg_duration=float(row.avg_duration or 0),
        last_scan=row.last_scan,
    )


def _to_content(record: ContentRecord) -> Content:
    return Content(
        marker_id=record.marker_id,
        type=record.type,
        title=record.title,
        summary=record.summary,
        url=record.url,
        video_url=record.video_url,
        poster_url=record.poster_url,
        model_url=record.model_url,
        image_url=record.image_url,
        cta_text=record.cta_text,
        cta_url=record.cta_url,
        style=record.style,
        expires_at=record.expires_at,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def _to_record(event: EventInput) -> AnalyticsRecord:
    return AnalyticsRecord(
        marker_id=event.marker_id,
        event_type=event.event_type.value,
        session_id=event.session_id,
        timestamp=event.timestamp or utcnow(),
        duration=event.duration,
        user_agent=event.user_agent,
        ip_address=event.ip_address,
        event_metadata=event.metadata,
    )


def _to_event(record: AnalyticsRecord) -> AnalyticsEvent:
    return AnalyticsEvent(
        id=str(record.id),
        marker_id=record.marker_id,
        event_type=record.event_type,
        session_id=record.session_id,
        timestamp=record.timestamp,
        duration=record.duration,
        user_agent=record.user_agent,
        ip_address=record.ip_address,
        metadata=record.event_metadata,
    )
