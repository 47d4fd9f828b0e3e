# SQLAlchemy models

from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, Float, Integer, JSON, Index
from sqlalchemy.orm import declarative_base
from sqlalchemy.types import TypeDecorator

Base = declarative_base()


class UTCDateTime(TypeDecorator):
    """Stores UTC, always returns timezone-aware datetimes (SQLite drops tzinfo)"""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return value
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.astimezone(timezone.utc)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        if value is None:
            return value
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


class ContentRecord(Base):
    __tablename__ = "content"

    marker_id = Column(String(255), primary_key=True)
    type = Column(String(16), nullable=False)
    title = Column(String(200))
    summary = Column(String(500))
    url = Column(String(2048))
    video_url = Column(String(2048))
    poster_url = Column(String(2048))
    model_url = Column(String(2048))
    image_url = Column(String(2048))
    cta_text = Column(String(50))
    cta_url = Column(String(2048))
    style = Column(JSON)
    expires_at = Column(UTCDateTime)
    created_at = Column(UTCDateTime, nullable=False)
    updated_at = Column(UTCDateTime, nullable=False, index=True)


class AnalyticsRecord(Base):
    __tablename__ = "analytics"

    id = Column(Integer, primary_key=True, autoincrement=True)
    marker_id = Column(String(255), nullable=False, index=True)
    event_type = Column(String(32), nullable=False, index=True)
    session_id = Column(String(128))
    timestamp = Column(UTCDateTime, nullable=False, index=True)
    duration = Column(Float)
    user_agent = Column(String(1024))
    ip_address = Column(String(64))
    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON)

    __table_args__ = (
        # Composite index for per-marker timelines
        Index('idx_analytics_marker_timestamp', 'marker_id', 'timestamp'),
    )
