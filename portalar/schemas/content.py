# Pydantic schemas for marker content

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import Field, field_validator

from portalar.schemas.base import CamelModel, as_utc, validate_url_or_path

MARKER_ID_PATTERN = r"^\S+$"


class ContentType(str, Enum):
    VIDEO = "video"
    NEWS = "news"
    MODEL_3D = "3d"
    IMAGE = "image"


# Field that must be present for each content type
REQUIRED_FIELDS = {
    ContentType.VIDEO: "video_url",
    ContentType.MODEL_3D: "model_url",
    ContentType.NEWS: "title",
}


class ContentStyle(CamelModel):
    """Overlay colors"""

    background_color: Optional[str] = Field(default=None, max_length=32)
    text_color: Optional[str] = Field(default=None, max_length=32)
    accent_color: Optional[str] = Field(default=None, max_length=32)


class ContentInput(CamelModel):
    """Schema for creating or replacing a marker's content"""

    type: ContentType
    title: Optional[str] = Field(default=None, max_length=200)
    summary: Optional[str] = Field(default=None, max_length=500)
    url: Optional[str] = Field(default=None, max_length=2048)
    video_url: Optional[str] = Field(default=None, max_length=2048)
    poster_url: Optional[str] = Field(default=None, max_length=2048)
    model_url: Optional[str] = Field(default=None, max_length=2048)
    image_url: Optional[str] = Field(default=None, max_length=2048)
    cta_text: Optional[str] = Field(default=None, max_length=50)
    cta_url: Optional[str] = Field(default=None, max_length=2048)
    style: Optional[ContentStyle] = None
    expires_at: Optional[datetime] = None

    @field_validator("url", "video_url", "poster_url", "model_url", "image_url", "cta_url")
    @classmethod
    def validate_urls(cls, v: Optional[str]) -> Optional[str]:
        return validate_url_or_path(v)

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    def missing_required_field(self) -> Optional[str]:
        """Return the attribute the content type requires but lacks"""
        field = REQUIRED_FIELDS.get(self.type)
        if field and not getattr(self, field):
            return field
        return None


class Content(ContentInput):
    """Stored content record"""

    marker_id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at < now


class ContentResponse(CamelModel):
    success: bool = True
    data: Content


class ContentSavedResponse(CamelModel):
    success: bool = True
    message: str
    data: Content


class ContentListResponse(CamelModel):
    success: bool = True
    count: int
    data: List[Content]


class MessageResponse(CamelModel):
    success: bool = True
    message: str
