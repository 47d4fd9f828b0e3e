from typing import Any, Mapping, Union

import pydantic
import structlog

from portalar.core.errors import ExpiredError, NotFoundError, ValidationError
from portalar.schemas.content import Content, ContentInput
from portalar.storage.base import utcnow
from portalar.storage.facade import Storage

logger = structlog.get_logger()

_FIELD_LABELS = {
    "video_url": ("videoUrl", "video"),
    "model_url": ("modelUrl", "3D"),
    "title": ("title", "news"),
}


def validation_details(error: pydantic.ValidationError) -> list[dict[str, Any]]:
    """Flatten pydantic errors into JSON-safe detail entries"""
    return [
        {
            "loc": [str(part) for part in err["loc"]],
            "msg": err["msg"],
            "type": err["type"],
        }
        for err in error.errors()
    ]


class ContentService:
    """Marker content lookup and administration. Every read goes to storage."""

    def __init__(self, storage: Storage):
        self.storage = storage

    async def fetch(self, marker_id: str) -> Content:
        content = await self.storage.get_content(marker_id)

        if content is None:
            raise NotFoundError(f"Content not found for marker: {marker_id}")

        if content.is_expired(utcnow()):
            raise ExpiredError(
                "Content has expired",
                details={"expiresAt": content.expires_at.isoformat()}
            )

        return content

    async def upsert(self, marker_id: str, data: Union[ContentInput, Mapping[str, Any]]) -> Content:
        """Create or fully replace a marker's content"""
        content = self._validate(data)
        saved = await self.storage.set_content(marker_id, content)
        logger.info("content_upserted", marker_id=marker_id, type=content.type.value)
        return saved

    async def replace_existing(self, marker_id: str, data: Union[ContentInput, Mapping[str, Any]]) -> Content:
        content = self._validate(data)
        if await self.storage.get_content(marker_id) is None:
            raise NotFoundError("Content not found")
        return await self.storage.set_content(marker_id, content)

    async def remove(self, marker_id: str) -> None:
        deleted = await self.storage.delete_content(marker_id)
        if not deleted:
            raise NotFoundError("Content not found")
        logger.info("content_deleted", marker_id=marker_id)

    async def list(self) -> list[Content]:
        return await self.storage.list_all_content()

    def _validate(self, data: Union[ContentInput, Mapping[str, Any]]) -> ContentInput:
        if not isinstance(data, ContentInput):
            try:
                data = ContentInput.model_validate(data)
            except pydantic.ValidationError as e:
                raise ValidationError("Validation failed", details=validation_details(e)) from e

        missing = data.missing_required_field()
        if missing:
            field, label = _FIELD_LABELS[missing]
            raise ValidationError(f"{field} is required for {label} content")

        return data
