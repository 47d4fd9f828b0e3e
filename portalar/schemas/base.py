from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema exposing camelCase field names on the wire"""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


def validate_url_or_path(v: str | None) -> str | None:
    """Accept absolute http(s) URLs or root-relative asset paths"""
    if v is None:
        return v
    v = v.strip()
    if not v:
        return None
    if v.startswith(("http://", "https://")) and len(v) > len("https://"):
        return v
    if v.startswith("/") and not v.startswith("//"):
        return v
    raise ValueError("Must be an http(s) URL or a root-relative path")


def as_utc(v: datetime | None) -> datetime | None:
    """Naive datetimes are taken as UTC; aware ones are converted"""
    if v is None:
        return v
    if v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v.astimezone(timezone.utc)
