# /api/content/*

from typing import Annotated

from fastapi import APIRouter, Depends, Path
import structlog

from portalar.api.deps import get_content_service, require_admin
from portalar.schemas.content import (
    ContentInput,
    ContentListResponse,
    ContentResponse,
    ContentSavedResponse,
    MARKER_ID_PATTERN,
    MessageResponse,
)
from portalar.services.content import ContentService

logger = structlog.get_logger()
router = APIRouter(prefix="/api/content", tags=["content"])

MarkerId = Annotated[str, Path(min_length=1, max_length=255, pattern=MARKER_ID_PATTERN, description="Marker ID")]


@router.get("/{marker_id}", response_model=ContentResponse)
async def get_content(
        marker_id: MarkerId,
        service: ContentService = Depends(get_content_service)
):
    """
    Get AR content for a marker.

    Public; called by the AR client when a marker is detected.
    Returns 404 when the marker has no content and 410 once it has expired.
    """
    content = await service.fetch(marker_id)
    return ContentResponse(data=content)


@router.get("", response_model=ContentListResponse, dependencies=[Depends(require_admin)])
async def list_content(service: ContentService = Depends(get_content_service)):
    """List all marker content (admin)"""
    content_list = await service.list()
    return ContentListResponse(count=len(content_list), data=content_list)


@router.post("/{marker_id}", response_model=ContentSavedResponse, dependencies=[Depends(require_admin)])
async def save_content(
        body: ContentInput,
        marker_id: MarkerId,
        service: ContentService = Depends(get_content_service)
):
    """
    Create or replace content for a marker (admin).

    The body replaces the stored record entirely; omitted fields are cleared.
    """
    saved = await service.upsert(marker_id, body)
    return ContentSavedResponse(message="Content saved successfully", data=saved)


@router.put("/{marker_id}", response_model=ContentSavedResponse, dependencies=[Depends(require_admin)])
async def replace_content(
        body: ContentInput,
        marker_id: MarkerId,
        service: ContentService = Depends(get_content_service)
):
    """Replace content for a marker that already has some (admin)"""
    saved = await service.replace_existing(marker_id, body)
    return ContentSavedResponse(message="Content saved successfully", data=saved)


@router.delete("/{marker_id}", response_model=MessageResponse, dependencies=[Depends(require_admin)])
async def delete_content(
        marker_id: MarkerId,
        service: ContentService = Depends(get_content_service)
):
    """Delete a marker's content (admin)"""
    await service.remove(marker_id)
    return MessageResponse(message=f"Content deleted for marker: {marker_id}")
