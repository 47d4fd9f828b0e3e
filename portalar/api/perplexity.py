# /api/perplexity/* (admin only, the API key never reaches the browser)

from fastapi import APIRouter, Depends
import structlog

from portalar.api.deps import get_content_service, get_summarizer, require_admin
from portalar.core.errors import ServiceUnavailableError
from portalar.schemas.content import ContentInput, ContentStyle, ContentType
from portalar.schemas.summary import (
    MetadataRequest,
    MetadataResponse,
    SavedSummary,
    SummarizeAndSaveRequest,
    SummarizeAndSaveResponse,
    SummarizerStatus,
    SummaryEnvelope,
    SummaryRequest,
)
from portalar.services.content import ContentService
from portalar.services.summarizer import Summarizer

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/perplexity",
    tags=["perplexity"],
    dependencies=[Depends(require_admin)]
)

NEWS_STYLE = ContentStyle(background_color="#1a1a1a", text_color="#ffffff", accent_color="#00ff88")


def ensure_enabled(summarizer: Summarizer = Depends(get_summarizer)) -> Summarizer:
    if not summarizer.enabled:
        raise ServiceUnavailableError("Perplexity integration is disabled")
    return summarizer


@router.post("/summary", response_model=SummaryEnvelope)
async def create_summary(body: SummaryRequest, summarizer: Summarizer = Depends(ensure_enabled)):
    """
    Summarize an article URL, or write about a topic.

    - **url**: article to summarize
    - **query**: topic, used when no url is given
    - **maxLength**: summary length in characters (50-1000)
    """
    if body.url:
        summary = await summarizer.summarize(str(body.url), body.max_length)
    else:
        summary = await summarizer.generate(body.query, body.max_length)

    return SummaryEnvelope(data=summary)


@router.post("/summarize-and-save", response_model=SummarizeAndSaveResponse)
async def summarize_and_save(
        body: SummarizeAndSaveRequest,
        summarizer: Summarizer = Depends(ensure_enabled),
        content_service: ContentService = Depends(get_content_service)
):
    """Summarize an article and publish it as the marker's news content"""
    url = str(body.url)
    summary = await summarizer.summarize(url, body.max_length)

    content = await content_service.upsert(
        body.marker_id,
        ContentInput(
            type=ContentType.NEWS,
            title=summary.headline[:200],
            summary=summary.summary[:500],
            url=url,
            image_url=summary.image_url,
            style=NEWS_STYLE,
        )
    )
    logger.info("summary_saved", marker_id=body.marker_id, mock=summary.mock)

    return SummarizeAndSaveResponse(
        message="Article summarized and saved",
        data=SavedSummary(marker_id=body.marker_id, summary=summary, content=content)
    )


@router.post("/extract-metadata", response_model=MetadataResponse)
async def extract_metadata(body: MetadataRequest, summarizer: Summarizer = Depends(get_summarizer)):
    """Open Graph title, description and image of a page"""
    metadata = await summarizer.extract_metadata(str(body.url))
    return MetadataResponse(data=metadata)


@router.get("/status", response_model=SummarizerStatus)
async def status(summarizer: Summarizer = Depends(get_summarizer)):
    """Whether the Perplexity integration is configured"""
    return summarizer.status()
