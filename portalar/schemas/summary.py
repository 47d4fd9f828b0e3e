# Schemas for the Perplexity summarization endpoints

from typing import Annotated, List, Optional

from pydantic import AnyHttpUrl, Field, UrlConstraints, model_validator

from portalar.schemas.base import CamelModel
from portalar.schemas.content import Content, MARKER_ID_PATTERN

# Saved into Content.url, which holds at most 2048 characters
ContentUrl = Annotated[AnyHttpUrl, UrlConstraints(max_length=2048)]


class SummaryRequest(CamelModel):
    """Either an article URL or a free-text topic"""

    url: Optional[AnyHttpUrl] = None
    query: Optional[str] = Field(default=None, min_length=3, max_length=500)
    max_length: int = Field(default=200, ge=50, le=1000)

    @model_validator(mode="after")
    def validate_source(self) -> "SummaryRequest":
        if not self.url and not self.query:
            raise ValueError("Either url or query must be provided")
        return self


class SummarizeAndSaveRequest(CamelModel):
    marker_id: str = Field(..., min_length=1, max_length=255, pattern=MARKER_ID_PATTERN)
    url: ContentUrl
    max_length: int = Field(default=200, ge=50, le=1000)


class MetadataRequest(CamelModel):
    url: AnyHttpUrl


class ArticleSummary(CamelModel):
    headline: str
    summary: str
    keywords: List[str] = Field(default_factory=list)
    read_time: str
    source: Optional[str] = None
    image_url: Optional[str] = None
    mock: bool = False


class PageMetadata(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    site_name: Optional[str] = None
    url: str


class SummaryEnvelope(CamelModel):
    success: bool = True
    data: ArticleSummary


class SavedSummary(CamelModel):
    marker_id: str
    summary: ArticleSummary
    content: Content


class SummarizeAndSaveResponse(CamelModel):
    success: bool = True
    message: str
    data: SavedSummary


class MetadataResponse(CamelModel):
    success: bool = True
    data: PageMetadata


class SummarizerStatus(CamelModel):
    success: bool = True
    configured: bool
    enabled: bool
    mock_mode: bool
    message: str
