"""
Perplexity summarization client.

Turns article URLs or free-text topics into short AR-friendly summaries.
Every call goes through :meth:`Summarizer._complete`, which owns the request
timeout; when the API key is missing, mock mode is on, or the provider fails
in any way, callers get a deterministic placeholder flagged ``mock=True``
instead of an error.
"""

import json
import math
import re
from typing import Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup
import httpx
import structlog

from portalar.core.config import Settings
from portalar.schemas.summary import ArticleSummary, PageMetadata, SummarizerStatus

logger = structlog.get_logger()

USER_AGENT = "Mozilla/5.0 (compatible; PortalAR/1.0)"
METADATA_TIMEOUT = 10.0  # seconds
WORDS_PER_MINUTE = 200
HEADLINE_LENGTH = 60

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that summarizes articles for AR display. "
    "Keep responses concise and engaging."
)
CONTENT_SYSTEM_PROMPT = "You are a helpful assistant that creates engaging AR content summaries."

_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


def extract_domain(url: str) -> str:
    host = urlparse(url).hostname
    if not host:
        return "Unknown Source"
    return host[4:] if host.startswith("www.") else host


def estimate_read_time(text: Optional[str]) -> str:
    words = len((text or "").split())
    return f"{max(1, math.ceil(words / WORDS_PER_MINUTE))} min"


def mock_summary(url: str) -> ArticleSummary:
    """Placeholder summary derived from the article's domain"""
    return ArticleSummary(
        headline=f"Breaking News from {extract_domain(url)}",
        summary=(
            "This is a mock summary generated for demonstration purposes. In production, "
            "this would contain actual article content extracted via Perplexity AI."
        ),
        keywords=["technology", "innovation", "news"],
        read_time="3 min",
        source=url,
        mock=True,
    )


def mock_content(query: str) -> ArticleSummary:
    return ArticleSummary(
        headline=f"{query} - Latest Updates",
        summary=(
            f"Mock content about {query}. This demonstrates the AR experience without requiring "
            "an API key. Enable Perplexity integration to get real-time summaries."
        ),
        keywords=query.split()[:3],
        read_time="2 min",
        mock=True,
    )


def parse_reply(content: str, max_length: int, default_headline: str) -> dict:
    """Read the model's JSON answer, falling back to headline-then-body text"""
    try:
        parsed = json.loads(_FENCE.sub("", content.strip()))
        if not isinstance(parsed, dict):
            raise ValueError("reply is not an object")
    except ValueError:
        lines = [line.strip() for line in content.splitlines() if line.strip()]
        return {
            "headline": lines[0][:HEADLINE_LENGTH] if lines else default_headline,
            "summary": " ".join(lines[1:])[:max_length],
            "keywords": [],
            "read_time": estimate_read_time(content),
        }

    summary = parsed.get("summary") or content[:max_length]
    keywords = parsed.get("keywords") or []
    return {
        "headline": str(parsed.get("headline") or default_headline),
        "summary": str(summary)[:max_length],
        "keywords": [str(k) for k in keywords] if isinstance(keywords, list) else [],
        "read_time": str(parsed.get("readTime") or estimate_read_time(str(summary))),
    }


class Summarizer:
    """Perplexity chat-completions wrapper with a mock fallback"""

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._client = client or httpx.AsyncClient(
            timeout=settings.perplexity_timeout,
            headers={"User-Agent": USER_AGENT}
        )

    @property
    def enabled(self) -> bool:
        return self.settings.enable_perplexity

    @property
    def mock_mode(self) -> bool:
        return self.settings.perplexity_mock_mode or not self.settings.summarizer_configured

    def status(self) -> SummarizerStatus:
        configured = self.settings.summarizer_configured
        if not configured:
            message = "Perplexity API key not configured"
        elif self.settings.perplexity_mock_mode:
            message = "Running in mock mode (set PERPLEXITY_MOCK_MODE=false to use real API)"
        else:
            message = "Perplexity integration active"

        return SummarizerStatus(
            configured=configured,
            enabled=self.enabled,
            mock_mode=self.settings.perplexity_mock_mode,
            message=message,
        )

    async def summarize(self, url: str, max_length: int = 200) -> ArticleSummary:
        """Summarize the article at `url`"""
        if self.mock_mode:
            return mock_summary(url)

        prompt = f"""
Please analyze the article at this URL: {url}

Provide:
1. A concise headline (max {HEADLINE_LENGTH} characters)
2. A brief summary (max {max_length} characters)
3. 3-5 relevant keywords

Format your response as JSON:
{{
  "headline": "...",
  "summary": "...",
  "keywords": ["...", "..."],
  "readTime": "X min"
}}
"""
        content = await self._complete(
            SUMMARY_SYSTEM_PROMPT,
            prompt,
            max_tokens=500,
            temperature=0.2,
            search_domain_filter=[extract_domain(url)]
        )
        if content is None:
            return mock_summary(url)

        return ArticleSummary(
            **parse_reply(content, max_length, "Article Summary"),
            source=url,
        )

    async def generate(self, query: str, max_length: int = 200) -> ArticleSummary:
        """Write a short piece about a topic"""
        if self.mock_mode:
            return mock_content(query)

        prompt = f"""
Topic: {query}

Provide a concise, engaging summary suitable for AR display:
1. A catchy headline (max {HEADLINE_LENGTH} characters)
2. A brief description (max {max_length} characters)
3. 3-5 relevant keywords

Format as JSON:
{{
  "headline": "...",
  "summary": "...",
  "keywords": ["..."]
}}
"""
        content = await self._complete(CONTENT_SYSTEM_PROMPT, prompt, max_tokens=400, temperature=0.7)
        if content is None:
            return mock_content(query)

        return ArticleSummary(**parse_reply(content, max_length, query))

    async def extract_metadata(self, url: str) -> PageMetadata:
        """Open Graph preview of a page"""
        try:
            response = await self._client.get(url, timeout=METADATA_TIMEOUT, follow_redirects=True)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("metadata_extraction_failed", url=url, error=str(e))
            return PageMetadata(
                title="Article",
                description="Unable to extract metadata",
                site_name=extract_domain(url),
                url=url,
            )

        soup = BeautifulSoup(response.text, "html.parser")

        def meta(name: str) -> Optional[str]:
            tag = soup.find("meta", attrs={"property": f"og:{name}"}) or soup.find("meta", attrs={"name": name})
            return tag.get("content") if tag else None

        title = meta("title") or (soup.title.string if soup.title else None)
        description = meta("description")

        return PageMetadata(
            title=title[:200] if title else None,
            description=description[:500] if description else None,
            image_url=meta("image"),
            site_name=meta("site_name"),
            url=url,
        )

    async def _complete(self, system: str, prompt: str, **options) -> Optional[str]:
        """
        Run one chat completion.

        Returns:
            The reply text, or None when the provider failed or timed out
        """
        payload = {
            "model": self.settings.perplexity_model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "top_p": 0.9,
            "return_images": False,
            "return_related_questions": False,
            **options,
        }

        try:
            response = await self._client.post(
                self.settings.perplexity_api_url,
                json=payload,
                headers={"Authorization": f"Bearer {self.settings.perplexity_api_key}"},
                timeout=self.settings.perplexity_timeout
            )
            response.raise_for_status()
            content = response.json()["choices"][0]["message"]["content"]
        except httpx.TimeoutException:
            logger.warning("perplexity_timeout", timeout=self.settings.perplexity_timeout)
            return None
        except httpx.HTTPStatusError as e:
            logger.warning("perplexity_api_error", status_code=e.response.status_code)
            return None
        except (httpx.HTTPError, ValueError, KeyError, IndexError, TypeError) as e:
            logger.warning("perplexity_request_failed", error=str(e))
            return None

        if not content or not str(content).strip():
            logger.warning("perplexity_empty_reply")
            return None
        return str(content)

    async def aclose(self) -> None:
        await self._client.aclose()
