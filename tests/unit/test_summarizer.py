import json

import httpx
import pytest

from portalar.services.summarizer import Summarizer, estimate_read_time, extract_domain, parse_reply


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def summarizer_with(settings, handler):
    return Summarizer(settings, client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


@pytest.fixture
def live_settings(make_settings):
    return make_settings(perplexity_api_key="pplx-test-key")


def test_extract_domain():
    assert extract_domain("https://www.example.com/news/1") == "example.com"
    assert extract_domain("https://news.example.org") == "news.example.org"
    assert extract_domain("not a url") == "Unknown Source"


def test_estimate_read_time():
    assert estimate_read_time("") == "1 min"
    assert estimate_read_time("word " * 450) == "3 min"


def test_parse_reply_plain_text_fallback():
    parsed = parse_reply("Big News Today\nFirst line.\nSecond line.", 200, "Article Summary")

    assert parsed["headline"] == "Big News Today"
    assert parsed["summary"] == "First line. Second line."
    assert parsed["keywords"] == []


@pytest.mark.asyncio
async def test_mock_mode_without_api_key(settings):
    def handler(request):
        raise AssertionError("no request expected in mock mode")

    summarizer = summarizer_with(settings, handler)

    summary = await summarizer.summarize("https://www.example.com/story")
    assert summary.mock is True
    assert summary.headline == "Breaking News from example.com"
    assert summary.source == "https://www.example.com/story"

    generated = await summarizer.generate("solar power")
    assert generated.mock is True
    assert generated.headline == "solar power - Latest Updates"

    await summarizer.aclose()


@pytest.mark.asyncio
async def test_summarize_parses_fenced_json(live_settings):
    seen = {}

    def handler(request):
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        reply = {"headline": "Rates Cut", "summary": "A" * 300, "keywords": ["economy", "rates"], "readTime": "2 min"}
        return completion(f"```json\n{json.dumps(reply)}\n```")

    summarizer = summarizer_with(live_settings, handler)
    summary = await summarizer.summarize("https://www.example.com/rates", max_length=100)

    assert summary.mock is False
    assert summary.headline == "Rates Cut"
    assert len(summary.summary) == 100
    assert summary.keywords == ["economy", "rates"]
    assert summary.read_time == "2 min"
    assert seen["auth"] == "Bearer pplx-test-key"
    assert seen["body"]["model"] == live_settings.perplexity_model
    assert seen["body"]["search_domain_filter"] == ["example.com"]

    await summarizer.aclose()


@pytest.mark.asyncio
async def test_provider_error_falls_back_to_mock(live_settings):
    summarizer = summarizer_with(live_settings, lambda request: httpx.Response(500, json={"error": "boom"}))

    summary = await summarizer.summarize("https://example.com/a")
    assert summary.mock is True

    await summarizer.aclose()


@pytest.mark.asyncio
async def test_timeout_falls_back_to_mock(live_settings):
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    summarizer = summarizer_with(live_settings, handler)

    generated = await summarizer.generate("quantum computing")
    assert generated.mock is True

    await summarizer.aclose()


@pytest.mark.asyncio
async def test_empty_reply_falls_back_to_mock(live_settings):
    summarizer = summarizer_with(live_settings, lambda request: completion("   "))

    summary = await summarizer.summarize("https://example.com/a")
    assert summary.mock is True

    await summarizer.aclose()


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    {"headline": 2024, "summary": "S"},
    {"headline": "H", "summary": "S", "readTime": 3},
    {"headline": "H", "summary": 42, "keywords": [1, 2]},
])
async def test_non_string_json_fields_are_coerced(live_settings, reply):
    summarizer = summarizer_with(live_settings, lambda request: completion(json.dumps(reply)))

    summary = await summarizer.summarize("https://example.com/a")
    generated = await summarizer.generate("elections")

    assert summary.mock is False
    assert summary.headline == str(reply["headline"])
    assert summary.summary == str(reply["summary"])
    assert isinstance(summary.read_time, str)
    assert generated.headline == str(reply["headline"])

    await summarizer.aclose()


@pytest.mark.asyncio
async def test_extract_metadata_reads_open_graph(settings):
    html = """
    <html><head>
      <title>Fallback title</title>
      <meta property="og:title" content="OG Title">
      <meta property="og:description" content="OG description">
      <meta property="og:image" content="https://example.com/cover.jpg">
      <meta property="og:site_name" content="Example News">
    </head><body></body></html>
    """
    summarizer = summarizer_with(settings, lambda request: httpx.Response(200, text=html))

    metadata = await summarizer.extract_metadata("https://example.com/story")

    assert metadata.title == "OG Title"
    assert metadata.description == "OG description"
    assert metadata.image_url == "https://example.com/cover.jpg"
    assert metadata.site_name == "Example News"

    await summarizer.aclose()


@pytest.mark.asyncio
async def test_extract_metadata_unreachable_page(settings):
    summarizer = summarizer_with(settings, lambda request: httpx.Response(404))

    metadata = await summarizer.extract_metadata("https://www.example.com/gone")

    assert metadata.title == "Article"
    assert metadata.site_name == "example.com"

    await summarizer.aclose()


def test_status_messages(make_settings):
    assert Summarizer(make_settings()).status().configured is False

    mock = Summarizer(make_settings(perplexity_api_key="k", perplexity_mock_mode=True)).status()
    assert mock.configured is True
    assert mock.mock_mode is True

    live = Summarizer(make_settings(perplexity_api_key="k")).status()
    assert live.message == "Perplexity integration active"
