from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from portalar.core.context import AppContext
from portalar.main import create_app
from portalar.services.auth import AuthGate


@pytest_asyncio.fixture
async def client_for(make_settings):
    """Client factory for tests that need non-default settings"""
    contexts = []

    async def _make(**overrides):
        ctx = AppContext.from_settings(make_settings(**overrides))
        await ctx.startup()
        contexts.append(ctx)
        return AsyncClient(transport=ASGITransport(app=create_app(context=ctx)), base_url="http://test")

    yield _make

    for ctx in contexts:
        await ctx.shutdown()


VIDEO = {
    "type": "video",
    "title": "Product X",
    "videoUrl": "https://cdn.example.com/x.mp4",
    "ctaText": "Shop Now",
    "ctaUrl": "https://example.com/x",
    "style": {"backgroundColor": "#000000", "textColor": "#ffffff", "accentColor": "#ff6b6b"},
}


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["database"] == "sqlite"
    assert "timestamp" in data


@pytest.mark.asyncio
async def test_root_lists_endpoints(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert response.json()["endpoints"]["health"] == "/health"

    response = await client.get("/api")
    assert response.status_code == 200
    assert response.json()["endpoints"]["content"] == "/api/content/:markerId"


@pytest.mark.asyncio
async def test_content_lifecycle(client, admin_headers):
    """Create → read publicly → replace → list → delete"""
    response = await client.get("/api/content/marker-ad-001")
    assert response.status_code == 404
    assert response.json()["error"] == "Not Found"

    response = await client.post("/api/content/marker-ad-001", json=VIDEO, headers=admin_headers)
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["data"]["markerId"] == "marker-ad-001"
    created_at = body["data"]["createdAt"]

    response = await client.get("/api/content/marker-ad-001")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["videoUrl"] == VIDEO["videoUrl"]
    assert data["style"]["accentColor"] == "#ff6b6b"

    response = await client.put(
        "/api/content/marker-ad-001",
        json={"type": "news", "title": "Now news"},
        headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["createdAt"] == created_at
    assert data["videoUrl"] is None

    response = await client.get("/api/content", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["count"] == 1

    response = await client.delete("/api/content/marker-ad-001", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["message"] == "Content deleted for marker: marker-ad-001"

    response = await client.delete("/api/content/marker-ad-001", headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_put_unknown_marker(client, admin_headers):
    response = await client.put("/api/content/nobody", json=VIDEO, headers=admin_headers)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_expired_content_is_gone(client, admin_headers):
    expired = (datetime.now(timezone.utc) - timedelta(hours=1)).isoformat()
    payload = {"type": "news", "title": "Yesterday", "expiresAt": expired}

    response = await client.post("/api/content/old-news", json=payload, headers=admin_headers)
    assert response.status_code == 200

    response = await client.get("/api/content/old-news")
    assert response.status_code == 410
    body = response.json()
    assert body["error"] == "Gone"
    assert "expiresAt" in body["details"]


@pytest.mark.asyncio
async def test_content_validation(client, admin_headers):
    response = await client.post(
        "/api/content/m1",
        json={"type": "video", "title": "No video"},
        headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "videoUrl is required for video content"

    response = await client.post(
        "/api/content/m1",
        json={"type": "news", "title": "x", "ctaText": "y" * 51},
        headers=admin_headers
    )
    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


@pytest.mark.asyncio
async def test_admin_routes_require_token(client):
    response = await client.get("/api/content")
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"

    response = await client.post("/api/content/m1", json=VIDEO, headers={"Authorization": "Bearer garbage"})
    assert response.status_code == 401

    response = await client.get("/api/analytics")
    assert response.status_code == 401

    response = await client.get("/api/perplexity/status")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_event_ingestion_and_query_flow(client, admin_headers):
    """Test complete flow: record events → query analytics"""
    events = [
        {"markerId": "m1", "eventType": "scan", "sessionId": "s1", "timestamp": "2024-02-01T10:00:00Z"},
        {"markerId": "m1", "eventType": "viewDuration", "sessionId": "s1", "duration": 5,
         "timestamp": "2024-02-01T10:00:05Z"},
        {"markerId": "m1", "eventType": "viewDuration", "sessionId": "s2", "duration": 15,
         "timestamp": "2024-02-01T11:00:00Z"},
        {"markerId": "m2", "eventType": "scan", "timestamp": "2024-02-01T12:00:00Z"},
    ]

    response = await client.post("/api/analytics/batch", json={"events": events})
    assert response.status_code == 200
    assert response.json()["recorded"] == 4

    response = await client.post(
        "/api/analytics",
        json={"markerId": "m1", "eventType": "click", "timestamp": "2024-02-01T12:30:00Z"},
        headers={"User-Agent": "ar-client/1.0"}
    )
    assert response.status_code == 200
    body = response.json()
    assert body["recorded"] is True
    assert body["eventId"]

    response = await client.get("/api/analytics/m1/summary", headers=admin_headers)
    assert response.status_code == 200
    summary = response.json()["data"]
    assert summary["totalScans"] == 1
    assert summary["totalClicks"] == 1
    assert summary["avgDuration"] == pytest.approx(10.0)
    assert summary["lastScan"].startswith("2024-02-01T10:00:00")

    response = await client.get(
        "/api/analytics/m1",
        params={"eventType": "viewDuration", "limit": 1},
        headers=admin_headers
    )
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["filters"]["eventType"] == "viewDuration"
    assert body["data"][0]["duration"] == 15

    response = await client.get(
        "/api/analytics/m1",
        params={"startDate": "2024-02-01T12:00:00Z"},
        headers=admin_headers
    )
    events = response.json()["data"]
    assert [e["eventType"] for e in events] == ["click"]
    assert events[0]["userAgent"] == "ar-client/1.0"

    response = await client.get("/api/analytics", headers=admin_headers)
    assert response.status_code == 200
    summaries = response.json()["data"]
    assert [s["markerId"] for s in summaries] == ["m1", "m2"]


@pytest.mark.asyncio
async def test_event_validation_errors(client, admin_headers):
    """Test input validation"""
    response = await client.post("/api/analytics", json={"markerId": "m1", "eventType": "viewDuration"})
    assert response.status_code == 400

    response = await client.post("/api/analytics", json={"markerId": "m1", "eventType": "hover"})
    assert response.status_code == 400

    response = await client.post("/api/analytics/batch", json={"events": []})
    assert response.status_code == 400

    response = await client.get("/api/analytics/m1", params={"limit": 0}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.get("/api/analytics/m1", params={"startDate": "yesterday"}, headers=admin_headers)
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_batch_size_limit(client):
    """Batches are limited to 100 events"""
    events = [{"markerId": "m1", "eventType": "scan"} for _ in range(101)]

    response = await client.post("/api/analytics/batch", json={"events": events})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_login_and_verify(client, admin_password):
    response = await client.post("/api/auth/login", json={"password": admin_password})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["expiresIn"] == 86400
    assert body["user"] == {"username": "admin", "role": "admin"}

    response = await client.get("/api/auth/verify", headers={"Authorization": f"Bearer {body['token']}"})
    assert response.status_code == 200
    assert response.json()["valid"] is True

    response = await client.get("/api/auth/verify")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_login_rate_limit(client, admin_password):
    for _ in range(5):
        response = await client.post("/api/auth/login", json={"password": "wrong"})
        assert response.status_code == 401

    # Blocked even with the right password once the limit is reached
    response = await client.post("/api/auth/login", json={"password": admin_password})
    assert response.status_code == 429
    assert response.headers["Retry-After"] == "900"


@pytest.mark.asyncio
async def test_successful_logins_do_not_count(client, admin_password):
    for _ in range(6):
        response = await client.post("/api/auth/login", json={"password": admin_password})
        assert response.status_code == 200


@pytest.mark.asyncio
async def test_analytics_rate_limit(client_for):
    async with await client_for(analytics_rate_limit_requests=2) as client:
        for _ in range(2):
            response = await client.post("/api/analytics", json={"markerId": "m1", "eventType": "scan"})
            assert response.status_code == 200

        response = await client.post("/api/analytics", json={"markerId": "m1", "eventType": "scan"})
        assert response.status_code == 429
        assert response.json()["details"]["retryAfter"] == 60


@pytest.mark.asyncio
async def test_rate_limit_headers(client):
    """Test that rate limit headers are present"""
    response = await client.get("/api/content/anything")

    assert response.headers["X-RateLimit-Limit"] == "100"
    assert response.headers["X-RateLimit-Remaining"] == "99"
    assert "X-RateLimit-Reset" in response.headers


@pytest.mark.asyncio
async def test_general_rate_limit(client_for):
    async with await client_for(rate_limit_requests=2) as client:
        assert (await client.get("/api/content/a")).status_code == 404
        assert (await client.get("/api/content/b")).status_code == 404

        response = await client.get("/api/content/c")
        assert response.status_code == 429
        assert response.json()["error"] == "Too Many Requests"

        # Health stays reachable
        assert (await client.get("/health")).status_code == 200


@pytest.mark.asyncio
async def test_unknown_route(client):
    response = await client.get("/api/nothing-here")
    assert response.status_code == 404
    assert response.json()["message"] == "Route GET /api/nothing-here does not exist"


@pytest.mark.asyncio
async def test_perplexity_mock_flow(client, admin_headers):
    response = await client.get("/api/perplexity/status", headers=admin_headers)
    assert response.status_code == 200
    assert response.json()["configured"] is False

    response = await client.post(
        "/api/perplexity/summary",
        json={"url": "https://www.example.com/story"},
        headers=admin_headers
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["mock"] is True
    assert data["headline"] == "Breaking News from example.com"

    response = await client.post("/api/perplexity/summary", json={}, headers=admin_headers)
    assert response.status_code == 400

    response = await client.post(
        "/api/perplexity/summarize-and-save",
        json={"markerId": "marker-news-001", "url": "https://www.example.com/story"},
        headers=admin_headers
    )
    assert response.status_code == 200
    saved = response.json()["data"]
    assert saved["content"]["type"] == "news"

    response = await client.get("/api/content/marker-news-001")
    assert response.status_code == 200
    content = response.json()["data"]
    assert content["title"] == "Breaking News from example.com"
    assert content["url"] == "https://www.example.com/story"
    assert content["style"]["accentColor"] == "#00ff88"


@pytest.mark.asyncio
async def test_summarize_and_save_rejects_overlong_url(client, admin_headers):
    response = await client.post(
        "/api/perplexity/summarize-and-save",
        json={"markerId": "marker-news-002", "url": "https://example.com/" + "a" * 2100},
        headers=admin_headers
    )
    assert response.status_code == 400

    response = await client.get("/api/content/marker-news-002")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_perplexity_disabled(client_for, settings):
    token = AuthGate(settings).issue_token()
    async with await client_for(enable_perplexity=False) as client:
        response = await client.post(
            "/api/perplexity/summary",
            json={"query": "space travel"},
            headers={"Authorization": f"Bearer {token}"}
        )
        assert response.status_code == 503
