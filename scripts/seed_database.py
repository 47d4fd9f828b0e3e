#!/usr/bin/env python3
"""
Seed Script for PortalAR

Loads demo marker content and a week of sample analytics into the
configured storage backend (DATABASE_TYPE).

Usage:
    python scripts/seed_database.py [--no-analytics]
"""

import asyncio
import random
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path to import portalar modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from portalar.core.config import Settings
from portalar.schemas.content import ContentInput
from portalar.schemas.event import EventInput, EventType
from portalar.storage.facade import build_storage

USER_AGENTS = [
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_2 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148 Safari/604.1",
    "Mozilla/5.0 (Linux; Android 14; Pixel 8) AppleWebKit/537.36 Chrome/120.0 Mobile Safari/537.36",
    "Mozilla/5.0 (iPad; CPU OS 17_2 like Mac OS X) AppleWebKit/605.1.15 Mobile/15E148 Safari/604.1",
]

SEED_CONTENT = {
    "marker-news-001": {
        "type": "news",
        "title": "AI Revolutionizes Healthcare Diagnostics",
        "summary": "New artificial intelligence models can detect diseases up to 5 years earlier "
                   "than traditional methods, with 95% accuracy in clinical trials.",
        "url": "https://example.com/ai-healthcare-breakthrough",
        "imageUrl": "https://images.unsplash.com/photo-1576091160399-112ba8d25d1d?w=800",
        "ctaText": "Read Full Article",
        "ctaUrl": "https://example.com/ai-healthcare-breakthrough",
        "style": {"backgroundColor": "#1a1a2e", "textColor": "#ffffff", "accentColor": "#16c79a"},
    },
    "marker-ad-001": {
        "type": "video",
        "title": "Introducing the New Product X",
        "videoUrl": "https://commondatastorage.googleapis.com/gtv-videos-bucket/sample/ForBiggerBlazes.mp4",
        "posterUrl": "https://images.unsplash.com/photo-1505740420928-5e560c06d30e?w=800",
        "ctaText": "Shop Now",
        "ctaUrl": "https://example.com/product-x",
        "style": {"backgroundColor": "#000000", "textColor": "#ffffff", "accentColor": "#ff6b6b"},
    },
    "marker-3d-001": {
        "type": "3d",
        "title": "3D Product Visualization",
        "summary": "Interactive 3D model. Rotate and zoom with touch gestures.",
        "modelUrl": "/assets/models/sample-product.glb",
        "ctaText": "View Details",
        "ctaUrl": "https://example.com/product-details",
        "style": {"backgroundColor": "#2c3e50", "textColor": "#ecf0f1", "accentColor": "#3498db"},
    },
    "demo-marker-001": {
        "type": "news",
        "title": "Welcome to PortalAR!",
        "summary": "Point your camera at this marker to see dynamic AR content. This demo shows "
                   "how printed QR codes can display real-time information.",
        "imageUrl": "https://images.unsplash.com/photo-1633356122544-f134324a6cee?w=800",
        "ctaText": "Learn More",
        "style": {"backgroundColor": "#667eea", "textColor": "#ffffff", "accentColor": "#f093fb"},
    },
}

# marker_id -> (scans, clicks, average view duration in seconds)
SEED_ANALYTICS = {
    "marker-news-001": (145, 87, 12.5),
    "marker-ad-001": (203, 156, 8.3),
    "marker-3d-001": (98, 45, 15.7),
    "demo-marker-001": (67, 32, 9.2),
}


def generate_events(marker_id: str, scans: int, clicks: int, avg_duration: float) -> list[EventInput]:
    """Scans spread over the last 7 days, most followed by a view and some by a click"""
    now = datetime.now(timezone.utc)
    events = []

    for i in range(scans):
        timestamp = now - timedelta(days=random.randrange(7), hours=random.randrange(24))
        session_id = f"session-{i}-{random.getrandbits(32):08x}"
        common = {
            "marker_id": marker_id,
            "session_id": session_id,
            "user_agent": random.choice(USER_AGENTS),
            "ip_address": f"192.168.1.{random.randrange(255)}",
        }

        events.append(EventInput(event_type=EventType.SCAN, timestamp=timestamp, **common))

        if random.random() > 0.3:
            duration = max(1.0, avg_duration + (random.random() - 0.5) * 10)
            events.append(EventInput(
                event_type=EventType.VIEW_DURATION,
                timestamp=timestamp + timedelta(seconds=duration),
                duration=round(duration, 2),
                **common
            ))

        if i < clicks:
            events.append(EventInput(
                event_type=EventType.CLICK,
                timestamp=timestamp + timedelta(seconds=random.randrange(5, 30)),
                **common
            ))

    return events


async def seed(with_analytics: bool = True) -> None:
    settings = Settings()
    storage = build_storage(settings)

    print(f"Seeding {settings.database_type} storage")
    await storage.initialize()

    try:
        for marker_id, data in SEED_CONTENT.items():
            await storage.set_content(marker_id, ContentInput.model_validate(data))
            print(f"  content: {marker_id}")

        if with_analytics:
            total = 0
            for marker_id, (scans, clicks, avg_duration) in SEED_ANALYTICS.items():
                events = generate_events(marker_id, scans, clicks, avg_duration)
                for i in range(0, len(events), 100):
                    await storage.record_analytics_events(events[i:i + 100])
                total += len(events)
                print(f"  analytics: {marker_id} ({len(events)} events)")
            print(f"Inserted {total:,} analytics events")
    finally:
        await storage.close()

    print("Seed complete")


def main():
    asyncio.run(seed(with_analytics="--no-analytics" not in sys.argv[1:]))


if __name__ == "__main__":
    main()
