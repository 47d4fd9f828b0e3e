#!/usr/bin/env python3
"""
Benchmark Script for PortalAR analytics ingestion

Posts batches to /api/analytics/batch and reports throughput. The analytics
limit (60 requests per minute per IP by default) applies, so raise
ANALYTICS_RATE_LIMIT_REQUESTS on the target before large runs.

Usage:
    python scripts/benchmark_ingestion.py [base_url] [total_events]
"""

import statistics
import sys
import time
from datetime import datetime, timedelta, timezone
from uuid import uuid4

import requests

BATCH_SIZE = 100  # server maximum


def generate_events(count: int, start_date: datetime, offset: int):
    """Generate test events across a handful of markers"""
    event_types = ["scan", "viewDuration", "click", "share"]
    events = []

    for i in range(offset, offset + count):
        event_type = event_types[i % len(event_types)]
        event = {
            "markerId": f"bench-marker-{i % 20:03d}",
            "eventType": event_type,
            "sessionId": str(uuid4()),
            "timestamp": (start_date + timedelta(seconds=i)).isoformat(),
            "metadata": {"benchmark": True, "index": i},
        }
        if event_type == "viewDuration":
            event["duration"] = float(i % 30 + 1)
        events.append(event)

    return events


def benchmark_ingestion(base_url: str, total_events: int = 10000):
    """Benchmark batch ingestion"""
    print(f"\n{'=' * 60}")
    print(f"BENCHMARK: Ingesting {total_events:,} events")
    print(f"{'=' * 60}")

    start_date = datetime.now(timezone.utc) - timedelta(days=1)

    total_recorded = 0
    rejected_batches = 0
    batch_times = []

    start_time = time.time()

    for i in range(0, total_events, BATCH_SIZE):
        batch_start = time.time()

        events = generate_events(min(BATCH_SIZE, total_events - i), start_date, i)

        try:
            response = requests.post(
                f"{base_url}/api/analytics/batch",
                json={"events": events},
                timeout=30
            )

            if response.status_code == 200:
                total_recorded += response.json().get("recorded", 0)
            else:
                rejected_batches += 1
                print(f"Error in batch {i // BATCH_SIZE}: Status {response.status_code}")

        except requests.RequestException as e:
            rejected_batches += 1
            print(f"Error in batch {i // BATCH_SIZE}: {e}")

        batch_time = time.time() - batch_start
        batch_times.append(batch_time)

        if (i // BATCH_SIZE) % 10 == 0:
            print(f"Progress: {i + len(events):,} / {total_events:,} events | "
                  f"Batch time: {batch_time:.2f}s")

    total_time = time.time() - start_time

    print(f"\n{'=' * 60}")
    print("INGESTION RESULTS")
    print(f"{'=' * 60}")
    print(f"Total events:        {total_events:,}")
    print(f"Recorded:            {total_recorded:,}")
    print(f"Rejected batches:    {rejected_batches:,}")
    print(f"Total time:          {total_time:.2f}s")
    print(f"Events/sec:          {total_events / total_time:,.0f}")
    print(f"Avg batch time:      {statistics.mean(batch_times):.3f}s")
    print(f"Min batch time:      {min(batch_times):.3f}s")
    print(f"Max batch time:      {max(batch_times):.3f}s")
    print(f"{'=' * 60}\n")

    return total_time


def main():
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    total_events = int(sys.argv[2]) if len(sys.argv) > 2 else 10000

    print("\n" + "=" * 60)
    print("PORTALAR API - INGESTION BENCHMARK")
    print("=" * 60)
    print(f"Target: {base_url}")
    print("=" * 60)

    # Test connection
    try:
        response = requests.get(f"{base_url}/health", timeout=5)
        if response.status_code != 200:
            print("Error: API is not healthy")
            sys.exit(1)
    except requests.RequestException as e:
        print(f"Error: Cannot connect to API: {e}")
        sys.exit(1)

    benchmark_ingestion(base_url, total_events=total_events)

    print("BENCHMARK COMPLETE")


if __name__ == "__main__":
    main()
