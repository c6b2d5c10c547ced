"""Demo stream server tests."""

import json

import pytest
from fastapi.testclient import TestClient

from realtime_eventsource.server.dummy_data import numbered_feed, resume_after
from realtime_eventsource.server.main import app


def test_resume_after_continues_from_numeric_id():
    assert resume_after(None) == 1
    assert resume_after("") == 1
    assert resume_after("41") == 42
    assert resume_after("not-a-number") == 1


@pytest.mark.asyncio
async def test_numbered_feed_starts_with_retry_hint_and_counts_up():
    items = [item async for item in numbered_feed(start=5, limit=3, interval_s=0, retry_ms=2000)]

    assert items[0]["retry"] == 2000
    assert "data" not in items[0]
    assert [item["id"] for item in items[1:]] == ["5", "6", "7"]
    assert {item["event"] for item in items[1:]} <= {"message", "metric", "notification"}
    for item in items[1:]:
        assert "generated_at" in json.loads(item["data"])


@pytest.mark.asyncio
async def test_numbered_feed_without_retry_hint():
    items = [item async for item in numbered_feed(limit=2, interval_s=0)]

    assert [item["id"] for item in items] == ["1", "2"]


def test_healthz():
    with TestClient(app) as client:
        response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
