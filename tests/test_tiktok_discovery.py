"""
Tests for Apify-backed TikTok discovery.
"""
import asyncio
import json

import httpx
import pytest

from services.scrapers.tiktok_discovery import TikTokTrendingScraper


def apify_item(video_id, views=50000, likes=2000, **extra):
    item = {
        "id": video_id,
        "text": f"caption {video_id}",
        "webVideoUrl": f"https://www.tiktok.com/@dancer/video/{video_id}",
        "authorMeta": {"name": "dancer", "nickName": "The Dancer"},
        "hashtags": [{"name": "dance"}, {"name": "fyp"}],
        "playCount": views,
        "diggCount": likes,
        "shareCount": 10,
        "commentCount": 5,
        "musicMeta": {"musicName": "original sound"},
        "videoMeta": {"duration": 15, "width": 720, "height": 1280},
        "createTimeISO": "2024-05-01T10:00:00.000Z",
    }
    item.update(extra)
    return item


def discover(items, limit, status_code=200, seen=None):
    def handler(request):
        if seen is not None:
            seen["path"] = request.url.path
            seen["auth"] = request.headers["authorization"]
            seen["body"] = json.loads(request.content)
        return httpx.Response(status_code, json=items)

    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            scraper = TikTokTrendingScraper("apify-token", client=client)
            return await scraper.get_candidates(limit)

    return asyncio.run(scenario())


def test_request_targets_actor_with_double_limit():
    """Apify gets the actor path, hashtags and twice the requested count."""
    seen = {}
    discover([], 3, seen=seen)

    assert seen["path"] == "/v2/acts/clockworks~tiktok-scraper/run-sync-get-dataset-items"
    assert seen["auth"] == "Bearer apify-token"
    assert seen["body"]["hashtags"] == ["viral", "trending", "fyp"]
    assert seen["body"]["maxItems"] == 6


def test_filters_low_engagement_and_keeps_order():
    """Low view or like counts are dropped without reordering."""
    items = [
        apify_item("1"),
        apify_item("2", views=500),
        apify_item("3", likes=10),
        apify_item("4"),
        apify_item("5"),
    ]
    candidates = discover(items, 2)
    assert [c.id for c in candidates] == ["1", "4"]


def test_maps_apify_fields():
    """Apify items map onto CandidateVideo fields."""
    candidate = discover([apify_item("1")], 1)[0]

    assert candidate.url == "https://www.tiktok.com/@dancer/video/1"
    assert candidate.author == "dancer"
    assert candidate.author_nickname == "The Dancer"
    assert candidate.hashtags == ["dance", "fyp"]
    assert candidate.views == 50000
    assert candidate.music == "original sound"
    assert candidate.media_meta.height == 1280


def test_builds_url_when_missing():
    candidate = discover([apify_item("42", webVideoUrl=None)], 1)[0]
    assert candidate.url == "https://www.tiktok.com/@dancer/video/42"


def test_http_failure_raises():
    """Apify HTTP errors propagate to the caller."""
    with pytest.raises(httpx.HTTPStatusError):
        discover({"error": "quota"}, 3, status_code=402)
