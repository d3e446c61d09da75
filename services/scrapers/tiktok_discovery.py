"""
TikTok Trending Discovery
=========================
Pulls trending TikTok videos through the Apify ``clockworks/tiktok-scraper``
actor and normalises them into CandidateVideo records.

Failures are raised, not swallowed: without candidates there is no run.
"""
from typing import Any, Dict, List, Optional

import httpx
from loguru import logger

from .models import CandidateVideo, MediaMeta

APIFY_BASE_URL = "https://api.apify.com/v2"
DEFAULT_ACTOR = "clockworks/tiktok-scraper"
DEFAULT_HASHTAGS = ["viral", "trending", "fyp"]
ACTOR_TIMEOUT = 300.0


class TikTokTrendingScraper:
    """Discovery provider backed by an Apify actor run."""

    def __init__(
        self,
        api_token: str,
        actor_id: str = DEFAULT_ACTOR,
        hashtags: Optional[List[str]] = None,
        min_views: int = 10000,
        min_likes: int = 500,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.api_token = api_token
        self.actor_id = actor_id
        self.hashtags = hashtags or list(DEFAULT_HASHTAGS)
        self.min_views = min_views
        self.min_likes = min_likes
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=ACTOR_TIMEOUT)
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _run_actor(self, run_input: Dict[str, Any]) -> List[Dict[str, Any]]:
        actor_path = self.actor_id.replace("/", "~")
        response = await self._get_client().post(
            f"{APIFY_BASE_URL}/acts/{actor_path}/run-sync-get-dataset-items",
            headers={"Authorization": f"Bearer {self.api_token}"},
            json=run_input,
        )
        response.raise_for_status()
        items = response.json()
        if not isinstance(items, list):
            raise ValueError(f"Unexpected Apify response: {str(items)[:200]}")
        return items

    async def get_candidates(self, limit: int = 10) -> List[CandidateVideo]:
        """
        Fetch up to ``limit`` trending videos above the engagement bar,
        in the order the actor returned them.
        """
        logger.info(f"🔍 Fetching {limit} trending TikTok videos ({', '.join(self.hashtags)})")
        items = await self._run_actor({
            "hashtags": self.hashtags,
            "resultsPerPage": limit * 2,
            "maxItems": limit * 2,
            "shouldDownloadVideos": False,
            "shouldDownloadCovers": False,
        })

        candidates = []
        for item in items:
            if (item.get("playCount") or 0) < self.min_views or (item.get("diggCount") or 0) < self.min_likes:
                continue
            candidate = self._parse_video(item)
            if candidate:
                candidates.append(candidate)
            if len(candidates) >= limit:
                break

        logger.info(f"✅ {len(candidates)} candidates passed the engagement filter ({len(items)} scraped)")
        return candidates

    async def search_videos(self, keyword: str, limit: int = 10) -> List[CandidateVideo]:
        """Keyword search, no engagement filter."""
        logger.info(f"🔍 Searching TikTok for '{keyword}'")
        items = await self._run_actor({
            "searchQueries": [keyword],
            "resultsPerPage": limit,
            "maxItems": limit,
            "shouldDownloadVideos": False,
        })
        return [c for c in (self._parse_video(item) for item in items[:limit]) if c]

    def _parse_video(self, item: Dict[str, Any]) -> Optional[CandidateVideo]:
        video_id = item.get("id")
        if not video_id:
            return None

        author = item.get("authorMeta") or {}
        author_name = author.get("name") or "unknown"
        music = item.get("musicMeta") or {}
        meta = item.get("videoMeta") or {}

        return CandidateVideo(
            id=str(video_id),
            url=item.get("webVideoUrl") or f"https://www.tiktok.com/@{author_name}/video/{video_id}",
            text=item.get("text") or "",
            author=author_name,
            author_nickname=author.get("nickName") or "",
            hashtags=[tag.get("name") for tag in item.get("hashtags") or [] if tag.get("name")],
            views=item.get("playCount") or 0,
            likes=item.get("diggCount") or 0,
            shares=item.get("shareCount") or 0,
            comments=item.get("commentCount") or 0,
            music=music.get("musicName"),
            create_time=item.get("createTimeISO"),
            media_meta=MediaMeta(
                duration=meta.get("duration"),
                width=meta.get("width"),
                height=meta.get("height"),
            ),
        )
