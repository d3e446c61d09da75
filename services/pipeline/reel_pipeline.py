"""
Reel Republishing Pipeline
==========================
One run: discover trending TikTok videos, drop the ones already seen,
then take each new video through download, caption generation and
Facebook publishing, strictly one at a time.

A failing item is marked failed and the run moves on. Discovery and
store errors end the run and propagate to the caller, including a store
error while recording a publish that already went through.
"""
import asyncio
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

from loguru import logger

from config.settings import Settings
from services.content_download.acquisition import AcquisitionChain
from services.content_pipeline.caption_generator import CaptionGenerator
from services.dedup.models import VideoStatus, hash_video_url
from services.dedup.store import VideoStore
from services.publishing.facebook_publisher import FacebookPublisher
from services.publishing.models import PublishResult
from services.scrapers.models import CandidateVideo
from services.scrapers.tiktok_discovery import TikTokTrendingScraper

ITEM_DELAY_SECONDS = 30.0
DISCOVERY_FACTOR = 2


@dataclass
class RunSummary:
    """Outcome of a single pipeline run."""
    requested: int
    discovered: int = 0
    processed: int = 0
    successful: int = 0
    failed: int = 0
    errors: List[Dict[str, str]] = field(default_factory=list)
    skipped: bool = False
    started_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    finished_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ReelPipeline:
    """Sequential TikTok to Facebook republishing run."""

    def __init__(
        self,
        store: VideoStore,
        discovery: TikTokTrendingScraper,
        acquisition: AcquisitionChain,
        generator: CaptionGenerator,
        publisher: FacebookPublisher,
        upload_mode: str = "reel",
        item_delay: float = ITEM_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.store = store
        self.discovery = discovery
        self.acquisition = acquisition
        self.generator = generator
        self.publisher = publisher
        self.upload_mode = upload_mode
        self.item_delay = item_delay
        self._sleep = sleep
        self.is_running = False
        self.last_summary: Optional[RunSummary] = None

    @classmethod
    def from_settings(cls, settings: Settings, store: VideoStore) -> "ReelPipeline":
        """Wire the production collaborators from settings."""
        return cls(
            store=store,
            discovery=TikTokTrendingScraper(
                api_token=settings.apify_api_token,
                hashtags=settings.tiktok_hashtags,
                min_views=settings.min_views,
                min_likes=settings.min_likes,
            ),
            acquisition=AcquisitionChain(settings.download_dir),
            generator=CaptionGenerator(
                api_key=settings.openai_api_key or None,
                model=settings.openai_model,
            ),
            publisher=FacebookPublisher(
                page_id=settings.facebook_page_id,
                access_token=settings.facebook_access_token,
                api_version=settings.facebook_api_version,
                graph_url=settings.facebook_graph_url,
            ),
            upload_mode=settings.upload_mode,
        )

    async def aclose(self):
        """Release HTTP clients held by collaborators."""
        await self.discovery.close()
        await self.acquisition.close()
        await self.generator.close()
        await self.publisher.close()

    async def run(self, count: int = 3) -> RunSummary:
        if self.is_running:
            logger.warning("⚠️  Pipeline already running, skipping this run")
            return RunSummary(requested=count, skipped=True, finished_at=datetime.now(timezone.utc).isoformat())

        self.is_running = True
        summary = RunSummary(requested=count)

        try:
            logger.info(f"🚀 Starting pipeline run for {count} videos")

            candidates = await self.discovery.get_candidates(count * DISCOVERY_FACTOR)
            summary.discovered = len(candidates)

            new_videos = self.select_new(candidates, count)
            logger.info(f"📋 {len(new_videos)} new videos to process ({len(candidates)} discovered)")

            for index, video in enumerate(new_videos):
                summary.processed += 1
                succeeded = await self._process_video(video, summary)
                remaining = index < len(new_videos) - 1
                if succeeded and remaining and self.item_delay > 0:
                    logger.info(f"⏳ Waiting {self.item_delay:.0f}s before next video")
                    await self._sleep(self.item_delay)

            summary.finished_at = datetime.now(timezone.utc).isoformat()
            logger.info(
                f"🏁 Pipeline run complete: {summary.successful} succeeded, "
                f"{summary.failed} failed of {summary.processed}"
            )
            self.last_summary = summary
            return summary

        finally:
            self.is_running = False

    def select_new(self, candidates: List[CandidateVideo], count: int) -> List[CandidateVideo]:
        """First ``count`` candidates not yet uploaded and not seen under another id."""
        selected = []
        for video in candidates:
            if len(selected) >= count:
                break
            if self.store.is_processed(video.id):
                logger.debug(f"Skipping {video.id}: already uploaded")
                continue
            record = self.store.get(video.id)
            if record is not None and record.status == VideoStatus.READY:
                # a run stopped between publish and mark_uploaded
                logger.warning(f"Skipping {video.id}: publish outcome unknown")
                continue
            if self.store.hash_exists(hash_video_url(video.url), exclude_id=video.id):
                logger.debug(f"Skipping {video.id}: same media already recorded")
                continue
            selected.append(video)
        return selected

    async def _process_video(self, video: CandidateVideo, summary: RunSummary) -> bool:
        video_path: Optional[Path] = None
        try:
            logger.info(f"🎬 Processing video {video.id} by @{video.author}")
            self.store.record_new(
                video.id,
                video.url,
                hash_video_url(video.url),
                title=video.text,
                description=video.text,
            )

            video_path = await self.acquisition.acquire(video.url, video.id)

            content = await self.generator.generate(video)
            self.store.set_generated_content(video.id, content.title, content.description)

            result = await self._publish(video_path, content.title, content.description)

        except Exception as e:
            logger.error(f"❌ Video {video.id} failed: {e}")
            self.store.mark_failed(video.id)
            summary.failed += 1
            summary.errors.append({"id": video.id, "error": str(e)})
            if video_path is not None:
                logger.info(f"Keeping {video_path.name} for inspection")
            return False

        # Published: from here a store error propagates and the item is never marked failed
        self.store.mark_uploaded(video.id, result.post_id)
        summary.successful += 1
        logger.info(f"✅ Video {video.id} published: {result.url}")

        video_path.unlink(missing_ok=True)
        return True

    async def _publish(self, video_path: Path, title: str, description: str) -> PublishResult:
        if self.upload_mode == "video":
            return await self.publisher.upload_video(video_path, title, description)
        return await self.publisher.upload_reel(video_path, description)
