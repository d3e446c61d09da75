"""
TikTok to Facebook Reel Autopilot - command line entry point.

    python main.py --run-once 3
    python main.py --start
    python main.py --stats
    python main.py --validate
"""
import argparse
import asyncio
import signal
import sys
from typing import List, Optional

import httpx
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError

from config.settings import Settings
from services.content_pipeline.text_utils import truncate
from services.dedup.store import VideoStore
from services.pipeline.reel_pipeline import ReelPipeline, RunSummary
from services.publishing.facebook_publisher import FacebookPublisher
from services.scheduler.pipeline_scheduler import PipelineScheduler
from shared.errors import AutopilotError
from shared.logging_config import setup_logging


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="TikTok to Facebook Reel Autopilot")
    group = parser.add_mutually_exclusive_group()
    group.add_argument(
        "--run-once", nargs="?", type=int, const=None, default=argparse.SUPPRESS, metavar="COUNT",
        help="Run the pipeline once (default: VIDEOS_PER_RUN)"
    )
    group.add_argument("--start", action="store_true", help="Start the scheduler for continuous operation")
    group.add_argument("--stats", action="store_true", help="Show upload statistics")
    group.add_argument("--validate", action="store_true", help="Validate configuration and Facebook token")
    return parser


async def run_once(settings: Settings, count: int) -> RunSummary:
    with VideoStore(settings.database_url) as store:
        pipeline = ReelPipeline.from_settings(settings, store)
        try:
            return await pipeline.run(count)
        finally:
            await pipeline.aclose()


async def run_scheduler(settings: Settings):
    with VideoStore(settings.database_url) as store:
        pipeline = ReelPipeline.from_settings(settings, store)
        scheduler = PipelineScheduler(
            pipeline,
            cron_expression=settings.schedule_interval,
            videos_per_run=settings.videos_per_run,
            run_on_start=settings.run_on_start,
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, scheduler.stop)

        scheduler.start()
        logger.info("Scheduler is running. Press Ctrl+C to stop.")
        try:
            await scheduler.wait()
        finally:
            await pipeline.aclose()


def show_stats(settings: Settings):
    with VideoStore(settings.database_url) as store:
        stats = store.stats()
        recent = store.recent(5)

    print("\n📊 Upload Statistics:")
    print(f"   Total processed: {stats['total']}")
    print(f"   Uploaded: {stats['uploaded']}")
    print(f"   Failed: {stats['failed']}")
    print(f"   Pending: {stats['pending'] + stats['ready']}")

    if recent:
        print("\n📹 Recent Uploads:")
        for i, record in enumerate(recent, 1):
            print(f"   {i}. {truncate(record.generated_title or 'Untitled', 60)}")
            print(f"      Uploaded: {record.uploaded_at}")


async def validate(settings: Settings) -> bool:
    settings.validate()
    print("✅ Configuration is valid")

    publisher = FacebookPublisher(
        page_id=settings.facebook_page_id,
        access_token=settings.facebook_access_token,
        api_version=settings.facebook_api_version,
        graph_url=settings.facebook_graph_url,
    )
    try:
        result = await publisher.validate_token()
    finally:
        await publisher.close()

    if result["valid"]:
        print(f"✅ Facebook token valid for {result['data'].get('name')}")
        return True
    print(f"❌ Facebook token invalid: {result['error']}")
    return False


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not (args.start or args.stats or args.validate or hasattr(args, "run_once")):
        parser.print_help()
        return 0

    settings = Settings.from_env()
    setup_logging(settings.log_level, settings.log_dir)

    print("\n🎬 TikTok to Facebook Autopilot System")
    print("=====================================\n")

    try:
        if args.stats:
            show_stats(settings)
            return 0

        if args.validate:
            return 0 if asyncio.run(validate(settings)) else 1

        settings.validate()

        if hasattr(args, "run_once"):
            count = args.run_once or settings.videos_per_run
            summary = asyncio.run(run_once(settings, count))
            print(f"\n✅ Processed {summary.processed}: {summary.successful} succeeded, {summary.failed} failed")
            return 0

        asyncio.run(run_scheduler(settings))
        return 0

    except (AutopilotError, httpx.HTTPError, SQLAlchemyError) as e:
        logger.error(f"❌ {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())
