"""
Pipeline Scheduler
==================
Fires the republishing pipeline on a cron-style interval inside the
running event loop.

A trigger that arrives while a run is still in flight is skipped, not
queued. Stopping the scheduler prevents further triggers but lets an
in-flight run finish.
"""
import asyncio
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from loguru import logger

from config.settings import DEFAULT_SCHEDULE, DEFAULT_VIDEOS_PER_RUN
from services.pipeline.reel_pipeline import ReelPipeline, RunSummary

from .cron import CronSchedule


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PipelineScheduler:

    def __init__(
        self,
        pipeline: ReelPipeline,
        cron_expression: str = DEFAULT_SCHEDULE,
        videos_per_run: int = DEFAULT_VIDEOS_PER_RUN,
        run_on_start: bool = False,
        clock: Callable[[], datetime] = utc_now
    ):
        self.pipeline = pipeline
        self.schedule = CronSchedule.parse(cron_expression)
        self.videos_per_run = videos_per_run
        self.run_on_start = run_on_start
        self._clock = clock
        self._task: Optional[asyncio.Task] = None
        self._run_task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self.next_run_at: Optional[datetime] = None
        self.last_summary: Optional[RunSummary] = None
        self.last_error: Optional[str] = None

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def run_in_flight(self) -> bool:
        return self.pipeline.is_running or (self._run_task is not None and not self._run_task.done())

    def start(self):
        """Begin scheduling. Must be called from within a running event loop."""
        if self.is_scheduled:
            logger.warning("Scheduler already started")
            return

        self._stop_event = asyncio.Event()
        logger.info(
            f"⏰ Starting scheduler: {self.schedule.description} "
            f"({self.schedule.expression}), {self.videos_per_run} videos per run"
        )
        if self.run_on_start:
            logger.info("Running pipeline immediately on start...")
            self.trigger()
        self._task = asyncio.create_task(self._loop())

    def stop(self):
        if self._stop_event is not None:
            self._stop_event.set()
        if self._task is not None:
            logger.info("🛑 Scheduler stopped")
        self.next_run_at = None

    async def wait(self):
        """Block until the scheduler loop exits and any in-flight run is done."""
        if self._task is not None:
            await self._task
            self._task = None
        if self._run_task is not None:
            await self._run_task

    def trigger(self) -> bool:
        """Start a run now unless one is in flight. Returns whether it started."""
        if self.run_in_flight:
            logger.warning("⚠️  Previous pipeline still running, skipping this run")
            return False
        self._run_task = asyncio.create_task(self._run_pipeline())
        return True

    async def _loop(self):
        while not self._stop_event.is_set():
            now = self._clock()
            self.next_run_at = self.schedule.next_after(now)
            delay = (self.next_run_at - now).total_seconds()
            logger.debug(f"Next pipeline run at {self.next_run_at.isoformat()}")

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                self.trigger()

    async def _run_pipeline(self):
        try:
            logger.info("Scheduled pipeline starting...")
            self.last_summary = await self.pipeline.run(self.videos_per_run)
            self.last_error = None
            logger.info("Scheduled pipeline completed")
        except Exception as e:
            self.last_error = str(e)
            logger.error(f"❌ Scheduled pipeline failed: {e}")

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.run_in_flight,
            "scheduled": self.is_scheduled,
            "cron_expression": self.schedule.expression,
            "description": self.schedule.description,
            "videos_per_run": self.videos_per_run,
            "next_run_at": self.next_run_at.isoformat() if self.next_run_at else None,
            "last_summary": self.last_summary.to_dict() if self.last_summary else None,
            "last_error": self.last_error,
        }
