"""Scheduler for the daily Meme Day refresh."""

import asyncio
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .models import DailyEdition
from .orchestrator import PipelineOrchestrator
from .logger import get_logger


class Scheduler:
    """Runs the pipeline once a day at a fixed local time."""

    def __init__(self, pipeline: PipelineOrchestrator, run_time: str = "08:00", query: Optional[str] = None):
        """
        Initialize scheduler.

        Args:
            pipeline: Pipeline orchestrator instance
            run_time: Daily run time in HH:MM format (24-hour)
            query: Optional search query forwarded to every run
        """
        self.pipeline = pipeline
        self.run_time = run_time
        self.query = query
        self.logger = get_logger()

        try:
            hours, minutes = run_time.split(':')
            self.hours = int(hours)
            self.minutes = int(minutes)
        except ValueError:
            raise ValueError(f"Invalid run_time format: {run_time}. Use HH:MM format.")

        self.scheduler: Optional[AsyncIOScheduler] = None

    def start(self):
        """Start the scheduler (blocking)."""
        self.logger.info(f"Starting scheduler: edition will refresh daily at {self.run_time}")
        try:
            asyncio.run(self._serve())
        except (KeyboardInterrupt, SystemExit):
            self.logger.info("Received shutdown signal")

    async def _serve(self):
        # The scheduler must bind to the loop asyncio.run() created
        self.scheduler = AsyncIOScheduler(event_loop=asyncio.get_running_loop())
        self.scheduler.add_job(
            self._run_pipeline_wrapper,
            trigger=CronTrigger(hour=self.hours, minute=self.minutes),
            id='daily_meme_day',
            name='Daily Meme Day Edition',
            replace_existing=True
        )
        self.scheduler.start()
        self.logger.info("Scheduler started successfully")
        try:
            await asyncio.Event().wait()
        finally:
            self.stop()

    def stop(self):
        """Stop the scheduler."""
        if self.scheduler is None or not self.scheduler.running:
            return
        self.logger.info("Stopping scheduler")
        self.scheduler.shutdown(wait=False)
        self.logger.info("Scheduler stopped")

    async def run_once(self) -> DailyEdition:
        """Build the edition once immediately."""
        self.logger.info("Running pipeline once (manual execution)")
        return await self.pipeline.run_pipeline(self.query)

    async def _run_pipeline_wrapper(self):
        try:
            await self.pipeline.run_pipeline(self.query)
        except Exception as e:
            self.logger.error(f"Scheduled pipeline execution failed: {e}", exc_info=True)
