"""
Daily evaluation scheduler.

One cron job per day (SCHEDULE_HOUR:SCHEDULE_MINUTE in SCHEDULE_TIMEZONE)
triggers a pipeline run through the runner, so a scheduled run and a manual
API trigger can never overlap.

Scheduler: APScheduler (AsyncIOScheduler)
"""
import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from game_evaluator.core.config import settings
from game_evaluator.services.pipeline.run_guard import PipelineRunner, RunStatus, get_runner

logger = logging.getLogger(__name__)

DAILY_EVALUATION_JOB_ID = "daily_evaluation"


class EvaluationScheduler:
    """Owns the AsyncIOScheduler and its jobs."""

    def __init__(self, runner: Optional[PipelineRunner] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.runner = runner
        self.running = False

    async def start(self):
        """Start the scheduler."""
        if self.running:
            logger.warning("Scheduler already running")
            return

        logger.info("Starting evaluation scheduler...")

        self.scheduler = AsyncIOScheduler(
            timezone=settings.SCHEDULE_TIMEZONE,
            job_defaults={
                'coalesce': True,  # Combine missed runs into one
                'max_instances': 1,
                'misfire_grace_time': 3600
            }
        )

        self._schedule_daily_evaluation()

        self.scheduler.start()
        self.running = True
        self._log_scheduled_jobs()

    async def stop(self):
        """Stop the scheduler."""
        if not self.running:
            return

        logger.info("Stopping evaluation scheduler...")
        self.scheduler.shutdown(wait=False)
        self.running = False

    def _schedule_daily_evaluation(self):
        trigger = CronTrigger(
            hour=settings.SCHEDULE_HOUR,
            minute=settings.SCHEDULE_MINUTE,
            timezone=settings.SCHEDULE_TIMEZONE
        )

        async def daily_evaluation():
            runner = self.runner or get_runner()
            status = runner.start_run()
            if status == RunStatus.ALREADY_RUNNING:
                logger.warning("Skipping scheduled evaluation: a run is already in progress")
            else:
                logger.info("Scheduled evaluation run started")

        self.scheduler.add_job(
            daily_evaluation,
            trigger=trigger,
            id=DAILY_EVALUATION_JOB_ID,
            name="Daily game evaluation",
            replace_existing=True
        )

    def _log_scheduled_jobs(self):
        for job in self.scheduler.get_jobs():
            logger.info(f"Scheduled job: {job.name} ({job.id}), next run: {job.next_run_time}")


_scheduler: Optional[EvaluationScheduler] = None


async def start_scheduler() -> EvaluationScheduler:
    """Start the global scheduler."""
    global _scheduler
    if _scheduler is None:
        _scheduler = EvaluationScheduler()
        await _scheduler.start()
    return _scheduler


async def stop_scheduler():
    """Stop the global scheduler."""
    global _scheduler
    if _scheduler is not None:
        await _scheduler.stop()
        _scheduler = None


def get_scheduler() -> Optional[EvaluationScheduler]:
    """Get the global scheduler instance."""
    return _scheduler
