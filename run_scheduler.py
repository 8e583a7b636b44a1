#!/usr/bin/env python3
"""
Background runner for the daily evaluation scheduler.

Usage:
    python run_scheduler.py              # Run in foreground until SIGTERM/SIGINT
    python run_scheduler.py --list-jobs  # Print the schedule and exit
    python run_scheduler.py --trigger    # Run one evaluation now and exit
"""
import argparse
import asyncio
import signal
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from game_evaluator.core.config import settings
from game_evaluator.core.logging import configure_logging, get_logger
from game_evaluator.core.scheduler import EvaluationScheduler

configure_logging(level=settings.LOG_LEVEL, json_output=settings.LOG_JSON)
logger = get_logger(__name__)


class SchedulerRunner:
    """Runs the evaluation scheduler until a shutdown signal arrives."""

    def __init__(self):
        self.scheduler: EvaluationScheduler = None
        self.shutdown = False

    async def start(self):
        logger.info("Starting scheduler runner...")

        self.scheduler = EvaluationScheduler()
        await self.scheduler.start()

        logger.info("Scheduler is now running")

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.add_signal_handler(sig, self._set_shutdown)

        while not self.shutdown:
            await asyncio.sleep(1)

        await self.scheduler.stop()
        logger.info("Scheduler runner stopped")

    def _set_shutdown(self):
        logger.info("Shutdown signal received")
        self.shutdown = True


def list_jobs():
    """Print the configured schedule."""
    print("=" * 60)
    print("SCHEDULED JOBS")
    print("=" * 60)
    print(f"Daily game evaluation: {settings.SCHEDULE_HOUR:02d}:{settings.SCHEDULE_MINUTE:02d} "
          f"({settings.SCHEDULE_TIMEZONE})")
    print(f"Enabled: {settings.SCHEDULER_ENABLED}")
    print("=" * 60)


async def run_trigger() -> bool:
    """Run one evaluation in the foreground."""
    from game_evaluator.services.pipeline.orchestrator import PipelineFatalError
    from game_evaluator.services.pipeline.run_guard import PipelineAlreadyRunningError, get_runner

    try:
        result = await get_runner().run()
    except (PipelineFatalError, PipelineAlreadyRunningError) as e:
        logger.error(f"Evaluation run failed: {e}")
        return False

    logger.info(f"Evaluation run finished: {result.persisted} games persisted")
    return True


def main():
    parser = argparse.ArgumentParser(description="Run the daily game evaluation scheduler")
    parser.add_argument("--list-jobs", action="store_true", help="List scheduled jobs and exit")
    parser.add_argument("--trigger", action="store_true", help="Run one evaluation now and exit")
    args = parser.parse_args()

    if args.list_jobs:
        list_jobs()
        return 0

    if args.trigger:
        return 0 if asyncio.run(run_trigger()) else 1

    runner = SchedulerRunner()
    try:
        asyncio.run(runner.start())
    except KeyboardInterrupt:
        logger.info("Received interrupt, shutting down...")
    except Exception as e:
        logger.error(f"Scheduler error: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
