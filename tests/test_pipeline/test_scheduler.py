"""Tests for the daily evaluation scheduler.

Test Strategy:
1. start() registers exactly one daily cron job
2. The job triggers a run through the runner (never the pipeline directly)
3. stop() is idempotent
"""
from unittest.mock import MagicMock

import pytest

from game_evaluator.core.scheduler import DAILY_EVALUATION_JOB_ID, EvaluationScheduler
from game_evaluator.services.pipeline.run_guard import RunStatus


@pytest.fixture
def runner():
    runner = MagicMock()
    runner.start_run.return_value = RunStatus.ACCEPTED
    return runner


class TestEvaluationScheduler:

    @pytest.mark.asyncio
    async def test_daily_job_registered(self, runner):
        scheduler = EvaluationScheduler(runner=runner)
        await scheduler.start()
        try:
            jobs = scheduler.scheduler.get_jobs()
            assert [job.id for job in jobs] == [DAILY_EVALUATION_JOB_ID]
            assert jobs[0].next_run_time is not None
        finally:
            await scheduler.stop()

        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_job_uses_runner(self, runner):
        scheduler = EvaluationScheduler(runner=runner)
        await scheduler.start()
        try:
            job = scheduler.scheduler.get_job(DAILY_EVALUATION_JOB_ID)
            await job.func()
            runner.start_run.return_value = RunStatus.ALREADY_RUNNING
            await job.func()
        finally:
            await scheduler.stop()

        assert runner.start_run.call_count == 2

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        scheduler = EvaluationScheduler()

        await scheduler.stop()

        assert scheduler.running is False
