"""Tests for the single-run guard and the run trigger surface.

Test Strategy:
1. Guard is a test-and-set flag
2. Concurrent triggers: exactly one run, the rest rejected
3. Flag is released after completion and after failure
"""
import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from game_evaluator.services.pipeline.run_guard import (
    PipelineAlreadyRunningError,
    PipelineRunner,
    RunGuard,
    RunStatus,
)


def _blocking_pipeline(release: asyncio.Event):
    pipeline = MagicMock()

    async def run(evaluation_date=None):
        await release.wait()
        return "done"

    pipeline.run = AsyncMock(side_effect=run)
    return pipeline


class TestRunGuard:

    def test_test_and_set(self):
        guard = RunGuard()

        assert guard.try_acquire() is True
        assert guard.try_acquire() is False
        assert guard.is_running() is True

        guard.release()
        assert guard.is_running() is False
        assert guard.try_acquire() is True


class TestPipelineRunner:

    @pytest.mark.asyncio
    async def test_second_trigger_rejected(self):
        release = asyncio.Event()
        pipeline = _blocking_pipeline(release)
        factory = MagicMock(return_value=pipeline)
        runner = PipelineRunner(factory, guard=RunGuard())

        first = runner.start_run()
        second = runner.start_run()

        assert first == RunStatus.ACCEPTED
        assert second == RunStatus.ALREADY_RUNNING
        assert runner.is_running() is True

        release.set()
        await asyncio.gather(*list(runner._tasks))

        factory.assert_called_once()
        assert runner.is_running() is False

    @pytest.mark.asyncio
    async def test_foreground_run_rejected_while_busy(self):
        release = asyncio.Event()
        runner = PipelineRunner(MagicMock(return_value=_blocking_pipeline(release)), guard=RunGuard())

        runner.start_run()
        with pytest.raises(PipelineAlreadyRunningError):
            await runner.run()

        release.set()
        await asyncio.gather(*list(runner._tasks))

    @pytest.mark.asyncio
    async def test_foreground_run_returns_result(self):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value="result")
        runner = PipelineRunner(MagicMock(return_value=pipeline), guard=RunGuard())

        assert await runner.run(evaluation_date="2024-12-15") == "result"
        pipeline.run.assert_awaited_once_with(evaluation_date="2024-12-15")
        assert runner.is_running() is False

    @pytest.mark.asyncio
    async def test_guard_released_after_failure(self):
        pipeline = MagicMock()
        pipeline.run = AsyncMock(side_effect=RuntimeError("database down"))
        runner = PipelineRunner(MagicMock(return_value=pipeline), guard=RunGuard())

        with pytest.raises(RuntimeError):
            await runner.run()

        assert runner.is_running() is False
        assert runner.start_run() == RunStatus.ACCEPTED
        await asyncio.gather(*list(runner._tasks))
        assert runner.is_running() is False
