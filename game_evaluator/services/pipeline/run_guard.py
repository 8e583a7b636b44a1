"""
Single-run guard and trigger surface.

At most one pipeline run is active per process. Triggers that arrive while
a run is active are rejected, never queued.
"""
import asyncio
import threading
from enum import Enum
from typing import Callable, Optional, Set

from game_evaluator.core.logging import get_logger
from game_evaluator.core.metrics import pipeline_rejected_triggers_total, pipeline_running

logger = get_logger(__name__)


class PipelineAlreadyRunningError(RuntimeError):
    """Raised when a foreground run is requested while another run is active."""


class RunStatus(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_RUNNING = "already_running"


class RunGuard:
    """Process-wide "run in progress" flag with atomic test-and-set."""

    def __init__(self):
        self._lock = threading.Lock()
        self._running = False

    def try_acquire(self) -> bool:
        """Set the flag if it is clear. Returns False when a run is active."""
        with self._lock:
            if self._running:
                return False
            self._running = True
        pipeline_running.set(1)
        return True

    def release(self) -> None:
        with self._lock:
            self._running = False
        pipeline_running.set(0)

    def is_running(self) -> bool:
        with self._lock:
            return self._running


run_guard = RunGuard()


class PipelineRunner:
    """
    Starts pipeline runs behind the guard.

    Args:
        pipeline_factory: Callable returning an object with an async
            run(evaluation_date=None) method; called once per accepted run
        guard: RunGuard to use (the process-wide guard by default)
    """

    def __init__(self, pipeline_factory: Callable, guard: Optional[RunGuard] = None):
        self.pipeline_factory = pipeline_factory
        self.guard = guard or run_guard
        self._tasks: Set[asyncio.Task] = set()

    def is_running(self) -> bool:
        return self.guard.is_running()

    def start_run(self, evaluation_date=None) -> RunStatus:
        """
        Schedule a run on the current event loop and return immediately.

        Returns:
            RunStatus.ACCEPTED, or RunStatus.ALREADY_RUNNING if a run is active
        """
        if not self.guard.try_acquire():
            pipeline_rejected_triggers_total.inc()
            logger.warning("Evaluation run requested while another run is active, rejecting")
            return RunStatus.ALREADY_RUNNING

        try:
            task = asyncio.get_running_loop().create_task(self._run_guarded(evaluation_date))
        except Exception:
            self.guard.release()
            raise

        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return RunStatus.ACCEPTED

    async def run(self, evaluation_date=None):
        """
        Run in the foreground and return the pipeline result.

        Raises:
            PipelineAlreadyRunningError: If a run is active
            PipelineFatalError: If the run fails fatally
        """
        if not self.guard.try_acquire():
            pipeline_rejected_triggers_total.inc()
            raise PipelineAlreadyRunningError("An evaluation run is already in progress")
        return await self._execute(evaluation_date)

    async def _run_guarded(self, evaluation_date) -> None:
        try:
            await self._execute(evaluation_date)
        except Exception as e:
            logger.error(f"Background evaluation run failed: {e}")

    async def _execute(self, evaluation_date):
        try:
            pipeline = self.pipeline_factory()
            return await pipeline.run(evaluation_date=evaluation_date)
        finally:
            self.guard.release()


_runner: Optional[PipelineRunner] = None


def get_runner() -> PipelineRunner:
    """Process-wide runner for the production pipeline."""
    global _runner
    if _runner is None:
        from game_evaluator.services.pipeline.orchestrator import create_pipeline
        _runner = PipelineRunner(create_pipeline)
    return _runner
