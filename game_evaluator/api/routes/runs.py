"""
Evaluation run routes.

Endpoints:
- POST /api/run-evaluation  (409 while a run is active)
- GET  /api/evaluation-status
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from game_evaluator.services.pipeline.run_guard import PipelineRunner, RunStatus, get_runner
from game_evaluator.services.ranking import parse_evaluation_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["runs"])


def get_pipeline_runner() -> PipelineRunner:
    """Dependency to get the process-wide pipeline runner."""
    return get_runner()


@router.post("/run-evaluation")
async def run_evaluation(
    date: Optional[str] = Query(None, description="Evaluation date (YYYY-MM-DD), today if omitted"),
    runner: PipelineRunner = Depends(get_pipeline_runner)
) -> Dict:
    """Start an evaluation run in the background."""
    if date is not None:
        try:
            parse_evaluation_date(date)
        except ValueError:
            raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")

    status = runner.start_run(evaluation_date=date)
    if status == RunStatus.ALREADY_RUNNING:
        raise HTTPException(status_code=409, detail="Evaluation is already running")

    logger.info("Evaluation run started via API")
    return {
        "success": True,
        "message": "Evaluation process started",
        "status": "running",
    }


@router.get("/evaluation-status")
async def evaluation_status(runner: PipelineRunner = Depends(get_pipeline_runner)) -> Dict:
    """Whether a run is active."""
    return {
        "success": True,
        "is_running": runner.is_running(),
        "timestamp": datetime.utcnow().isoformat(),
    }
