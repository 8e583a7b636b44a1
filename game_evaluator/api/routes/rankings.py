"""
Ranking routes.

Endpoints:
- GET /api/health
- GET /api/rankings/latest
- GET /api/rankings/{date}
- GET /api/stats/distribution
"""
import logging
from datetime import datetime
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from game_evaluator.core.database import check_connection, get_db
from game_evaluator.models import GameType
from game_evaluator.services.ranking import RankingService, parse_evaluation_date

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["rankings"])


def get_ranking_service(db: Session = Depends(get_db)) -> RankingService:
    """Dependency to get ranking service instance."""
    return RankingService(db)


def _ranking_payload(service: RankingService, evaluation_date, game_type: Optional[GameType], limit: int) -> Dict:
    rows = service.rank(evaluation_date, game_type, limit)
    return {
        "success": True,
        "evaluation_date": evaluation_date.isoformat(),
        "stats": service.stats(evaluation_date),
        "data": [row.to_dict() for row in rows],
    }


@router.get("/health")
async def health(db: Session = Depends(get_db)) -> Dict:
    """Liveness plus database connectivity."""
    database_ok = check_connection(db)
    return {
        "status": "ok" if database_ok else "degraded",
        "database": "connected" if database_ok else "unreachable",
        "timestamp": datetime.utcnow().isoformat(),
    }


@router.get("/rankings/latest")
async def latest_rankings(
    type: Optional[GameType] = Query(None, description="consumer or social; omit for all"),
    limit: int = Query(50, ge=1, le=200),
    service: RankingService = Depends(get_ranking_service)
) -> Dict:
    """Ranking for the most recent evaluation date."""
    latest = service.latest_date()
    if latest is None:
        return {"success": True, "data": [], "message": "No evaluations found"}
    return _ranking_payload(service, latest, type, limit)


@router.get("/rankings/{evaluation_date}")
async def rankings_by_date(
    evaluation_date: str,
    type: Optional[GameType] = Query(None, description="consumer or social; omit for all"),
    limit: int = Query(50, ge=1, le=200),
    service: RankingService = Depends(get_ranking_service)
) -> Dict:
    """Ranking for a given YYYY-MM-DD evaluation date."""
    try:
        parsed = parse_evaluation_date(evaluation_date)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid date format. Use YYYY-MM-DD")
    return _ranking_payload(service, parsed, type, limit)


@router.get("/stats/distribution")
async def score_distribution(service: RankingService = Depends(get_ranking_service)) -> Dict:
    """Score histogram for the most recent evaluation date."""
    latest = service.latest_date()
    if latest is None:
        return {"success": True, "data": []}
    return {
        "success": True,
        "evaluation_date": latest.isoformat(),
        "data": service.score_distribution(latest),
    }
