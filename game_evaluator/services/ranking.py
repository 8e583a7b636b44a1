"""
Ranking and stats read model for one evaluation date.

Thin layer over EvaluationRepository that accepts dates as date objects or
"YYYY-MM-DD" strings.
"""
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from game_evaluator.models import GameType, RankingRow
from game_evaluator.repositories.evaluation_repository import EvaluationRepository

DateLike = Union[date, str]


def parse_evaluation_date(value: DateLike) -> date:
    """
    Coerce a date or YYYY-MM-DD string.

    Raises:
        ValueError: For strings that are not valid YYYY-MM-DD dates
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), "%Y-%m-%d").date()
        except ValueError:
            raise ValueError(f"Invalid date format: {value!r} (expected YYYY-MM-DD)")
    raise ValueError(f"Invalid date: {value!r}")


class RankingService:
    """Rankings, stats and score distribution for evaluation snapshots."""

    def __init__(self, db: Session):
        self.db = db
        self.evaluations = EvaluationRepository(db)

    def rank(
        self,
        evaluation_date: DateLike,
        type_filter: Optional[Union[GameType, str]] = None,
        limit: int = 50
    ) -> List[RankingRow]:
        game_type = GameType(type_filter) if type_filter else None
        return self.evaluations.ranking(parse_evaluation_date(evaluation_date), game_type, limit)

    def stats(self, evaluation_date: DateLike) -> Dict[str, Any]:
        return self.evaluations.stats(parse_evaluation_date(evaluation_date))

    def latest_date(self) -> Optional[date]:
        return self.evaluations.latest_date()

    def score_distribution(self, evaluation_date: DateLike) -> List[Dict[str, int]]:
        return self.evaluations.score_distribution(parse_evaluation_date(evaluation_date))
