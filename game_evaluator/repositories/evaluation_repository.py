"""
Evaluation repository: date-stamped scores and the ranking read model.

Ranking order is total_score DESC, evaluated_at DESC; rank is the 1-based
row number in that order, so ties on score go to the newest evaluation.
"""
import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import case, desc, func

from game_evaluator.models import Evaluation, EvaluationResult, EvaluationType, Game, GameType, RankingRow
from game_evaluator.repositories.base import BaseRepository


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives (7.5 -> 8)."""
    return int(math.floor(value + 0.5))


def _persisted_total(value: float) -> int:
    return min(max(round_half_up(value), 1), 10)


def _one_decimal(value: float) -> float:
    return math.floor(value * 10 + 0.5) / 10


class EvaluationRepository(BaseRepository[Evaluation]):
    """Repository for evaluations and the rankings built on them."""

    def __init__(self, db):
        super().__init__(Evaluation, db)

    def insert_evaluation(
        self,
        game_id: str,
        evaluation: EvaluationResult,
        evaluation_date: date,
        evaluation_type: EvaluationType = EvaluationType.NEW_RELEASE,
        evaluated_at: Optional[datetime] = None
    ) -> str:
        """
        Append an evaluation for a game.

        The total is stored as an integer in [1, 10] (half-up); sub-scores
        keep one decimal.

        Returns:
            The evaluation id
        """
        row = self.create(
            game_id=game_id,
            evaluation_date=evaluation_date,
            evaluation_type=EvaluationType(evaluation_type).value,
            trend_score=_one_decimal(evaluation.trend_score),
            brand_score=_one_decimal(evaluation.brand_score),
            series_score=_one_decimal(evaluation.series_score),
            sales_score=_one_decimal(evaluation.sales_score),
            total_score=_persisted_total(evaluation.total_score),
            reasoning=evaluation.reasoning,
            evaluated_at=evaluated_at or datetime.utcnow(),
        )
        return row.id

    # ========================================================================
    # Ranking read model
    # ========================================================================

    def ranking(
        self,
        evaluation_date: date,
        game_type: Optional[GameType] = None,
        limit: int = 50
    ) -> List[RankingRow]:
        """
        Ranked rows for one evaluation date.

        Args:
            evaluation_date: Snapshot date
            game_type: Optional consumer/social filter
            limit: Maximum rows returned

        Returns:
            RankingRow list, rank starting at 1
        """
        query = self.db.query(Evaluation, Game).join(
            Game, Evaluation.game_id == Game.id
        ).filter(Evaluation.evaluation_date == evaluation_date)

        if game_type is not None:
            query = query.filter(Game.game_type == GameType(game_type).value)

        rows = query.order_by(
            desc(Evaluation.total_score),
            desc(Evaluation.evaluated_at),
            Evaluation.id
        ).limit(limit).all()

        return [
            RankingRow(
                rank=index,
                game_id=game.id,
                title=game.title,
                game_type=game.game_type,
                release_date=game.release_date,
                developer=game.developer,
                publisher=game.publisher,
                platforms=list(game.platforms or []),
                image_url=game.image_url,
                source_url=game.source_url,
                total_score=evaluation.total_score,
                trend_score=evaluation.trend_score,
                brand_score=evaluation.brand_score,
                series_score=evaluation.series_score,
                sales_score=evaluation.sales_score,
                reasoning=evaluation.reasoning,
                evaluation_type=evaluation.evaluation_type,
                evaluated_at=evaluation.evaluated_at,
            )
            for index, (evaluation, game) in enumerate(rows, start=1)
        ]

    def stats(self, evaluation_date: date) -> Dict[str, Any]:
        """
        Summary statistics for one evaluation date.

        Counts are per evaluation row, matching ranking(): a game evaluated
        twice on the same date counts twice.
        """
        row = self.db.query(
            func.count(Evaluation.id),
            func.avg(Evaluation.total_score),
            func.max(Evaluation.total_score),
            func.min(Evaluation.total_score),
            func.count(case(
                (Game.game_type == GameType.CONSUMER.value, Evaluation.id),
            )),
            func.count(case(
                (Game.game_type == GameType.SOCIAL.value, Evaluation.id),
            )),
        ).join(
            Game, Evaluation.game_id == Game.id
        ).filter(
            Evaluation.evaluation_date == evaluation_date
        ).one()

        total_games, average, max_score, min_score, consumer_count, social_count = row

        return {
            "evaluation_date": evaluation_date.isoformat(),
            "total_games": total_games or 0,
            "average_score": round(float(average), 2) if average is not None else None,
            "max_score": max_score,
            "min_score": min_score,
            "consumer_count": consumer_count or 0,
            "social_count": social_count or 0,
        }

    def latest_date(self) -> Optional[date]:
        """Most recent evaluation date, or None when nothing was evaluated yet."""
        return self.db.query(func.max(Evaluation.evaluation_date)).scalar()

    def score_distribution(self, evaluation_date: date) -> List[Dict[str, int]]:
        """Count of evaluations per total score, highest score first."""
        rows = self.db.query(
            Evaluation.total_score,
            func.count(Evaluation.id)
        ).filter(
            Evaluation.evaluation_date == evaluation_date
        ).group_by(
            Evaluation.total_score
        ).order_by(
            desc(Evaluation.total_score)
        ).all()

        return [{"score": score, "count": count} for score, count in rows]
