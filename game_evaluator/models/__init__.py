from game_evaluator.models.models import Base, Game, Evaluation, NotificationHistory
from game_evaluator.models.domain import (
    GameType,
    EvaluationType,
    CollectionWindow,
    CandidateRecord,
    EvaluationResult,
    RankingRow,
)

__all__ = [
    "Base",
    "Game",
    "Evaluation",
    "NotificationHistory",
    "GameType",
    "EvaluationType",
    "CollectionWindow",
    "CandidateRecord",
    "EvaluationResult",
    "RankingRow",
]
