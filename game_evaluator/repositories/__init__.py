"""
Repository layer for data access.

Usage:
    from game_evaluator.repositories import GameRepository, EvaluationRepository
    from game_evaluator.core.database import SessionLocal

    db = SessionLocal()
    game_id = GameRepository(db).upsert_game(candidate)
    EvaluationRepository(db).insert_evaluation(game_id, result, date.today())
    db.commit()
"""
from game_evaluator.repositories.base import BaseRepository
from game_evaluator.repositories.game_repository import GameRepository
from game_evaluator.repositories.evaluation_repository import EvaluationRepository
from game_evaluator.repositories.notification_repository import NotificationRepository

__all__ = [
    "BaseRepository",
    "GameRepository",
    "EvaluationRepository",
    "NotificationRepository",
]
