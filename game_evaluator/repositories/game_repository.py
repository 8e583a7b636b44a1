"""
Game repository: canonical game rows keyed by identity.

Usage:
    repo = GameRepository(db)
    game_id = repo.upsert_game(candidate)
    db.commit()
"""
from datetime import datetime
from typing import Optional

from game_evaluator.core.logging import get_logger
from game_evaluator.models import Game, CandidateRecord
from game_evaluator.repositories.base import BaseRepository
from game_evaluator.services.pipeline.identity import identify

logger = get_logger(__name__)

# Fields refreshed from the newest observation on every upsert
_MUTABLE_FIELDS = (
    "title",
    "developer",
    "publisher",
    "description",
    "image_url",
    "source_url",
    "quality_signal",
)


class GameRepository(BaseRepository[Game]):
    """Repository for persisted games."""

    def __init__(self, db):
        super().__init__(Game, db)

    def find_by_identity_key(self, identity_key: str) -> Optional[Game]:
        """Find a game by its identity key string ("namespace:value")."""
        return self.where_first(Game.identity_key == identity_key)

    def upsert_game(self, candidate: CandidateRecord) -> str:
        """
        Insert or update the game row for a candidate.

        Idempotent by identity key: a second call with an equivalent
        candidate updates the existing row and returns the same id.

        Args:
            candidate: Candidate record to persist

        Returns:
            The game id
        """
        identity_key = str(identify(candidate))
        now = datetime.utcnow()

        existing = self.find_by_identity_key(identity_key)
        if existing:
            for field in _MUTABLE_FIELDS:
                value = getattr(candidate, field)
                if value is not None:
                    setattr(existing, field, value)
            if candidate.release_date is not None:
                existing.release_date = candidate.release_date
            if candidate.platforms:
                existing.platforms = list(candidate.platforms)
            existing.game_type = candidate.game_type.value
            existing.updated_at = now
            self.db.flush()
            logger.debug(f"Updated game {identity_key}")
            return existing.id

        game = self.create(
            identity_key=identity_key,
            title=candidate.title,
            game_type=candidate.game_type.value,
            release_date=candidate.release_date,
            developer=candidate.developer,
            publisher=candidate.publisher,
            platforms=list(candidate.platforms),
            description=candidate.description,
            image_url=candidate.image_url,
            source_url=candidate.source_url,
            provider=candidate.provider,
            provider_native_id=candidate.provider_native_id,
            quality_signal=candidate.quality_signal,
            created_at=now,
            updated_at=now,
        )
        logger.debug(f"Created game {identity_key}: {candidate.title}")
        return game.id
