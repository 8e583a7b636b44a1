"""
Database models for the game evaluator.

- Game: canonical deduplicated entity, one row per identity key
- Evaluation: one date-stamped scored assessment of a Game
- NotificationHistory: audit trail of outbound notifications
"""
from datetime import datetime
from sqlalchemy import Column, String, Float, Integer, DateTime, Date, ForeignKey, Text, Index, JSON
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


class Game(Base):
    """Game (or live game receiving an update) observed by any collector."""
    __tablename__ = "games"

    id = Column(String(36), primary_key=True)
    identity_key = Column(String(512), unique=True, nullable=False, index=True)  # "rawg:3498" or "title:<name>_<date>"
    title = Column(String(500), nullable=False, index=True)
    game_type = Column(String(20), nullable=False, index=True)  # consumer, social
    release_date = Column(Date, nullable=True, index=True)
    developer = Column(String(500), nullable=True)
    publisher = Column(String(500), nullable=True)
    platforms = Column(JSON, nullable=True)  # list of platform names
    description = Column(Text, nullable=True)
    image_url = Column(Text, nullable=True)
    source_url = Column(Text, nullable=True)
    provider = Column(String(50), nullable=True, index=True)  # rawg, steam, google_play, scraper:<name>
    provider_native_id = Column(String(255), nullable=True)
    quality_signal = Column(Float, nullable=True)  # critic score 0-100
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    evaluations = relationship("Evaluation", back_populates="game", cascade="all, delete-orphan")


class Evaluation(Base):
    """Scored assessment of one game on one evaluation date."""
    __tablename__ = "evaluations"

    id = Column(String(36), primary_key=True)
    game_id = Column(String(36), ForeignKey("games.id", ondelete="CASCADE"), nullable=False, index=True)
    evaluation_date = Column(Date, nullable=False, index=True)
    evaluation_type = Column(String(20), nullable=False, default="new_release")  # new_release, update
    trend_score = Column(Float, nullable=False)
    brand_score = Column(Float, nullable=False)
    series_score = Column(Float, nullable=False)
    sales_score = Column(Float, nullable=False)
    total_score = Column(Integer, nullable=False, index=True)  # 1-10
    reasoning = Column(Text, nullable=True)
    evaluated_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    game = relationship("Game", back_populates="evaluations")

    __table_args__ = (
        Index('ix_evaluations_date_score', 'evaluation_date', 'total_score', 'evaluated_at'),
    )


class NotificationHistory(Base):
    """Outbound notification attempt (ranking, error or completion)."""
    __tablename__ = "notification_history"

    id = Column(String(36), primary_key=True)
    notification_type = Column(String(20), nullable=False, index=True)
    message = Column(Text, nullable=True)
    status = Column(String(20), nullable=False)  # success, failed
    error_message = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
