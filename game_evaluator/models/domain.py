"""
In-memory records that flow through one evaluation run.

CandidateRecord instances are produced by collectors and consumed by the
pipeline; only their persisted derivative (the Game row) outlives a run.
"""
from dataclasses import dataclass, asdict
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple


class GameType(str, Enum):
    CONSUMER = "consumer"
    SOCIAL = "social"


class EvaluationType(str, Enum):
    NEW_RELEASE = "new_release"
    UPDATE = "update"


@dataclass(frozen=True)
class CollectionWindow:
    """Date range a collection run looks at, anchored on the evaluation date."""

    reference_date: date
    lookback_days: int = 7
    lookahead_days: int = 30


@dataclass(frozen=True)
class CandidateRecord:
    """A game or game-update observation from a single source."""

    title: str
    game_type: GameType = GameType.CONSUMER
    release_date: Optional[date] = None
    developer: Optional[str] = None
    publisher: Optional[str] = None
    platforms: Tuple[str, ...] = ()
    description: Optional[str] = None
    image_url: Optional[str] = None
    source_url: Optional[str] = None
    provider: str = "unknown"
    provider_native_id: Optional[str] = None
    quality_signal: Optional[float] = None
    record_kind: EvaluationType = EvaluationType.NEW_RELEASE
    genres: Tuple[str, ...] = ()
    rating: Optional[float] = None
    version: Optional[str] = None
    update_title: Optional[str] = None
    installs: Optional[str] = None


@dataclass(frozen=True)
class EvaluationResult:
    """Normalized output of the scoring oracle for one game."""

    trend_score: float
    brand_score: float
    series_score: float
    sales_score: float
    total_score: float
    reasoning: str
    is_default: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class RankingRow:
    """Game joined with one evaluation, annotated with its rank for that date."""

    rank: int
    game_id: str
    title: str
    game_type: str
    release_date: Optional[date]
    developer: Optional[str]
    publisher: Optional[str]
    platforms: list
    image_url: Optional[str]
    source_url: Optional[str]
    total_score: int
    trend_score: float
    brand_score: float
    series_score: float
    sales_score: float
    reasoning: Optional[str]
    evaluation_type: str
    evaluated_at: datetime

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["release_date"] = self.release_date.isoformat() if self.release_date else None
        data["evaluated_at"] = self.evaluated_at.isoformat() if self.evaluated_at else None
        return data
