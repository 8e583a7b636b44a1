"""Shared pytest fixtures for game-evaluator tests."""
import sys
from datetime import date
from pathlib import Path
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

# Add project root to Python path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create fresh test database session with isolated in-memory database."""
    from game_evaluator.models import Base

    # StaticPool keeps a single connection so TestClient worker threads see
    # the same in-memory database as the test body.
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)

    TestSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestSessionLocal()

    yield session

    session.close()
    engine.dispose()


@pytest.fixture
def test_settings():
    """Settings with every delay disabled and deterministic provider config."""
    from game_evaluator.core.config import Settings

    return Settings(
        ENVIRONMENT="test",
        RAWG_API_KEY="test-rawg-key",
        RAWG_REQUEST_DELAY=0,
        STEAM_APP_IDS_STR="730",
        STEAM_REQUEST_DELAY=0,
        PLAY_STORE_QUERIES_STR="RPG",
        PLAY_STORE_REQUEST_DELAY=0,
        PLAY_STORE_DETAIL_DELAY=0,
        SCRAPING_DELAY=0,
        TREND_REQUEST_DELAY=0,
        EVALUATION_REQUEST_DELAY=0,
        NOTIFICATION_DELAY=0,
        MAX_RETRIES=1,
        OPENAI_API_KEY="",
        SLACK_WEBHOOK_URL="",
        SCHEDULER_ENABLED=False,
    )


@pytest.fixture
def make_candidate():
    """Factory for CandidateRecord with sensible defaults."""
    from game_evaluator.models import CandidateRecord

    def _make(title="Elden Ring", **overrides):
        fields = {
            "title": title,
            "release_date": date(2024, 12, 10),
            "developer": "FromSoftware",
            "publisher": "Bandai Namco",
            "platforms": ("PC", "PlayStation 5"),
            "provider": "rawg",
            "provider_native_id": None,
        }
        fields.update(overrides)
        return CandidateRecord(**fields)

    return _make


@pytest.fixture
def make_evaluation():
    """Factory for EvaluationResult."""
    from game_evaluator.models import EvaluationResult

    def _make(total=7.0, trend=6.0, brand=7.0, series=8.0, sales=6.5, reasoning="人気シリーズの新作"):
        return EvaluationResult(
            trend_score=trend,
            brand_score=brand,
            series_score=series,
            sales_score=sales,
            total_score=total,
            reasoning=reasoning,
        )

    return _make


@pytest.fixture
def test_client(db_session: Session):
    """FastAPI TestClient bound to the in-memory database."""
    from fastapi.testclient import TestClient
    from game_evaluator.main import app
    from game_evaluator.core.database import get_db

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    # No context manager: the lifespan (scheduler start-up) is not needed here
    yield TestClient(app)

    app.dependency_overrides.clear()
