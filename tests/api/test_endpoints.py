"""API endpoint tests.

Test Strategy:
1. Health and root endpoints
2. Ranking endpoints over an in-memory database
3. Run trigger endpoints with an injected runner
"""
from datetime import date, datetime
from unittest.mock import MagicMock

import pytest

from game_evaluator.main import app
from game_evaluator.models import GameType
from game_evaluator.repositories import EvaluationRepository, GameRepository
from game_evaluator.api.routes.runs import get_pipeline_runner
from game_evaluator.services.pipeline.run_guard import RunStatus


@pytest.fixture
def seeded(db_session, make_candidate, make_evaluation):
    games = GameRepository(db_session)
    evaluations = EvaluationRepository(db_session)

    entries = [
        ("Elden Ring", GameType.CONSUMER, 9, date(2024, 12, 15)),
        ("Gacha Heroes", GameType.SOCIAL, 7, date(2024, 12, 15)),
        ("Old Game", GameType.CONSUMER, 6, date(2024, 12, 14)),
    ]
    for title, game_type, total, evaluation_date in entries:
        game_id = games.upsert_game(make_candidate(title, game_type=game_type))
        evaluations.insert_evaluation(
            game_id, make_evaluation(total=total), evaluation_date, evaluated_at=datetime(2024, 12, 15, 9)
        )
    db_session.commit()


@pytest.fixture
def runner():
    runner = MagicMock()
    runner.start_run.return_value = RunStatus.ACCEPTED
    runner.is_running.return_value = False
    app.dependency_overrides[get_pipeline_runner] = lambda: runner
    return runner


class TestHealth:

    def test_health(self, test_client):
        response = test_client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"
        assert response.json()["database"] == "connected"

    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["latest_rankings"] == "/api/rankings/latest"


class TestRankingEndpoints:

    def test_latest_without_data(self, test_client):
        response = test_client.get("/api/rankings/latest")

        assert response.status_code == 200
        assert response.json() == {"success": True, "data": [], "message": "No evaluations found"}

    def test_latest(self, test_client, seeded):
        response = test_client.get("/api/rankings/latest")
        body = response.json()

        assert response.status_code == 200
        assert body["evaluation_date"] == "2024-12-15"
        assert [row["title"] for row in body["data"]] == ["Elden Ring", "Gacha Heroes"]
        assert [row["rank"] for row in body["data"]] == [1, 2]
        assert body["stats"]["total_games"] == 2

    def test_latest_type_filter(self, test_client, seeded):
        response = test_client.get("/api/rankings/latest", params={"type": "social"})

        assert [row["title"] for row in response.json()["data"]] == ["Gacha Heroes"]

    def test_invalid_type_rejected(self, test_client, seeded):
        response = test_client.get("/api/rankings/latest", params={"type": "arcade"})

        assert response.status_code == 422

    def test_by_date(self, test_client, seeded):
        response = test_client.get("/api/rankings/2024-12-14")

        assert response.status_code == 200
        assert [row["title"] for row in response.json()["data"]] == ["Old Game"]

    def test_by_date_invalid(self, test_client):
        response = test_client.get("/api/rankings/15-12-2024")

        assert response.status_code == 400
        assert response.json()["detail"] == "Invalid date format. Use YYYY-MM-DD"

    def test_distribution(self, test_client, seeded):
        response = test_client.get("/api/stats/distribution")
        body = response.json()

        assert body["evaluation_date"] == "2024-12-15"
        assert body["data"] == [{"score": 9, "count": 1}, {"score": 7, "count": 1}]


class TestRunEndpoints:

    def test_run_accepted(self, test_client, runner):
        response = test_client.post("/api/run-evaluation", params={"date": "2024-12-15"})

        assert response.status_code == 200
        assert response.json()["status"] == "running"
        runner.start_run.assert_called_once_with(evaluation_date="2024-12-15")

    def test_run_conflict(self, test_client, runner):
        runner.start_run.return_value = RunStatus.ALREADY_RUNNING

        response = test_client.post("/api/run-evaluation")

        assert response.status_code == 409
        assert response.json()["detail"] == "Evaluation is already running"

    def test_run_invalid_date(self, test_client, runner):
        response = test_client.post("/api/run-evaluation", params={"date": "yesterday"})

        assert response.status_code == 400
        runner.start_run.assert_not_called()

    def test_status(self, test_client, runner):
        runner.is_running.return_value = True

        response = test_client.get("/api/evaluation-status")

        assert response.json()["success"] is True
        assert response.json()["is_running"] is True
