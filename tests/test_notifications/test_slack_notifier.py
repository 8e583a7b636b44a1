"""Tests for Slack notifications.

Test Strategy:
1. Ranking payload formatting (top 10, medals, top-3 breakdown)
2. Senders never raise; failures return False
3. Every attempt is recorded in notification_history
"""
import json
from datetime import date, datetime

import httpx
import pytest

from game_evaluator.models import NotificationHistory, RankingRow
from game_evaluator.services.notifications import SlackNotifier
from game_evaluator.services.notifications.slack_notifier import format_ranking_message

WEBHOOK = "https://hooks.slack.test/services/T000/B000/XXX"


def _row(rank, title, score=8, image_url=None):
    return RankingRow(
        rank=rank,
        game_id=f"id-{rank}",
        title=title,
        game_type="consumer",
        release_date=date(2024, 12, 10),
        developer="Dev",
        publisher="Pub",
        platforms=["PC"],
        image_url=image_url,
        source_url=None,
        total_score=score,
        trend_score=6.0,
        brand_score=7.5,
        series_score=8.0,
        sales_score=5.0,
        reasoning="話題作",
        evaluation_type="new_release",
        evaluated_at=datetime(2024, 12, 15, 9),
    )


def _client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestFormatRankingMessage:

    def test_top_ten_with_medals(self):
        rows = [_row(i, f"Game {i}", image_url="https://img/1.png" if i == 1 else None) for i in range(1, 13)]

        message = format_ranking_message(rows, "2024-12-15", "consumer")

        assert "🥇 *Game 1* (8/10)" in message["text"]
        assert "🥉 *Game 3*" in message["text"]
        assert "10. *Game 10*" in message["text"]
        assert "Game 11" not in message["text"]
        assert "コンシューマーゲーム" in message["text"]
        assert sum(1 for b in message["blocks"] if b["type"] == "image") == 1
        assert "ブランド: 7.5" in message["blocks"][-1]["text"]["text"]

    def test_empty_rows(self):
        message = format_ranking_message([], "2024-12-15")

        assert message["blocks"][1]["text"]["text"].endswith("0件")


class TestSlackNotifier:

    @pytest.mark.asyncio
    async def test_send_ranking_posts_and_records(self, db_session, test_settings):
        posted = []

        def handler(request):
            posted.append(json.loads(request.content))
            return httpx.Response(200, text="ok")

        client = _client(handler)
        notifier = SlackNotifier(webhook_url=WEBHOOK, db=db_session, settings=test_settings, client=client)

        sent = await notifier.send_ranking([_row(1, "Elden Ring")], "2024-12-15", "consumer")
        await client.aclose()

        assert sent is True
        assert "Elden Ring" in posted[0]["text"]
        history = db_session.query(NotificationHistory).one()
        assert (history.notification_type, history.status) == ("ranking", "success")

    @pytest.mark.asyncio
    async def test_failure_returns_false_and_records(self, db_session, test_settings):
        client = _client(lambda request: httpx.Response(500, text="internal error"))
        notifier = SlackNotifier(webhook_url=WEBHOOK, db=db_session, settings=test_settings, client=client)

        sent = await notifier.send_error("Database connection failed", "pipeline start-up")
        await client.aclose()

        assert sent is False
        history = db_session.query(NotificationHistory).one()
        assert history.status == "failed"
        assert history.message == "Database connection failed"
        assert "500" in history.error_message

    @pytest.mark.asyncio
    async def test_disabled_without_webhook(self, db_session, test_settings):
        notifier = SlackNotifier(db=db_session, settings=test_settings)

        assert notifier.enabled is False
        assert await notifier.send_completion({"total_games": 0}) is False
        assert db_session.query(NotificationHistory).count() == 0

    @pytest.mark.asyncio
    async def test_completion_summary(self, test_settings):
        posted = []

        def handler(request):
            posted.append(json.loads(request.content))
            return httpx.Response(200)

        client = _client(handler)
        notifier = SlackNotifier(webhook_url=WEBHOOK, settings=test_settings, client=client)

        stats = {
            "evaluation_date": "2024-12-15",
            "total_games": 12,
            "average_score": 6.4166,
            "consumer_count": 8,
            "social_count": 4,
        }
        assert await notifier.send_completion(stats) is True
        await client.aclose()

        summary = posted[0]["blocks"][1]["text"]["text"]
        assert "12件" in summary
        assert "6.42/10" in summary
