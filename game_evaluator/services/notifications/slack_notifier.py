"""
Slack webhook notifications.

All senders are best-effort: they return True/False and never raise. Every
attempt is written to notification_history when a database session is
available; failures to write history are logged and ignored.
"""
import json
from typing import Any, Dict, List, Optional, Sequence

import httpx
from sqlalchemy.orm import Session

from game_evaluator.core.config import settings as default_settings
from game_evaluator.core.logging import get_logger
from game_evaluator.core.metrics import notifications_total
from game_evaluator.models import RankingRow
from game_evaluator.repositories.notification_repository import NotificationRepository
from game_evaluator.services.http import HttpSource

logger = get_logger(__name__)

TOP_N = 10
BREAKDOWN_N = 3

TYPE_LABELS = {
    "consumer": "コンシューマーゲーム",
    "social": "ソーシャルゲーム",
    "all": "全ゲーム",
}


def _medal(index: int) -> str:
    return {0: "🥇", 1: "🥈", 2: "🥉"}.get(index, f"{index + 1}.")


def _section(text: str) -> Dict[str, Any]:
    return {"type": "section", "text": {"type": "mrkdwn", "text": text}}


def _header(text: str) -> Dict[str, Any]:
    return {"type": "header", "text": {"type": "plain_text", "text": text, "emoji": True}}


def format_ranking_message(rows: Sequence[RankingRow], evaluation_date: str, game_type: str = "all") -> Dict[str, Any]:
    """Slack payload (text + blocks) for the top of a ranking."""
    label = TYPE_LABELS.get(game_type, TYPE_LABELS["all"])
    top = list(rows)[:TOP_N]

    text = f"🎮 *ゲームおすすめランキング ({evaluation_date})*\n📊 カテゴリ: {label}\n\n"
    blocks = [
        _header(f"🎮 ゲームおすすめランキング ({evaluation_date})"),
        _section(f"*カテゴリ:* {label}\n*評価数:* {len(rows)}件"),
        {"type": "divider"},
    ]

    for index, row in enumerate(top):
        medal = _medal(index)
        platforms = ", ".join(row.platforms) if row.platforms else "不明"
        release = row.release_date.isoformat() if row.release_date else "未定"
        text += f"{medal} *{row.title}* ({row.total_score}/10)\n   {row.reasoning or ''}\n\n"
        blocks.append(_section(
            f"*{medal} {row.title}*\n"
            f"*スコア:* {row.total_score}/10 ⭐\n"
            f"*発売日:* {release}\n"
            f"*プラットフォーム:* {platforms}\n"
            f"*理由:* {row.reasoning or ''}"
        ))
        if row.image_url:
            blocks.append({"type": "image", "image_url": row.image_url, "alt_text": row.title})
        blocks.append({"type": "divider"})

    if top:
        blocks.append(_section("*📊 トップ3の詳細スコア*"))
        for index, row in enumerate(top[:BREAKDOWN_N]):
            blocks.append(_section(
                f"*{index + 1}. {row.title}*\n"
                f"🔥 トレンド: {row.trend_score:.1f} | "
                f"🏢 ブランド: {row.brand_score:.1f} | "
                f"📺 シリーズ: {row.series_score:.1f} | "
                f"💰 売上: {row.sales_score:.1f}"
            ))

    return {"text": text, "blocks": blocks}


class SlackNotifier(HttpSource):
    """
    Posts rankings, errors and completion notices to a Slack webhook.

    Args:
        webhook_url: Incoming webhook URL; empty disables sending
        db: Session used for notification history (optional)
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        db: Optional[Session] = None,
        settings=None,
        **http_kwargs
    ):
        settings = settings or default_settings
        http_kwargs.setdefault("max_attempts", settings.MAX_RETRIES)
        super().__init__(**http_kwargs)
        self.webhook_url = settings.SLACK_WEBHOOK_URL if webhook_url is None else webhook_url
        self.db = db

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    async def _post(self, notification_type: str, payload: Dict[str, Any], history_message: str) -> bool:
        if not self.enabled:
            logger.info(f"Slack webhook URL not configured, skipping {notification_type} notification")
            return False

        try:
            await self.request("POST", self.webhook_url, json=payload)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Error sending {notification_type} notification to Slack: {e}")
            notifications_total.labels(notification_type=notification_type, status="failed").inc()
            self._save_history(notification_type, history_message, "failed", str(e))
            return False

        notifications_total.labels(notification_type=notification_type, status="success").inc()
        self._save_history(notification_type, history_message, "success")
        logger.info(f"Sent {notification_type} notification to Slack")
        return True

    def _save_history(self, notification_type: str, message: str, status: str, error_message: Optional[str] = None) -> None:
        if self.db is None:
            return
        try:
            NotificationRepository(self.db).record(notification_type, message, status, error_message)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            logger.warning(f"Error saving notification history: {e}")

    async def send_ranking(self, rows: List[RankingRow], evaluation_date: str, game_type: str = "all") -> bool:
        """Send the top of a ranking."""
        message = format_ranking_message(rows, str(evaluation_date), game_type)
        return await self._post("ranking", message, message["text"])

    async def send_error(self, error_message: str, context: str = "") -> bool:
        """Send an error notice."""
        payload = {
            "text": "❌ エラーが発生しました",
            "blocks": [
                _header("❌ エラー通知"),
                _section(f"*Context:* {context}\n*Error:* {error_message}"),
            ],
        }
        return await self._post("error", payload, error_message)

    async def send_completion(self, stats: Dict[str, Any]) -> bool:
        """Send the end-of-run summary."""
        average = stats.get("average_score")
        average_text = f"{average:.2f}" if average is not None else "-"
        payload = {
            "text": "✅ ゲーム評価が完了しました",
            "blocks": [
                _header("✅ ゲーム評価完了"),
                _section(
                    f"*評価日:* {stats.get('evaluation_date')}\n"
                    f"*総評価数:* {stats.get('total_games', 0)}件\n"
                    f"*コンシューマー:* {stats.get('consumer_count', 0)}件\n"
                    f"*ソーシャル:* {stats.get('social_count', 0)}件\n"
                    f"*平均スコア:* {average_text}/10"
                ),
            ],
        }
        return await self._post("completion", payload, json.dumps(stats, ensure_ascii=False, default=str))
