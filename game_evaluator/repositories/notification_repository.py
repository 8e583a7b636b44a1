"""Notification history repository."""
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc

from game_evaluator.models import NotificationHistory
from game_evaluator.repositories.base import BaseRepository


class NotificationRepository(BaseRepository[NotificationHistory]):
    """Audit trail of outbound notifications."""

    def __init__(self, db):
        super().__init__(NotificationHistory, db)

    def record(
        self,
        notification_type: str,
        message: str,
        status: str,
        error_message: Optional[str] = None
    ) -> NotificationHistory:
        return self.create(
            notification_type=notification_type,
            message=message,
            status=status,
            error_message=error_message,
            created_at=datetime.utcnow(),
        )

    def recent(self, limit: int = 20) -> List[NotificationHistory]:
        return self.query().order_by(desc(NotificationHistory.created_at)).limit(limit).all()
