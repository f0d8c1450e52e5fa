"""No-op reminder provider (logs only)."""
from __future__ import annotations

import logging
from datetime import date, datetime
from uuid import UUID

from mentorme.services.notifications.base import NotificationResult, NotificationService


logger = logging.getLogger(__name__)

_NOOP = NotificationResult(status="noop", reason="notification provider is noop")


class NoopNotificationService(NotificationService):
    def schedule_goal_deadline(
        self,
        *,
        user_id: UUID,
        goal_id: UUID,
        title: str,
        target_date: date,
    ) -> NotificationResult:
        logger.info("Reminder queued (noop) goal_deadline user=%s goal=%s due=%s", user_id, goal_id, target_date)
        return _NOOP

    def cancel_goal_deadline(self, *, user_id: UUID, goal_id: UUID) -> NotificationResult:
        logger.info("Reminder cancelled (noop) goal_deadline user=%s goal=%s", user_id, goal_id)
        return _NOOP

    def schedule_todo_reminder(
        self,
        *,
        user_id: UUID,
        todo_id: UUID,
        title: str,
        remind_at: datetime,
    ) -> NotificationResult:
        logger.info("Reminder queued (noop) todo user=%s todo=%s at=%s", user_id, todo_id, remind_at.isoformat())
        return _NOOP

    def cancel_todo_reminder(self, *, user_id: UUID, todo_id: UUID) -> NotificationResult:
        logger.info("Reminder cancelled (noop) todo user=%s todo=%s", user_id, todo_id)
        return _NOOP
