"""Reminder provider interface."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from uuid import UUID


@dataclass
class NotificationResult:
    status: str
    reason: str


class NotificationService:
    """Base interface for reminder providers."""

    def schedule_goal_deadline(
        self,
        *,
        user_id: UUID,
        goal_id: UUID,
        title: str,
        target_date: date,
    ) -> NotificationResult:
        raise NotImplementedError

    def cancel_goal_deadline(self, *, user_id: UUID, goal_id: UUID) -> NotificationResult:
        raise NotImplementedError

    def schedule_todo_reminder(
        self,
        *,
        user_id: UUID,
        todo_id: UUID,
        title: str,
        remind_at: datetime,
    ) -> NotificationResult:
        raise NotImplementedError

    def cancel_todo_reminder(self, *, user_id: UUID, todo_id: UUID) -> NotificationResult:
        raise NotImplementedError
