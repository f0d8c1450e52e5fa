"""Keep goal and todo reminders in step with their rows."""
from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from mentorme.db.models.goal import Goal
from mentorme.db.models.todo import Todo
from mentorme.observability.metrics import log_metric
from mentorme.services.notifications.factory import get_notification_service

logger = logging.getLogger(__name__)


def sync_goal_deadline(goal: Goal, previous_target: Optional[date] = None, *, created: bool = False) -> None:
    """Schedule, move, or drop deadline reminders after a goal write."""
    if not created and goal.target_date == previous_target:
        return

    service = get_notification_service()
    if not created:
        service.cancel_goal_deadline(user_id=goal.user_id, goal_id=goal.id)
    if goal.target_date is not None:
        result = service.schedule_goal_deadline(
            user_id=goal.user_id,
            goal_id=goal.id,
            title=goal.title,
            target_date=goal.target_date,
        )
        log_metric("reminder.goal_deadline", 1, metadata={"status": result.status})


def drop_goal_deadline(user_id: UUID, goal_id: UUID) -> None:
    logger.debug("Dropping deadline reminders for goal %s", goal_id)
    get_notification_service().cancel_goal_deadline(user_id=user_id, goal_id=goal_id)


def drop_todo_reminder(user_id: UUID, todo_id: UUID) -> None:
    logger.debug("Dropping reminder for todo %s", todo_id)
    get_notification_service().cancel_todo_reminder(user_id=user_id, todo_id=todo_id)


def sync_todo_reminder(todo: Todo) -> None:
    """Pending todos with a due date get a reminder; anything else loses it."""
    service = get_notification_service()
    if todo.status == "pending" and isinstance(todo.due_date, datetime):
        result = service.schedule_todo_reminder(
            user_id=todo.user_id,
            todo_id=todo.id,
            title=todo.title,
            remind_at=todo.due_date,
        )
        log_metric("reminder.todo", 1, metadata={"status": result.status})
    else:
        service.cancel_todo_reminder(user_id=todo.user_id, todo_id=todo.id)
