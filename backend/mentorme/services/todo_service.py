"""Todo store, including voice-captured todos and their undo."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import asc
from sqlalchemy.orm import Session

from mentorme.api.schemas.todo import TodoCreateRequest, TodoSummary
from mentorme.db.models.action_log import ActionLog
from mentorme.db.models.enums import TodoPriority, TodoStatus
from mentorme.db.models.todo import Todo
from mentorme.services.action_log import record_action
from mentorme.services.notifications.hooks import drop_todo_reminder, sync_todo_reminder
from mentorme.services.user_service import get_or_create_user
from mentorme.services.voice.transcript_parser import VoiceCaptureResult

logger = logging.getLogger(__name__)


def list_todos(db: Session, user_id: UUID, status_filter: Optional[TodoStatus] = None) -> List[Todo]:
    query = db.query(Todo).filter(Todo.user_id == user_id)
    if status_filter is not None:
        query = query.filter(Todo.status == status_filter.value)
    return query.order_by(Todo.due_date.is_(None), asc(Todo.due_date), asc(Todo.created_at)).all()


def create_todo(db: Session, payload: TodoCreateRequest, request_id: Optional[str]) -> Todo:
    return _insert(
        db,
        user_id=payload.user_id,
        title=payload.title.strip(),
        description=payload.description,
        due_date=payload.due_date,
        priority=payload.priority,
        action_type="todo_created",
        request_id=request_id,
    )


def create_voice_todo(
    db: Session,
    user_id: UUID,
    result: VoiceCaptureResult,
    request_id: Optional[str] = None,
) -> Todo:
    """Build and persist a todo from a parsed voice capture."""
    return _insert(
        db,
        user_id=user_id,
        title=result.title,
        description=None,
        due_date=_parse_due_date(result.due_date),
        priority=TodoPriority.parse(result.priority),
        action_type="voice_todo_created",
        request_id=request_id,
        transcript=result.original_transcript or None,
        voice=True,
    )


def set_todo_status(db: Session, todo_id: UUID, user_id: UUID, new_status: TodoStatus, request_id: Optional[str]) -> Todo:
    todo = _load_owned(db, todo_id, user_id)
    if todo.status == new_status.value:
        return todo
    try:
        previous = todo.status
        todo.status = new_status.value
        todo.completed_at = datetime.now(timezone.utc) if new_status is TodoStatus.COMPLETED else None
        record_action(
            db,
            user_id=user_id,
            subject_id=todo.id,
            action_type=f"todo_{new_status.value}",
            payload={"todo_id": str(todo.id), "from": previous, "to": new_status.value},
            reason="Todo status changed",
            request_id=request_id,
            undo_available=True,
        )
        db.add(todo)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(todo)
    sync_todo_reminder(todo)
    return todo


def delete_todo(db: Session, todo_id: UUID, user_id: UUID, request_id: Optional[str]) -> None:
    todo = _load_owned(db, todo_id, user_id)
    try:
        record_action(
            db,
            user_id=user_id,
            subject_id=todo.id,
            action_type="todo_deleted",
            payload={"todo_id": str(todo.id), "title": todo.title},
            reason="Todo deleted by user",
            request_id=request_id,
        )
        db.delete(todo)
        db.commit()
    except Exception:
        db.rollback()
        raise
    drop_todo_reminder(user_id, todo_id)


def undo_voice_todo(db: Session, user_id: UUID, todo_id: UUID, request_id: Optional[str] = None) -> bool:
    """Delete one voice-created todo and mark its creation undone.

    Returns False when there is nothing to undo (already gone, not voice
    captured, or owned by someone else); no other row is touched.
    """
    todo = db.get(Todo, todo_id)
    if not todo or todo.user_id != user_id or not todo.was_voice_captured:
        return False

    try:
        now = datetime.now(timezone.utc)
        (
            db.query(ActionLog)
            .filter(
                ActionLog.user_id == user_id,
                ActionLog.action_type == "voice_todo_created",
                ActionLog.subject_id == todo_id,
                ActionLog.undone_at.is_(None),
            )
            .update({ActionLog.undone_at: now}, synchronize_session=False)
        )
        record_action(
            db,
            user_id=user_id,
            subject_id=todo_id,
            action_type="voice_todo_undone",
            payload={"todo_id": str(todo_id), "title": todo.title},
            reason="Voice capture undone",
            request_id=request_id,
        )
        db.delete(todo)
        db.commit()
    except Exception:
        db.rollback()
        raise
    drop_todo_reminder(user_id, todo_id)
    logger.info("Voice todo %s undone", todo_id)
    return True


def serialize_todo(todo: Todo) -> TodoSummary:
    return TodoSummary(
        id=todo.id,
        title=todo.title,
        description=todo.description,
        due_date=todo.due_date,
        priority=TodoPriority.parse(todo.priority),
        status=TodoStatus(todo.status),
        completed_at=todo.completed_at,
        was_voice_captured=bool(todo.was_voice_captured),
        voice_transcript=todo.voice_transcript,
        created_at=todo.created_at,
        updated_at=todo.updated_at,
    )


def _insert(
    db: Session,
    *,
    user_id: UUID,
    title: str,
    description: Optional[str],
    due_date: Optional[datetime],
    priority: TodoPriority,
    action_type: str,
    request_id: Optional[str],
    transcript: Optional[str] = None,
    voice: bool = False,
) -> Todo:
    try:
        get_or_create_user(db, user_id)
        todo = Todo(
            user_id=user_id,
            title=title,
            description=description,
            due_date=due_date,
            priority=priority.value,
            status=TodoStatus.PENDING.value,
            was_voice_captured=voice,
            voice_transcript=transcript,
        )
        db.add(todo)
        db.flush()
        record_action(
            db,
            user_id=user_id,
            subject_id=todo.id,
            action_type=action_type,
            payload={"todo_id": str(todo.id), "priority": todo.priority, "has_due_date": due_date is not None},
            reason="Todo captured",
            request_id=request_id,
            undo_available=voice,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(todo)
    sync_todo_reminder(todo)
    return todo


def _load_owned(db: Session, todo_id: UUID, user_id: UUID) -> Todo:
    todo = db.get(Todo, todo_id)
    if not todo:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Todo not found")
    if todo.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Todo does not belong to user")
    return todo


def _parse_due_date(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        logger.debug("Ignoring unparseable due date %r", raw)
        return None
