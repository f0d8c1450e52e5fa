"""Habit persistence; habits share the goals' active-capacity rule."""
from __future__ import annotations

from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import asc
from sqlalchemy.orm import Session

from mentorme.api.schemas.habit import HabitCreateRequest, HabitSummary, HabitUpdateRequest
from mentorme.core.config import settings
from mentorme.db.models.enums import HabitFrequency, TrackStatus
from mentorme.db.models.goal import Goal
from mentorme.db.models.habit import Habit
from mentorme.services.action_log import record_action
from mentorme.services.capacity_policy import CapacityDecision, CapacityPolicy, ConfirmationPrompt
from mentorme.services.tracked_items import load_owned, resolve_status
from mentorme.services.user_service import get_or_create_user


def habit_capacity_policy() -> CapacityPolicy:
    return CapacityPolicy(
        limit=settings.active_limit,
        enforcement=settings.habit_limit_enforcement,
        noun="habit",
    )


def list_habits(db: Session, user_id: UUID, status_filter: Optional[TrackStatus] = None) -> List[Habit]:
    query = db.query(Habit).filter(Habit.user_id == user_id)
    if status_filter is not None:
        query = query.filter(Habit.status == status_filter.value)
    return query.order_by(asc(Habit.created_at)).all()


def create_habit(
    db: Session,
    payload: HabitCreateRequest,
    request_id: Optional[str],
    confirm: Optional[ConfirmationPrompt] = None,
) -> Tuple[Habit, CapacityDecision]:
    if payload.linked_goal_id is not None:
        load_owned(db, Goal, payload.linked_goal_id, payload.user_id, "Linked goal")

    try:
        get_or_create_user(db, payload.user_id, lock=True)
        decision = resolve_status(
            db,
            habit_capacity_policy(),
            model=Habit,
            user_id=payload.user_id,
            requested=payload.status,
            confirm=confirm,
            creating=True,
        )
        habit = Habit(
            user_id=payload.user_id,
            linked_goal_id=payload.linked_goal_id,
            title=payload.title.strip(),
            description=payload.description.strip(),
            frequency=payload.frequency.value,
            status=decision.effective_status.value,
        )
        db.add(habit)
        db.flush()
        record_action(
            db,
            user_id=payload.user_id,
            subject_id=habit.id,
            action_type="habit_created",
            payload={
                "habit_id": str(habit.id),
                "requested_status": decision.requested.value,
                "status": habit.status,
                "coerced": decision.coerced,
            },
            reason="Habit created",
            request_id=request_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(habit)
    return habit, decision


def update_habit(
    db: Session,
    habit_id: UUID,
    payload: HabitUpdateRequest,
    request_id: Optional[str],
    confirm: Optional[ConfirmationPrompt] = None,
) -> Tuple[Habit, CapacityDecision]:
    habit = load_owned(db, Habit, habit_id, payload.user_id, "Habit")
    previous_status = habit.status

    try:
        get_or_create_user(db, payload.user_id, lock=True)
        decision = resolve_status(
            db,
            habit_capacity_policy(),
            model=Habit,
            user_id=payload.user_id,
            requested=payload.status or TrackStatus(previous_status),
            confirm=confirm,
            already_active=previous_status == TrackStatus.ACTIVE.value,
        )
        if payload.title is not None:
            habit.title = payload.title.strip()
        if payload.description is not None:
            habit.description = payload.description.strip()
        if payload.frequency is not None:
            habit.frequency = payload.frequency.value
        new_status = decision.effective_status.value
        if new_status != previous_status:
            habit.status = new_status
            record_action(
                db,
                user_id=payload.user_id,
                subject_id=habit.id,
                action_type="habit_status_changed",
                payload={"habit_id": str(habit.id), "from": previous_status, "to": new_status},
                reason="Habit status updated",
                request_id=request_id,
                undo_available=True,
            )
        db.add(habit)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(habit)
    return habit, decision


def delete_habit(db: Session, habit_id: UUID, user_id: UUID, request_id: Optional[str]) -> None:
    habit = load_owned(db, Habit, habit_id, user_id, "Habit")
    try:
        record_action(
            db,
            user_id=user_id,
            subject_id=habit.id,
            action_type="habit_deleted",
            payload={"habit_id": str(habit.id), "title": habit.title},
            reason="Habit deleted by user",
            request_id=request_id,
        )
        db.delete(habit)
        db.commit()
    except Exception:
        db.rollback()
        raise


def serialize_habit(habit: Habit) -> HabitSummary:
    return HabitSummary(
        id=habit.id,
        title=habit.title,
        description=habit.description or "",
        frequency=HabitFrequency(habit.frequency),
        status=TrackStatus(habit.status),
        linked_goal_id=habit.linked_goal_id,
        created_at=habit.created_at,
        updated_at=habit.updated_at,
    )
