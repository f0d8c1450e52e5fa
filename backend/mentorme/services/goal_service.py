"""Goal persistence under the active-goal capacity policy."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Tuple
from uuid import UUID, uuid4

from fastapi import HTTPException, status
from sqlalchemy import asc, func
from sqlalchemy.orm import Session

from mentorme.api.schemas.goal import (
    GoalCreateRequest,
    GoalMoveRequest,
    GoalSummary,
    GoalUpdateRequest,
    MilestoneInput,
    MilestoneSummary,
)
from mentorme.core.config import settings
from mentorme.db.models.enums import GoalCategory, TrackStatus
from mentorme.db.models.goal import Goal
from mentorme.services.action_log import record_action
from mentorme.services.capacity_policy import (
    CapacityDecision,
    CapacityPolicy,
    ConfirmationPrompt,
    StatusOptions,
)
from mentorme.services.notifications.hooks import drop_goal_deadline, sync_goal_deadline
from mentorme.services.tracked_items import count_active, load_owned, resolve_status
from mentorme.services.user_service import get_or_create_user

logger = logging.getLogger(__name__)


def goal_capacity_policy() -> CapacityPolicy:
    return CapacityPolicy(
        limit=settings.active_limit,
        enforcement=settings.goal_limit_enforcement,
        noun="goal",
    )


def list_goals(db: Session, user_id: UUID, status_filter: Optional[TrackStatus] = None) -> List[Goal]:
    query = db.query(Goal).filter(Goal.user_id == user_id)
    if status_filter is not None:
        query = query.filter(Goal.status == status_filter.value)
    return query.order_by(asc(Goal.sort_order), asc(Goal.created_at)).all()


def goal_status_options(
    db: Session,
    user_id: UUID,
    selected: TrackStatus = TrackStatus.ACTIVE,
    current_status: Optional[TrackStatus] = None,
) -> StatusOptions:
    """Selector for the add dialog, or for the edit dialog when ``current_status`` is given."""
    return goal_capacity_policy().status_options(
        count_active(db, Goal, user_id),
        selected,
        include_terminal=current_status is not None,
        already_active=current_status is TrackStatus.ACTIVE,
    )


def create_goal(
    db: Session,
    payload: GoalCreateRequest,
    request_id: Optional[str],
    confirm: Optional[ConfirmationPrompt] = None,
) -> Tuple[Goal, CapacityDecision]:
    """Persist a new goal with its status checked against the limit at commit time."""
    policy = goal_capacity_policy()
    try:
        get_or_create_user(db, payload.user_id, lock=True)
        decision = resolve_status(
            db,
            policy,
            model=Goal,
            user_id=payload.user_id,
            requested=payload.status,
            confirm=confirm,
            creating=True,
        )
        effective = decision.effective_status.value
        goal = Goal(
            user_id=payload.user_id,
            title=payload.title.strip(),
            description=payload.description.strip(),
            category=payload.category.value,
            status=effective,
            target_date=payload.target_date,
            milestones=build_milestones(payload.milestones),
            current_progress=0,
            sort_order=_next_sort_order(db, payload.user_id, effective),
        )
        db.add(goal)
        db.flush()
        record_action(
            db,
            user_id=payload.user_id,
            subject_id=goal.id,
            action_type="goal_created",
            payload={
                "goal_id": str(goal.id),
                "requested_status": decision.requested.value,
                "status": effective,
                "active_count": decision.active_count,
                "coerced": decision.coerced,
                "confirmed_over_limit": decision.needs_confirmation,
            },
            reason="Goal created",
            request_id=request_id,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(goal)
    sync_goal_deadline(goal, created=True)
    return goal, decision


def update_goal(
    db: Session,
    goal_id: UUID,
    payload: GoalUpdateRequest,
    request_id: Optional[str],
    confirm: Optional[ConfirmationPrompt] = None,
) -> Tuple[Goal, CapacityDecision]:
    """Apply field edits; a status change goes through the capacity policy."""
    goal = load_owned(db, Goal, goal_id, payload.user_id, "Goal")
    policy = goal_capacity_policy()
    previous_status = goal.status
    previous_target = goal.target_date
    requested = payload.status or TrackStatus(goal.status)

    try:
        get_or_create_user(db, payload.user_id, lock=True)
        decision = resolve_status(
            db,
            policy,
            model=Goal,
            user_id=payload.user_id,
            requested=requested,
            confirm=confirm,
            already_active=previous_status == TrackStatus.ACTIVE.value,
        )
        new_status = decision.effective_status.value

        if payload.title is not None:
            goal.title = payload.title.strip()
        if payload.description is not None:
            goal.description = payload.description.strip()
        if payload.category is not None:
            goal.category = payload.category.value
        if "target_date" in payload.model_fields_set:
            goal.target_date = payload.target_date
        if payload.milestones is not None:
            goal.milestones = build_milestones(payload.milestones, goal.milestones)
        if payload.current_progress is not None:
            goal.current_progress = payload.current_progress
        if new_status != previous_status:
            goal.status = new_status
            goal.sort_order = _next_sort_order(db, payload.user_id, new_status)
            record_action(
                db,
                user_id=payload.user_id,
                subject_id=goal.id,
                action_type="goal_status_changed",
                payload={
                    "goal_id": str(goal.id),
                    "from": previous_status,
                    "to": new_status,
                    "requested_status": decision.requested.value,
                    "active_count": decision.active_count,
                    "coerced": decision.coerced,
                },
                reason="Goal status updated",
                request_id=request_id,
                undo_available=True,
            )
        db.add(goal)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(goal)
    sync_goal_deadline(goal, previous_target)
    return goal, decision


def move_goal(
    db: Session,
    goal_id: UUID,
    payload: GoalMoveRequest,
    request_id: Optional[str],
    confirm: Optional[ConfirmationPrompt] = None,
) -> Tuple[Goal, CapacityDecision]:
    """Move a goal between sections (or reorder within one).

    Unlike create, a hard-limited move into active is refused with a 409
    instead of being coerced to backlog.
    """
    goal = load_owned(db, Goal, goal_id, payload.user_id, "Goal")
    policy = goal_capacity_policy()
    previous_status = goal.status

    try:
        get_or_create_user(db, payload.user_id, lock=True)
        decision = resolve_status(
            db,
            policy,
            model=Goal,
            user_id=payload.user_id,
            requested=payload.status,
            confirm=confirm,
            already_active=previous_status == TrackStatus.ACTIVE.value,
        )
        if decision.coerced:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={
                    "code": "limit_reached",
                    "message": policy.limit_reached_message(),
                    "active_count": decision.active_count,
                    "limit": policy.limit,
                },
            )

        new_status = decision.effective_status.value
        if payload.sort_order is not None:
            goal.sort_order = payload.sort_order
        elif new_status != previous_status:
            goal.sort_order = _next_sort_order(db, payload.user_id, new_status)
        if new_status != previous_status:
            goal.status = new_status
            record_action(
                db,
                user_id=payload.user_id,
                subject_id=goal.id,
                action_type="goal_moved",
                payload={"goal_id": str(goal.id), "from": previous_status, "to": new_status},
                reason="Goal moved between sections",
                request_id=request_id,
                undo_available=True,
            )
        db.add(goal)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(goal)
    return goal, decision


def delete_goal(db: Session, goal_id: UUID, user_id: UUID, request_id: Optional[str]) -> None:
    goal = load_owned(db, Goal, goal_id, user_id, "Goal")
    try:
        record_action(
            db,
            user_id=user_id,
            subject_id=goal.id,
            action_type="goal_deleted",
            payload={"goal_id": str(goal.id), "title": goal.title, "status": goal.status},
            reason="Goal deleted by user",
            request_id=request_id,
        )
        db.delete(goal)
        db.commit()
    except Exception:
        db.rollback()
        raise
    drop_goal_deadline(user_id, goal_id)
    logger.info("Goal %s deleted", goal_id)


def complete_milestone(
    db: Session,
    goal_id: UUID,
    milestone_id: UUID,
    user_id: UUID,
    request_id: Optional[str],
    today: Optional[date] = None,
) -> Goal:
    """Mark one milestone done; completing it twice keeps the first date."""
    goal = load_owned(db, Goal, goal_id, user_id, "Goal")
    milestones = [dict(item) for item in goal.milestones or []]
    target = next((item for item in milestones if item["id"] == str(milestone_id)), None)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Milestone not found")
    if target["completed"]:
        return goal

    target["completed"] = True
    target["completed_date"] = (today or date.today()).isoformat()
    try:
        goal.milestones = milestones
        record_action(
            db,
            user_id=user_id,
            subject_id=goal.id,
            action_type="goal_milestone_completed",
            payload={
                "goal_id": str(goal.id),
                "milestone_id": str(milestone_id),
                "completed": sum(1 for item in milestones if item["completed"]),
                "total": len(milestones),
            },
            reason="Milestone completed",
            request_id=request_id,
            undo_available=True,
        )
        db.add(goal)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(goal)
    return goal


def build_milestones(
    inputs: Sequence[MilestoneInput],
    existing: Optional[Sequence[Dict[str, Any]]] = None,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Stored form of an edited milestone list, in the given order.

    Items whose id matches an existing milestone keep that id and, while
    still completed, their original completion date.
    """
    previous = {item["id"]: item for item in existing or []}
    built: List[Dict[str, Any]] = []
    for order, item in enumerate(inputs):
        prior = previous.get(str(item.id)) if item.id else None
        completed_date = None
        if item.completed:
            completed_date = (prior or {}).get("completed_date") or (today or date.today()).isoformat()
        built.append(
            {
                "id": prior["id"] if prior else str(uuid4()),
                "title": item.title.strip(),
                "description": item.description.strip(),
                "target_date": item.target_date.isoformat() if item.target_date else None,
                "order": order,
                "completed": item.completed,
                "completed_date": completed_date,
            }
        )
    return built


def serialize_goal(goal: Goal) -> GoalSummary:
    return GoalSummary(
        id=goal.id,
        title=goal.title,
        description=goal.description or "",
        category=GoalCategory(goal.category),
        status=TrackStatus(goal.status),
        target_date=goal.target_date,
        milestones=[MilestoneSummary(**item) for item in goal.milestones or []],
        current_progress=goal.current_progress or 0,
        sort_order=goal.sort_order or 0,
        created_at=goal.created_at,
        updated_at=goal.updated_at,
    )


def _next_sort_order(db: Session, user_id: UUID, status_value: str) -> int:
    current = (
        db.query(func.max(Goal.sort_order))
        .filter(Goal.user_id == user_id, Goal.status == status_value)
        .scalar()
    )
    return 0 if current is None else current + 1
