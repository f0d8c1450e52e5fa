"""Shared plumbing for goals and habits, which both live under the
active-capacity policy."""
from __future__ import annotations

import logging
from typing import Optional, Type, Union
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from mentorme.db.models.enums import TrackStatus
from mentorme.db.models.goal import Goal
from mentorme.db.models.habit import Habit
from mentorme.observability.metrics import log_metric
from mentorme.services.capacity_policy import CapacityDecision, CapacityPolicy, ConfirmationPrompt

logger = logging.getLogger(__name__)

TrackedModel = Union[Type[Goal], Type[Habit]]


def count_active(db: Session, model: TrackedModel, user_id: UUID) -> int:
    """Authoritative active count, read inside the caller's transaction."""
    return (
        db.query(func.count(model.id))
        .filter(model.user_id == user_id, model.status == TrackStatus.ACTIVE.value)
        .scalar()
        or 0
    )


def load_owned(db: Session, model: TrackedModel, item_id: UUID, user_id: UUID, label: str):
    item = db.get(model, item_id)
    if not item:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
    if item.user_id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=f"{label} does not belong to user")
    return item


def resolve_status(
    db: Session,
    policy: CapacityPolicy,
    *,
    model: TrackedModel,
    user_id: UUID,
    requested: TrackStatus,
    confirm: Optional[ConfirmationPrompt],
    already_active: bool = False,
    creating: bool = False,
) -> CapacityDecision:
    """Re-read the active count and apply the policy to ``requested``.

    A declined (or unanswered) soft-limit confirmation rolls back and raises
    409 carrying the prompt, so nothing is written.
    """
    active_count = count_active(db, model, user_id)
    decision = policy.resolve(
        active_count, requested, confirm, already_active=already_active, creating=creating
    )
    if decision is None:
        db.rollback()
        log_metric(f"{policy.noun}.capacity.confirmation_required", 1, metadata={"active_count": active_count})
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "code": "confirmation_required",
                "message": policy.confirmation_prompt(active_count),
                "active_count": active_count,
                "limit": policy.limit,
            },
        )
    if decision.coerced:
        logger.info(
            "%s limit reached (%s); status coerced to backlog",
            policy.noun.capitalize(),
            policy.counter(active_count),
        )
        log_metric(f"{policy.noun}.capacity.coerced", 1, metadata={"active_count": active_count})
    elif decision.needs_confirmation:
        log_metric(f"{policy.noun}.capacity.override_confirmed", 1, metadata={"active_count": active_count})
    return decision

