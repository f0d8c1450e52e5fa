"""Helpers for writing the action log."""
from __future__ import annotations

from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from mentorme.db.models.action_log import ActionLog


def record_action(
    db: Session,
    *,
    user_id: UUID,
    action_type: str,
    payload: Dict[str, Any],
    reason: str,
    request_id: Optional[str] = None,
    undo_available: bool = False,
    subject_id: Optional[UUID] = None,
) -> ActionLog:
    """Stage an ActionLog row on ``db``; the caller owns the commit.

    ``subject_id`` is the goal, habit or todo the action touched.
    """
    log = ActionLog(
        user_id=user_id,
        subject_id=subject_id,
        action_type=action_type,
        action_payload={**payload, "request_id": request_id},
        reason=reason,
        undo_available=undo_available,
    )
    db.add(log)
    return log
