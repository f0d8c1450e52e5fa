"""Habit API routes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from mentorme.api.schemas.habit import (
    HabitCreateRequest,
    HabitSummary,
    HabitUpdateRequest,
    HabitWriteResponse,
)
from mentorme.db.deps import get_db
from mentorme.db.models.enums import TrackStatus
from mentorme.db.models.habit import Habit
from mentorme.observability.metrics import log_metric
from mentorme.observability.tracing import trace
from mentorme.services import habit_service
from mentorme.services.capacity_policy import CapacityDecision

router = APIRouter()


@router.get("/habits", response_model=List[HabitSummary], tags=["habits"])
def list_habits(
    http_request: Request,
    user_id: UUID = Query(...),
    status_filter: Optional[TrackStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
) -> List[HabitSummary]:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "habit.list",
        metadata={"route": "/habits", "user_id": str(user_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        habits = habit_service.list_habits(db, user_id, status_filter)
    log_metric("habit.list.count", len(habits), metadata={"user_id": str(user_id)})
    return [habit_service.serialize_habit(habit) for habit in habits]


@router.post("/habits", response_model=HabitWriteResponse, status_code=status.HTTP_201_CREATED, tags=["habits"])
def create_habit(
    payload: HabitCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> HabitWriteResponse:
    """Create a habit under the same active limit as goals."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/habits",
        "user_id": str(payload.user_id),
        "requested_status": payload.status.value,
        "request_id": request_id,
    }
    with trace("habit.create", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        habit, decision = habit_service.create_habit(
            db,
            payload,
            request_id,
            confirm=lambda _decision: payload.confirm_over_limit,
        )
    log_metric("habit.create.success", 1, metadata={"status": habit.status})
    return _write_response(habit, decision, request_id)


@router.patch("/habits/{habit_id}", response_model=HabitWriteResponse, tags=["habits"])
def update_habit(
    habit_id: UUID,
    payload: HabitUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> HabitWriteResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "habit.update",
        metadata={"route": f"/habits/{habit_id}", "habit_id": str(habit_id), "request_id": request_id},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        habit, decision = habit_service.update_habit(
            db,
            habit_id,
            payload,
            request_id,
            confirm=lambda _decision: payload.confirm_over_limit,
        )
    log_metric("habit.update.success", 1, metadata={"habit_id": str(habit_id)})
    return _write_response(habit, decision, request_id)


@router.delete("/habits/{habit_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["habits"])
def delete_habit(
    habit_id: UUID,
    http_request: Request,
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "habit.delete",
        metadata={"route": f"/habits/{habit_id}", "habit_id": str(habit_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        habit_service.delete_habit(db, habit_id, user_id, request_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _write_response(habit: Habit, decision: CapacityDecision, request_id: Optional[str]) -> HabitWriteResponse:
    return HabitWriteResponse(
        habit=habit_service.serialize_habit(habit),
        requested_status=decision.requested,
        coerced_to_backlog=decision.coerced,
        active_count=decision.active_count,
        limit=decision.limit,
        request_id=request_id or "",
    )
