"""Goal API routes."""
from __future__ import annotations

from time import perf_counter
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response, status
from sqlalchemy.orm import Session

from mentorme.api.schemas.goal import (
    GoalCreateRequest,
    GoalMoveRequest,
    GoalSummary,
    GoalUpdateRequest,
    GoalWriteResponse,
    MilestoneSuggestionPayload,
    MilestoneSuggestRequest,
    MilestoneSuggestResponse,
    StatusOptionPayload,
    StatusOptionsResponse,
)
from mentorme.db.deps import get_db
from mentorme.db.models.enums import TrackStatus
from mentorme.db.models.goal import Goal
from mentorme.observability.metrics import log_latency, log_metric
from mentorme.observability.tracing import trace
from mentorme.services import goal_service, milestone_suggester
from mentorme.services.capacity_policy import CapacityDecision

router = APIRouter()


@router.get("/goals", response_model=List[GoalSummary], tags=["goals"])
def list_goals(
    http_request: Request,
    user_id: UUID = Query(..., description="User ID owning the goals"),
    status_filter: Optional[TrackStatus] = Query(default=None, alias="status"),
    db: Session = Depends(get_db),
) -> List[GoalSummary]:
    """List a user's goals ordered by section position."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/goals",
        "user_id": str(user_id),
        "status": status_filter.value if status_filter else None,
        "request_id": request_id,
    }
    with trace("goal.list", metadata=metadata, user_id=str(user_id), request_id=request_id):
        goals = goal_service.list_goals(db, user_id, status_filter)

    log_metric("goal.list.count", len(goals), metadata={"user_id": str(user_id)})
    return [goal_service.serialize_goal(goal) for goal in goals]


@router.get("/goals/status-options", response_model=StatusOptionsResponse, tags=["goals"])
def goal_status_options(
    http_request: Request,
    user_id: UUID = Query(...),
    selected: TrackStatus = Query(default=TrackStatus.ACTIVE),
    current_status: Optional[TrackStatus] = Query(
        default=None,
        description="Status of the goal being edited; omit for the add dialog.",
    ),
    db: Session = Depends(get_db),
) -> StatusOptionsResponse:
    """What the add/edit dialog should offer, computed from the current active count."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "goal.status_options",
        metadata={"route": "/goals/status-options", "user_id": str(user_id), "selected": selected.value},
        user_id=str(user_id),
        request_id=request_id,
    ):
        options = goal_service.goal_status_options(db, user_id, selected, current_status)

    return StatusOptionsResponse(
        enforcement=goal_service.goal_capacity_policy().enforcement.value,
        options=[
            StatusOptionPayload(status=option.status, enabled=option.enabled, label=option.label)
            for option in options.options
        ],
        selected=options.selected,
        caption=options.caption,
        tone=options.tone.value,
        counter=options.counter,
        active_count=options.active_count,
        limit=options.limit,
        at_limit=options.at_limit,
    )


@router.post("/goals", response_model=GoalWriteResponse, status_code=status.HTTP_201_CREATED, tags=["goals"])
def create_goal(
    payload: GoalCreateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalWriteResponse:
    """Create a goal; the requested status is checked against the active limit on save."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/goals",
        "user_id": str(payload.user_id),
        "requested_status": payload.status.value,
        "confirm_over_limit": payload.confirm_over_limit,
        "request_id": request_id,
    }

    started = perf_counter()
    with trace("goal.create", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        goal, decision = goal_service.create_goal(
            db,
            payload,
            request_id,
            confirm=lambda _decision: payload.confirm_over_limit,
        )

    log_metric("goal.create.success", 1, metadata={"user_id": str(payload.user_id), "status": goal.status})
    log_latency("goal.create", started)
    return _write_response(goal, decision, request_id)


@router.post("/goals/milestones/suggest", response_model=MilestoneSuggestResponse, tags=["goals"])
def suggest_milestones(payload: MilestoneSuggestRequest, http_request: Request) -> MilestoneSuggestResponse:
    """Suggested milestones for a draft goal, earliest first. Nothing is saved."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/goals/milestones/suggest",
        "user_id": str(payload.user_id),
        "category": payload.category.value,
        "request_id": request_id,
    }
    started = perf_counter()
    with trace("goal.milestones.suggest", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        suggestions = milestone_suggester.suggest_milestones(
            milestone_suggester.GoalDraft(
                title=payload.title,
                description=payload.description,
                category=payload.category,
                target_date=payload.target_date,
                guidance=payload.guidance,
            ),
            request_id=request_id,
        )

    log_latency("goal.milestones.suggest", started)
    return MilestoneSuggestResponse(
        milestones=[
            MilestoneSuggestionPayload(
                title=item.title,
                description=item.description,
                suggested_weeks_from_now=item.suggested_weeks_from_now,
                target_date=item.target_date,
            )
            for item in suggestions.milestones
        ],
        source=suggestions.source,
        request_id=request_id or "",
    )


@router.post(
    "/goals/{goal_id}/milestones/{milestone_id}/complete",
    response_model=GoalSummary,
    tags=["goals"],
)
def complete_milestone(
    goal_id: UUID,
    milestone_id: UUID,
    http_request: Request,
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> GoalSummary:
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/goals/{goal_id}/milestones/{milestone_id}/complete",
        "goal_id": str(goal_id),
        "milestone_id": str(milestone_id),
        "request_id": request_id,
    }
    with trace("goal.milestone.complete", metadata=metadata, user_id=str(user_id), request_id=request_id):
        goal = goal_service.complete_milestone(db, goal_id, milestone_id, user_id, request_id)

    log_metric("goal.milestone.complete.success", 1, metadata={"goal_id": str(goal_id)})
    return goal_service.serialize_goal(goal)


@router.patch("/goals/{goal_id}", response_model=GoalWriteResponse, tags=["goals"])
def update_goal(
    goal_id: UUID,
    payload: GoalUpdateRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalWriteResponse:
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/goals/{goal_id}",
        "goal_id": str(goal_id),
        "user_id": str(payload.user_id),
        "fields": sorted(payload.model_fields_set - {"user_id", "confirm_over_limit"}),
        "request_id": request_id,
    }
    with trace("goal.update", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        goal, decision = goal_service.update_goal(
            db,
            goal_id,
            payload,
            request_id,
            confirm=lambda _decision: payload.confirm_over_limit,
        )

    log_metric("goal.update.success", 1, metadata={"goal_id": str(goal_id)})
    return _write_response(goal, decision, request_id)


@router.post("/goals/{goal_id}/move", response_model=GoalWriteResponse, tags=["goals"])
def move_goal(
    goal_id: UUID,
    payload: GoalMoveRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> GoalWriteResponse:
    """Drag-and-drop between the active, backlog and completed sections."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/goals/{goal_id}/move",
        "goal_id": str(goal_id),
        "user_id": str(payload.user_id),
        "to": payload.status.value,
        "request_id": request_id,
    }
    with trace("goal.move", metadata=metadata, user_id=str(payload.user_id), request_id=request_id):
        goal, decision = goal_service.move_goal(
            db,
            goal_id,
            payload,
            request_id,
            confirm=lambda _decision: payload.confirm_over_limit,
        )

    log_metric("goal.move.success", 1, metadata={"goal_id": str(goal_id), "to": goal.status})
    return _write_response(goal, decision, request_id)


@router.delete("/goals/{goal_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["goals"])
def delete_goal(
    goal_id: UUID,
    http_request: Request,
    user_id: UUID = Query(...),
    db: Session = Depends(get_db),
) -> Response:
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "goal.delete",
        metadata={"route": f"/goals/{goal_id}", "goal_id": str(goal_id), "request_id": request_id},
        user_id=str(user_id),
        request_id=request_id,
    ):
        goal_service.delete_goal(db, goal_id, user_id, request_id)

    log_metric("goal.delete.success", 1, metadata={"goal_id": str(goal_id)})
    return Response(status_code=status.HTTP_204_NO_CONTENT)


def _write_response(goal: Goal, decision: CapacityDecision, request_id: Optional[str]) -> GoalWriteResponse:
    policy = goal_service.goal_capacity_policy()
    if decision.coerced:
        message = policy.limit_reached_message()
    elif decision.needs_confirmation:
        message = policy.soft_warning_message(decision.active_count)
    else:
        message = policy.focus_message()
    return GoalWriteResponse(
        goal=goal_service.serialize_goal(goal),
        requested_status=decision.requested,
        coerced_to_backlog=decision.coerced,
        active_count=decision.active_count,
        limit=decision.limit,
        message=message,
        request_id=request_id or "",
    )
