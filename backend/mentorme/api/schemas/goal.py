"""Schemas for goals and the active-capacity policy."""
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from mentorme.db.models.enums import GoalCategory, TrackStatus

MAX_MILESTONES = 20


class MilestoneInput(BaseModel):
    id: Optional[UUID] = Field(default=None, description="Set when editing a milestone that already exists.")
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=1000)
    target_date: Optional[date] = None
    completed: bool = False


class MilestoneSummary(BaseModel):
    id: UUID
    title: str
    description: str
    target_date: Optional[date]
    order: int
    completed: bool
    completed_date: Optional[date]


class GoalCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    category: GoalCategory = GoalCategory.OTHER
    target_date: Optional[date] = None
    status: TrackStatus = TrackStatus.ACTIVE
    milestones: List[MilestoneInput] = Field(default_factory=list, max_length=MAX_MILESTONES)
    confirm_over_limit: bool = Field(
        default=False,
        description="Answer to the over-limit confirmation; only consulted under soft enforcement.",
    )


class GoalUpdateRequest(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    category: Optional[GoalCategory] = None
    target_date: Optional[date] = None
    status: Optional[TrackStatus] = None
    current_progress: Optional[int] = Field(default=None, ge=0, le=100)
    milestones: Optional[List[MilestoneInput]] = Field(
        default=None,
        max_length=MAX_MILESTONES,
        description="Replaces the whole milestone list; items carrying an existing id keep it.",
    )
    confirm_over_limit: bool = False


class GoalMoveRequest(BaseModel):
    user_id: UUID
    status: TrackStatus
    sort_order: Optional[int] = Field(default=None, ge=0)
    confirm_over_limit: bool = False


class GoalSummary(BaseModel):
    id: UUID
    title: str
    description: str
    category: GoalCategory
    status: TrackStatus
    target_date: Optional[date]
    milestones: List[MilestoneSummary] = Field(default_factory=list)
    current_progress: int
    sort_order: int
    created_at: datetime
    updated_at: datetime


class GoalWriteResponse(BaseModel):
    goal: GoalSummary
    requested_status: TrackStatus
    coerced_to_backlog: bool
    active_count: int
    limit: int
    message: str
    request_id: str


class StatusOptionPayload(BaseModel):
    status: TrackStatus
    enabled: bool
    label: str


class StatusOptionsResponse(BaseModel):
    enforcement: str
    options: List[StatusOptionPayload]
    selected: TrackStatus
    caption: str
    tone: str
    counter: str
    active_count: int
    limit: int
    at_limit: bool


class CapacityConflictDetail(BaseModel):
    """Body of the 409 returned when an over-limit save needs confirmation."""

    code: str = "confirmation_required"
    message: str
    active_count: int
    limit: int


class MilestoneSuggestRequest(BaseModel):
    """Draft goal the add dialog wants milestones for."""

    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    category: GoalCategory = GoalCategory.OTHER
    target_date: Optional[date] = None
    guidance: Optional[str] = Field(
        default=None,
        max_length=500,
        description="Free-text instructions from the user; followed ahead of the default 3-5 milestones.",
    )


class MilestoneSuggestionPayload(BaseModel):
    title: str
    description: str
    suggested_weeks_from_now: int
    target_date: date


class MilestoneSuggestResponse(BaseModel):
    milestones: List[MilestoneSuggestionPayload]
    source: str
    request_id: str
