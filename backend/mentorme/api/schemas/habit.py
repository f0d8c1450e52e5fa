"""Schemas for habits."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from mentorme.db.models.enums import HabitFrequency, TrackStatus


class HabitCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    frequency: HabitFrequency = HabitFrequency.DAILY
    linked_goal_id: Optional[UUID] = None
    status: TrackStatus = TrackStatus.ACTIVE
    confirm_over_limit: bool = False


class HabitUpdateRequest(BaseModel):
    user_id: UUID
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    frequency: Optional[HabitFrequency] = None
    status: Optional[TrackStatus] = None
    confirm_over_limit: bool = False


class HabitSummary(BaseModel):
    id: UUID
    title: str
    description: str
    frequency: HabitFrequency
    status: TrackStatus
    linked_goal_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime


class HabitWriteResponse(BaseModel):
    habit: HabitSummary
    requested_status: TrackStatus
    coerced_to_backlog: bool
    active_count: int
    limit: int
    request_id: str
