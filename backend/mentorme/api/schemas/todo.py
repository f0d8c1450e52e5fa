"""Schemas for todos."""
from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from mentorme.db.models.enums import TodoPriority, TodoStatus


class TodoCreateRequest(BaseModel):
    user_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=2000)
    due_date: Optional[datetime] = None
    priority: TodoPriority = TodoPriority.MEDIUM


class TodoUpdateRequest(BaseModel):
    user_id: UUID
    status: TodoStatus


class TodoSummary(BaseModel):
    id: UUID
    title: str
    description: Optional[str]
    due_date: Optional[datetime]
    priority: TodoPriority
    status: TodoStatus
    completed_at: Optional[datetime]
    was_voice_captured: bool
    voice_transcript: Optional[str]
    created_at: datetime
    updated_at: datetime
