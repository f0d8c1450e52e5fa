"""Schemas for the voice quick-capture API."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from mentorme.services.voice.session import ActivationOutcome, NoticeKind
from mentorme.services.voice.state_machine import VoiceActivationState
from mentorme.services.voice.surface import SurfaceKind


class VoiceUserRequest(BaseModel):
    user_id: UUID


class VoiceActivateRequest(VoiceUserRequest):
    surface: SurfaceKind = SurfaceKind.BUTTON
    hint: Optional[str] = Field(default=None, max_length=200)


class VoiceTranscriptRequest(VoiceUserRequest):
    text: str = Field(..., max_length=2000)


class VoiceFailureRequest(VoiceUserRequest):
    reason: str = Field(..., min_length=1, max_length=500)


class VoicePermissionRequest(VoiceUserRequest):
    granted: bool


class VoiceStateResponse(BaseModel):
    state: VoiceActivationState
    listening: bool
    request_id: str


class VoiceActivateResponse(VoiceStateResponse):
    outcome: ActivationOutcome


class VoiceCaptureResultPayload(BaseModel):
    title: str
    due_date: Optional[str]
    priority: Optional[str]


class VoiceTranscriptResponse(VoiceStateResponse):
    result: Optional[VoiceCaptureResultPayload] = None
    todo_id: Optional[UUID] = None


class VoiceNoticePayload(BaseModel):
    kind: NoticeKind
    message: str
    todo_id: Optional[UUID] = None


class VoiceNoticesResponse(BaseModel):
    notices: List[VoiceNoticePayload]


class VoiceCaptureSummary(BaseModel):
    todo_id: UUID
    title: str


class VoiceUndoResponse(BaseModel):
    todo_id: UUID
    removed: bool
    request_id: str
