"""Voice quick-capture API routes.

The recognizer runs on the device. These endpoints drive the per-user
session (activate, cancel, acknowledge) and carry what the device hears
back into it (transcript, failure, permission).
"""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from mentorme.api.schemas.voice import (
    VoiceActivateRequest,
    VoiceActivateResponse,
    VoiceCaptureResultPayload,
    VoiceCaptureSummary,
    VoiceFailureRequest,
    VoiceNoticePayload,
    VoiceNoticesResponse,
    VoicePermissionRequest,
    VoiceStateResponse,
    VoiceTranscriptRequest,
    VoiceTranscriptResponse,
    VoiceUndoResponse,
    VoiceUserRequest,
)
from mentorme.observability.metrics import log_metric
from mentorme.observability.tracing import annotate, trace
from mentorme.services.voice.registry import VoiceSessionRegistry
from mentorme.services.voice.session import ActivationOutcome, VoiceSession
from mentorme.services.voice.state_machine import VoiceActivationState
from mentorme.services.voice.surface import SurfaceKind

router = APIRouter(prefix="/voice", tags=["voice"])


def get_voice_registry(request: Request) -> VoiceSessionRegistry:
    registry = getattr(request.app.state, "voice_registry", None)
    if registry is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Voice capture not started")
    return registry


@router.get("/state", response_model=VoiceStateResponse)
async def voice_state(
    http_request: Request,
    user_id: UUID = Query(...),
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceStateResponse:
    return _state_response(registry.session(user_id), http_request)


@router.post("/activate", response_model=VoiceActivateResponse)
async def activate(
    payload: VoiceActivateRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceActivateResponse:
    """Tap the mic on a surface: starts listening, or stops it if already listening."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": "/voice/activate",
        "user_id": str(payload.user_id),
        "surface": payload.surface.value,
        "request_id": request_id,
    }
    with trace("voice.activate", metadata=metadata, user_id=str(payload.user_id), request_id=request_id) as span:
        session = registry.session(payload.user_id)
        outcome = await registry.surface(payload.user_id, payload.surface).tap(payload.hint)
        if outcome is ActivationOutcome.STARTED:
            await registry.engine(payload.user_id).wait_until_listening()
        annotate(span, outcome=outcome.value)

    return _activate_response(session, outcome, http_request)


@router.post("/shake", response_model=VoiceActivateResponse)
async def shake(
    payload: VoiceUserRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceActivateResponse:
    """Shake gesture reported by the device; rate limited by the session cooldown."""
    session = registry.session(payload.user_id)
    outcome = await session.activate_from_shake()
    if outcome is ActivationOutcome.STARTED:
        await registry.engine(payload.user_id).wait_until_listening()
    log_metric("voice.shake", 1, metadata={"outcome": outcome.value})
    return _activate_response(session, outcome, http_request)


@router.post("/cancel", response_model=VoiceStateResponse)
async def cancel(
    payload: VoiceUserRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceStateResponse:
    """Cancel whatever is running. Safe to call at any time."""
    session = registry.session(payload.user_id)
    await session.cancel()
    return _state_response(session, http_request)


@router.post("/acknowledge", response_model=VoiceStateResponse)
async def acknowledge(
    payload: VoiceUserRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceStateResponse:
    session = registry.session(payload.user_id)
    session.acknowledge()
    return _state_response(session, http_request)


@router.post("/transcript", response_model=VoiceTranscriptResponse)
async def submit_transcript(
    payload: VoiceTranscriptRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceTranscriptResponse:
    """End of utterance from the device recognizer.

    Waits for the capture to settle, so the response already carries the
    created todo (or the session is back to idle with a notice explaining why
    not).
    """
    request_id = getattr(http_request.state, "request_id", None)
    session = registry.session(payload.user_id)
    engine = registry.engine(payload.user_id)

    with trace(
        "voice.transcript",
        metadata={"route": "/voice/transcript", "length": len(payload.text), "request_id": request_id},
        user_id=str(payload.user_id),
        request_id=request_id,
    ) as span:
        if session.state is VoiceActivationState.LISTENING:
            await engine.wait_until_listening()
        if not engine.submit_transcript(payload.text):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail={"code": "not_listening", "state": session.state.value},
            )
        result = await session.wait_until_settled()
        todo_id = registry.capture.todo_for(payload.user_id, result) if result is not None else None
        annotate(span, has_result=result is not None, todo_id=str(todo_id) if todo_id else None)

    response = VoiceTranscriptResponse(
        state=session.state,
        listening=session.state is VoiceActivationState.LISTENING,
        request_id=request_id or "",
        todo_id=todo_id,
    )
    if result is not None:
        response.result = VoiceCaptureResultPayload(
            title=result.title,
            due_date=result.due_date,
            priority=result.priority,
        )
    return response


@router.post("/failure", response_model=VoiceStateResponse)
async def report_failure(
    payload: VoiceFailureRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceStateResponse:
    """The device recognizer crashed or lost the microphone mid-capture."""
    session = registry.session(payload.user_id)
    engine = registry.engine(payload.user_id)
    if session.state is VoiceActivationState.LISTENING:
        await engine.wait_until_listening()
    if not engine.fail(payload.reason):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": "not_listening", "state": session.state.value},
        )
    await session.wait_until_settled()
    return _state_response(session, http_request)


@router.post("/permission", response_model=VoiceStateResponse)
async def report_permission(
    payload: VoicePermissionRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceStateResponse:
    """Permission result from the device; a grant also loads the engine (idle -> ready)."""
    session = registry.session(payload.user_id)
    registry.engine(payload.user_id).report_permission(payload.granted)
    if payload.granted:
        await session.initialize()
    return _state_response(session, http_request)


@router.get("/notices", response_model=VoiceNoticesResponse)
async def take_notices(
    user_id: UUID = Query(...),
    surface: SurfaceKind = Query(default=SurfaceKind.BUTTON),
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceNoticesResponse:
    """Notices not yet shown on ``surface``; each is returned once."""
    notices = registry.surface(user_id, surface).take_notices()
    return VoiceNoticesResponse(
        notices=[
            VoiceNoticePayload(kind=notice.kind, message=notice.message, todo_id=notice.todo_id)
            for notice in notices
        ]
    )


@router.get("/captures/latest", response_model=VoiceCaptureSummary)
async def latest_capture(
    user_id: UUID = Query(...),
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceCaptureSummary:
    captured = registry.capture.latest(user_id)
    if captured is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No voice capture yet")
    return VoiceCaptureSummary(todo_id=captured.todo_id, title=captured.title)


@router.post("/captures/{todo_id}/undo", response_model=VoiceUndoResponse)
async def undo_capture(
    todo_id: UUID,
    payload: VoiceUserRequest,
    http_request: Request,
    registry: VoiceSessionRegistry = Depends(get_voice_registry),
) -> VoiceUndoResponse:
    """Remove a voice-created todo; nothing else is touched."""
    request_id = getattr(http_request.state, "request_id", None)
    with trace(
        "voice.undo",
        metadata={"route": f"/voice/captures/{todo_id}/undo", "todo_id": str(todo_id)},
        user_id=str(payload.user_id),
        request_id=request_id,
    ):
        removed = await registry.capture.undo(payload.user_id, todo_id, request_id=request_id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Nothing to undo")
    log_metric("voice.undo", 1, metadata={"user_id": str(payload.user_id)})
    return VoiceUndoResponse(todo_id=todo_id, removed=True, request_id=request_id or "")


def _state_response(session: VoiceSession, http_request: Request) -> VoiceStateResponse:
    return VoiceStateResponse(
        state=session.state,
        listening=session.state is VoiceActivationState.LISTENING,
        request_id=getattr(http_request.state, "request_id", None) or "",
    )


def _activate_response(
    session: VoiceSession,
    outcome: ActivationOutcome,
    http_request: Request,
) -> VoiceActivateResponse:
    return VoiceActivateResponse(
        state=session.state,
        listening=session.state is VoiceActivationState.LISTENING,
        outcome=outcome,
        request_id=getattr(http_request.state, "request_id", None) or "",
    )
