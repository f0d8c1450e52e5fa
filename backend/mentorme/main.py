"""Main FastAPI application for the MentorMe backend."""
from typing import Callable

from fastapi import FastAPI, Request
from sqlalchemy.orm import Session

from mentorme.api.routes.goals import router as goals_router
from mentorme.api.routes.habits import router as habits_router
from mentorme.api.routes.todos import router as todos_router
from mentorme.api.routes.voice import router as voice_router
from mentorme.core.config import settings
from mentorme.core.logging import configure_logging
from mentorme.core.middleware import RequestContextMiddleware
from mentorme.db.session import SessionLocal
from mentorme.observability.client import init_opik, shutdown_opik
from mentorme.observability.tracing import trace
from mentorme.services.voice.capture import VoiceTodoCapture
from mentorme.services.voice.registry import VoiceSessionRegistry
from mentorme.services.voice.transcript_parser import build_transcript_parser

configure_logging(log_level=settings.log_level)

app = FastAPI(title=settings.app_name, version="0.1.0")
app.add_middleware(RequestContextMiddleware)
app.include_router(goals_router)
app.include_router(habits_router)
app.include_router(todos_router)
app.include_router(voice_router)


def build_voice_registry(session_factory: Callable[[], Session] = SessionLocal) -> VoiceSessionRegistry:
    """Wire per-user voice sessions to the todo store."""
    return VoiceSessionRegistry(
        settings=settings,
        parser=build_transcript_parser(),
        capture=VoiceTodoCapture(session_factory),
    )


@app.on_event("startup")
async def startup_services() -> None:
    """Initialize observability and voice sessions after the event loop starts."""
    init_opik()
    app.state.voice_registry = build_voice_registry()


@app.on_event("shutdown")
async def shutdown_services() -> None:
    registry = getattr(app.state, "voice_registry", None)
    if registry is not None:
        await registry.shutdown()
    shutdown_opik()


@app.get("/health", tags=["health"], summary="Readiness check")
async def health_check(request: Request) -> dict[str, str]:
    """Return a simple status payload so automation can check the API is up."""
    with trace("http.health_check", metadata={"route": "/health"}, request_id=request.state.request_id):
        return {"status": "ok"}
