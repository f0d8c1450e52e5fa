"""Per-user voice sessions owned by the application."""
from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple
from uuid import UUID

from mentorme.core.config import Settings
from mentorme.services.voice.capture import VoiceTodoCapture
from mentorme.services.voice.engine import DeviceSpeechEngine
from mentorme.services.voice.microphone import MicrophoneGuard
from mentorme.services.voice.session import VoiceSession
from mentorme.services.voice.surface import SurfaceKind, VoiceSurface
from mentorme.services.voice.transcript_parser import TranscriptParser

logger = logging.getLogger(__name__)


class VoiceSessionRegistry:
    """One session, one microphone guard and one engine per user device.

    Sessions are created lazily and wired to the todo capture before anyone
    can activate them, so no result is published without a consumer.
    """

    def __init__(
        self,
        *,
        settings: Settings,
        parser: TranscriptParser,
        capture: VoiceTodoCapture,
        engine_factory: Callable[[], DeviceSpeechEngine] = DeviceSpeechEngine,
    ) -> None:
        self.settings = settings
        self.parser = parser
        self.capture = capture
        self.engine_factory = engine_factory
        self._sessions: Dict[UUID, VoiceSession] = {}
        self._unbind: Dict[UUID, Callable[[], None]] = {}
        self._surfaces: Dict[Tuple[UUID, SurfaceKind], VoiceSurface] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def find(self, user_id: UUID) -> Optional[VoiceSession]:
        return self._sessions.get(user_id)

    def session(self, user_id: UUID) -> VoiceSession:
        existing = self._sessions.get(user_id)
        if existing is not None:
            return existing

        session = VoiceSession(
            self.engine_factory(),
            self.parser,
            microphone=MicrophoneGuard(name=f"microphone:{user_id}"),
            user_id=user_id,
            listen_timeout=self.settings.voice_listen_timeout_seconds,
            error_reset_delay=self.settings.voice_error_reset_seconds,
            shake_enabled=self.settings.voice_shake_enabled,
            shake_cooldown=self.settings.voice_shake_cooldown_seconds,
        )
        self._unbind[user_id] = self.capture.bind(session)
        self._sessions[user_id] = session
        logger.debug("Voice session created for %s", user_id)
        return session

    def engine(self, user_id: UUID) -> DeviceSpeechEngine:
        return self.session(user_id).engine  # type: ignore[return-value]

    def surface(self, user_id: UUID, kind: SurfaceKind) -> VoiceSurface:
        key = (user_id, SurfaceKind(kind))
        surface = self._surfaces.get(key)
        if surface is None:
            surface = VoiceSurface(self.session(user_id), key[1])
            self._surfaces[key] = surface
        return surface

    async def shutdown(self) -> None:
        for surface in self._surfaces.values():
            surface.detach()
        for unbind in self._unbind.values():
            unbind()
        for session in self._sessions.values():
            await session.close()
        self._surfaces.clear()
        self._unbind.clear()
        self._sessions.clear()
