"""Places in the app that show and drive the shared voice session."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from mentorme.services.voice.session import ActivationOutcome, VoiceNotice, VoiceSession
from mentorme.services.voice.state_machine import VoiceActivationState


class SurfaceKind(str, Enum):
    OVERLAY = "overlay"
    BUTTON = "button"


class VoiceSurface:
    """A full-screen overlay or an inline mic button.

    Each surface keeps its own subscriptions to the session's state and
    notice broadcasts; taps go through the session so two surfaces can never
    start two captures.
    """

    def __init__(self, session: VoiceSession, kind: SurfaceKind) -> None:
        self.session = session
        self.kind = SurfaceKind(kind)
        self.visible = False
        self.last_state = session.state
        self._states = session.states.subscribe()
        self._notices = session.notices.subscribe()
        self._pending_notices: List[VoiceNotice] = []

    @property
    def pulsing(self) -> bool:
        self.refresh()
        return self.last_state is VoiceActivationState.LISTENING

    def refresh(self) -> VoiceActivationState:
        """Catch up on everything broadcast since the last look."""
        for state in self._states.drain():
            self.last_state = state
        self._pending_notices.extend(self._notices.drain())
        return self.last_state

    def take_notices(self) -> List[VoiceNotice]:
        """Notices are shown once; taking them clears the queue."""
        self.refresh()
        notices, self._pending_notices = self._pending_notices, []
        return notices

    async def tap(self, hint: Optional[str] = None) -> ActivationOutcome:
        if self.kind is SurfaceKind.OVERLAY:
            self.visible = True
        return await self.session.activate(hint, source=self.kind.value)

    async def dismiss(self) -> None:
        """Closing the overlay cancels any capture and clears an error."""
        self.visible = False
        await self.session.cancel()

    def detach(self) -> None:
        self._states.close()
        self._notices.close()
