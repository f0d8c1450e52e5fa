"""Speech capture engines."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class SpeechEngineError(RuntimeError):
    """The engine failed mid-capture (device error, recognizer crash, ...)."""


class SpeechEngine(Protocol):
    async def is_available(self) -> bool: ...

    async def has_permission(self) -> bool: ...

    async def request_permission(self) -> bool: ...

    async def listen(self, hint: Optional[str] = None) -> Optional[str]:
        """Capture one utterance; None when stopped or nothing was heard."""
        ...

    async def stop(self) -> None: ...


class DeviceSpeechEngine:
    """Engine whose recognizer runs on the user's device.

    The device reports permission status, transcripts and failures over the
    API; ``listen`` simply waits for the next one of those to arrive.
    """

    def __init__(self, *, available: bool = True, permission_granted: Optional[bool] = None) -> None:
        self.available = available
        self.permission_granted = permission_granted
        self.last_hint: Optional[str] = None
        self._pending: Optional[asyncio.Future] = None
        self._listening = asyncio.Event()

    @property
    def is_listening(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def is_available(self) -> bool:
        return self.available

    async def has_permission(self) -> bool:
        return bool(self.permission_granted)

    async def request_permission(self) -> bool:
        # the OS prompt lives on the device; all we know is the last report
        return bool(self.permission_granted)

    def report_permission(self, granted: bool) -> None:
        self.permission_granted = granted

    async def listen(self, hint: Optional[str] = None) -> Optional[str]:
        if self.is_listening:
            raise SpeechEngineError("already listening")
        self.last_hint = hint
        self._pending = asyncio.get_running_loop().create_future()
        self._listening.set()
        try:
            return await self._pending
        finally:
            self._pending = None
            self._listening.clear()

    async def wait_until_listening(self, timeout: float = 1.0) -> bool:
        """Wait for a capture that was just started to reach ``listen``."""
        if self.is_listening:
            return True
        try:
            await asyncio.wait_for(self._listening.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return self.is_listening

    def submit_transcript(self, text: str) -> bool:
        """Deliver end-of-utterance text; False when nobody is listening."""
        if not self.is_listening:
            return False
        self._pending.set_result(text)
        return True

    def fail(self, reason: str) -> bool:
        if not self.is_listening:
            return False
        self._pending.set_exception(SpeechEngineError(reason))
        return True

    async def stop(self) -> None:
        if self.is_listening:
            self._pending.set_result(None)
