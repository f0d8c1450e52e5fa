"""Voice quick-capture session.

One session owns one capture flow: idle -> listening -> processing -> idle,
with error and cancel branches. State changes, parsed results and
user-facing notices are fanned out on three broadcasts so any number of
surfaces can follow the same session. All mutation happens on the event
loop without awaiting between a check and the write that depends on it.
"""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from mentorme.observability.metrics import log_metric
from mentorme.observability.tracing import trace
from mentorme.services.voice.broadcast import Broadcast
from mentorme.services.voice.engine import SpeechEngine, SpeechEngineError
from mentorme.services.voice.microphone import MicrophoneBusy, MicrophoneGuard
from mentorme.services.voice.state_machine import (
    BUSY_STATES,
    IDLE_STATES,
    VoiceActivationState,
    VoiceEvent,
    transition,
)
from mentorme.services.voice.transcript_parser import TranscriptParser, VoiceCaptureResult

logger = logging.getLogger(__name__)

ResultHandler = Callable[[VoiceCaptureResult], Awaitable[object]]

DEFAULT_HINT = "What do you need to do?"
SHAKE_HINT = "Shake activated - what do you need?"


class ActivationOutcome(str, Enum):
    STARTED = "started"
    CANCELLED = "cancelled"
    IGNORED = "ignored"
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    BUSY = "busy"
    COOLDOWN = "cooldown"
    DISABLED = "disabled"


class NoticeKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    UNAVAILABLE = "unavailable"
    BUSY = "busy"
    NO_SPEECH = "no_speech"
    TIMEOUT = "timeout"
    ERROR = "error"
    TODO_CREATED = "todo_created"


@dataclass(frozen=True)
class VoiceNotice:
    """One-shot message for whoever is showing the session."""

    kind: NoticeKind
    message: str
    todo_id: Optional[UUID] = None


class VoiceSession:
    def __init__(
        self,
        engine: SpeechEngine,
        parser: TranscriptParser,
        *,
        microphone: Optional[MicrophoneGuard] = None,
        user_id: Optional[UUID] = None,
        listen_timeout: Optional[float] = 15.0,
        error_reset_delay: float = 1.0,
        shake_enabled: bool = False,
        shake_cooldown: float = 5.0,
    ) -> None:
        self.engine = engine
        self.parser = parser
        self.microphone = microphone or MicrophoneGuard()
        self.user_id = user_id
        self.listen_timeout = listen_timeout
        self.error_reset_delay = error_reset_delay
        self.shake_enabled = shake_enabled
        self.shake_cooldown = shake_cooldown

        self.states: Broadcast[VoiceActivationState] = Broadcast("voice.states")
        self.results: Broadcast[VoiceCaptureResult] = Broadcast("voice.results")
        self.notices: Broadcast[VoiceNotice] = Broadcast("voice.notices")

        self._state = VoiceActivationState.IDLE
        self._generation = 0
        self._activating = False
        self._capture_task: Optional[asyncio.Task] = None
        self._reset_task: Optional[asyncio.Task] = None
        self._last_shake: Optional[float] = None
        self._result_handlers: List[ResultHandler] = []

    def __repr__(self) -> str:
        return f"VoiceSession(user_id={self.user_id}, state={self._state.value})"

    @property
    def state(self) -> VoiceActivationState:
        return self._state

    def handle_results(self, handler: ResultHandler) -> Callable[[], None]:
        """Await ``handler`` for every result before the capture settles.

        A handler that raises puts the session into the error state instead
        of letting the capture settle with the result.
        """
        self._result_handlers.append(handler)

        def _remove() -> None:
            if handler in self._result_handlers:
                self._result_handlers.remove(handler)

        return _remove

    async def initialize(self) -> bool:
        """Check the engine; an available engine moves idle to ready."""
        available = await self.engine.is_available()
        if available:
            if self._state in IDLE_STATES:
                self._apply(VoiceEvent.ENGINE_READY)
        else:
            logger.warning("Voice capture not available for %r", self)
        return available

    async def activate(self, hint: Optional[str] = None, *, source: str = "button") -> ActivationOutcome:
        """Start a capture, or toggle it off when one is already listening.

        Activation while processing (or while another activation is still
        checking permission) is ignored.
        """
        if self._state is VoiceActivationState.LISTENING:
            await self.cancel()
            return ActivationOutcome.CANCELLED
        if self._state is VoiceActivationState.PROCESSING or self._activating:
            logger.info("Voice activation from %s ignored while %s", source, self._state.value)
            return ActivationOutcome.IGNORED
        if self._state is VoiceActivationState.ERROR:
            self._apply(VoiceEvent.ACKNOWLEDGE)

        self._activating = True
        try:
            if not await self.engine.is_available():
                self.notify(NoticeKind.UNAVAILABLE, "Voice capture is not available on this device.")
                return ActivationOutcome.UNAVAILABLE
            if not await self._ensure_permission():
                logger.info("Microphone permission not granted for %r", self)
                log_metric("voice.permission_denied", 1, metadata={"source": source})
                self.notify(NoticeKind.PERMISSION_DENIED, "Microphone permission is required for voice capture.")
                return ActivationOutcome.PERMISSION_DENIED
            if self._state not in IDLE_STATES:
                return ActivationOutcome.IGNORED
            try:
                self.microphone.acquire(self)
            except MicrophoneBusy:
                logger.info("Microphone busy; activation from %s refused", source)
                self.notify(NoticeKind.BUSY, "Another voice capture is already listening.")
                return ActivationOutcome.BUSY

            self._generation += 1
            self._apply(VoiceEvent.ACTIVATE)
            self._capture_task = asyncio.create_task(self._capture(self._generation, hint or DEFAULT_HINT, source))
        finally:
            self._activating = False

        log_metric("voice.activate", 1, metadata={"source": source})
        return ActivationOutcome.STARTED

    async def activate_from_shake(self, now: Optional[float] = None) -> ActivationOutcome:
        if not self.shake_enabled:
            return ActivationOutcome.DISABLED
        now = time.monotonic() if now is None else now
        if self._last_shake is not None and now - self._last_shake < self.shake_cooldown:
            logger.info("Shake detected during cooldown, ignoring")
            return ActivationOutcome.COOLDOWN
        if self._state in BUSY_STATES:
            logger.info("Shake detected while %s, ignoring", self._state.value)
            return ActivationOutcome.IGNORED
        self._last_shake = now
        return await self.activate(SHAKE_HINT, source="shake")

    async def cancel(self) -> None:
        """Abort the current capture. A no-op when nothing is running."""
        state = self._state
        if state in IDLE_STATES:
            return
        if state is VoiceActivationState.LISTENING:
            # bump first so whatever the engine returns is treated as stale
            self._generation += 1
            self.microphone.release(self)
            self._apply(VoiceEvent.CANCEL)
            if self._capture_task is not None:
                self._capture_task.cancel()
            await self.engine.stop()
            logger.info("Voice capture cancelled while listening")
        elif state is VoiceActivationState.PROCESSING:
            self._generation += 1
            self._apply(VoiceEvent.CANCEL)
            logger.info("Voice capture cancelled while processing; pending result will be discarded")
        else:
            self._apply(VoiceEvent.CANCEL)
        log_metric("voice.cancel", 1, metadata={"from_state": state.value})

    def acknowledge(self) -> None:
        """Dismiss an error; anything else is left alone."""
        if self._state is VoiceActivationState.ERROR:
            self._apply(VoiceEvent.ACKNOWLEDGE)

    async def wait_until_settled(self) -> Optional[VoiceCaptureResult]:
        """Wait for the running capture (if any) and return its result."""
        task = self._capture_task
        if task is None:
            return None
        await asyncio.wait({task})
        if task.cancelled():
            return None
        return task.result()

    async def close(self) -> None:
        for task in (self._capture_task, self._reset_task):
            if task is not None and not task.done():
                task.cancel()
        self.microphone.release(self)
        self.states.close()
        self.results.close()
        self.notices.close()

    async def _ensure_permission(self) -> bool:
        if await self.engine.has_permission():
            return True
        return await self.engine.request_permission()

    async def _capture(self, generation: int, hint: str, source: str) -> Optional[VoiceCaptureResult]:
        with trace("voice.capture", metadata={"source": source, "user_id": str(self.user_id) if self.user_id else None}):
            if not self._is_current(generation):
                return None
            try:
                if self.listen_timeout:
                    transcript = await asyncio.wait_for(self.engine.listen(hint), timeout=self.listen_timeout)
                else:
                    transcript = await self.engine.listen(hint)
            except asyncio.TimeoutError:
                if not self._is_current(generation):
                    return None
                self.microphone.release(self)
                self._apply(VoiceEvent.TIMEOUT)
                await self.engine.stop()
                self.notify(NoticeKind.TIMEOUT, "Stopped listening after hearing nothing.")
                log_metric("voice.timeout", 1)
                return None
            except SpeechEngineError as exc:
                if not self._is_current(generation):
                    return None
                self.microphone.release(self)
                self._fail(f"Voice capture failed: {exc}")
                return None

            if not self._is_current(generation):
                logger.debug("Dropping transcript from a cancelled capture")
                return None
            self.microphone.release(self)

            if not transcript or not transcript.strip():
                self._apply(VoiceEvent.NO_SPEECH)
                self.notify(NoticeKind.NO_SPEECH, "No speech detected.")
                return None

            self._apply(VoiceEvent.END_OF_UTTERANCE)
            try:
                result = await self.parser.parse(transcript)
            except Exception as exc:
                if not self._is_current(generation):
                    return None
                logger.exception("Transcript parse failed")
                self._fail(f"Couldn't understand that: {exc}")
                return None

            if not self._is_current(generation):
                logger.info("Discarding parse result that arrived after cancel")
                log_metric("voice.result.discarded", 1)
                return None

            logger.info("Voice capture result received (has_due_date=%s)", result.due_date is not None)
            self.results.publish(result)
            try:
                for handler in list(self._result_handlers):
                    await handler(result)
            except Exception as exc:
                if not self._is_current(generation):
                    return None
                logger.exception("Voice capture result could not be saved")
                self._fail(f"Couldn't save that: {exc}")
                return None

            if not self._is_current(generation):
                logger.info("Capture cancelled while its result was being saved")
                return result
            self._apply(VoiceEvent.RESULT)
            log_metric("voice.result", 1, metadata={"source": source})
            return result

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _fail(self, message: str) -> None:
        logger.warning(message)
        self._apply(VoiceEvent.FAILURE)
        self.notify(NoticeKind.ERROR, message)
        log_metric("voice.error", 1)
        self._reset_task = asyncio.create_task(self._reset_after_error(self._generation))

    async def _reset_after_error(self, generation: int) -> None:
        await asyncio.sleep(self.error_reset_delay)
        if self._state is VoiceActivationState.ERROR and self._is_current(generation):
            self._apply(VoiceEvent.ACKNOWLEDGE)

    def _apply(self, event: VoiceEvent) -> None:
        previous = self._state
        current = transition(previous, event)
        if current is previous:
            return
        self._state = current
        logger.debug("Voice state %s -> %s on %s", previous.value, current.value, event.value)
        self.states.publish(current)

    def notify(self, kind: NoticeKind, message: str, todo_id: Optional[UUID] = None) -> None:
        self.notices.publish(VoiceNotice(kind=kind, message=message, todo_id=todo_id))
