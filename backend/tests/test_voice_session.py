"""Tests for the voice capture session."""
from __future__ import annotations

import asyncio
from typing import Optional

from mentorme.services.voice.engine import DeviceSpeechEngine
from mentorme.services.voice.microphone import MicrophoneGuard
from mentorme.services.voice.session import ActivationOutcome, NoticeKind, VoiceSession
from mentorme.services.voice.state_machine import VoiceActivationState as S
from mentorme.services.voice.surface import SurfaceKind, VoiceSurface
from mentorme.services.voice.transcript_parser import RuleTranscriptParser, VoiceCaptureResult


class GatedParser:
    """Holds every parse until ``release`` is set."""

    def __init__(self) -> None:
        self.started = asyncio.Event()
        self.release = asyncio.Event()

    async def parse(self, transcript: str) -> VoiceCaptureResult:
        self.started.set()
        await self.release.wait()
        return VoiceCaptureResult(title=transcript, original_transcript=transcript)


def _session(engine: Optional[DeviceSpeechEngine] = None, parser=None, **kwargs) -> VoiceSession:
    return VoiceSession(
        engine or DeviceSpeechEngine(permission_granted=True),
        parser or RuleTranscriptParser(),
        **kwargs,
    )


def test_initialize_moves_idle_to_ready() -> None:
    async def scenario():
        session = _session()
        assert await session.initialize() is True
        return session.state

    assert asyncio.run(scenario()) is S.READY


def test_cancel_in_idle_changes_nothing() -> None:
    async def scenario():
        session = _session()
        states = session.states.subscribe()
        await session.cancel()
        await session.cancel()
        return session.state, states.drain()

    state, events = asyncio.run(scenario())

    assert state is S.IDLE
    assert events == []


def test_capture_publishes_result_and_returns_to_idle() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine)
        states = session.states.subscribe()
        results = session.results.subscribe()

        assert await session.activate() is ActivationOutcome.STARTED
        assert await engine.wait_until_listening()
        assert engine.last_hint == "What do you need to do?"
        engine.submit_transcript("Call mom tomorrow urgent")
        result = await session.wait_until_settled()
        return session, result, states.drain(), results.drain()

    session, result, states, results = asyncio.run(scenario())

    assert result.title == "Call mom"
    assert result.priority == "high"
    assert results == [result]
    assert states == [S.LISTENING, S.PROCESSING, S.IDLE]
    assert session.microphone.held is False


def test_second_activation_while_listening_toggles_off() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine)
        await session.activate()
        await engine.wait_until_listening()
        outcome = await session.activate()
        settled = await session.wait_until_settled()
        return session, engine, outcome, settled

    session, engine, outcome, settled = asyncio.run(scenario())

    assert outcome is ActivationOutcome.CANCELLED
    assert settled is None
    assert session.state is S.IDLE
    assert engine.is_listening is False
    assert session.microphone.held is False


def test_cancel_before_engine_listens_leaves_engine_free() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine)
        await session.activate()
        await session.cancel()
        await session.wait_until_settled()
        assert engine.is_listening is False

        assert await session.activate() is ActivationOutcome.STARTED
        assert await engine.wait_until_listening()
        engine.submit_transcript("buy milk")
        return await session.wait_until_settled()

    assert asyncio.run(scenario()).title == "Buy milk"


def test_sessions_sharing_a_microphone_never_listen_together() -> None:
    async def scenario():
        guard = MicrophoneGuard()
        first = _session(microphone=guard)
        second = _session(microphone=guard)
        notices = second.notices.subscribe()

        assert await first.activate() is ActivationOutcome.STARTED
        outcome = await second.activate()
        await first.cancel()
        return outcome, second.state, notices.drain(), guard.held

    outcome, second_state, notices, held = asyncio.run(scenario())

    assert outcome is ActivationOutcome.BUSY
    assert second_state is S.IDLE
    assert [notice.kind for notice in notices] == [NoticeKind.BUSY]
    assert held is False


def test_result_arriving_after_cancel_is_discarded() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        parser = GatedParser()
        session = _session(engine, parser=parser)
        results = session.results.subscribe()

        await session.activate()
        await engine.wait_until_listening()
        engine.submit_transcript("buy milk")
        await parser.started.wait()
        assert session.state is S.PROCESSING

        await session.cancel()
        parser.release.set()
        settled = await session.wait_until_settled()
        return session.state, settled, results.drain()

    state, settled, results = asyncio.run(scenario())

    assert state is S.IDLE
    assert settled is None
    assert results == []


def test_activation_while_processing_is_ignored() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        parser = GatedParser()
        session = _session(engine, parser=parser)
        await session.activate()
        await engine.wait_until_listening()
        engine.submit_transcript("buy milk")
        await parser.started.wait()

        outcome = await session.activate()
        parser.release.set()
        await session.wait_until_settled()
        return outcome

    assert asyncio.run(scenario()) is ActivationOutcome.IGNORED


def test_blank_transcript_reports_no_speech() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine)
        notices = session.notices.subscribe()
        await session.activate()
        await engine.wait_until_listening()
        engine.submit_transcript("   ")
        await session.wait_until_settled()
        return session.state, notices.drain()

    state, notices = asyncio.run(scenario())

    assert state is S.IDLE
    assert [notice.kind for notice in notices] == [NoticeKind.NO_SPEECH]


def test_listen_timeout_returns_to_idle() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine, listen_timeout=0.05)
        notices = session.notices.subscribe()
        await session.activate()
        settled = await session.wait_until_settled()
        return session, engine, settled, notices.drain()

    session, engine, settled, notices = asyncio.run(scenario())

    assert settled is None
    assert session.state is S.IDLE
    assert engine.is_listening is False
    assert session.microphone.held is False
    assert [notice.kind for notice in notices] == [NoticeKind.TIMEOUT]


def test_engine_failure_enters_error_then_resets() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine, error_reset_delay=0.01)
        notices = session.notices.subscribe()
        await session.activate()
        await engine.wait_until_listening()
        engine.fail("recognizer crashed")
        await session.wait_until_settled()
        in_error = session.state
        await asyncio.sleep(0.05)
        return in_error, session.state, notices.drain()

    in_error, after, notices = asyncio.run(scenario())

    assert in_error is S.ERROR
    assert after is S.IDLE
    assert notices[0].kind is NoticeKind.ERROR
    assert "recognizer crashed" in notices[0].message


def test_acknowledge_clears_error_immediately() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine, error_reset_delay=10)
        await session.activate()
        await engine.wait_until_listening()
        engine.fail("boom")
        await session.wait_until_settled()
        session.acknowledge()
        state = session.state
        await session.close()
        return state

    assert asyncio.run(scenario()) is S.IDLE


def test_missing_permission_keeps_session_idle() -> None:
    async def scenario():
        session = _session(DeviceSpeechEngine(permission_granted=False))
        states = session.states.subscribe()
        notices = session.notices.subscribe()
        outcome = await session.activate()
        return outcome, session.state, states.drain(), notices.drain()

    outcome, state, states, notices = asyncio.run(scenario())

    assert outcome is ActivationOutcome.PERMISSION_DENIED
    assert state is S.IDLE
    assert states == []
    assert [notice.kind for notice in notices] == [NoticeKind.PERMISSION_DENIED]


def test_unavailable_engine_refuses_activation() -> None:
    async def scenario():
        session = _session(DeviceSpeechEngine(available=False, permission_granted=True))
        return await session.activate(), session.state

    outcome, state = asyncio.run(scenario())

    assert outcome is ActivationOutcome.UNAVAILABLE
    assert state is S.IDLE


def test_shake_respects_cooldown_and_flag() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        disabled = _session()
        session = _session(engine, shake_enabled=True, shake_cooldown=5.0)

        outcomes = [await disabled.activate_from_shake(now=0.0)]
        outcomes.append(await session.activate_from_shake(now=100.0))
        hint = None
        if await engine.wait_until_listening():
            hint = engine.last_hint
        await session.cancel()
        outcomes.append(await session.activate_from_shake(now=102.0))
        outcomes.append(await session.activate_from_shake(now=106.0))
        await session.cancel()
        return outcomes, hint

    outcomes, hint = asyncio.run(scenario())

    assert outcomes == [
        ActivationOutcome.DISABLED,
        ActivationOutcome.STARTED,
        ActivationOutcome.COOLDOWN,
        ActivationOutcome.STARTED,
    ]
    assert hint == "Shake activated - what do you need?"


def test_surfaces_follow_the_same_session() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine)
        overlay = VoiceSurface(session, SurfaceKind.OVERLAY)
        button = VoiceSurface(session, SurfaceKind.BUTTON)

        await overlay.tap()
        await engine.wait_until_listening()
        snapshot = (overlay.visible, overlay.pulsing, button.pulsing)

        await overlay.dismiss()
        after = (overlay.visible, overlay.pulsing, button.refresh())
        overlay.detach()
        button.detach()
        return snapshot, after

    snapshot, after = asyncio.run(scenario())

    assert snapshot == (True, True, True)
    assert after == (False, False, S.IDLE)


def test_result_handler_failure_enters_error_instead_of_settling() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine, error_reset_delay=30.0)
        saved = []

        async def store(result: VoiceCaptureResult) -> None:
            saved.append(result.title)
            raise RuntimeError("db down")

        session.handle_results(store)
        states = session.states.subscribe()
        notices = session.notices.subscribe()
        await session.activate()
        await engine.wait_until_listening()
        engine.submit_transcript("buy milk")
        settled = await session.wait_until_settled()
        outcome = session.state, settled, saved, states.drain(), notices.drain()
        await session.close()
        return outcome

    state, settled, saved, states, notices = asyncio.run(scenario())

    assert saved == ["Buy milk"]
    assert settled is None
    assert state is S.ERROR
    assert states == [S.LISTENING, S.PROCESSING, S.ERROR]
    assert [notice.kind for notice in notices] == [NoticeKind.ERROR]
    assert "db down" in notices[0].message


def test_removed_result_handler_is_not_awaited() -> None:
    async def scenario():
        engine = DeviceSpeechEngine(permission_granted=True)
        session = _session(engine)
        calls = []

        async def store(result: VoiceCaptureResult) -> None:
            calls.append(result)

        remove = session.handle_results(store)
        remove()
        remove()
        await session.activate()
        await engine.wait_until_listening()
        engine.submit_transcript("water plants")
        settled = await session.wait_until_settled()
        return settled, calls, session.state

    settled, calls, state = asyncio.run(scenario())

    assert settled is not None and settled.title == "Water plants"
    assert calls == []
    assert state is S.IDLE
