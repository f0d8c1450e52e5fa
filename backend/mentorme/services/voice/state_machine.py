"""Voice activation states and the pure transition table."""
from __future__ import annotations

from enum import Enum
from typing import Dict, Tuple


class VoiceActivationState(str, Enum):
    IDLE = "idle"
    LISTENING = "listening"
    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"


class VoiceEvent(str, Enum):
    ENGINE_READY = "engine_ready"
    ACTIVATE = "activate"
    END_OF_UTTERANCE = "end_of_utterance"
    RESULT = "result"
    NO_SPEECH = "no_speech"
    TIMEOUT = "timeout"
    CANCEL = "cancel"
    FAILURE = "failure"
    ACKNOWLEDGE = "acknowledge"


class InvalidTransition(RuntimeError):
    def __init__(self, state: VoiceActivationState, event: VoiceEvent) -> None:
        super().__init__(f"no transition from {state.value!r} on {event.value!r}")
        self.state = state
        self.event = event


S = VoiceActivationState
E = VoiceEvent

# READY is idle with the engine loaded; it accepts the same events idle does.
TRANSITIONS: Dict[Tuple[VoiceActivationState, VoiceEvent], VoiceActivationState] = {
    (S.IDLE, E.ENGINE_READY): S.READY,
    (S.READY, E.ENGINE_READY): S.READY,
    (S.IDLE, E.ACTIVATE): S.LISTENING,
    (S.READY, E.ACTIVATE): S.LISTENING,
    (S.IDLE, E.CANCEL): S.IDLE,
    (S.READY, E.CANCEL): S.READY,
    (S.LISTENING, E.END_OF_UTTERANCE): S.PROCESSING,
    (S.LISTENING, E.CANCEL): S.IDLE,
    (S.LISTENING, E.NO_SPEECH): S.IDLE,
    (S.LISTENING, E.TIMEOUT): S.IDLE,
    (S.LISTENING, E.FAILURE): S.ERROR,
    (S.PROCESSING, E.RESULT): S.IDLE,
    (S.PROCESSING, E.CANCEL): S.IDLE,
    (S.PROCESSING, E.FAILURE): S.ERROR,
    (S.ERROR, E.ACKNOWLEDGE): S.IDLE,
    (S.ERROR, E.CANCEL): S.IDLE,
}

IDLE_STATES = frozenset({S.IDLE, S.READY})
BUSY_STATES = frozenset({S.LISTENING, S.PROCESSING})


def transition(state: VoiceActivationState, event: VoiceEvent) -> VoiceActivationState:
    """Return the state reached from ``state`` on ``event``.

    Raises InvalidTransition for pairs the session must never produce.
    """
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransition(state, event) from None
