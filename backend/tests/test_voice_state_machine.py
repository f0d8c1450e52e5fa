"""Tests for the voice transition table."""
from __future__ import annotations

import pytest

from mentorme.services.voice.state_machine import (
    IDLE_STATES,
    InvalidTransition,
    VoiceActivationState as S,
    VoiceEvent as E,
    transition,
)


@pytest.mark.parametrize(
    ("state", "event", "expected"),
    [
        (S.IDLE, E.ACTIVATE, S.LISTENING),
        (S.READY, E.ACTIVATE, S.LISTENING),
        (S.IDLE, E.ENGINE_READY, S.READY),
        (S.LISTENING, E.END_OF_UTTERANCE, S.PROCESSING),
        (S.LISTENING, E.NO_SPEECH, S.IDLE),
        (S.LISTENING, E.TIMEOUT, S.IDLE),
        (S.LISTENING, E.FAILURE, S.ERROR),
        (S.PROCESSING, E.RESULT, S.IDLE),
        (S.PROCESSING, E.CANCEL, S.IDLE),
        (S.ERROR, E.ACKNOWLEDGE, S.IDLE),
    ],
)
def test_transitions(state, event, expected) -> None:
    assert transition(state, event) is expected


@pytest.mark.parametrize("state", sorted(IDLE_STATES, key=lambda s: s.value))
def test_cancel_in_idle_states_is_a_self_loop(state) -> None:
    assert transition(state, E.CANCEL) is state


@pytest.mark.parametrize(
    ("state", "event"),
    [
        (S.IDLE, E.RESULT),
        (S.LISTENING, E.ACTIVATE),
        (S.PROCESSING, E.ACTIVATE),
        (S.ERROR, E.ACTIVATE),
    ],
)
def test_impossible_pairs_raise(state, event) -> None:
    with pytest.raises(InvalidTransition) as excinfo:
        transition(state, event)

    assert excinfo.value.state is state
    assert excinfo.value.event is event
