"""Unit tests for the active-capacity policy."""
from __future__ import annotations

import pytest

from mentorme.db.models.enums import TrackStatus
from mentorme.services.capacity_policy import CapacityPolicy, CaptionTone, Enforcement


def _option(options, status):
    return next(option for option in options.options if option.status is status)


def test_below_limit_offers_active_with_focus_caption() -> None:
    policy = CapacityPolicy(limit=2, enforcement="hard")

    options = policy.status_options(1)

    assert _option(options, TrackStatus.ACTIVE).enabled is True
    assert options.selected is TrackStatus.ACTIVE
    assert options.caption == "Focus on 1-2 active goals at a time"
    assert options.tone is CaptionTone.INFO
    assert options.counter == "(1/2)"
    assert options.at_limit is False


def test_hard_limit_disables_active_and_preselects_backlog() -> None:
    policy = CapacityPolicy(limit=2, enforcement=Enforcement.HARD)

    options = policy.status_options(2)

    assert _option(options, TrackStatus.ACTIVE).enabled is False
    assert _option(options, TrackStatus.BACKLOG).enabled is True
    assert options.selected is TrackStatus.BACKLOG
    assert options.caption == "Limit reached: You have 2 active goals. New goals go to backlog."
    assert options.tone is CaptionTone.WARNING
    assert options.counter == "(2/2)"


def test_soft_limit_keeps_active_enabled_with_warning() -> None:
    policy = CapacityPolicy(limit=2, enforcement="soft")

    options = policy.status_options(2, TrackStatus.ACTIVE)

    assert _option(options, TrackStatus.ACTIVE).enabled is True
    assert options.selected is TrackStatus.ACTIVE
    assert options.tone is CaptionTone.WARNING
    assert "2" in options.caption


def test_terminal_option_only_when_requested() -> None:
    policy = CapacityPolicy()

    assert len(policy.status_options(0).options) == 2
    assert _option(policy.status_options(0, include_terminal=True), TrackStatus.COMPLETED).enabled


def test_hard_decision_coerces_active_to_backlog() -> None:
    decision = CapacityPolicy(limit=2).decide(2, TrackStatus.ACTIVE)

    assert decision.coerced is True
    assert decision.effective_status is TrackStatus.BACKLOG
    assert decision.requested is TrackStatus.ACTIVE


def test_hard_decision_passes_backlog_through() -> None:
    decision = CapacityPolicy(limit=2).decide(5, TrackStatus.BACKLOG)

    assert decision.coerced is False
    assert decision.effective_status is TrackStatus.BACKLOG


def test_editing_an_active_item_never_counts_against_itself() -> None:
    decision = CapacityPolicy(limit=2).decide(2, TrackStatus.ACTIVE, already_active=True)

    assert decision.effective_status is TrackStatus.ACTIVE
    assert decision.coerced is False


def test_soft_resolve_requires_confirmation() -> None:
    policy = CapacityPolicy(limit=2, enforcement="soft")
    asked = []

    def decline(decision):
        asked.append(decision.prompt)
        return False

    assert policy.resolve(2, TrackStatus.ACTIVE, decline) is None
    assert asked and "2 active goals" in asked[0]
    assert policy.resolve(2, TrackStatus.ACTIVE, None) is None

    confirmed = policy.resolve(2, TrackStatus.ACTIVE, lambda _decision: True)
    assert confirmed is not None
    assert confirmed.effective_status is TrackStatus.ACTIVE
    assert confirmed.needs_confirmation is True


def test_soft_resolve_below_limit_never_asks() -> None:
    policy = CapacityPolicy(limit=2, enforcement="soft")

    def fail(_decision):  # pragma: no cover - must not be called
        raise AssertionError("confirmation should not be requested")

    decision = policy.resolve(1, TrackStatus.ACTIVE, fail)
    assert decision is not None
    assert decision.effective_status is TrackStatus.ACTIVE


def test_messages_use_noun() -> None:
    policy = CapacityPolicy(limit=3, noun="habit")

    assert policy.focus_message() == "Focus on 1-3 active habits at a time"
    assert "Make this habit active anyway?" in policy.confirmation_prompt(3)


def test_limit_must_be_positive() -> None:
    with pytest.raises(ValueError):
        CapacityPolicy(limit=0)


def test_hard_decision_for_new_item_ignores_picked_status_at_limit() -> None:
    policy = CapacityPolicy(limit=2)

    for picked in (TrackStatus.COMPLETED, TrackStatus.ABANDONED, TrackStatus.ACTIVE):
        decision = policy.decide(2, picked, creating=True)
        assert decision.effective_status is TrackStatus.BACKLOG
        assert decision.coerced is True

    assert policy.decide(2, TrackStatus.BACKLOG, creating=True).coerced is False
    # an existing backlog item may still be closed out at the limit
    assert policy.decide(2, TrackStatus.COMPLETED).effective_status is TrackStatus.COMPLETED


def test_soft_decision_for_new_terminal_item_needs_no_confirmation() -> None:
    decision = CapacityPolicy(limit=2, enforcement="soft").decide(2, TrackStatus.COMPLETED, creating=True)

    assert decision.effective_status is TrackStatus.COMPLETED
    assert decision.needs_confirmation is False
