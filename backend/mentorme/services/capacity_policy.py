"""Active-item capacity policy shared by goals and habits.

Focus is finite, so only ``limit`` items may be active at once. Two enforcement
modes exist:

* ``hard``: the active choice is disabled once the limit is reached and any
  save that asks for ``active`` is coerced to ``backlog``. A new item lands
  in ``backlog`` whatever status was picked.
* ``soft``: the active choice stays available, but saving past the limit
  needs an explicit confirmation from the user.

Everything here is pure. Callers pass in an active count they have just read
from the store; the policy never caches counts between render and commit.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional

from mentorme.db.models.enums import TrackStatus

DEFAULT_ACTIVE_LIMIT = 2


class Enforcement(str, Enum):
    HARD = "hard"
    SOFT = "soft"


class CaptionTone(str, Enum):
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class StatusOption:
    status: TrackStatus
    enabled: bool
    label: str


@dataclass(frozen=True)
class StatusOptions:
    """What a status selector should offer for the current draft."""

    options: List[StatusOption]
    selected: TrackStatus
    caption: str
    tone: CaptionTone
    counter: str
    active_count: int
    limit: int
    at_limit: bool


@dataclass(frozen=True)
class CapacityDecision:
    """Outcome of checking a requested status against the limit at save time."""

    requested: TrackStatus
    effective_status: TrackStatus
    active_count: int
    limit: int
    coerced: bool = False
    needs_confirmation: bool = False
    prompt: Optional[str] = None
    metadata: dict = field(default_factory=dict)


ConfirmationPrompt = Callable[[CapacityDecision], bool]


class CapacityPolicy:
    def __init__(
        self,
        *,
        limit: int = DEFAULT_ACTIVE_LIMIT,
        enforcement: Enforcement | str = Enforcement.HARD,
        noun: str = "goal",
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self.limit = limit
        self.enforcement = Enforcement(enforcement)
        self.noun = noun

    def at_limit(self, active_count: int) -> bool:
        return active_count >= self.limit

    def counter(self, active_count: int) -> str:
        return f"({active_count}/{self.limit})"

    def status_options(
        self,
        active_count: int,
        selected: TrackStatus = TrackStatus.ACTIVE,
        *,
        include_terminal: bool = False,
        already_active: bool = False,
    ) -> StatusOptions:
        """Describe the status selector for a draft with ``selected`` chosen.

        The add dialog offers active and backlog only. The edit dialog passes
        ``include_terminal`` to also offer completed and abandoned, and
        ``already_active`` when the item holds an active slot itself.
        """
        at_limit = self.at_limit(active_count)
        hard_block = at_limit and self.enforcement is Enforcement.HARD and not already_active

        if hard_block and (selected is TrackStatus.ACTIVE or not include_terminal):
            effective_selected = TrackStatus.BACKLOG
        else:
            effective_selected = selected
        options = [
            StatusOption(TrackStatus.ACTIVE, enabled=not hard_block, label="Active"),
            StatusOption(TrackStatus.BACKLOG, enabled=True, label="Backlog"),
        ]
        if include_terminal:
            options.append(StatusOption(TrackStatus.COMPLETED, enabled=True, label="Completed"))
            options.append(StatusOption(TrackStatus.ABANDONED, enabled=True, label="Abandoned"))

        if hard_block:
            caption = self.limit_reached_message()
            tone = CaptionTone.WARNING
        elif (
            self.enforcement is Enforcement.SOFT
            and at_limit
            and not already_active
            and selected is TrackStatus.ACTIVE
        ):
            caption = self.soft_warning_message(active_count)
            tone = CaptionTone.WARNING
        else:
            caption = self.focus_message()
            tone = CaptionTone.INFO

        return StatusOptions(
            options=options,
            selected=effective_selected,
            caption=caption,
            tone=tone,
            counter=self.counter(active_count),
            active_count=active_count,
            limit=self.limit,
            at_limit=at_limit,
        )

    def decide(
        self,
        active_count: int,
        requested: TrackStatus,
        *,
        already_active: bool = False,
        creating: bool = False,
    ) -> CapacityDecision:
        """Work out the status to persist for ``requested``.

        ``already_active`` marks an edit of an item that is active right now;
        it already holds one of the slots and never counts against itself.
        ``creating`` marks a new item: under hard enforcement at the limit a
        new item always lands in backlog, whatever status was picked.
        """
        requested = TrackStatus(requested)
        hard = self.enforcement is Enforcement.HARD
        if already_active or not self.at_limit(active_count):
            return self._keep(requested, active_count)

        if hard and (requested is TrackStatus.ACTIVE or (creating and requested is not TrackStatus.BACKLOG)):
            return CapacityDecision(
                requested=requested,
                effective_status=TrackStatus.BACKLOG,
                active_count=active_count,
                limit=self.limit,
                coerced=True,
                metadata={"enforcement": self.enforcement.value},
            )
        if requested is not TrackStatus.ACTIVE:
            return self._keep(requested, active_count)

        return CapacityDecision(
            requested=requested,
            effective_status=TrackStatus.ACTIVE,
            active_count=active_count,
            limit=self.limit,
            needs_confirmation=True,
            prompt=self.confirmation_prompt(active_count),
            metadata={"enforcement": self.enforcement.value},
        )

    def _keep(self, requested: TrackStatus, active_count: int) -> CapacityDecision:
        return CapacityDecision(
            requested=requested,
            effective_status=requested,
            active_count=active_count,
            limit=self.limit,
        )

    def resolve(
        self,
        active_count: int,
        requested: TrackStatus,
        confirm: Optional[ConfirmationPrompt] = None,
        *,
        already_active: bool = False,
        creating: bool = False,
    ) -> Optional[CapacityDecision]:
        """Decide and, when needed, ask ``confirm``.

        Returns None when the user declines (or nobody can be asked), meaning
        the save must be aborted without touching the store.
        """
        decision = self.decide(active_count, requested, already_active=already_active, creating=creating)
        if not decision.needs_confirmation:
            return decision
        if confirm is None or not confirm(decision):
            return None
        return decision

    def focus_message(self) -> str:
        return f"Focus on 1-{self.limit} active {self.noun}s at a time"

    def limit_reached_message(self) -> str:
        return (
            f"Limit reached: You have {self.limit} active {self.noun}s. "
            f"New {self.noun}s go to backlog."
        )

    def soft_warning_message(self, active_count: int) -> str:
        return f"You already have {active_count} active {self.noun}s {self.counter(active_count)}."

    def confirmation_prompt(self, active_count: int) -> str:
        return (
            f"You already have {active_count} active {self.noun}s. "
            f"Working on more than {self.limit} at once makes it harder to stay focused. "
            f"Make this {self.noun} active anyway?"
        )
