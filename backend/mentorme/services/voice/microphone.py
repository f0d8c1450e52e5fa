"""Exclusive ownership of the single capture device."""
from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class MicrophoneBusy(RuntimeError):
    pass


class MicrophoneGuard:
    """At most one owner may hold the microphone at a time.

    Acquire and release never await, so on a single event loop the
    check-and-set cannot interleave with another coroutine.
    """

    def __init__(self, name: str = "microphone") -> None:
        self.name = name
        self._holder: Optional[object] = None

    @property
    def held(self) -> bool:
        return self._holder is not None

    @property
    def holder(self) -> Optional[object]:
        return self._holder

    def acquire(self, owner: object) -> None:
        if self._holder is owner:
            return
        if self._holder is not None:
            raise MicrophoneBusy(f"{self.name} is held by {self._holder!r}")
        self._holder = owner
        logger.debug("%s acquired by %r", self.name, owner)

    def release(self, owner: object) -> bool:
        """Release if ``owner`` holds the guard; returns whether it did."""
        if self._holder is not owner:
            return False
        self._holder = None
        logger.debug("%s released by %r", self.name, owner)
        return True
