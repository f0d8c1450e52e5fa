"""In-process publish/subscribe channel used by the voice session."""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Callable, Generic, List, Optional, Set, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """One subscriber's queue. Every subscriber sees every published item."""

    def __init__(self, channel: "Broadcast[T]") -> None:
        self._channel = channel
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    def _push(self, item: object) -> None:
        self._queue.put_nowait(item)

    async def get(self) -> Optional[T]:
        """Wait for the next item; None once the channel is closed."""
        if self.closed and self._queue.empty():
            return None
        item = await self._queue.get()
        if item is _CLOSED:
            self.closed = True
            return None
        return item  # type: ignore[return-value]

    def drain(self) -> List[T]:
        """Return everything already queued without waiting."""
        items: List[T] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                return items
            if item is _CLOSED:
                self.closed = True
                return items
            items.append(item)  # type: ignore[arg-type]

    def close(self) -> None:
        self._channel._discard(self)
        self.closed = True

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        while True:
            item = await self.get()
            if item is None:
                return
            yield item

    def __enter__(self) -> "Subscription[T]":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class Broadcast(Generic[T]):
    """Fan-out channel with queue subscribers and synchronous listeners.

    Listeners run inline during ``publish`` so a consumer can act on an item
    before the publisher moves on; queue subscribers read at their own pace.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: Set[Subscription[T]] = set()
        self._listeners: List[Callable[[T], None]] = []
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def subscribe(self) -> Subscription[T]:
        if self._closed:
            raise RuntimeError(f"broadcast {self.name!r} is closed")
        subscription: Subscription[T] = Subscription(self)
        self._subscriptions.add(subscription)
        return subscription

    def listen(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register a synchronous listener; returns a function that removes it."""
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def publish(self, item: T) -> None:
        if self._closed:
            raise RuntimeError(f"broadcast {self.name!r} is closed")
        for subscription in list(self._subscriptions):
            subscription._push(item)
        for callback in list(self._listeners):
            try:
                callback(item)
            except Exception:
                # one failing listener must not starve the others
                logger.exception("Listener on %s failed", self.name)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for subscription in list(self._subscriptions):
            subscription._push(_CLOSED)
        self._subscriptions.clear()
        self._listeners.clear()

    def _discard(self, subscription: Subscription[T]) -> None:
        self._subscriptions.discard(subscription)
