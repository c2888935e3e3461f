"""
Multi-subscriber broadcast channels used by the hub.

A channel fans each emitted value out to every live subscription (an async
iterator backed by its own queue) and to every registered callback listener.
Values are not replayed: a subscriber only sees values emitted after it
subscribed. Closing is idempotent; once closed, emits are ignored and new
subscriptions finish immediately.
"""
from __future__ import annotations

import asyncio
from typing import Any, Callable, Generic, List, Optional, TypeVar

from health_hub.infrastructure import log_utils

T = TypeVar("T")

_CLOSED = object()


class Subscription(Generic[T]):
    """Async iterator over the values a channel emits after subscribing."""

    def __init__(self, channel: "BroadcastChannel[T]") -> None:
        self._channel = channel
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._finished = False

    @property
    def closed(self) -> bool:
        return self._finished

    def _deliver(self, value: T) -> None:
        if not self._finished:
            self._queue.put_nowait(value)

    def _finish(self) -> None:
        if not self._finished:
            self._finished = True
            self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription[T]":
        return self

    async def __anext__(self) -> T:
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker so repeated iteration also stops.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    async def next(self, timeout: Optional[float] = None) -> T:
        """Wait for the next value; raises ``StopAsyncIteration`` once closed."""

        if timeout is None:
            return await self.__anext__()
        return await asyncio.wait_for(self.__anext__(), timeout)

    def drain(self) -> List[T]:
        """Return every value already delivered, without waiting."""

        values: List[T] = []
        while True:
            try:
                item = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                break
            values.append(item)
        return values

    def cancel(self) -> None:
        """Stop receiving values from the channel."""

        self._channel.unsubscribe(self)


class BroadcastChannel(Generic[T]):
    """Broadcast stream with explicit subscribe, unsubscribe and close."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._subscriptions: List[Subscription[T]] = []
        self._listeners: List[Callable[[T], None]] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions) + len(self._listeners)

    def subscribe(self) -> Subscription[T]:
        subscription: Subscription[T] = Subscription(self)
        if self._closed:
            subscription._finish()
        else:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription[T]) -> None:
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)
        subscription._finish()

    def listen(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register ``callback`` for every emitted value and return a remover."""

        if self._closed:
            return lambda: None
        self._listeners.append(callback)

        def _remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _remove

    def emit(self, value: T) -> bool:
        """Deliver ``value`` to all subscribers; returns ``False`` once closed."""

        if self._closed:
            log_utils.log_message(f"Ignoring emit on closed channel '{self.name}'.", "DEBUG")
            return False
        for subscription in list(self._subscriptions):
            subscription._deliver(value)
        for callback in list(self._listeners):
            try:
                callback(value)
            except Exception as exc:
                log_utils.log_message(
                    f"Listener on channel '{self.name}' raised: {exc}", "ERROR", exc_info=True
                )
        return True

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription._finish()
        self._subscriptions.clear()
        self._listeners.clear()


__all__ = ["BroadcastChannel", "Subscription"]
