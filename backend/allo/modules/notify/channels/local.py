from __future__ import annotations

import asyncio
import logging
import threading

from allo.modules.notify.channels.base import ChannelBackend, ChannelSubscription, StreamItem
from allo.modules.notify.events import Event

logger = logging.getLogger("notify.channels")

_CLOSED = object()


class _LocalSubscription(ChannelSubscription):
    def __init__(self, backend: "LocalChannelBackend", channel: str, queue_size: int) -> None:
        self._backend = backend
        self.Channel = channel
        self._loop = asyncio.get_running_loop()
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    def Deliver(self, event: Event) -> bool:
        if self._closed:
            return False
        try:
            self._loop.call_soon_threadsafe(self._Put, event)
        except RuntimeError:
            # The consuming loop has shut down without closing us.
            self._closed = True
            return False
        return True

    def _Put(self, item) -> None:
        if self._closed and item is not _CLOSED:
            return
        try:
            self._queue.put_nowait(item)
        except asyncio.QueueFull:
            if item is _CLOSED:
                self._queue.get_nowait()
                self._queue.put_nowait(item)
                return
            logger.warning("subscriber queue full, dropping event channel=%s type=%s", self.Channel, item.type)

    async def __anext__(self) -> StreamItem:
        item = await self._queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item

    async def Close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._backend._Remove(self)
        self._Put(_CLOSED)


class LocalChannelBackend(ChannelBackend):
    """In-process fan-out for single-instance deployments.

    Each subscriber owns a bounded queue. A slow subscriber loses events once
    its queue is full; publishers are never blocked by it.
    """

    Name = "local"

    def __init__(self, queue_size: int = 16) -> None:
        self._queue_size = max(1, queue_size)
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[_LocalSubscription]] = {}

    def Publish(self, channel: str, event: Event) -> None:
        with self._lock:
            subscribers = list(self._subscribers.get(channel, ()))
        for subscription in subscribers:
            if not subscription.Deliver(event):
                self._Remove(subscription)

    async def Subscribe(self, channel: str) -> ChannelSubscription:
        subscription = _LocalSubscription(self, channel, self._queue_size)
        with self._lock:
            self._subscribers.setdefault(channel, []).append(subscription)
        return subscription

    def SubscriberCount(self, channel: str) -> int:
        with self._lock:
            return len(self._subscribers.get(channel, ()))

    def _Remove(self, subscription: _LocalSubscription) -> None:
        with self._lock:
            subscribers = self._subscribers.get(subscription.Channel)
            if not subscribers:
                return
            if subscription in subscribers:
                subscribers.remove(subscription)
            if not subscribers:
                self._subscribers.pop(subscription.Channel, None)
