from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator, Union

from allo.modules.notify.events import Event


class ChannelError(Exception):
    """Raised when the broker cannot be reached or refuses an operation."""


class ChannelSerializationError(ChannelError):
    """Raised when an event cannot be encoded for, or decoded from, the broker."""


# Items yielded by a subscription. Errors are delivered in-band so one bad
# message never ends the stream.
StreamItem = Union[Event, ChannelError]


class ChannelSubscription(ABC):
    """An open subscription to one channel.

    Iterate it with ``async for``; call ``Close`` once the consumer is done.
    """

    def __aiter__(self) -> AsyncIterator[StreamItem]:
        return self

    @abstractmethod
    async def __anext__(self) -> StreamItem:
        raise NotImplementedError

    @abstractmethod
    async def Close(self) -> None:
        raise NotImplementedError


class ChannelBackend(ABC):
    """Publish events to named channels and subscribe to them.

    ``Publish`` is synchronous and safe to call from request handlers running
    in the threadpool. ``Subscribe`` is awaited on the event loop that will
    consume the stream.
    """

    Name = "base"

    @abstractmethod
    def Publish(self, channel: str, event: Event) -> None:
        raise NotImplementedError

    @abstractmethod
    async def Subscribe(self, channel: str) -> ChannelSubscription:
        raise NotImplementedError

    def Close(self) -> None:
        return None
