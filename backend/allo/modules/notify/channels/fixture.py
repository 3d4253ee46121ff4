from __future__ import annotations

from allo.modules.notify.channels.base import (
    ChannelBackend,
    ChannelError,
    ChannelSubscription,
    StreamItem,
)
from allo.modules.notify.events import Event


class _FixtureSubscription(ChannelSubscription):
    def __init__(self, items: list[StreamItem]) -> None:
        self._items = list(items)
        self._closed = False

    async def __anext__(self) -> StreamItem:
        if self._closed or not self._items:
            raise StopAsyncIteration
        return self._items.pop(0)

    async def Close(self) -> None:
        self._closed = True


class FixtureChannelBackend(ChannelBackend):
    """Replays a fixed sequence to every subscriber and refuses publishes.

    Every ``Publish`` call is still recorded in ``Published`` before it fails.
    """

    Name = "fixture"

    def __init__(self, items: list[StreamItem] | None = None) -> None:
        self._items = list(items or [])
        self.Published: list[tuple[str, Event]] = []
        self.Subscribed: list[str] = []

    def Publish(self, channel: str, event: Event) -> None:
        self.Published.append((channel, event))
        raise ChannelError("fixture channel backend does not accept publishes")

    async def Subscribe(self, channel: str) -> ChannelSubscription:
        self.Subscribed.append(channel)
        return _FixtureSubscription(self._items)
