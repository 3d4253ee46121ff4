from __future__ import annotations

import asyncio
import logging
from typing import Callable

import redis
import redis.asyncio as aioredis

from allo.modules.notify.channels.base import (
    ChannelBackend,
    ChannelError,
    ChannelSerializationError,
    ChannelSubscription,
    StreamItem,
)
from allo.modules.notify.events import DecodeEventBinary, EncodeEventBinary, Event, EventDecodeError

logger = logging.getLogger("notify.channels")

# How long a single poll waits for a message before checking for close.
POLL_SECONDS = 1.0


class _RedisSubscription(ChannelSubscription):
    def __init__(self, client: aioredis.Redis, pubsub, channel: str) -> None:
        self._client = client
        self._pubsub = pubsub
        self.Channel = channel
        self._closed = False

    async def __anext__(self) -> StreamItem:
        while not self._closed:
            try:
                message = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=POLL_SECONDS
                )
            except redis.RedisError as exc:
                # A broken connection ends the stream after reporting it once.
                self._closed = True
                return ChannelError(f"subscription to {self.Channel} failed: {exc}")
            if message is None or message.get("type") != "message":
                continue
            try:
                return DecodeEventBinary(message["data"])
            except EventDecodeError as exc:
                return ChannelSerializationError(f"bad payload on {self.Channel}: {exc}")
        raise StopAsyncIteration

    async def Close(self) -> None:
        if self._closed and self._pubsub is None:
            return
        self._closed = True
        pubsub, self._pubsub = self._pubsub, None
        if pubsub is None:
            return
        try:
            await pubsub.unsubscribe()
            await pubsub.aclose()
            await self._client.aclose()
        except redis.RedisError as exc:
            logger.warning("failed to close subscription channel=%s error=%s", self.Channel, exc)


class RedisChannelBackend(ChannelBackend):
    """Broker-backed channels so every instance sees every event.

    Channel names on the broker are ``<prefix>.<channel>``. Payloads are the
    CBOR form of the tagged event.
    """

    Name = "redis"

    def __init__(
        self,
        url: str,
        prefix: str,
        timeout_seconds: float = 5.0,
        client: redis.Redis | None = None,
        async_client_factory: Callable[[], aioredis.Redis] | None = None,
    ) -> None:
        self._url = url
        self._prefix = prefix
        self._timeout = timeout_seconds
        self._client = client or redis.Redis.from_url(
            url,
            socket_timeout=timeout_seconds,
            socket_connect_timeout=timeout_seconds,
        )
        self._async_client_factory = async_client_factory or self._BuildAsyncClient

    def _BuildAsyncClient(self) -> aioredis.Redis:
        return aioredis.Redis.from_url(self._url, socket_connect_timeout=self._timeout)

    def BrokerChannel(self, channel: str) -> str:
        return f"{self._prefix}.{channel}"

    def Publish(self, channel: str, event: Event) -> None:
        try:
            payload = EncodeEventBinary(event)
        except (TypeError, ValueError) as exc:
            raise ChannelSerializationError(f"cannot encode {event.type}: {exc}") from exc
        try:
            self._client.publish(self.BrokerChannel(channel), payload)
        except redis.RedisError as exc:
            raise ChannelError(f"publish to {channel} failed: {exc}") from exc

    async def Subscribe(self, channel: str) -> ChannelSubscription:
        client = self._async_client_factory()
        pubsub = client.pubsub()
        try:
            await asyncio.wait_for(pubsub.subscribe(self.BrokerChannel(channel)), self._timeout)
        except (redis.RedisError, asyncio.TimeoutError) as exc:
            await pubsub.aclose()
            await client.aclose()
            raise ChannelError(f"subscribe to {channel} failed: {exc}") from exc
        return _RedisSubscription(client, pubsub, channel)

    def Close(self) -> None:
        try:
            self._client.close()
        except redis.RedisError as exc:
            logger.warning("failed to close redis client error=%s", exc)
