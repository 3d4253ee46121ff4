from __future__ import annotations

import asyncio
import logging

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from allo.modules.notify.channels.base import ChannelError, ChannelSubscription
from allo.modules.notify.events import EncodeEventJson, LogoutEvent

logger = logging.getLogger("notify.socket")


class NotificationSocket:
    """Forwards one user's channel to one accepted WebSocket.

    A ``Logout`` event closes the connection. Any other event is sent as JSON
    text. The session ends when the client disconnects, the server closes, or
    the subscription stream runs out.
    """

    def __init__(self, websocket: WebSocket, subscription: ChannelSubscription, user_id: str) -> None:
        self._websocket = websocket
        self._subscription = subscription
        self._user_id = user_id

    async def Run(self) -> None:
        forward = asyncio.create_task(self._Forward())
        receive = asyncio.create_task(self._Receive())
        try:
            done, pending = await asyncio.wait({forward, receive}, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, WebSocketDisconnect):
                    logger.error("notification socket failed user_id=%s error=%s", self._user_id, exc)
        finally:
            await self._subscription.Close()

    async def _Forward(self) -> None:
        async for item in self._subscription:
            if isinstance(item, ChannelError):
                logger.error("channel stream error user_id=%s error=%s", self._user_id, item)
                continue
            if isinstance(item, LogoutEvent):
                logger.info("closing notification socket on logout user_id=%s", self._user_id)
                await self._websocket.close()
                return
            await self._websocket.send_text(EncodeEventJson(item))
        await self._websocket.close()

    async def _Receive(self) -> None:
        while True:
            message = await self._websocket.receive()
            if message["type"] == "websocket.disconnect":
                return
            # Inbound application data carries no meaning here.
            logger.debug("ignoring inbound message user_id=%s", self._user_id)
