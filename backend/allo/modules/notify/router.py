import logging

from fastapi import APIRouter, WebSocket, status
from starlette.concurrency import run_in_threadpool

from allo.modules.auth.deps import AuthenticateWebSocket
from allo.modules.notify.channels.base import ChannelError
from allo.modules.notify.dispatcher import GetChannelBackend
from allo.modules.notify.socket import NotificationSocket

router = APIRouter(tags=["notify"])
logger = logging.getLogger("notify.socket")


@router.websocket("/api/notify")
async def NotifySocket(websocket: WebSocket) -> None:
    user = await run_in_threadpool(AuthenticateWebSocket, websocket)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        subscription = await GetChannelBackend().Subscribe(user.Id)
    except ChannelError as exc:
        logger.error("failed to subscribe user_id=%s error=%s", user.Id, exc)
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    await websocket.accept()
    logger.info("notification socket opened user_id=%s", user.Id)
    try:
        await NotificationSocket(websocket, subscription, user.Id).Run()
    finally:
        logger.info("notification socket closed user_id=%s", user.Id)
