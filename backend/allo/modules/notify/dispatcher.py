from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from allo.modules.notify.channels.base import ChannelBackend, ChannelError
from allo.modules.notify.events import Event
from allo.modules.notify.targets import NotificationTarget, ResolveRecipients

logger = logging.getLogger("notify.dispatch")


@dataclass(frozen=True)
class DispatchRequest:
    Target: NotificationTarget
    Event: Event


class NotificationDispatcher:
    """Resolves a target and publishes the event to each recipient's channel.

    Sending is best effort. Nothing raised by resolution or publishing reaches
    the caller, so a business operation never fails because of a notification.
    """

    def __init__(self, backend: ChannelBackend) -> None:
        self.Backend = backend

    def Send(self, db: Session, request: DispatchRequest, actor_id: str) -> int:
        event = request.Event
        try:
            recipients = ResolveRecipients(db, request.Target, actor_id)
        except Exception:  # noqa: BLE001
            logger.exception(
                "failed to resolve recipients type=%s target=%s",
                event.type,
                type(request.Target).__name__,
            )
            return 0
        delivered = 0
        for user_id in sorted(recipients):
            try:
                self.Backend.Publish(user_id, event)
                delivered += 1
            except ChannelError as exc:
                logger.error(
                    "failed to publish event type=%s user_id=%s error=%s",
                    event.type,
                    user_id,
                    exc,
                )
            except Exception:  # noqa: BLE001
                logger.exception("failed to publish event type=%s user_id=%s", event.type, user_id)
        return delivered


_dispatcher: NotificationDispatcher | None = None


def ConfigureDispatcher(backend: ChannelBackend) -> NotificationDispatcher:
    global _dispatcher
    _dispatcher = NotificationDispatcher(backend)
    return _dispatcher


def GetDispatcher() -> NotificationDispatcher:
    if _dispatcher is None:
        raise RuntimeError("Notification dispatcher is not configured")
    return _dispatcher


def GetChannelBackend() -> ChannelBackend:
    return GetDispatcher().Backend
