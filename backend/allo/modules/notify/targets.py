from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Union

from sqlalchemy.orm import Session

from allo.modules.auth.models import ROLE_PARENT, User

logger = logging.getLogger("notify.targets")


@dataclass(frozen=True)
class MemberTarget:
    """One user, whoever performed the action."""

    UserId: str


@dataclass(frozen=True)
class FamilyTarget:
    FamilyId: str


@dataclass(frozen=True)
class MemberAndParentsTarget:
    UserId: str
    FamilyId: str


@dataclass(frozen=True)
class ParentsTarget:
    FamilyId: str


NotificationTarget = Union[MemberTarget, FamilyTarget, MemberAndParentsTarget, ParentsTarget]


def _LoadFamilyMembers(db: Session, family_id: str) -> list[tuple[str, str]]:
    # A failed read only rolls back its own savepoint.
    with db.begin_nested():
        rows = db.query(User.Id, User.Role).filter(User.FamilyId == family_id).all()
    return [(row[0], row[1]) for row in rows]


def ResolveRecipients(db: Session, target: NotificationTarget, actor_id: str) -> set[str]:
    """Turn a target into the set of user ids that should receive the event.

    Family-based targets never include the actor. A failed membership read is
    logged and yields no recipients so the caller's transaction is unaffected.
    """
    if isinstance(target, MemberTarget):
        return {target.UserId}

    try:
        members = _LoadFamilyMembers(db, target.FamilyId)
    except Exception:  # noqa: BLE001
        logger.exception(
            "failed to load family members family_id=%s target=%s",
            target.FamilyId,
            type(target).__name__,
        )
        return set()

    if isinstance(target, FamilyTarget):
        recipients = {user_id for user_id, _ in members}
    elif isinstance(target, ParentsTarget):
        recipients = {user_id for user_id, role in members if role == ROLE_PARENT}
    elif isinstance(target, MemberAndParentsTarget):
        recipients = {user_id for user_id, role in members if role == ROLE_PARENT}
        recipients.add(target.UserId)
    else:
        raise TypeError(f"unsupported notification target: {target!r}")

    recipients.discard(actor_id)
    return recipients
