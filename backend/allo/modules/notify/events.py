"""Events pushed to connected clients.

Every event is an immutable pydantic model tagged with a ``type`` field. The
same tagged structure is used on the WebSocket (as JSON text) and on the
broker (as CBOR bytes), so adding a variant never changes the wire shape of
the existing ones.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

import cbor2
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class UserPayload(_Frozen):
    uid: str
    role: str
    name: str
    email: str | None = None
    family_uid: str


class AllowancePayload(_Frozen):
    uid: str
    user_uid: str
    amount: int
    schedule: str


class RequestPayload(_Frozen):
    uid: int
    user_uid: str
    name: str
    description: str
    amount: int
    url: str | None = None
    time: datetime


class PingEvent(_Frozen):
    type: Literal["Ping"] = "Ping"


class LogoutEvent(_Frozen):
    type: Literal["Logout"] = "Logout"


class FamilyMemberAddedEvent(_Frozen):
    type: Literal["FamilyMemberAdded"] = "FamilyMemberAdded"
    user: UserPayload
    by: str


class FamilyMemberRemovedEvent(_Frozen):
    type: Literal["FamilyMemberRemoved"] = "FamilyMemberRemoved"
    user: UserPayload
    by: str


class AllowanceUpdatedEvent(_Frozen):
    type: Literal["AllowanceUpdated"] = "AllowanceUpdated"
    allowance: AllowancePayload
    by: str


class RequestCreatedEvent(_Frozen):
    type: Literal["RequestCreated"] = "RequestCreated"
    request: RequestPayload
    by: str


class RequestGrantedEvent(_Frozen):
    type: Literal["RequestGranted"] = "RequestGranted"
    request: RequestPayload
    by: str


class RequestDeclinedEvent(_Frozen):
    type: Literal["RequestDeclined"] = "RequestDeclined"
    request: RequestPayload
    by: str


Event = Annotated[
    Union[
        PingEvent,
        LogoutEvent,
        FamilyMemberAddedEvent,
        FamilyMemberRemovedEvent,
        AllowanceUpdatedEvent,
        RequestCreatedEvent,
        RequestGrantedEvent,
        RequestDeclinedEvent,
    ],
    Field(discriminator="type"),
]

_event_adapter: TypeAdapter = TypeAdapter(Event)


class EventDecodeError(ValueError):
    pass


def EncodeEventJson(event: Event) -> str:
    return event.model_dump_json()


def DecodeEventJson(raw: str | bytes) -> Event:
    try:
        return _event_adapter.validate_json(raw)
    except ValidationError as exc:
        raise EventDecodeError(f"invalid event payload: {exc.error_count()} error(s)") from exc


def EncodeEventBinary(event: Event) -> bytes:
    return cbor2.dumps(event.model_dump(mode="json"))


def DecodeEventBinary(raw: bytes) -> Event:
    try:
        data = cbor2.loads(raw)
    except (cbor2.CBORDecodeError, ValueError, TypeError, EOFError) as exc:
        raise EventDecodeError(f"invalid event encoding: {exc}") from exc
    try:
        return _event_adapter.validate_python(data)
    except ValidationError as exc:
        raise EventDecodeError(f"invalid event payload: {exc.error_count()} error(s)") from exc


def BuildUserPayload(record) -> UserPayload:
    return UserPayload(
        uid=record.Id,
        role=record.Role,
        name=record.Name,
        email=record.Email,
        family_uid=record.FamilyId,
    )


def BuildAllowancePayload(record) -> AllowancePayload:
    return AllowancePayload(
        uid=record.Id,
        user_uid=record.UserId,
        amount=record.Amount,
        schedule=record.Schedule,
    )


def BuildRequestPayload(record) -> RequestPayload:
    return RequestPayload(
        uid=record.Id,
        user_uid=record.UserId,
        name=record.Name,
        description=record.Description,
        amount=record.Amount,
        url=record.Url,
        time=record.Time,
    )
