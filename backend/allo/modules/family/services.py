from __future__ import annotations

from sqlalchemy.orm import Session

from allo.modules.auth.deps import NowUtc, UserContext
from allo.modules.auth.models import ROLE_PARENT, ROLES, Family, User
from allo.modules.auth.service import HashPassword, PasswordMinLength
from allo.modules.family.models import (
    DEFAULT_SCHEDULE,
    SCHEDULES,
    TRANSACTION_REQUEST,
    TRANSACTION_TYPES,
    Allowance,
    Request,
    Transaction,
)
from allo.modules.family.schemas import (
    AllowanceUpdate,
    FamilyRegister,
    MemberCreate,
    RequestCreate,
    RequestGrant,
    TransactionCreate,
)
from allo.modules.notify.dispatcher import DispatchRequest, NotificationDispatcher
from allo.modules.notify.events import (
    AllowanceUpdatedEvent,
    FamilyMemberAddedEvent,
    FamilyMemberRemovedEvent,
    RequestCreatedEvent,
    RequestDeclinedEvent,
    RequestGrantedEvent,
    BuildAllowancePayload,
    BuildRequestPayload,
    BuildUserPayload,
)
from allo.modules.notify.targets import FamilyTarget, MemberAndParentsTarget, ParentsTarget


def _RequireParentOf(actor: UserContext, family_id: str) -> None:
    if actor.FamilyId != family_id:
        raise PermissionError("Not a member of this family")
    if not actor.IsParent:
        raise PermissionError("Parent role required")


def _LoadMember(db: Session, family_id: str, user_id: str) -> User:
    record = db.query(User).filter(User.Id == user_id, User.FamilyId == family_id).first()
    if not record:
        raise LookupError("Family member not found")
    return record


def _ValidateSchedule(schedule: str) -> str:
    if schedule not in SCHEDULES:
        raise ValueError(f"Schedule must be one of {', '.join(SCHEDULES)}")
    return schedule


def _NormalizeEmail(db: Session, email: str | None) -> str | None:
    email = email.strip().lower() if email else None
    if email and db.query(User.Id).filter(User.Email == email).first():
        raise ValueError("Email already in use")
    return email


def _HashNewPassword(password: str) -> str:
    min_length = PasswordMinLength()
    if len(password) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    return HashPassword(password)


def RegisterFamily(db: Session, payload: FamilyRegister) -> tuple[Family, User]:
    """Create a family together with its first parent.

    Nobody else belongs to the family yet, so no event is sent.
    """
    email = _NormalizeEmail(db, payload.Email)
    if not email:
        raise ValueError("Email is required")
    password_hash = _HashNewPassword(payload.Password)

    family = Family(Name=payload.FamilyName.strip())
    db.add(family)
    db.flush()
    user = User(
        FamilyId=family.Id,
        Role=ROLE_PARENT,
        Name=payload.Name.strip(),
        Email=email,
        PasswordHash=password_hash,
    )
    db.add(user)
    db.commit()
    db.refresh(family)
    db.refresh(user)
    return family, user


def ListFamilyMembers(db: Session, actor: UserContext) -> list[User]:
    return db.query(User).filter(User.FamilyId == actor.FamilyId).order_by(User.Name.asc()).all()


def GetFamilyMember(db: Session, actor: UserContext, user_id: str) -> tuple[User, Allowance | None]:
    record = db.query(User).filter(User.Id == user_id).first()
    if not record:
        raise LookupError("User not found")
    if record.FamilyId != actor.FamilyId:
        raise PermissionError("Not a member of this family")
    allowance = db.query(Allowance).filter(Allowance.UserId == record.Id).first()
    return record, allowance


def AddFamilyMember(
    db: Session,
    dispatcher: NotificationDispatcher,
    actor: UserContext,
    family_id: str,
    payload: MemberCreate,
) -> User:
    _RequireParentOf(actor, family_id)
    if payload.Role not in ROLES:
        raise ValueError("Role must be Parent or Child")
    has_allowance = payload.AllowanceAmount is not None or payload.AllowanceSchedule is not None
    if has_allowance and payload.Role == ROLE_PARENT:
        raise ValueError("A parent cannot have an allowance")
    schedule = _ValidateSchedule(payload.AllowanceSchedule or DEFAULT_SCHEDULE)
    email = _NormalizeEmail(db, payload.Email)
    password_hash = _HashNewPassword(payload.Password) if payload.Password is not None else None

    record = User(
        FamilyId=family_id,
        Role=payload.Role,
        Name=payload.Name.strip(),
        Email=email,
        PasswordHash=password_hash,
    )
    db.add(record)
    db.flush()
    if has_allowance:
        db.add(
            Allowance(
                UserId=record.Id,
                Amount=payload.AllowanceAmount or 0,
                Schedule=schedule,
            )
        )
        db.flush()

    event = FamilyMemberAddedEvent(user=BuildUserPayload(record), by=actor.Id)
    dispatcher.Send(db, DispatchRequest(FamilyTarget(family_id), event), actor.Id)
    db.commit()
    db.refresh(record)
    return record


def RemoveFamilyMember(
    db: Session,
    dispatcher: NotificationDispatcher,
    actor: UserContext,
    family_id: str,
    user_id: str,
) -> None:
    _RequireParentOf(actor, family_id)
    if user_id == actor.Id:
        raise ValueError("You cannot remove yourself")
    record = _LoadMember(db, family_id, user_id)
    payload = BuildUserPayload(record)

    db.query(Allowance).filter(Allowance.UserId == record.Id).delete(synchronize_session=False)
    db.query(Request).filter(Request.UserId == record.Id).delete(synchronize_session=False)
    db.query(Transaction).filter(Transaction.UserId == record.Id).delete(synchronize_session=False)
    db.delete(record)
    db.flush()

    event = FamilyMemberRemovedEvent(user=payload, by=actor.Id)
    dispatcher.Send(db, DispatchRequest(FamilyTarget(family_id), event), actor.Id)
    db.commit()


def UpdateAllowance(
    db: Session,
    dispatcher: NotificationDispatcher,
    actor: UserContext,
    user_id: str,
    payload: AllowanceUpdate,
) -> Allowance:
    _RequireParentOf(actor, actor.FamilyId)
    schedule = _ValidateSchedule(payload.Schedule) if payload.Schedule is not None else None
    member = _LoadMember(db, actor.FamilyId, user_id)
    if member.Role == ROLE_PARENT:
        raise ValueError("A parent cannot have an allowance")
    record = db.query(Allowance).filter(Allowance.UserId == member.Id).first()
    if not record:
        record = Allowance(UserId=member.Id, Amount=0, Schedule=DEFAULT_SCHEDULE)
        db.add(record)
    if payload.Amount is not None:
        record.Amount = payload.Amount
    if schedule is not None:
        record.Schedule = schedule
    record.UpdatedAt = NowUtc()
    db.flush()

    event = AllowanceUpdatedEvent(allowance=BuildAllowancePayload(record), by=actor.Id)
    target = MemberAndParentsTarget(member.Id, member.FamilyId)
    dispatcher.Send(db, DispatchRequest(target, event), actor.Id)
    db.commit()
    db.refresh(record)
    return record


def ListRequests(db: Session, actor: UserContext) -> list[Request]:
    query = db.query(Request).join(User, User.Id == Request.UserId).filter(User.FamilyId == actor.FamilyId)
    if not actor.IsParent:
        query = query.filter(Request.UserId == actor.Id)
    return query.order_by(Request.Time.desc()).all()


def MakeRequest(
    db: Session,
    dispatcher: NotificationDispatcher,
    actor: UserContext,
    payload: RequestCreate,
) -> Request:
    if actor.IsParent:
        raise PermissionError("Only children can make requests")
    record = Request(
        UserId=actor.Id,
        Name=payload.Name.strip(),
        Description=payload.Description.strip(),
        Amount=payload.Amount,
        Url=payload.Url.strip() if payload.Url else None,
        Time=NowUtc(),
    )
    db.add(record)
    db.flush()

    event = RequestCreatedEvent(request=BuildRequestPayload(record), by=actor.Id)
    dispatcher.Send(db, DispatchRequest(ParentsTarget(actor.FamilyId), event), actor.Id)
    db.commit()
    db.refresh(record)
    return record


def _LoadRequest(db: Session, actor: UserContext, user_id: str, request_id: int) -> tuple[User, Request]:
    _RequireParentOf(actor, actor.FamilyId)
    member = _LoadMember(db, actor.FamilyId, user_id)
    record = db.query(Request).filter(Request.Id == request_id, Request.UserId == member.Id).first()
    if not record:
        raise LookupError("Request not found")
    return member, record


def GrantRequest(
    db: Session,
    dispatcher: NotificationDispatcher,
    actor: UserContext,
    user_id: str,
    request_id: int,
    payload: RequestGrant,
) -> Transaction:
    member, record = _LoadRequest(db, actor, user_id, request_id)
    snapshot = BuildRequestPayload(record)
    cost = payload.Cost if payload.Cost is not None else record.Amount

    transaction = Transaction(
        UserId=member.Id,
        TransactionType=TRANSACTION_REQUEST,
        Description=record.Name,
        Amount=-cost,
        Time=NowUtc(),
    )
    db.add(transaction)
    db.delete(record)
    db.flush()

    event = RequestGrantedEvent(request=snapshot, by=actor.Id)
    target = MemberAndParentsTarget(member.Id, member.FamilyId)
    dispatcher.Send(db, DispatchRequest(target, event), actor.Id)
    db.commit()
    db.refresh(transaction)
    return transaction


def DeclineRequest(
    db: Session,
    dispatcher: NotificationDispatcher,
    actor: UserContext,
    user_id: str,
    request_id: int,
) -> None:
    member, record = _LoadRequest(db, actor, user_id, request_id)
    snapshot = BuildRequestPayload(record)
    db.delete(record)
    db.flush()

    event = RequestDeclinedEvent(request=snapshot, by=actor.Id)
    target = MemberAndParentsTarget(member.Id, member.FamilyId)
    dispatcher.Send(db, DispatchRequest(target, event), actor.Id)
    db.commit()


def CreateTransaction(
    db: Session,
    actor: UserContext,
    user_id: str,
    payload: TransactionCreate,
) -> Transaction:
    _RequireParentOf(actor, actor.FamilyId)
    if payload.TransactionType not in TRANSACTION_TYPES:
        raise ValueError(f"Transaction type must be one of {', '.join(sorted(TRANSACTION_TYPES))}")
    member = _LoadMember(db, actor.FamilyId, user_id)
    record = Transaction(
        UserId=member.Id,
        TransactionType=payload.TransactionType,
        Description=payload.Description.strip(),
        Amount=payload.Amount,
        Time=NowUtc(),
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def ListTransactions(db: Session, actor: UserContext, user_id: str) -> list[Transaction]:
    if user_id != actor.Id:
        _RequireParentOf(actor, actor.FamilyId)
    member = _LoadMember(db, actor.FamilyId, user_id)
    return (
        db.query(Transaction)
        .filter(Transaction.UserId == member.Id)
        .order_by(Transaction.Time.desc(), Transaction.Id.desc())
        .all()
    )
