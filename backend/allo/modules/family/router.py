from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from allo.db import GetDb
from allo.modules.auth.deps import RequireAuthenticated, UserContext
from allo.modules.family.schemas import (
    AllowanceOut,
    AllowanceUpdate,
    FamilyOut,
    FamilyRegister,
    FamilyRegisterOut,
    MemberCreate,
    MemberDetailOut,
    MemberOut,
    RequestCreate,
    RequestGrant,
    RequestOut,
    TransactionCreate,
    TransactionOut,
)
from allo.modules.family.services import (
    AddFamilyMember,
    CreateTransaction,
    DeclineRequest,
    GetFamilyMember,
    GrantRequest,
    ListFamilyMembers,
    ListRequests,
    ListTransactions,
    MakeRequest,
    RegisterFamily,
    RemoveFamilyMember,
    UpdateAllowance,
)
from allo.modules.notify.dispatcher import GetDispatcher, NotificationDispatcher

router = APIRouter(prefix="/api", tags=["family"])


def _raise_http(exc: Exception) -> None:
    if isinstance(exc, PermissionError):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc
    if isinstance(exc, LookupError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


def _member_out(record) -> MemberOut:
    return MemberOut(
        Id=record.Id,
        FamilyId=record.FamilyId,
        Role=record.Role,
        Name=record.Name,
        Email=record.Email,
    )


def _request_out(record) -> RequestOut:
    return RequestOut(
        Id=record.Id,
        UserId=record.UserId,
        Name=record.Name,
        Description=record.Description,
        Amount=record.Amount,
        Url=record.Url,
        Time=record.Time,
    )


def _transaction_out(record) -> TransactionOut:
    return TransactionOut(
        Id=record.Id,
        UserId=record.UserId,
        TransactionType=record.TransactionType,
        Description=record.Description,
        Amount=record.Amount,
        Time=record.Time,
    )


def _allowance_out(record) -> AllowanceOut:
    return AllowanceOut(Id=record.Id, UserId=record.UserId, Amount=record.Amount, Schedule=record.Schedule)


@router.post("/family", response_model=FamilyRegisterOut, status_code=status.HTTP_201_CREATED)
def RegisterFamilyRoute(payload: FamilyRegister, db: Session = Depends(GetDb)) -> FamilyRegisterOut:
    try:
        family, user = RegisterFamily(db, payload)
    except ValueError as exc:
        _raise_http(exc)
    return FamilyRegisterOut(Family=FamilyOut(Id=family.Id, Name=family.Name), User=_member_out(user))


@router.get("/family/members", response_model=list[MemberOut])
def ListMembersRoute(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> list[MemberOut]:
    return [_member_out(record) for record in ListFamilyMembers(db, user)]


@router.post("/family/{family_id}/members", response_model=MemberOut, status_code=status.HTTP_201_CREATED)
def AddMemberRoute(
    family_id: str,
    payload: MemberCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> MemberOut:
    try:
        record = AddFamilyMember(db, dispatcher, user, family_id, payload)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)
    return _member_out(record)


@router.delete("/family/{family_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def RemoveMemberRoute(
    family_id: str,
    user_id: str,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> None:
    try:
        RemoveFamilyMember(db, dispatcher, user, family_id, user_id)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)


@router.get("/users/{user_id}", response_model=MemberDetailOut)
def GetMemberRoute(
    user_id: str,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> MemberDetailOut:
    try:
        record, allowance = GetFamilyMember(db, user, user_id)
    except (PermissionError, LookupError) as exc:
        _raise_http(exc)
    return MemberDetailOut(
        User=_member_out(record),
        Allowance=_allowance_out(allowance) if allowance else None,
    )


@router.put("/users/{user_id}/allowance", response_model=AllowanceOut)
def UpdateAllowanceRoute(
    user_id: str,
    payload: AllowanceUpdate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> AllowanceOut:
    try:
        record = UpdateAllowance(db, dispatcher, user, user_id, payload)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)
    return _allowance_out(record)


@router.get("/users/{user_id}/transactions", response_model=list[TransactionOut])
def ListTransactionsRoute(
    user_id: str,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> list[TransactionOut]:
    try:
        records = ListTransactions(db, user, user_id)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)
    return [_transaction_out(record) for record in records]


@router.post("/users/{user_id}/transactions", response_model=TransactionOut, status_code=status.HTTP_201_CREATED)
def CreateTransactionRoute(
    user_id: str,
    payload: TransactionCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> TransactionOut:
    try:
        record = CreateTransaction(db, user, user_id, payload)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)
    return _transaction_out(record)


@router.get("/requests", response_model=list[RequestOut])
def ListRequestsRoute(
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
) -> list[RequestOut]:
    return [_request_out(record) for record in ListRequests(db, user)]


@router.post("/requests", response_model=RequestOut, status_code=status.HTTP_201_CREATED)
def MakeRequestRoute(
    payload: RequestCreate,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> RequestOut:
    try:
        record = MakeRequest(db, dispatcher, user, payload)
    except PermissionError as exc:
        _raise_http(exc)
    return _request_out(record)


@router.post("/requests/{user_id}/{request_id}/grant", response_model=TransactionOut)
def GrantRequestRoute(
    user_id: str,
    request_id: int,
    payload: RequestGrant,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> TransactionOut:
    try:
        record = GrantRequest(db, dispatcher, user, user_id, request_id, payload)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)
    return _transaction_out(record)


@router.post("/requests/{user_id}/{request_id}/decline", status_code=status.HTTP_204_NO_CONTENT)
def DeclineRequestRoute(
    user_id: str,
    request_id: int,
    db: Session = Depends(GetDb),
    user: UserContext = Depends(RequireAuthenticated),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> None:
    try:
        DeclineRequest(db, dispatcher, user, user_id, request_id)
    except (ValueError, PermissionError, LookupError) as exc:
        _raise_http(exc)
