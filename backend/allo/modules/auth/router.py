import logging

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from allo.core.config import Settings
from allo.db import GetDb
from allo.modules.auth.deps import RequireAuthenticated, UserContext
from allo.modules.auth.models import User
from allo.modules.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    SessionResponse,
    SessionUserOut,
)
from allo.modules.auth.service import (
    CreateAccessToken,
    HashPassword,
    PasswordMinLength,
    VerifyPassword,
)
from allo.modules.notify.dispatcher import DispatchRequest, GetDispatcher, NotificationDispatcher
from allo.modules.notify.events import LogoutEvent
from allo.modules.notify.targets import MemberTarget

router = APIRouter(prefix="/api/session", tags=["session"])
logger = logging.getLogger("app.auth")


def _set_session_cookie(response: Response, token: str, max_age: int) -> None:
    response.set_cookie(
        Settings.SessionCookieName,
        token,
        max_age=max_age,
        httponly=True,
        samesite="lax",
        secure=Settings.SessionCookieSecure,
    )


def _end_sessions(db: Session, dispatcher: NotificationDispatcher, record: User) -> None:
    # Bumping the version invalidates every token issued so far; the event
    # closes the user's live sockets.
    record.SessionVersion = (record.SessionVersion or 0) + 1
    db.add(record)
    db.flush()
    dispatcher.Send(db, DispatchRequest(MemberTarget(record.Id), LogoutEvent()), record.Id)


@router.post("/login", response_model=SessionResponse)
def Login(payload: LoginRequest, response: Response, db: Session = Depends(GetDb)) -> SessionResponse:
    email = payload.Email.strip().lower()
    user = db.query(User).filter(User.Email == email).first()
    if not user or not VerifyPassword(payload.Password, user.PasswordHash):
        logger.info("login rejected email=%s", email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    access_token, expires_in = CreateAccessToken(user.Id, user.SessionVersion or 0)
    _set_session_cookie(response, access_token, expires_in)
    return SessionResponse(
        AccessToken=access_token,
        ExpiresIn=expires_in,
        UserId=user.Id,
        FamilyId=user.FamilyId,
        Role=user.Role,
        Name=user.Name,
    )


@router.get("", response_model=SessionUserOut)
def GetSession(user: UserContext = Depends(RequireAuthenticated)) -> SessionUserOut:
    return SessionUserOut(UserId=user.Id, FamilyId=user.FamilyId, Role=user.Role, Name=user.Name)


@router.post("/logout")
def Logout(
    response: Response,
    user: UserContext = Depends(RequireAuthenticated),
    db: Session = Depends(GetDb),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> dict:
    record = db.query(User).filter(User.Id == user.Id).first()
    if not record:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")
    _end_sessions(db, dispatcher, record)
    db.commit()
    response.delete_cookie(Settings.SessionCookieName)
    return {"status": "ok"}


@router.post("/password")
def ChangePassword(
    payload: ChangePasswordRequest,
    response: Response,
    user: UserContext = Depends(RequireAuthenticated),
    db: Session = Depends(GetDb),
    dispatcher: NotificationDispatcher = Depends(GetDispatcher),
) -> dict:
    min_length = PasswordMinLength()
    if len(payload.NewPassword) < min_length:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Password must be at least {min_length} characters",
        )

    record = db.query(User).filter(User.Id == user.Id).first()
    if not record or not VerifyPassword(payload.CurrentPassword, record.PasswordHash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")

    record.PasswordHash = HashPassword(payload.NewPassword)
    _end_sessions(db, dispatcher, record)
    db.commit()
    response.delete_cookie(Settings.SessionCookieName)
    return {"status": "ok"}
