import os
from dataclasses import dataclass
from datetime import datetime, timezone

import jwt
from fastapi import Depends, HTTPException, Request, WebSocket, status
from sqlalchemy.orm import Session

from allo.core.config import Settings
from allo.db import GetDb, GetSessionFactory
from allo.modules.auth.models import ROLE_PARENT, User


class AuthError(Exception):
    pass


def _require_env(name: str) -> str:
    value = os.getenv(name, "").strip()
    if not value:
        raise RuntimeError(f"Missing required env var: {name}")
    return value


def _decode_access_token(token: str) -> dict:
    secret = _require_env("JWT_SECRET_KEY")
    try:
        return jwt.decode(token, secret, algorithms=["HS256"])
    except jwt.ExpiredSignatureError as exc:
        raise AuthError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthError("Invalid token") from exc


@dataclass
class UserContext:
    Id: str
    FamilyId: str
    Role: str
    Name: str

    @property
    def IsParent(self) -> bool:
        return self.Role == ROLE_PARENT


def _extract_token(headers, cookies) -> str | None:
    auth_header = headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.replace("Bearer ", "", 1).strip()
        if token:
            return token
    return cookies.get(Settings.SessionCookieName) or None


def ResolveUserContext(db: Session, token: str) -> UserContext:
    payload = _decode_access_token(token)
    user_id = payload.get("sub")
    if not user_id:
        raise AuthError("Invalid token")

    user = db.query(User).filter(User.Id == str(user_id)).first()
    if not user:
        raise AuthError("User not found")
    if payload.get("ver") != user.SessionVersion:
        raise AuthError("Session ended")
    return UserContext(Id=user.Id, FamilyId=user.FamilyId, Role=user.Role, Name=user.Name)


def RequireAuthenticated(
    request: Request,
    db: Session = Depends(GetDb),
) -> UserContext:
    token = _extract_token(request.headers, request.cookies)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    try:
        return ResolveUserContext(db, token)
    except AuthError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)) from exc


def AuthenticateWebSocket(websocket: WebSocket) -> UserContext | None:
    """Resolve the caller of a WebSocket handshake, or None when anonymous.

    Runs synchronously; call it through the threadpool from async code.
    """
    token = _extract_token(websocket.headers, websocket.cookies)
    if not token:
        return None
    db = GetSessionFactory()()
    try:
        return ResolveUserContext(db, token)
    except AuthError:
        return None
    finally:
        db.close()


def NowUtc() -> datetime:
    return datetime.now(tz=timezone.utc)
