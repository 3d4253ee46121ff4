from datetime import timedelta

import jwt
from passlib.context import CryptContext

from allo.core.config import GetIntEnv
from allo.modules.auth.deps import NowUtc, _require_env

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def HashPassword(password: str) -> str:
    return pwd_context.hash(password)


def VerifyPassword(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False
    return pwd_context.verify(password, password_hash)


def PasswordMinLength() -> int:
    return GetIntEnv("AUTH_PASSWORD_MIN_LENGTH", 8)


def CreateAccessToken(user_id: str, session_version: int) -> tuple[str, int]:
    secret = _require_env("JWT_SECRET_KEY")
    ttl_minutes = GetIntEnv("JWT_ACCESS_TTL_MINUTES", 720)
    now = NowUtc()
    expires = now + timedelta(minutes=ttl_minutes)
    payload = {
        "sub": user_id,
        "ver": session_version,
        "iat": int(now.timestamp()),
        "exp": int(expires.timestamp()),
    }
    token = jwt.encode(payload, secret, algorithm="HS256")
    return token, ttl_minutes * 60
