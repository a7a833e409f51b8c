"""
Auth security helpers: password hashing and session token signing.
"""

from __future__ import annotations

import secrets
import time
from typing import Any

import bcrypt
import jwt

from core import settings

DEV_SECRET = "dev-change-this-secret"

# bcrypt only looks at the first 72 bytes; bcrypt>=5 rejects longer input.
BCRYPT_MAX_PASSWORD_BYTES = 72


class AuthSecurityError(RuntimeError):
    pass


def jwt_secret() -> str:
    # Local default keeps development simple.
    # In production, set JWT_SECRET in environment.
    return settings.env_str("JWT_SECRET", DEV_SECRET)


def jwt_algorithm() -> str:
    return settings.env_str("JWT_ALG", "HS256")


def session_expire_hours() -> int:
    return settings.env_int("SESSION_EXPIRE_HOURS", 24)


def now_epoch_s() -> int:
    return int(time.time())


def hash_password(plain_password: str) -> str:
    password = (plain_password or "").encode("utf-8")
    if not password:
        raise AuthSecurityError("Password is empty.")
    if len(password) > BCRYPT_MAX_PASSWORD_BYTES:
        raise AuthSecurityError(f"Password is longer than {BCRYPT_MAX_PASSWORD_BYTES} bytes.")
    return bcrypt.hashpw(password, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str | None) -> bool:
    password = (plain_password or "").encode("utf-8")
    hashed = (password_hash or "").encode("utf-8")
    if not password or not hashed or len(password) > BCRYPT_MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(password, hashed)
    except ValueError:
        return False


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


def build_session_token(*, user_id: int, session_id: str, expires_at_s: int) -> str:
    payload = {
        "sub": str(user_id),
        "sid": session_id,
        "type": "session",
        "iat": now_epoch_s(),
        "exp": expires_at_s,
    }
    return jwt.encode(payload, jwt_secret(), algorithm=jwt_algorithm())


def decode_session_token(token: str) -> dict[str, Any]:
    raw = (token or "").strip()
    if not raw:
        raise AuthSecurityError("Session token is empty.")

    try:
        payload = jwt.decode(raw, jwt_secret(), algorithms=[jwt_algorithm()])
    except jwt.ExpiredSignatureError as exc:
        raise AuthSecurityError("Session token is expired.") from exc
    except jwt.InvalidTokenError as exc:
        raise AuthSecurityError("Invalid session token.") from exc

    if str(payload.get("type") or "").strip().lower() != "session":
        raise AuthSecurityError("Token is not a session token.")
    if not str(payload.get("sid") or "").strip():
        raise AuthSecurityError("Session token has no session id.")
    if not str(payload.get("sub") or "").strip().isdigit():
        raise AuthSecurityError("Invalid session token subject.")

    return payload
