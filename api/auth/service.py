"""
Account business logic.

Failures the client is expected to handle (taken email, wrong password,
anonymous caller) are reported as status values, not exceptions; the router
turns them into the matching HTTP status.
"""

from __future__ import annotations

import logging

import asyncpg

from . import repository, schemas, security, sessions

logger = logging.getLogger(__name__)

LOGIN_NOTIFICATION_SUBJECT = "New sign-in to your account"


def _to_user_response(user_row: dict) -> schemas.UserResponse:
    return schemas.UserResponse(
        id=int(user_row["id"]),
        name=str(user_row.get("name") or ""),
        email=str(user_row["email"]),
    )


def login_notification(user_row: dict) -> tuple[str, str, str]:
    """
    Build the (to, subject, body) triple sent after a successful password login.
    """
    name = str(user_row.get("name") or "").strip() or "there"
    body = f"Hi {name}, you have just signed in. If this was not you, please change your password."
    return str(user_row["email"]), LOGIN_NOTIFICATION_SUBJECT, body


async def register(payload: schemas.RegisterRequest) -> schemas.StatusResponse:
    if await repository.user_exists(payload.email):
        return schemas.StatusResponse(status="EXISTS")

    password_hash = security.hash_password(payload.password)
    try:
        user_row = await repository.create_user(
            name=payload.name,
            email=payload.email,
            password_hash=password_hash,
        )
    except asyncpg.UniqueViolationError:
        # Lost a race with a concurrent registration for the same email.
        return schemas.StatusResponse(status="EXISTS")

    logger.info("user_registered user_id=%s", user_row["id"])
    return schemas.StatusResponse(status="REGISTERED")


async def check_credentials(email: str, password: str) -> dict | None:
    """
    Return the user row if `email`/`password` match an active account.
    """
    user_row = await repository.get_user_by_email(email)
    if user_row is None or not bool(user_row.get("is_active", False)):
        return None
    if not security.verify_password(password, user_row.get("password_hash")):
        return None
    return user_row


async def login(
    payload: schemas.LoginRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> tuple[schemas.SessionResponse, dict] | None:
    user_row = await check_credentials(payload.email, payload.password)
    if user_row is None:
        logger.info("login_failed email=%s", repository.normalize_email(payload.email))
        return None

    token = await sessions.open_session(user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.SessionResponse(user=_to_user_response(user_row), token=token), user_row


async def google_auth(
    payload: schemas.GoogleAuthRequest,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> schemas.SessionResponse | schemas.StatusResponse:
    """
    Sign in (or sign up) an identity asserted by Google.

    Only accounts created through this route can be entered this way; a
    password account with the same email is refused with `PASSWORD_ACCOUNT`.
    """
    user_row = await repository.get_user_by_email(payload.email)
    if user_row is None:
        try:
            # No usable password: these accounts can only sign in through Google.
            user_row = await repository.create_user(
                name=payload.name,
                email=payload.email,
                password_hash=None,
                auth_provider="google",
            )
            logger.info("user_registered user_id=%s provider=google", user_row["id"])
        except asyncpg.UniqueViolationError:
            user_row = await repository.get_user_by_email(payload.email)
            if user_row is None:
                raise

    if str(user_row.get("auth_provider") or "") != "google":
        logger.warning("google_auth_refused user_id=%s provider=%s", user_row["id"], user_row.get("auth_provider"))
        return schemas.StatusResponse(status="PASSWORD_ACCOUNT")

    if not bool(user_row.get("is_active", False)):
        return schemas.StatusResponse(status="inactive")

    token = await sessions.open_session(user_row, user_agent=user_agent, ip_address=ip_address)
    return schemas.SessionResponse(user=_to_user_response(user_row), token=token)


async def current_user(token: str | None) -> schemas.CurrentUserResponse | None:
    user_row = await sessions.resolve_session(token)
    if user_row is None:
        return None
    return schemas.CurrentUserResponse(user=_to_user_response(user_row))


async def logout(token: str | None) -> schemas.StatusResponse:
    await sessions.close_session(token)
    return schemas.StatusResponse(status="logged_out")
