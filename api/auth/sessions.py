"""
Server-side session store.

A session is a row in `sessions` plus a signed token handed to the client.
The token only carries the session id and user id; revocation and expiry are
decided by the row, so logging out takes effect immediately.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

from . import repository, security

logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def open_session(
    user_row: dict,
    *,
    user_agent: str | None = None,
    ip_address: str | None = None,
) -> str:
    """
    Create a session for `user_row` and return its bearer token.
    """
    user_id = int(user_row["id"])
    session_id = security.new_session_id()
    expires_at = _utc_now() + timedelta(hours=security.session_expire_hours())

    await repository.insert_session(
        session_id=session_id,
        user_id=user_id,
        expires_at=expires_at,
        user_agent=user_agent,
        ip_address=ip_address,
    )
    logger.info("session_opened user_id=%s", user_id)
    return security.build_session_token(
        user_id=user_id,
        session_id=session_id,
        expires_at_s=int(expires_at.timestamp()),
    )


async def resolve_session(token: str | None) -> dict | None:
    """
    Return the active user behind `token`, or None for any invalid, expired
    or revoked session.
    """
    if not (token or "").strip():
        return None

    try:
        payload = security.decode_session_token(token or "")
    except security.AuthSecurityError as exc:
        logger.info("session_rejected reason=%r", str(exc))
        return None

    session_row = await repository.get_session(str(payload["sid"]))
    if session_row is None or session_row.get("revoked_at") is not None:
        return None

    expires_at = session_row.get("expires_at")
    if not isinstance(expires_at, datetime) or expires_at <= _utc_now():
        return None

    if int(session_row["user_id"]) != int(payload["sub"]):
        return None

    user_row = await repository.get_user_by_id(int(session_row["user_id"]))
    if user_row is None or not bool(user_row.get("is_active", False)):
        return None

    await repository.touch_session(str(session_row["id"]))
    return user_row


async def close_session(token: str | None) -> bool:
    """
    Revoke the session behind `token`. Returns False if there was nothing to revoke.
    """
    if not (token or "").strip():
        return False

    try:
        payload = security.decode_session_token(token or "")
    except security.AuthSecurityError:
        return False

    revoked = await repository.revoke_session(str(payload["sid"]))
    if revoked:
        logger.info("session_closed user_id=%s", payload.get("sub"))
    return revoked
