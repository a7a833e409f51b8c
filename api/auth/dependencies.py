"""
Auth dependencies for FastAPI routes.
"""

from __future__ import annotations

from fastapi import Header, Request


def _extract_bearer_token(authorization: str | None) -> str | None:
    raw = (authorization or "").strip()
    if not raw:
        return None

    parts = raw.split(" ", 1)
    if len(parts) != 2:
        return None

    scheme, token = parts[0].strip().lower(), parts[1].strip()
    if scheme != "bearer" or not token:
        return None
    return token


async def get_bearer_token(authorization: str | None = Header(default=None)) -> str | None:
    """
    Bearer token if present and well-formed, else None (anonymous caller).
    """
    return _extract_bearer_token(authorization)


def client_info(request: Request) -> dict[str, str | None]:
    """
    User agent and IP recorded on new sessions.
    """
    return {
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None,
    }
