"""
Account API endpoints.

Sessions are explicit: login returns a token and the client sends it back as
`Authorization: Bearer <token>`.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, Request, status
from fastapi.responses import JSONResponse

from core import notifier

from . import dependencies, schemas, service

router = APIRouter(prefix="/user")


@router.post("/register", response_model=schemas.StatusResponse)
async def register(payload: schemas.RegisterRequest) -> schemas.StatusResponse:
    return await service.register(payload)


@router.post("/login", response_model=schemas.SessionResponse)
async def login(
    payload: schemas.LoginRequest,
    request: Request,
    background_tasks: BackgroundTasks,
):
    result = await service.login(payload, **dependencies.client_info(request))
    if result is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"status": "failed"})

    response, user_row = result
    # Send after the HTTP response; a mail outage must not block sign-in.
    background_tasks.add_task(notifier.send_background, *service.login_notification(user_row))
    return response


@router.post("/google-auth", response_model=schemas.SessionResponse)
async def google_auth(payload: schemas.GoogleAuthRequest, request: Request):
    response = await service.google_auth(payload, **dependencies.client_info(request))
    if isinstance(response, schemas.StatusResponse):
        code = status.HTTP_409_CONFLICT if response.status == "PASSWORD_ACCOUNT" else status.HTTP_403_FORBIDDEN
        return JSONResponse(status_code=code, content={"status": response.status})
    return response


@router.get("/current", response_model=schemas.CurrentUserResponse)
async def current(token: str | None = Depends(dependencies.get_bearer_token)):
    response = await service.current_user(token)
    if response is None:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"status": "anonymous"})
    return response


@router.post("/logout", response_model=schemas.StatusResponse)
async def logout(token: str | None = Depends(dependencies.get_bearer_token)) -> schemas.StatusResponse:
    return await service.logout(token)
