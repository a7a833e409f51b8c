"""
Auth API schemas (request/response models).
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from .security import BCRYPT_MAX_PASSWORD_BYTES


class RegisterRequest(BaseModel):
    name: str = Field(default="", max_length=200)
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("password")
    @classmethod
    def password_fits_bcrypt(cls, value: str) -> str:
        if len(value.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
            raise ValueError(f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes in UTF-8.")
        return value


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=320)
    password: str = Field(..., min_length=1, max_length=128)


class GoogleAuthRequest(BaseModel):
    # The identity is asserted by the frontend Google sign-in widget.
    email: str = Field(..., min_length=3, max_length=320)
    name: str = Field(default="", max_length=200)


class UserResponse(BaseModel):
    id: int
    name: str
    email: str


class StatusResponse(BaseModel):
    status: str


class SessionResponse(BaseModel):
    status: str = "success"
    user: UserResponse
    token: str
    token_type: str = "bearer"


class CurrentUserResponse(BaseModel):
    status: str = "ok"
    user: UserResponse
