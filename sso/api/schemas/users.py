from __future__ import annotations

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=256)


class UserResponse(BaseModel):
    id: str
    name: str
    email: str
    avatar_url: str | None
    roles: list[str]


class RegisterResponse(BaseModel):
    user: UserResponse


class CheckEmailRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)


class CheckEmailResponse(BaseModel):
    exists: bool


class MeResponse(BaseModel):
    user: UserResponse
    permissions: list[str]
