from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=256)
    captcha: str = Field(..., min_length=1)


class EmailCheckRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    code: str = Field(..., min_length=1, max_length=32)


class RecoverySendRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    captcha: str = Field(..., min_length=1)


class RecoveryCheckRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    code: str = Field(..., min_length=1, max_length=32)
    new_password: str = Field(..., min_length=8, max_length=256)


class ParseTokenRequest(BaseModel):
    token: str = Field(..., min_length=1)


class TokenPairResponse(BaseModel):
    access: str
    refresh: str
    access_expires_at: datetime
    refresh_expires_at: datetime


class EmailSendResponse(BaseModel):
    code_sent: bool = True
    access: str
    refresh: str


class PermissionClaim(BaseModel):
    id: int
    name: str


class RoleClaim(BaseModel):
    id: int
    name: str
    permissions: list[PermissionClaim]


class AccessClaimsResponse(BaseModel):
    uid: str
    roles: list[RoleClaim]
    iat: datetime
    exp: datetime


class StatusResponse(BaseModel):
    ok: bool = True
