from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sso.domain.entities.device import DeviceFingerprint
from sso.domain.entities.user import Role


@dataclass(frozen=True)
class AuthUserOutput:
    id: str
    name: str
    email: str
    avatar_url: str | None
    roles: tuple[str, ...]


@dataclass(frozen=True)
class RegisterUserInput:
    name: str
    email: str
    password: str


@dataclass(frozen=True)
class RegisterUserOutput:
    user: AuthUserOutput


@dataclass(frozen=True)
class LoginPasswordInput:
    email: str
    password: str
    captcha_token: str
    fingerprint: DeviceFingerprint


@dataclass(frozen=True)
class SendLoginCodeInput:
    email: str
    password: str
    captcha_token: str
    fingerprint: DeviceFingerprint


@dataclass(frozen=True)
class CheckLoginCodeInput:
    email: str
    code: str
    fingerprint: DeviceFingerprint


@dataclass(frozen=True)
class SendRecoveryCodeInput:
    email: str
    captcha_token: str


@dataclass(frozen=True)
class CheckRecoveryCodeInput:
    email: str
    code: str
    new_password: str


@dataclass(frozen=True)
class RefreshSessionInput:
    refresh_token: str
    fingerprint: DeviceFingerprint


@dataclass(frozen=True)
class LogoutInput:
    user_id: str


@dataclass(frozen=True)
class IssuedTokenPair:
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class AuthTokensOutput:
    user_id: str
    device_id: str
    access_token: str
    refresh_token: str
    access_expires_at: datetime
    refresh_expires_at: datetime


@dataclass(frozen=True)
class SendLoginCodeOutput:
    tokens: AuthTokensOutput


@dataclass(frozen=True)
class AccessClaims:
    user_id: str
    roles: tuple[Role, ...]
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class RefreshClaims:
    user_id: str
    device_id: str
    revocation_marker: int
    nonce: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class RequestIdentity:
    """Caller identity attached to a request by the auth gate."""

    user_id: str
    roles: tuple[Role, ...]
