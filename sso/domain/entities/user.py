from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal


AuthProvider = Literal["local", "google"]

ADMIN_ROLE = "admin"
DEFAULT_ROLE = "user"


@dataclass(frozen=True)
class Permission:
    id: int
    name: str


@dataclass(frozen=True)
class Role:
    id: int
    name: str
    permissions: tuple[Permission, ...] = ()


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    avatar_url: str | None
    created_at: datetime
    updated_at: datetime
    roles: tuple[Role, ...] = field(default=())


@dataclass(frozen=True)
class AuthIdentity:
    """Credential binding: local password or an external (provider, subject)."""

    id: str
    user_id: str
    provider: str
    provider_subject: str | None
    password_hash: str | None
    access_token: str | None
    refresh_token: str | None
    id_token: str | None
    expires_at: datetime | None
    created_at: datetime
