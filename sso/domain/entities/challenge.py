from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


CodePurpose = Literal["login", "recover"]
CeremonyPurpose = Literal["registration", "assertion"]
FederationFlow = Literal["oauth2", "oidc"]


@dataclass(frozen=True)
class LoginCode:
    email: str
    purpose: str
    code_hash: str
    attempts: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


@dataclass(frozen=True)
class Ceremony:
    purpose: str
    key: str
    state: dict
    expires_at: datetime


@dataclass(frozen=True)
class FederationState:
    state: str
    flow: str
    provider: str
    nonce: str | None
    expires_at: datetime


@dataclass(frozen=True)
class WebAuthnCredential:
    id: str
    user_id: str
    public_key: bytes
    sign_count: int
    transports: tuple[str, ...]
    created_at: datetime
