from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from sso.application.dto.auth import AuthTokensOutput
from sso.domain.entities.device import DeviceFingerprint


@dataclass(frozen=True)
class FederatedProfile:
    subject: str
    email: str
    name: str | None
    avatar_url: str | None
    access_token: str | None
    refresh_token: str | None
    id_token: str | None
    expires_at: datetime | None


@dataclass(frozen=True)
class StartFederationInput:
    flow: str
    provider: str


@dataclass(frozen=True)
class StartFederationOutput:
    url: str


@dataclass(frozen=True)
class FederationCallbackInput:
    flow: str
    provider: str
    code: str | None
    state: str | None
    error: str | None
    fingerprint: DeviceFingerprint


@dataclass(frozen=True)
class FederationCallbackOutput:
    tokens: AuthTokensOutput
    success_url: str
