from __future__ import annotations

from dataclasses import dataclass

from sso.domain.entities.device import DeviceFingerprint


@dataclass(frozen=True)
class VerifiedRegistration:
    credential_id: str
    public_key: bytes
    sign_count: int
    transports: tuple[str, ...]


@dataclass(frozen=True)
class VerifiedAssertion:
    credential_id: str
    new_sign_count: int


@dataclass(frozen=True)
class BeginWebAuthnLoginInput:
    email: str
    captcha_token: str


@dataclass(frozen=True)
class FinishWebAuthnLoginInput:
    email: str
    credential: dict
    fingerprint: DeviceFingerprint


@dataclass(frozen=True)
class CeremonyOptionsOutput:
    options: dict
