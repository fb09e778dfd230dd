from __future__ import annotations

from typing import Protocol

from sso.application.dto.webauthn import VerifiedAssertion, VerifiedRegistration
from sso.domain.entities.challenge import WebAuthnCredential
from sso.domain.entities.user import User


class WebAuthnPort(Protocol):
    def registration_options(
        self,
        *,
        user: User,
        existing: list[WebAuthnCredential],
    ) -> tuple[dict, str]:
        """Return (public key options JSON, base64url challenge)."""
        ...

    def verify_registration(self, *, credential: dict, challenge: str) -> VerifiedRegistration:
        ...

    def authentication_options(self, *, credentials: list[WebAuthnCredential]) -> tuple[dict, str]:
        ...

    def verify_authentication(
        self,
        *,
        credential: dict,
        challenge: str,
        stored: WebAuthnCredential,
    ) -> VerifiedAssertion:
        ...
