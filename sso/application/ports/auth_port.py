from __future__ import annotations

from datetime import datetime
from typing import Callable, Protocol, TypeVar

from sso.domain.entities.challenge import WebAuthnCredential
from sso.domain.entities.user import AuthIdentity, User


TAuthResult = TypeVar("TAuthResult")


class AuthPort(Protocol):
    def execute_in_transaction(self, fn: Callable[[AuthPort], TAuthResult]) -> TAuthResult:
        ...

    def get_user_by_id(self, *, user_id: str) -> User | None:
        ...

    def get_user_by_email(self, *, email: str) -> User | None:
        ...

    def create_user(
        self,
        *,
        user_id: str,
        name: str,
        email: str,
        avatar_url: str | None,
        created_at: datetime,
        updated_at: datetime,
    ) -> User:
        ...

    def assign_role(self, *, user_id: str, role_name: str) -> None:
        ...

    def create_identity(
        self,
        *,
        identity_id: str,
        user_id: str,
        provider: str,
        provider_subject: str | None,
        password_hash: str | None,
        created_at: datetime,
    ) -> AuthIdentity:
        ...

    def get_identity_for_user_provider(self, *, user_id: str, provider: str) -> AuthIdentity | None:
        ...

    def get_identity_by_provider_subject(
        self,
        *,
        provider: str,
        provider_subject: str,
    ) -> AuthIdentity | None:
        ...

    def update_identity_password_hash(self, *, identity_id: str, password_hash: str) -> None:
        ...

    def update_identity_tokens(
        self,
        *,
        identity_id: str,
        access_token: str | None,
        refresh_token: str | None,
        id_token: str | None,
        expires_at: datetime | None,
    ) -> None:
        ...

    def get_local_identity_by_email(self, *, email: str) -> tuple[User, AuthIdentity] | None:
        ...

    def list_webauthn_credentials(self, *, user_id: str) -> list[WebAuthnCredential]:
        ...

    def create_webauthn_credential(self, *, credential: WebAuthnCredential) -> WebAuthnCredential:
        ...

    def update_webauthn_sign_count(self, *, credential_id: str, sign_count: int) -> None:
        ...
