from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sso.application.dto.auth import AccessClaims, IssuedTokenPair, RefreshClaims
from sso.domain.entities.user import Role


class TokenPort(Protocol):
    def issue_pair(
        self,
        *,
        user_id: str,
        roles: tuple[Role, ...],
        device_id: str,
        revocation_marker: int,
        now: datetime,
    ) -> IssuedTokenPair:
        ...

    def decode_access_token(self, *, token: str) -> AccessClaims:
        ...

    def decode_refresh_token(self, *, token: str) -> RefreshClaims:
        ...
