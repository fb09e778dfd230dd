from __future__ import annotations

from sso.application.dto.auth import AccessClaims
from sso.application.ports.token_port import TokenPort
from sso.domain.exceptions import MissingTokenError


class ParseAccessTokenUseCase:
    def __init__(self, *, token_port: TokenPort):
        self._token_port = token_port

    def execute(self, *, token: str) -> AccessClaims:
        token = token.strip()
        if not token:
            raise MissingTokenError()
        return self._token_port.decode_access_token(token=token)
