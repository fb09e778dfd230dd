from __future__ import annotations

from typing import Protocol

import jwt
from google.auth.transport import requests
from google.oauth2 import id_token

from sso.domain.exceptions import InvalidCredentialsError


GOOGLE_ISSUERS = ("accounts.google.com", "https://accounts.google.com")


class IdTokenVerifier(Protocol):
    def verify(self, *, token: str, audience: str) -> dict:
        ...


class GoogleIdTokenVerifier(IdTokenVerifier):
    """Signature, audience and issuer checks against Google's published certs."""

    def verify(self, *, token: str, audience: str) -> dict:
        try:
            return id_token_verify(token=token, audience=audience)
        except Exception as exc:  # pragma: no cover - depends on external validation errors
            raise InvalidCredentialsError("Invalid Google id_token.", cause=exc) from exc


class JwksIdTokenVerifier(IdTokenVerifier):
    def __init__(self, *, issuer: str, jwks_uri: str):
        self._issuer = issuer
        self._jwks_client = jwt.PyJWKClient(jwks_uri)

    def verify(self, *, token: str, audience: str) -> dict:
        try:
            signing_key = self._jwks_client.get_signing_key_from_jwt(token)
            return jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256", "ES256"],
                audience=audience,
                issuer=self._issuer,
            )
        except jwt.PyJWTError as exc:
            raise InvalidCredentialsError("Invalid id_token.", cause=exc) from exc


def id_token_verify(*, token: str, audience: str) -> dict:
    request = requests.Request()
    return id_token.verify_oauth2_token(token, request, audience)
