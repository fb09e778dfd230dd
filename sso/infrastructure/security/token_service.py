from __future__ import annotations

import secrets
from datetime import datetime, timedelta, timezone

import jwt

from sso.application.dto.auth import AccessClaims, IssuedTokenPair, RefreshClaims
from sso.application.ports.token_port import TokenPort
from sso.domain.entities.user import Permission, Role
from sso.domain.exceptions import SigningKeyNotFoundError, TokenExpiredError, TokenInvalidError
from sso.infrastructure.security.signing_keys import SigningKeyRing


ALGORITHM = "RS256"


def _roles_to_claim(roles: tuple[Role, ...]) -> list[dict]:
    return [
        {
            "id": role.id,
            "name": role.name,
            "permissions": [{"id": p.id, "name": p.name} for p in role.permissions],
        }
        for role in roles
    ]


def _roles_from_claim(value) -> tuple[Role, ...]:
    if not isinstance(value, list):
        raise TokenInvalidError()
    try:
        return tuple(
            Role(
                id=int(item["id"]),
                name=str(item["name"]),
                permissions=tuple(
                    Permission(id=int(p["id"]), name=str(p["name"]))
                    for p in item.get("permissions", [])
                ),
            )
            for item in value
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalidError(cause=exc) from exc


def _from_timestamp(value) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


class JwtTokenService(TokenPort):
    def __init__(
        self,
        *,
        key_ring: SigningKeyRing,
        issuer: str,
        access_ttl_minutes: int,
        refresh_ttl_days: int,
    ):
        self._key_ring = key_ring
        self._issuer = issuer
        self._access_ttl = timedelta(minutes=access_ttl_minutes)
        self._refresh_ttl = timedelta(days=refresh_ttl_days)

    def issue_pair(
        self,
        *,
        user_id: str,
        roles: tuple[Role, ...],
        device_id: str,
        revocation_marker: int,
        now: datetime,
    ) -> IssuedTokenPair:
        key = self._key_ring.snapshot().active
        headers = {"kid": key.kid}
        access_exp = now + self._access_ttl
        refresh_exp = now + self._refresh_ttl

        access = jwt.encode(
            {
                "uid": user_id,
                "roles": _roles_to_claim(roles),
                "typ": "access",
                "iss": self._issuer,
                "iat": int(now.timestamp()),
                "exp": int(access_exp.timestamp()),
            },
            key.private_key,
            algorithm=ALGORITHM,
            headers=headers,
        )
        refresh = jwt.encode(
            {
                "uid": user_id,
                "did": device_id,
                "rev": revocation_marker,
                "jti": secrets.token_urlsafe(16),
                "typ": "refresh",
                "iss": self._issuer,
                "iat": int(now.timestamp()),
                "exp": int(refresh_exp.timestamp()),
            },
            key.private_key,
            algorithm=ALGORITHM,
            headers=headers,
        )
        return IssuedTokenPair(
            access_token=access,
            refresh_token=refresh,
            access_expires_at=access_exp,
            refresh_expires_at=refresh_exp,
        )

    def _decode(self, token: str, expected_type: str) -> dict:
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as exc:
            raise TokenInvalidError(cause=exc) from exc

        kid = header.get("kid")
        key = self._key_ring.snapshot().find(kid, datetime.now(timezone.utc)) if kid else None
        if key is None:
            raise SigningKeyNotFoundError()

        try:
            payload = jwt.decode(
                token,
                key.public_key,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={"require": ["exp", "iat"]},
            )
        except jwt.ExpiredSignatureError as exc:
            raise TokenExpiredError(cause=exc) from exc
        except jwt.PyJWTError as exc:
            raise TokenInvalidError(cause=exc) from exc

        if payload.get("typ") != expected_type:
            raise TokenInvalidError("Invalid token type.")
        user_id = payload.get("uid")
        if not user_id or not isinstance(user_id, str):
            raise TokenInvalidError("Invalid token subject.")
        return payload

    def decode_access_token(self, *, token: str) -> AccessClaims:
        payload = self._decode(token, "access")
        return AccessClaims(
            user_id=payload["uid"],
            roles=_roles_from_claim(payload.get("roles", [])),
            issued_at=_from_timestamp(payload["iat"]),
            expires_at=_from_timestamp(payload["exp"]),
        )

    def decode_refresh_token(self, *, token: str) -> RefreshClaims:
        payload = self._decode(token, "refresh")
        device_id = payload.get("did")
        marker = payload.get("rev")
        if not isinstance(device_id, str) or not isinstance(marker, int):
            raise TokenInvalidError()
        return RefreshClaims(
            user_id=payload["uid"],
            device_id=device_id,
            revocation_marker=marker,
            nonce=str(payload.get("jti", "")),
            issued_at=_from_timestamp(payload["iat"]),
            expires_at=_from_timestamp(payload["exp"]),
        )
