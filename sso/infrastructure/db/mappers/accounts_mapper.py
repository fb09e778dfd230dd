from __future__ import annotations

from typing import Any, Iterable, Mapping

from sso.domain.entities.challenge import WebAuthnCredential
from sso.domain.entities.user import AuthIdentity, Permission, Role, User


def _as_str(value: Any) -> str:
    return str(value)


def map_rows_to_roles(rows: Iterable[Mapping[str, Any]]) -> tuple[Role, ...]:
    order: list[int] = []
    names: dict[int, str] = {}
    permissions: dict[int, list[Permission]] = {}
    for row in rows:
        role_id = int(row["role_id"])
        if role_id not in names:
            order.append(role_id)
            names[role_id] = row["role_name"]
            permissions[role_id] = []
        if row.get("permission_id") is not None:
            permissions[role_id].append(
                Permission(id=int(row["permission_id"]), name=row["permission_name"])
            )
    return tuple(
        Role(id=role_id, name=names[role_id], permissions=tuple(permissions[role_id]))
        for role_id in order
    )


def map_row_to_user(row: Mapping[str, Any], roles: tuple[Role, ...] = ()) -> User:
    return User(
        id=_as_str(row["id"]),
        name=row["name"],
        email=row["email"],
        avatar_url=row.get("avatar_url"),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
        roles=roles,
    )


def map_row_to_auth_identity(row: Mapping[str, Any]) -> AuthIdentity:
    return AuthIdentity(
        id=_as_str(row["id"]),
        user_id=_as_str(row["user_id"]),
        provider=row["provider"],
        provider_subject=row.get("provider_subject"),
        password_hash=row.get("password_hash"),
        access_token=row.get("access_token"),
        refresh_token=row.get("refresh_token"),
        id_token=row.get("id_token"),
        expires_at=row.get("expires_at"),
        created_at=row["created_at"],
    )


def map_row_to_webauthn_credential(row: Mapping[str, Any]) -> WebAuthnCredential:
    transports = row.get("transports") or ""
    return WebAuthnCredential(
        id=row["id"],
        user_id=_as_str(row["user_id"]),
        public_key=bytes(row["public_key"]),
        sign_count=int(row["sign_count"]),
        transports=tuple(item for item in transports.split(",") if item),
        created_at=row["created_at"],
    )
