from __future__ import annotations

from typing import Any, Mapping

from sso.domain.entities.challenge import Ceremony, FederationState, LoginCode
from sso.domain.entities.device import Device


def map_row_to_device(row: Mapping[str, Any]) -> Device:
    return Device(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        name=row["name"],
        device_type=row["device_type"],
        os=row["os"],
        browser=row["browser"],
        ip=row["ip"],
        user_agent=row["user_agent"],
        last_active=row["last_active"],
        created_at=row["created_at"],
    )


def map_row_to_login_code(row: Mapping[str, Any]) -> LoginCode:
    return LoginCode(
        email=row["email"],
        purpose=row["purpose"],
        code_hash=row["code_hash"],
        attempts=int(row["attempts"]),
        created_at=row["created_at"],
        expires_at=row["expires_at"],
    )


def map_row_to_ceremony(row: Mapping[str, Any]) -> Ceremony:
    return Ceremony(
        purpose=row["purpose"],
        key=row["key"],
        state=dict(row["state"]),
        expires_at=row["expires_at"],
    )


def map_row_to_federation_state(row: Mapping[str, Any]) -> FederationState:
    return FederationState(
        state=row["state"],
        flow=row["flow"],
        provider=row["provider"],
        nonce=row.get("nonce"),
        expires_at=row["expires_at"],
    )
