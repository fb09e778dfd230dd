from __future__ import annotations

from typing import Iterable

from sso.domain.entities.device import Device
from sso.domain.entities.user import ADMIN_ROLE, Role


def has_admin_role(roles: Iterable[Role]) -> bool:
    return any(role.name == ADMIN_ROLE for role in roles)


def can_manage_device(*, caller_id: str, device: Device | None) -> bool:
    if device is None:
        return False
    return device.user_id == caller_id
