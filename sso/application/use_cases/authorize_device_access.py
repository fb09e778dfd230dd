from __future__ import annotations

import logging

from sso.application.dto.auth import RequestIdentity
from sso.application.ports.device_port import DevicePort
from sso.domain.exceptions import ForbiddenError
from sso.domain.services.device_access import can_manage_device, has_admin_role


logger = logging.getLogger(__name__)


class AuthorizeDeviceAccessUseCase:
    def __init__(self, *, device_port: DevicePort):
        self._device_port = device_port

    def execute(self, *, identity: RequestIdentity, device_id: str) -> None:
        if has_admin_role(identity.roles):
            return

        device = self._device_port.get_device_by_id(device_id=device_id)
        if can_manage_device(caller_id=identity.user_id, device=device):
            return

        logger.info("rights: denied user_id=%s device_id=%s", identity.user_id, device_id)
        raise ForbiddenError()
