from __future__ import annotations

import logging

from sso.application.dto.devices import DeviceOutput
from sso.application.ports.device_port import DevicePort
from sso.domain.entities.device import Device
from sso.domain.exceptions import BadRequestError, NotFoundError


logger = logging.getLogger(__name__)


def build_device_output(device: Device) -> DeviceOutput:
    return DeviceOutput(
        id=device.id,
        user_id=device.user_id,
        name=device.name,
        device_type=device.device_type,
        os=device.os,
        browser=device.browser,
        ip=device.ip,
        user_agent=device.user_agent,
        last_active=device.last_active,
        created_at=device.created_at,
    )


class ListDevicesUseCase:
    def __init__(self, *, device_port: DevicePort):
        self._device_port = device_port

    def execute(self, *, user_id: str) -> list[DeviceOutput]:
        return [build_device_output(d) for d in self._device_port.list_devices(user_id=user_id)]


class GetDeviceUseCase:
    def __init__(self, *, device_port: DevicePort):
        self._device_port = device_port

    def execute(self, *, user_id: str, device_id: str) -> DeviceOutput:
        device = self._device_port.get_device_by_id(device_id=device_id)
        if device is None or device.user_id != user_id:
            raise NotFoundError()
        return build_device_output(device)


class RenameDeviceUseCase:
    """Callers must pass the rights gate first."""

    def __init__(self, *, device_port: DevicePort):
        self._device_port = device_port

    def execute(self, *, device_id: str, name: str) -> DeviceOutput:
        name = name.strip()
        if not name:
            raise BadRequestError("name is required.")
        device = self._device_port.update_device_name(device_id=device_id, name=name)
        if device is None:
            raise NotFoundError()
        return build_device_output(device)


class DeleteDeviceUseCase:
    def __init__(self, *, device_port: DevicePort):
        self._device_port = device_port

    def execute(self, *, device_id: str) -> None:
        if not self._device_port.delete_device(device_id=device_id):
            raise NotFoundError()
        logger.info("devices: deleted device_id=%s", device_id)
