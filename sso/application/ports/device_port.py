from __future__ import annotations

from datetime import datetime
from typing import Protocol

from sso.domain.entities.device import Device, DeviceFingerprint
from sso.domain.services.device_fingerprint import DeviceProfile


class DevicePort(Protocol):
    def upsert_device(
        self,
        *,
        user_id: str,
        fingerprint: DeviceFingerprint,
        profile: DeviceProfile,
        now: datetime,
    ) -> Device:
        ...

    def get_device_by_id(self, *, device_id: str) -> Device | None:
        ...

    def list_devices(self, *, user_id: str) -> list[Device]:
        ...

    def update_device_name(self, *, device_id: str, name: str) -> Device | None:
        ...

    def delete_device(self, *, device_id: str) -> bool:
        ...
