from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Literal


DeviceType = Literal["desktop", "mobile", "tablet", "bot"]


@dataclass(frozen=True)
class DeviceFingerprint:
    ip: str
    user_agent: str


@dataclass(frozen=True)
class Device:
    id: str
    user_id: str
    name: str
    device_type: str
    os: str
    browser: str
    ip: str
    user_agent: str
    last_active: datetime
    created_at: datetime

    def matches(self, fingerprint: DeviceFingerprint) -> bool:
        return self.ip == fingerprint.ip and self.user_agent == fingerprint.user_agent
