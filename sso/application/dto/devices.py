from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DeviceOutput:
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
