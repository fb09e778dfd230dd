from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class DeviceResponse(BaseModel):
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


class UpdateDeviceRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
