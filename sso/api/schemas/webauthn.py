from __future__ import annotations

from pydantic import BaseModel, Field


class WebAuthnLoginStartRequest(BaseModel):
    email: str = Field(..., min_length=3, max_length=255)
    captcha: str = Field(..., min_length=1)
