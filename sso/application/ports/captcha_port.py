from __future__ import annotations

from typing import Protocol


class CaptchaPort(Protocol):
    def verify(self, *, token: str, action: str) -> bool:
        ...
