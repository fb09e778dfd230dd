from __future__ import annotations

from typing import Protocol

from sso.domain.entities.challenge import LoginCode


class LoginCodePort(Protocol):
    def save_code(self, *, code: LoginCode) -> None:
        ...

    def load_code(self, *, email: str, purpose: str) -> LoginCode | None:
        ...

    def increment_code_attempts(self, *, email: str, purpose: str) -> int:
        ...

    def delete_code(self, *, email: str, purpose: str, code_hash: str | None = None) -> bool:
        ...
