from __future__ import annotations

from sso.application.ports.auth_port import AuthPort

from .auth_common import normalize_email


class CheckEmailExistsUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    def execute(self, *, email: str) -> bool:
        return self._auth_port.get_user_by_email(email=normalize_email(email)) is not None
