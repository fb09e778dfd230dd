from __future__ import annotations

from sso.application.dto.auth import RequestIdentity
from sso.application.dto.me import MeOutput
from sso.application.ports.auth_port import AuthPort
from sso.domain.exceptions import NotFoundError


class GetMeUseCase:
    def __init__(self, *, auth_port: AuthPort):
        self._auth_port = auth_port

    def execute(self, *, identity: RequestIdentity) -> MeOutput:
        user = self._auth_port.get_user_by_id(user_id=identity.user_id)
        if user is None:
            raise NotFoundError()

        permissions: list[str] = []
        for role in user.roles:
            for permission in role.permissions:
                if permission.name not in permissions:
                    permissions.append(permission.name)

        return MeOutput(
            user_id=user.id,
            name=user.name,
            email=user.email,
            avatar_url=user.avatar_url,
            roles=tuple(role.name for role in user.roles),
            permissions=tuple(permissions),
        )
