from __future__ import annotations

import logging
from uuid import uuid4

from sso.application.dto.auth import RegisterUserInput, RegisterUserOutput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.password_hasher_port import PasswordHasherPort
from sso.domain.entities.user import DEFAULT_ROLE
from sso.domain.exceptions import AlreadyExistsError, BadRequestError

from .auth_common import build_auth_user_output, normalize_email, utcnow


logger = logging.getLogger(__name__)


class RegisterUserUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        password_hasher: PasswordHasherPort,
    ):
        self._auth_port = auth_port
        self._password_hasher = password_hasher

    def execute(self, command: RegisterUserInput) -> RegisterUserOutput:
        name = command.name.strip()
        email = normalize_email(command.email)
        password = command.password

        if not name:
            raise BadRequestError("name is required.")
        if not email or "@" not in email:
            raise BadRequestError("email is not valid.")
        if len(password) < 8:
            raise BadRequestError("password must have at least 8 characters.")

        password_hash = self._password_hasher.hash(password)

        def _tx(auth_port: AuthPort) -> RegisterUserOutput:
            if auth_port.get_user_by_email(email=email) is not None:
                raise AlreadyExistsError()

            now = utcnow()
            user = auth_port.create_user(
                user_id=str(uuid4()),
                name=name,
                email=email,
                avatar_url=None,
                created_at=now,
                updated_at=now,
            )
            auth_port.create_identity(
                identity_id=str(uuid4()),
                user_id=user.id,
                provider="local",
                provider_subject=None,
                password_hash=password_hash,
                created_at=now,
            )
            auth_port.assign_role(user_id=user.id, role_name=DEFAULT_ROLE)
            created = auth_port.get_user_by_id(user_id=user.id) or user
            return RegisterUserOutput(user=build_auth_user_output(created))

        output = self._auth_port.execute_in_transaction(_tx)
        logger.info("users: registered user_id=%s", output.user.id)
        return output
