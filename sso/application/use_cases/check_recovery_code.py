from __future__ import annotations

import logging
from uuid import uuid4

from sso.application.dto.auth import CheckRecoveryCodeInput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.password_hasher_port import PasswordHasherPort
from sso.application.ports.revocation_port import RevocationPort
from sso.domain.exceptions import BadRequestError, NotFoundError

from .auth_common import normalize_email, utcnow
from .login_code_manager import LoginCodeManager


logger = logging.getLogger(__name__)


class CheckRecoveryCodeUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        revocation_port: RevocationPort,
        password_hasher: PasswordHasherPort,
        code_manager: LoginCodeManager,
    ):
        self._auth_port = auth_port
        self._revocation_port = revocation_port
        self._password_hasher = password_hasher
        self._code_manager = code_manager

    def execute(self, command: CheckRecoveryCodeInput) -> None:
        if len(command.new_password) < 8:
            raise BadRequestError("password must have at least 8 characters.")

        email = normalize_email(command.email)
        self._code_manager.check(email=email, purpose="recover", code=command.code)

        password_hash = self._password_hasher.hash(command.new_password)

        def _tx(auth_port: AuthPort) -> str:
            user = auth_port.get_user_by_email(email=email)
            if user is None:
                raise NotFoundError()
            identity = auth_port.get_identity_for_user_provider(user_id=user.id, provider="local")
            if identity is None:
                auth_port.create_identity(
                    identity_id=str(uuid4()),
                    user_id=user.id,
                    provider="local",
                    provider_subject=None,
                    password_hash=password_hash,
                    created_at=utcnow(),
                )
            else:
                auth_port.update_identity_password_hash(
                    identity_id=identity.id,
                    password_hash=password_hash,
                )
            return user.id

        user_id = self._auth_port.execute_in_transaction(_tx)
        self._revocation_port.advance_revocation_marker(user_id=user_id)
        logger.info("auth: password recovered user_id=%s", user_id)
