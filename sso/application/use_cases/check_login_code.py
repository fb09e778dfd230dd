from __future__ import annotations

from sso.application.dto.auth import AuthTokensOutput, CheckLoginCodeInput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort
from sso.domain.exceptions import NotFoundError

from .auth_common import issue_tokens, normalize_email
from .login_code_manager import LoginCodeManager


class CheckLoginCodeUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        device_port: DevicePort,
        revocation_port: RevocationPort,
        token_port: TokenPort,
        code_manager: LoginCodeManager,
    ):
        self._auth_port = auth_port
        self._device_port = device_port
        self._revocation_port = revocation_port
        self._token_port = token_port
        self._code_manager = code_manager

    def execute(self, command: CheckLoginCodeInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        self._code_manager.check(email=email, purpose="login", code=command.code)

        user = self._auth_port.get_user_by_email(email=email)
        if user is None:
            raise NotFoundError()

        return issue_tokens(
            user=user,
            fingerprint=command.fingerprint,
            device_port=self._device_port,
            revocation_port=self._revocation_port,
            token_port=self._token_port,
        )
