from __future__ import annotations

from sso.application.dto.auth import AuthTokensOutput, LoginPasswordInput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.captcha_port import CaptchaPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.password_hasher_port import PasswordHasherPort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort

from .auth_common import CaptchaAction, issue_tokens, require_captcha, verify_password


class LoginPasswordUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        device_port: DevicePort,
        revocation_port: RevocationPort,
        password_hasher: PasswordHasherPort,
        token_port: TokenPort,
        captcha_port: CaptchaPort,
    ):
        self._auth_port = auth_port
        self._device_port = device_port
        self._revocation_port = revocation_port
        self._password_hasher = password_hasher
        self._token_port = token_port
        self._captcha_port = captcha_port

    def execute(self, command: LoginPasswordInput) -> AuthTokensOutput:
        require_captcha(
            captcha_port=self._captcha_port,
            token=command.captcha_token,
            action=CaptchaAction.PASSWORD_AUTH,
        )
        user = verify_password(
            auth_port=self._auth_port,
            password_hasher=self._password_hasher,
            email=command.email,
            password=command.password,
        )
        return issue_tokens(
            user=user,
            fingerprint=command.fingerprint,
            device_port=self._device_port,
            revocation_port=self._revocation_port,
            token_port=self._token_port,
        )
