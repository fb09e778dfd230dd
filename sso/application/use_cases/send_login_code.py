from __future__ import annotations

import logging

from sso.application.dto.auth import SendLoginCodeInput, SendLoginCodeOutput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.captcha_port import CaptchaPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.mail_port import MailPort
from sso.application.ports.password_hasher_port import PasswordHasherPort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort

from .auth_common import CaptchaAction, issue_tokens, require_captcha, verify_password
from .login_code_manager import LoginCodeManager


logger = logging.getLogger(__name__)


class SendLoginCodeUseCase:
    """Password first factor followed by an emailed login code.

    The pair is minted as soon as the password checks out; the emailed code
    is a confirmation step, not a gate.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        device_port: DevicePort,
        revocation_port: RevocationPort,
        password_hasher: PasswordHasherPort,
        token_port: TokenPort,
        captcha_port: CaptchaPort,
        mail_port: MailPort,
        code_manager: LoginCodeManager,
    ):
        self._auth_port = auth_port
        self._device_port = device_port
        self._revocation_port = revocation_port
        self._password_hasher = password_hasher
        self._token_port = token_port
        self._captcha_port = captcha_port
        self._mail_port = mail_port
        self._code_manager = code_manager

    def execute(self, command: SendLoginCodeInput) -> SendLoginCodeOutput:
        require_captcha(
            captcha_port=self._captcha_port,
            token=command.captcha_token,
            action=CaptchaAction.EMAIL_AUTH,
        )
        user = verify_password(
            auth_port=self._auth_port,
            password_hasher=self._password_hasher,
            email=command.email,
            password=command.password,
        )

        code = self._code_manager.generate(email=user.email, purpose="login")
        self._mail_port.send(to=user.email, template="login_code", params={"code": code})

        logger.info("auth: login code sent user_id=%s", user.id)
        tokens = issue_tokens(
            user=user,
            fingerprint=command.fingerprint,
            device_port=self._device_port,
            revocation_port=self._revocation_port,
            token_port=self._token_port,
        )
        return SendLoginCodeOutput(tokens=tokens)
