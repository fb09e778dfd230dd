from __future__ import annotations

from sso.application.dto.auth import SendRecoveryCodeInput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.captcha_port import CaptchaPort
from sso.application.ports.mail_port import MailPort
from sso.domain.exceptions import NotFoundError

from .auth_common import CaptchaAction, normalize_email, require_captcha
from .login_code_manager import LoginCodeManager


class SendRecoveryCodeUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        captcha_port: CaptchaPort,
        mail_port: MailPort,
        code_manager: LoginCodeManager,
    ):
        self._auth_port = auth_port
        self._captcha_port = captcha_port
        self._mail_port = mail_port
        self._code_manager = code_manager

    def execute(self, command: SendRecoveryCodeInput) -> None:
        require_captcha(
            captcha_port=self._captcha_port,
            token=command.captcha_token,
            action=CaptchaAction.FORGOT_PASSWORD,
        )
        email = normalize_email(command.email)
        user = self._auth_port.get_user_by_email(email=email)
        if user is None:
            raise NotFoundError()

        code = self._code_manager.generate(email=email, purpose="recover")
        self._mail_port.send(to=email, template="recovery_code", params={"code": code})
