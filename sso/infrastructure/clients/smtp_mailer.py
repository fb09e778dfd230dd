from __future__ import annotations

import asyncio
import logging
from email.message import EmailMessage

import aiosmtplib

from sso.application.ports.mail_port import MailPort
from sso.domain.exceptions import MailDeliveryError


logger = logging.getLogger(__name__)


TEMPLATES: dict[str, tuple[str, str]] = {
    "login_code": (
        "Your login code",
        "Use this code to finish signing in: {code}\n\nIf this was not you, change your password.",
    ),
    "recovery_code": (
        "Password recovery",
        "Use this code to set a new password: {code}\n\nIf you did not ask for it, ignore this email.",
    ),
}


def render_template(template: str, params: dict[str, str]) -> tuple[str, str]:
    try:
        subject, body = TEMPLATES[template]
    except KeyError as exc:
        raise MailDeliveryError(f"unknown mail template {template}", cause=exc) from exc
    return subject, body.format(**params)


class SmtpMailer(MailPort):
    def __init__(
        self,
        *,
        host: str,
        port: int,
        user: str,
        password: str,
        sender: str,
        use_tls: bool,
        timeout_seconds: float,
    ):
        self._host = host
        self._port = port
        self._user = user
        self._password = password
        self._sender = sender or user
        self._use_tls = use_tls
        self._timeout_seconds = timeout_seconds

    def build_message(self, *, to: str, template: str, params: dict[str, str]) -> EmailMessage:
        subject, body = render_template(template, params)
        message = EmailMessage()
        message["From"] = self._sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content(body)
        return message

    async def _deliver(self, message: EmailMessage) -> None:
        await aiosmtplib.send(
            message,
            hostname=self._host,
            port=self._port,
            username=self._user or None,
            password=self._password or None,
            start_tls=self._use_tls,
            timeout=self._timeout_seconds,
        )

    def send(self, *, to: str, template: str, params: dict[str, str]) -> None:
        message = self.build_message(to=to, template=template, params=params)
        # Routes are sync and run on worker threads with no event loop of their own.
        try:
            asyncio.run(self._deliver(message))
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.error("mail: delivery failed template=%s error=%s", template, exc)
            raise MailDeliveryError(cause=exc) from exc
        logger.info("mail: sent template=%s", template)
