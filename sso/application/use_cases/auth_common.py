from __future__ import annotations

import logging
from datetime import datetime, timezone

from sso.application.dto.auth import AuthTokensOutput, AuthUserOutput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.captcha_port import CaptchaPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.password_hasher_port import PasswordHasherPort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort
from sso.domain.entities.device import DeviceFingerprint
from sso.domain.entities.user import User
from sso.domain.exceptions import CaptchaInvalidError, InvalidCredentialsError, NotFoundError
from sso.domain.services.device_fingerprint import describe_device


logger = logging.getLogger(__name__)


class CaptchaAction:
    PASSWORD_AUTH = "auth"
    EMAIL_AUTH = "email_auth"
    FORGOT_PASSWORD = "forgot_pass"
    WEBAUTHN_LOGIN = "wa_login"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def build_auth_user_output(user: User) -> AuthUserOutput:
    return AuthUserOutput(
        id=user.id,
        name=user.name,
        email=user.email,
        avatar_url=user.avatar_url,
        roles=tuple(role.name for role in user.roles),
    )


def require_captcha(*, captcha_port: CaptchaPort, token: str, action: str) -> None:
    if not captcha_port.verify(token=token, action=action):
        logger.info("auth: captcha rejected action=%s", action)
        raise CaptchaInvalidError()


def verify_password(
    *,
    auth_port: AuthPort,
    password_hasher: PasswordHasherPort,
    email: str,
    password: str,
) -> User:
    result = auth_port.get_local_identity_by_email(email=normalize_email(email))
    if result is None:
        raise NotFoundError()

    user, identity = result
    if not identity.password_hash:
        raise InvalidCredentialsError()
    if not password_hasher.verify(password, identity.password_hash):
        raise InvalidCredentialsError()
    return user


def issue_tokens(
    *,
    user: User,
    fingerprint: DeviceFingerprint,
    device_port: DevicePort,
    revocation_port: RevocationPort,
    token_port: TokenPort,
) -> AuthTokensOutput:
    now = utcnow()
    device = device_port.upsert_device(
        user_id=user.id,
        fingerprint=fingerprint,
        profile=describe_device(fingerprint.user_agent),
        now=now,
    )
    marker = revocation_port.get_revocation_marker(user_id=user.id)
    pair = token_port.issue_pair(
        user_id=user.id,
        roles=user.roles,
        device_id=device.id,
        revocation_marker=marker,
        now=now,
    )
    logger.info("auth: session issued user_id=%s device_id=%s", user.id, device.id)
    return AuthTokensOutput(
        user_id=user.id,
        device_id=device.id,
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
        access_expires_at=pair.access_expires_at,
        refresh_expires_at=pair.refresh_expires_at,
    )
