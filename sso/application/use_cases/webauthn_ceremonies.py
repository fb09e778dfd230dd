from __future__ import annotations

import logging
from datetime import timedelta

from sso.application.dto.auth import AuthTokensOutput, RequestIdentity
from sso.application.dto.webauthn import (
    BeginWebAuthnLoginInput,
    CeremonyOptionsOutput,
    FinishWebAuthnLoginInput,
)
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.captcha_port import CaptchaPort
from sso.application.ports.ceremony_port import CeremonyPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort
from sso.application.ports.webauthn_port import WebAuthnPort
from sso.domain.entities.challenge import Ceremony, WebAuthnCredential
from sso.domain.entities.user import User
from sso.domain.exceptions import AlreadyExistsError, InvalidCredentialsError, NotFoundError

from .auth_common import CaptchaAction, issue_tokens, normalize_email, require_captcha, utcnow


logger = logging.getLogger(__name__)

MAX_CEREMONY_TTL_SECONDS = 300


class WebAuthnCeremonyManager:
    """Registration and assertion ceremonies.

    The challenge state is stored per ("registration", user id) or
    ("assertion", email) and is removed before the client response is
    verified, so a state can back at most one finish call.
    """

    def __init__(
        self,
        *,
        auth_port: AuthPort,
        ceremony_port: CeremonyPort,
        webauthn_port: WebAuthnPort,
        device_port: DevicePort,
        revocation_port: RevocationPort,
        token_port: TokenPort,
        captcha_port: CaptchaPort,
        ttl_seconds: int = MAX_CEREMONY_TTL_SECONDS,
    ):
        self._auth_port = auth_port
        self._ceremony_port = ceremony_port
        self._webauthn_port = webauthn_port
        self._device_port = device_port
        self._revocation_port = revocation_port
        self._token_port = token_port
        self._captcha_port = captcha_port
        self._ttl = timedelta(seconds=min(ttl_seconds, MAX_CEREMONY_TTL_SECONDS))

    def begin_registration(self, *, identity: RequestIdentity) -> CeremonyOptionsOutput:
        user = self._require_user(identity.user_id)
        existing = self._auth_port.list_webauthn_credentials(user_id=user.id)
        options, challenge = self._webauthn_port.registration_options(user=user, existing=existing)
        self._save("registration", user.id, {"challenge": challenge, "user_id": user.id})
        return CeremonyOptionsOutput(options=options)

    def finish_registration(self, *, identity: RequestIdentity, credential: dict) -> None:
        state = self._consume("registration", identity.user_id)
        verified = self._webauthn_port.verify_registration(
            credential=credential,
            challenge=state["challenge"],
        )

        existing = self._auth_port.list_webauthn_credentials(user_id=identity.user_id)
        if any(item.id == verified.credential_id for item in existing):
            raise AlreadyExistsError()

        self._auth_port.create_webauthn_credential(
            credential=WebAuthnCredential(
                id=verified.credential_id,
                user_id=identity.user_id,
                public_key=verified.public_key,
                sign_count=verified.sign_count,
                transports=verified.transports,
                created_at=utcnow(),
            )
        )
        logger.info("webauthn: credential registered user_id=%s", identity.user_id)

    def begin_login(self, command: BeginWebAuthnLoginInput) -> CeremonyOptionsOutput:
        require_captcha(
            captcha_port=self._captcha_port,
            token=command.captcha_token,
            action=CaptchaAction.WEBAUTHN_LOGIN,
        )
        email = normalize_email(command.email)
        user = self._auth_port.get_user_by_email(email=email)
        if user is None:
            raise NotFoundError()

        credentials = self._auth_port.list_webauthn_credentials(user_id=user.id)
        if not credentials:
            raise NotFoundError()

        options, challenge = self._webauthn_port.authentication_options(credentials=credentials)
        self._save("assertion", email, {"challenge": challenge, "user_id": user.id})
        return CeremonyOptionsOutput(options=options)

    def finish_login(self, command: FinishWebAuthnLoginInput) -> AuthTokensOutput:
        email = normalize_email(command.email)
        state = self._consume("assertion", email)
        user = self._require_user(state["user_id"])

        credential_id = command.credential.get("id") or command.credential.get("rawId")
        stored = next(
            (
                item
                for item in self._auth_port.list_webauthn_credentials(user_id=user.id)
                if item.id == credential_id
            ),
            None,
        )
        if stored is None:
            raise InvalidCredentialsError()

        verified = self._webauthn_port.verify_authentication(
            credential=command.credential,
            challenge=state["challenge"],
            stored=stored,
        )
        self._auth_port.update_webauthn_sign_count(
            credential_id=stored.id,
            sign_count=verified.new_sign_count,
        )
        return issue_tokens(
            user=user,
            fingerprint=command.fingerprint,
            device_port=self._device_port,
            revocation_port=self._revocation_port,
            token_port=self._token_port,
        )

    def _require_user(self, user_id: str) -> User:
        user = self._auth_port.get_user_by_id(user_id=user_id)
        if user is None:
            raise NotFoundError()
        return user

    def _save(self, purpose: str, key: str, state: dict) -> None:
        self._ceremony_port.save_ceremony(
            ceremony=Ceremony(
                purpose=purpose,
                key=key,
                state=state,
                expires_at=utcnow() + self._ttl,
            )
        )

    def _consume(self, purpose: str, key: str) -> dict:
        ceremony = self._ceremony_port.load_ceremony(purpose=purpose, key=key)
        if ceremony is None:
            raise NotFoundError()
        if not self._ceremony_port.delete_ceremony(purpose=purpose, key=key):
            raise NotFoundError()
        if ceremony.expires_at <= utcnow():
            logger.info("webauthn: ceremony expired purpose=%s", purpose)
            raise NotFoundError()
        return ceremony.state
