from __future__ import annotations

import json
import logging

from webauthn import (
    generate_authentication_options,
    generate_registration_options,
    options_to_json,
    verify_authentication_response,
    verify_registration_response,
)
from webauthn.helpers import base64url_to_bytes, bytes_to_base64url
from webauthn.helpers.exceptions import WebAuthnException
from webauthn.helpers.structs import (
    AuthenticatorSelectionCriteria,
    AuthenticatorTransport,
    PublicKeyCredentialDescriptor,
    ResidentKeyRequirement,
    UserVerificationRequirement,
)

from sso.application.dto.webauthn import VerifiedAssertion, VerifiedRegistration
from sso.application.ports.webauthn_port import WebAuthnPort
from sso.domain.entities.challenge import WebAuthnCredential
from sso.domain.entities.user import User
from sso.domain.exceptions import InvalidCredentialsError


logger = logging.getLogger(__name__)


def _transports(values) -> list[AuthenticatorTransport]:
    result = []
    for value in values or ():
        try:
            result.append(AuthenticatorTransport(value))
        except ValueError:
            continue
    return result


def _descriptor(credential: WebAuthnCredential) -> PublicKeyCredentialDescriptor:
    return PublicKeyCredentialDescriptor(
        id=base64url_to_bytes(credential.id),
        transports=_transports(credential.transports) or None,
    )


class PyWebAuthnVerifier(WebAuthnPort):
    def __init__(self, *, rp_id: str, rp_name: str, origins: tuple[str, ...]):
        self._rp_id = rp_id
        self._rp_name = rp_name
        self._origins = list(origins)

    def registration_options(self, *, user: User, existing: list[WebAuthnCredential]) -> tuple[dict, str]:
        options = generate_registration_options(
            rp_id=self._rp_id,
            rp_name=self._rp_name,
            user_id=user.id.encode("utf-8"),
            user_name=user.email,
            user_display_name=user.name,
            exclude_credentials=[_descriptor(item) for item in existing],
            authenticator_selection=AuthenticatorSelectionCriteria(
                resident_key=ResidentKeyRequirement.PREFERRED,
                user_verification=UserVerificationRequirement.PREFERRED,
            ),
        )
        return json.loads(options_to_json(options)), bytes_to_base64url(options.challenge)

    def verify_registration(self, *, credential: dict, challenge: str) -> VerifiedRegistration:
        try:
            verified = verify_registration_response(
                credential=credential,
                expected_challenge=base64url_to_bytes(challenge),
                expected_rp_id=self._rp_id,
                expected_origin=self._origins,
            )
        except WebAuthnException as exc:
            logger.info("webauthn: attestation rejected reason=%s", exc)
            raise InvalidCredentialsError(cause=exc) from exc

        transports = (credential.get("response") or {}).get("transports") or []
        return VerifiedRegistration(
            credential_id=bytes_to_base64url(verified.credential_id),
            public_key=verified.credential_public_key,
            sign_count=verified.sign_count,
            transports=tuple(str(item) for item in transports),
        )

    def authentication_options(self, *, credentials: list[WebAuthnCredential]) -> tuple[dict, str]:
        options = generate_authentication_options(
            rp_id=self._rp_id,
            allow_credentials=[_descriptor(item) for item in credentials],
            user_verification=UserVerificationRequirement.PREFERRED,
        )
        return json.loads(options_to_json(options)), bytes_to_base64url(options.challenge)

    def verify_authentication(
        self,
        *,
        credential: dict,
        challenge: str,
        stored: WebAuthnCredential,
    ) -> VerifiedAssertion:
        try:
            verified = verify_authentication_response(
                credential=credential,
                expected_challenge=base64url_to_bytes(challenge),
                expected_rp_id=self._rp_id,
                expected_origin=self._origins,
                credential_public_key=stored.public_key,
                credential_current_sign_count=stored.sign_count,
            )
        except WebAuthnException as exc:
            logger.info("webauthn: assertion rejected credential_id=%s reason=%s", stored.id, exc)
            raise InvalidCredentialsError(cause=exc) from exc

        return VerifiedAssertion(
            credential_id=bytes_to_base64url(verified.credential_id),
            new_sign_count=verified.new_sign_count,
        )
