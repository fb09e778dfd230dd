from __future__ import annotations

import logging

from sso.application.dto.auth import AuthTokensOutput, RefreshSessionInput
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort
from sso.domain.exceptions import MissingTokenError, TokenRevokedError

from .auth_common import issue_tokens


logger = logging.getLogger(__name__)


class RefreshSessionUseCase:
    def __init__(
        self,
        *,
        auth_port: AuthPort,
        device_port: DevicePort,
        revocation_port: RevocationPort,
        token_port: TokenPort,
    ):
        self._auth_port = auth_port
        self._device_port = device_port
        self._revocation_port = revocation_port
        self._token_port = token_port

    def execute(self, command: RefreshSessionInput) -> AuthTokensOutput:
        token = command.refresh_token.strip()
        if not token:
            raise MissingTokenError()

        claims = self._token_port.decode_refresh_token(token=token)

        marker = self._revocation_port.get_revocation_marker(user_id=claims.user_id)
        if claims.revocation_marker != marker:
            logger.info("auth: refresh rejected, revoked user_id=%s", claims.user_id)
            raise TokenRevokedError()

        device = self._device_port.get_device_by_id(device_id=claims.device_id)
        if device is None or device.user_id != claims.user_id:
            logger.info("auth: refresh rejected, device gone device_id=%s", claims.device_id)
            raise TokenRevokedError()
        if not device.matches(command.fingerprint):
            logger.info("auth: refresh rejected, fingerprint mismatch device_id=%s", device.id)
            raise TokenRevokedError()

        user = self._auth_port.get_user_by_id(user_id=claims.user_id)
        if user is None:
            raise TokenRevokedError()

        return issue_tokens(
            user=user,
            fingerprint=command.fingerprint,
            device_port=self._device_port,
            revocation_port=self._revocation_port,
            token_port=self._token_port,
        )
