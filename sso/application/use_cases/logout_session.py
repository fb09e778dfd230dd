from __future__ import annotations

import logging

from sso.application.dto.auth import LogoutInput
from sso.application.ports.revocation_port import RevocationPort


logger = logging.getLogger(__name__)


class LogoutSessionUseCase:
    def __init__(self, *, revocation_port: RevocationPort):
        self._revocation_port = revocation_port

    def execute(self, command: LogoutInput) -> None:
        marker = self._revocation_port.advance_revocation_marker(user_id=command.user_id)
        logger.info("auth: sessions revoked user_id=%s marker=%s", command.user_id, marker)
