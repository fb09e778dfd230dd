from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from datetime import timedelta

from sso.application.ports.login_code_port import LoginCodePort
from sso.domain.entities.challenge import LoginCode
from sso.domain.exceptions import CodeNotValidError

from .auth_common import normalize_email, utcnow


logger = logging.getLogger(__name__)


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


class LoginCodeManager:
    """One-time email codes per (email, purpose).

    A stored code is absent or active. ``generate`` replaces any active code,
    ``check`` removes it on success, on expiry, and once the attempt limit
    is exceeded.
    """

    def __init__(
        self,
        *,
        code_port: LoginCodePort,
        ttl_seconds: dict[str, int],
        code_length: int = 6,
        max_attempts: int = 5,
    ):
        self._code_port = code_port
        self._ttl_seconds = ttl_seconds
        self._code_length = code_length
        self._max_attempts = max_attempts

    def generate(self, *, email: str, purpose: str) -> str:
        email = normalize_email(email)
        code = "".join(str(secrets.randbelow(10)) for _ in range(self._code_length))
        now = utcnow()
        self._code_port.save_code(
            code=LoginCode(
                email=email,
                purpose=purpose,
                code_hash=hash_code(code),
                attempts=0,
                created_at=now,
                expires_at=now + timedelta(seconds=self._ttl_seconds[purpose]),
            )
        )
        logger.info("login_codes: generated purpose=%s", purpose)
        return code

    def check(self, *, email: str, purpose: str, code: str) -> None:
        email = normalize_email(email)
        stored = self._code_port.load_code(email=email, purpose=purpose)
        if stored is None:
            raise CodeNotValidError()

        if stored.is_expired(utcnow()):
            self._code_port.delete_code(email=email, purpose=purpose)
            logger.info("login_codes: expired purpose=%s", purpose)
            raise CodeNotValidError()

        attempts = self._code_port.increment_code_attempts(email=email, purpose=purpose)
        if attempts > self._max_attempts:
            self._code_port.delete_code(email=email, purpose=purpose)
            logger.warning("login_codes: attempts exhausted purpose=%s", purpose)
            raise CodeNotValidError()

        if not hmac.compare_digest(stored.code_hash, hash_code(code.strip())):
            raise CodeNotValidError()

        # A concurrent check or a re-send may have replaced the row meanwhile.
        if not self._code_port.delete_code(email=email, purpose=purpose, code_hash=stored.code_hash):
            raise CodeNotValidError()
