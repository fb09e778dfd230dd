from __future__ import annotations

import logging

from passlib.context import CryptContext

from sso.application.ports.password_hasher_port import PasswordHasherPort


logger = logging.getLogger(__name__)


class PasswordHasher(PasswordHasherPort):
    """argon2 for new hashes; bcrypt hashes still verify."""

    def __init__(self):
        self._ctx = CryptContext(
            schemes=["argon2", "bcrypt"],
            deprecated="auto",
        )

    def hash(self, plain_password: str) -> str:
        return self._ctx.hash(plain_password)

    def verify(self, plain_password: str, password_hash: str) -> bool:
        try:
            return self._ctx.verify(plain_password, password_hash)
        except ValueError:
            logger.warning("password_hasher: unrecognized hash format")
            return False
