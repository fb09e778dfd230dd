from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping
from uuid import uuid4

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SigningKey:
    kid: str
    private_key: Any | None
    public_key: Any
    retire_at: datetime | None = None

    def is_retired(self, now: datetime) -> bool:
        return self.retire_at is not None and self.retire_at <= now


@dataclass(frozen=True)
class KeySet:
    active: SigningKey
    verification: Mapping[str, SigningKey] = field(default_factory=dict)

    def find(self, kid: str, now: datetime) -> SigningKey | None:
        key = self.verification.get(kid)
        if key is None or key.is_retired(now):
            return None
        return key


def generate_rsa_key(kid: str | None = None) -> SigningKey:
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return SigningKey(
        kid=kid or uuid4().hex,
        private_key=private_key,
        public_key=private_key.public_key(),
    )


def load_rsa_key(*, pem: str, kid: str) -> SigningKey:
    private_key = serialization.load_pem_private_key(pem.encode("utf-8"), password=None)
    return SigningKey(kid=kid, private_key=private_key, public_key=private_key.public_key())


def _build_key_set(active: SigningKey, previous: list[SigningKey]) -> KeySet:
    keys = {key.kid: key for key in previous}
    keys[active.kid] = active
    return KeySet(active=active, verification=MappingProxyType(keys))


class SigningKeyRing:
    """Process-wide signing keys.

    Readers take ``snapshot()`` once per operation and never see a partially
    rotated set. Rotation promotes a new active key and keeps the previous
    ones verifiable until ``retention`` has passed.
    """

    def __init__(self, initial: SigningKey, *, retention: timedelta):
        self._retention = retention
        self._lock = threading.Lock()
        self._current = _build_key_set(initial, [])

    def snapshot(self) -> KeySet:
        return self._current

    def rotate(self, new_key: SigningKey | None = None, *, now: datetime | None = None) -> KeySet:
        now = now or datetime.now(timezone.utc)
        new_key = new_key or generate_rsa_key()
        with self._lock:
            current = self._current
            previous: list[SigningKey] = []
            for key in current.verification.values():
                if key.kid == current.active.kid:
                    key = SigningKey(
                        kid=key.kid,
                        private_key=None,
                        public_key=key.public_key,
                        retire_at=now + self._retention,
                    )
                if not key.is_retired(now):
                    previous.append(key)
            self._current = _build_key_set(new_key, previous)
        logger.info("signing_keys: rotated active_kid=%s verification=%s", new_key.kid, len(previous) + 1)
        return self._current


def build_key_ring(
    *,
    private_key_pem: str,
    private_key_path: str,
    key_id: str,
    retention: timedelta,
) -> SigningKeyRing:
    pem = private_key_pem
    if not pem and private_key_path:
        pem = Path(private_key_path).read_text(encoding="utf-8")

    if pem:
        initial = load_rsa_key(pem=pem, kid=key_id or "default")
    else:
        logger.warning("signing_keys: no private key configured, generating a process-local key")
        initial = generate_rsa_key(key_id or None)
    return SigningKeyRing(initial, retention=retention)

