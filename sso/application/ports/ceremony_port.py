from __future__ import annotations

from typing import Protocol

from sso.domain.entities.challenge import Ceremony


class CeremonyPort(Protocol):
    def save_ceremony(self, *, ceremony: Ceremony) -> None:
        ...

    def load_ceremony(self, *, purpose: str, key: str) -> Ceremony | None:
        ...

    def delete_ceremony(self, *, purpose: str, key: str) -> bool:
        ...
