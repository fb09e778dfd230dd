from __future__ import annotations

from typing import Protocol


class RevocationPort(Protocol):
    def get_revocation_marker(self, *, user_id: str) -> int:
        ...

    def advance_revocation_marker(self, *, user_id: str) -> int:
        ...
