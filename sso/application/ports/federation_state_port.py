from __future__ import annotations

from typing import Protocol

from sso.domain.entities.challenge import FederationState


class FederationStatePort(Protocol):
    def save_federation_state(self, *, state: FederationState) -> None:
        ...

    def consume_federation_state(self, *, state: str) -> FederationState | None:
        ...
