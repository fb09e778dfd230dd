from __future__ import annotations

from typing import Protocol

from sso.application.dto.federation import FederatedProfile


class FederationProviderPort(Protocol):
    name: str
    flow: str

    def authorization_url(self, *, state: str, nonce: str | None) -> str:
        ...

    def exchange(self, *, code: str, nonce: str | None) -> FederatedProfile:
        ...


class FederationRegistryPort(Protocol):
    def get_provider(self, *, flow: str, name: str) -> FederationProviderPort | None:
        ...
