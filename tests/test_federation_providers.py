from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from sso.domain.exceptions import InvalidCredentialsError, ProviderTransportError
from sso.infrastructure.clients.federation_providers import (
    OidcProvider,
    ProviderConfig,
    build_registry,
)


def _registry(handler):
    return build_registry(
        {
            "oauth2": {
                "google": {
                    "client_id": "cid",
                    "client_secret": "csecret",
                    "redirect_uri": "https://sso.example/auth/oauth2/google/callback",
                },
                "nocreds": {"client_secret": "x"},
            },
        },
        timeout_seconds=5,
        client=httpx.Client(transport=httpx.MockTransport(handler)),
    )


def _google_handler(*, token_status: int = 200, userinfo: dict | None = None, expires_in=3600):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "oauth2.googleapis.com":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "at", "expires_in": expires_in})
        if request.url.host == "www.googleapis.com":
            assert request.headers["Authorization"] == "Bearer at"
            return httpx.Response(
                200,
                json=userinfo or {"id": "g-1", "email": "fed@example.com", "verified_email": True, "name": "Fed"},
            )
        raise AssertionError(f"unexpected request {request.url}")

    return handler


def test_registry_applies_google_defaults_and_skips_incomplete():
    registry = _registry(_google_handler())

    provider = registry.get_provider(flow="oauth2", name="google")
    url = urlparse(provider.authorization_url(state="S", nonce=None))
    query = parse_qs(url.query)

    assert url.netloc == "accounts.google.com"
    assert query["state"] == ["S"]
    assert query["client_id"] == ["cid"]
    assert registry.get_provider(flow="oauth2", name="nocreds") is None
    assert registry.names() == ["oauth2:google"]


def test_exchange_returns_profile():
    provider = _registry(_google_handler()).get_provider(flow="oauth2", name="google")

    profile = provider.exchange(code="C", nonce=None)

    assert profile.subject == "g-1"
    assert profile.email == "fed@example.com"
    assert profile.access_token == "at"
    assert profile.expires_at is not None


def test_non_numeric_expires_in_leaves_expiry_unset():
    provider = _registry(_google_handler(expires_in="soon")).get_provider(flow="oauth2", name="google")

    profile = provider.exchange(code="C", nonce=None)

    assert profile.subject == "g-1"
    assert profile.expires_at is None


def test_token_endpoint_refusal_is_invalid_credentials():
    provider = _registry(_google_handler(token_status=400)).get_provider(flow="oauth2", name="google")
    with pytest.raises(InvalidCredentialsError):
        provider.exchange(code="C", nonce=None)


def test_token_endpoint_outage_is_transport_error():
    provider = _registry(_google_handler(token_status=502)).get_provider(flow="oauth2", name="google")
    with pytest.raises(ProviderTransportError):
        provider.exchange(code="C", nonce=None)


def test_unverified_email_is_rejected():
    handler = _google_handler(userinfo={"id": "g-1", "email": "fed@example.com", "verified_email": False})
    provider = _registry(handler).get_provider(flow="oauth2", name="google")
    with pytest.raises(InvalidCredentialsError):
        provider.exchange(code="C", nonce=None)


class StaticVerifier:
    def __init__(self, claims: dict):
        self.claims = claims
        self.audiences: list[str] = []

    def verify(self, *, token: str, audience: str) -> dict:
        self.audiences.append(audience)
        return self.claims


def _oidc(claims: dict, *, discovery_hits: list | None = None) -> tuple[OidcProvider, StaticVerifier]:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/.well-known/openid-configuration":
            if discovery_hits is not None:
                discovery_hits.append(str(request.url))
            return httpx.Response(
                200,
                content=json.dumps(
                    {
                        "issuer": "https://idp.example",
                        "authorization_endpoint": "https://idp.example/authorize",
                        "token_endpoint": "https://idp.example/token",
                        "userinfo_endpoint": "https://idp.example/userinfo",
                        "jwks_uri": "https://idp.example/jwks",
                    }
                ),
            )
        if request.url.path == "/token":
            return httpx.Response(200, json={"access_token": "at", "id_token": "raw.id.token"})
        raise AssertionError(f"unexpected request {request.url}")

    verifier = StaticVerifier(claims)
    provider = OidcProvider(
        ProviderConfig(
            name="idp",
            flow="oidc",
            client_id="cid",
            client_secret="cs",
            redirect_uri="https://sso.example/auth/oidc/idp/callback",
            issuer="https://idp.example",
            scopes=("openid", "email"),
        ),
        client=httpx.Client(transport=httpx.MockTransport(handler)),
        verifier=verifier,
    )
    return provider, verifier


def test_oidc_discovers_endpoints_once():
    hits: list = []
    provider, _ = _oidc({"sub": "s-1", "email": "x@idp.example", "nonce": "N"}, discovery_hits=hits)

    url = provider.authorization_url(state="S", nonce="N")
    provider.authorization_url(state="S2", nonce="N2")

    assert url.startswith("https://idp.example/authorize?")
    assert parse_qs(urlparse(url).query)["nonce"] == ["N"]
    assert len(hits) == 1


def test_oidc_exchange_checks_nonce_and_audience():
    provider, verifier = _oidc({"sub": "s-1", "email": "x@idp.example", "nonce": "N"})

    profile = provider.exchange(code="C", nonce="N")

    assert profile.subject == "s-1"
    assert profile.id_token == "raw.id.token"
    assert verifier.audiences == ["cid"]


def test_oidc_nonce_mismatch_is_rejected():
    provider, _ = _oidc({"sub": "s-1", "email": "x@idp.example", "nonce": "other"})
    with pytest.raises(InvalidCredentialsError):
        provider.exchange(code="C", nonce="N")
