from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from urllib.parse import urlencode

import httpx

from sso.application.dto.federation import FederatedProfile
from sso.application.ports.federation_provider_port import (
    FederationProviderPort,
    FederationRegistryPort,
)
from sso.domain.exceptions import InvalidCredentialsError, ProviderTransportError
from sso.infrastructure.clients.google_oidc_client import (
    GOOGLE_ISSUERS,
    GoogleIdTokenVerifier,
    IdTokenVerifier,
    JwksIdTokenVerifier,
)


logger = logging.getLogger(__name__)


GOOGLE_DEFAULTS = {
    "oauth2": {
        "authorization_endpoint": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_endpoint": "https://oauth2.googleapis.com/token",
        "userinfo_endpoint": "https://www.googleapis.com/oauth2/v2/userinfo",
        "scopes": [
            "https://www.googleapis.com/auth/userinfo.email",
            "https://www.googleapis.com/auth/userinfo.profile",
        ],
    },
    "oidc": {
        "issuer": "https://accounts.google.com",
        "authorization_endpoint": "https://accounts.google.com/o/oauth2/v2/auth",
        "token_endpoint": "https://oauth2.googleapis.com/token",
        "userinfo_endpoint": "https://openidconnect.googleapis.com/v1/userinfo",
        "jwks_uri": "https://www.googleapis.com/oauth2/v3/certs",
        "scopes": ["openid", "email", "profile"],
    },
}


@dataclass(frozen=True)
class ProviderConfig:
    name: str
    flow: str
    client_id: str
    client_secret: str
    redirect_uri: str
    authorization_endpoint: str = ""
    token_endpoint: str = ""
    userinfo_endpoint: str = ""
    issuer: str = ""
    jwks_uri: str = ""
    scopes: tuple[str, ...] = field(default=())


class OAuth2Provider(FederationProviderPort):
    def __init__(self, config: ProviderConfig, *, client: httpx.Client):
        self.name = config.name
        self.flow = config.flow
        self._config = config
        self._client = client

    def _endpoints(self) -> ProviderConfig:
        return self._config

    def authorization_url(self, *, state: str, nonce: str | None) -> str:
        config = self._endpoints()
        params = {
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(config.scopes),
            "state": state,
        }
        if nonce:
            params["nonce"] = nonce
        return f"{config.authorization_endpoint}?{urlencode(params)}"

    def _request(self, method: str, url: str, **kwargs) -> dict:
        try:
            response = self._client.request(method, url, **kwargs)
        except httpx.HTTPError as exc:
            logger.error("federation: transport error provider=%s url=%s error=%s", self.name, url, exc)
            raise ProviderTransportError(cause=exc) from exc

        if 400 <= response.status_code < 500:
            logger.info("federation: provider refused provider=%s status=%s", self.name, response.status_code)
            raise InvalidCredentialsError()
        if response.status_code >= 500:
            logger.error("federation: provider failure provider=%s status=%s", self.name, response.status_code)
            raise ProviderTransportError()
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderTransportError(cause=exc) from exc

    def _exchange_code(self, code: str) -> dict:
        config = self._endpoints()
        return self._request(
            "POST",
            config.token_endpoint,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "redirect_uri": config.redirect_uri,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
            },
            headers={"Accept": "application/json"},
        )

    def _fetch_userinfo(self, access_token: str) -> dict:
        return self._request(
            "GET",
            self._endpoints().userinfo_endpoint,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    def exchange(self, *, code: str, nonce: str | None) -> FederatedProfile:
        tokens = self._exchange_code(code)
        access_token = tokens.get("access_token")
        if not access_token:
            raise InvalidCredentialsError()
        info = self._fetch_userinfo(access_token)
        return self._profile(info, tokens)

    def _profile(self, info: dict, tokens: dict) -> FederatedProfile:
        subject = info.get("sub") or info.get("id")
        email = info.get("email")
        if not subject or not email:
            raise InvalidCredentialsError("Provider profile missing required claims.")
        if info.get("verified_email") is False or info.get("email_verified") is False:
            raise InvalidCredentialsError("Provider email is not verified.")

        expires_at = None
        expires_in = tokens.get("expires_in")
        if expires_in:
            try:
                expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))
            except (TypeError, ValueError, OverflowError):
                logger.warning("federation: ignoring bad expires_in provider=%s", self.name)
        return FederatedProfile(
            subject=str(subject),
            email=str(email),
            name=info.get("name") if isinstance(info.get("name"), str) else None,
            avatar_url=info.get("picture") if isinstance(info.get("picture"), str) else None,
            access_token=tokens.get("access_token"),
            refresh_token=tokens.get("refresh_token"),
            id_token=tokens.get("id_token"),
            expires_at=expires_at,
        )


class OidcProvider(OAuth2Provider):
    """OAuth2 code flow plus ID token validation and nonce binding.

    Endpoints missing from the configuration are read once from the issuer's
    discovery document.
    """

    def __init__(
        self,
        config: ProviderConfig,
        *,
        client: httpx.Client,
        verifier: IdTokenVerifier | None = None,
    ):
        super().__init__(config, client=client)
        self._verifier = verifier
        self._resolved: ProviderConfig | None = None

    def _endpoints(self) -> ProviderConfig:
        if self._resolved is not None:
            return self._resolved
        config = self._config
        if config.authorization_endpoint and config.token_endpoint and config.jwks_uri:
            self._resolved = config
            return config

        url = config.issuer.rstrip("/") + "/.well-known/openid-configuration"
        document = self._request("GET", url)
        self._resolved = ProviderConfig(
            name=config.name,
            flow=config.flow,
            client_id=config.client_id,
            client_secret=config.client_secret,
            redirect_uri=config.redirect_uri,
            authorization_endpoint=config.authorization_endpoint or document.get("authorization_endpoint", ""),
            token_endpoint=config.token_endpoint or document.get("token_endpoint", ""),
            userinfo_endpoint=config.userinfo_endpoint or document.get("userinfo_endpoint", ""),
            issuer=document.get("issuer", config.issuer),
            jwks_uri=config.jwks_uri or document.get("jwks_uri", ""),
            scopes=config.scopes,
        )
        return self._resolved

    def _id_token_verifier(self) -> IdTokenVerifier:
        if self._verifier is None:
            config = self._endpoints()
            if config.issuer in GOOGLE_ISSUERS:
                self._verifier = GoogleIdTokenVerifier()
            else:
                self._verifier = JwksIdTokenVerifier(issuer=config.issuer, jwks_uri=config.jwks_uri)
        return self._verifier

    def exchange(self, *, code: str, nonce: str | None) -> FederatedProfile:
        tokens = self._exchange_code(code)
        raw_id_token = tokens.get("id_token")
        if not raw_id_token:
            raise InvalidCredentialsError("Provider did not return an id_token.")

        claims = self._id_token_verifier().verify(token=raw_id_token, audience=self._config.client_id)
        if not nonce or claims.get("nonce") != nonce:
            logger.warning("federation: nonce mismatch provider=%s", self.name)
            raise InvalidCredentialsError()

        info = dict(claims)
        if not info.get("email") and tokens.get("access_token") and self._endpoints().userinfo_endpoint:
            info.update(self._fetch_userinfo(tokens["access_token"]))
        return self._profile(info, tokens)


class FederationRegistry(FederationRegistryPort):
    def __init__(self, providers: list[FederationProviderPort]):
        self._providers = {(p.flow, p.name): p for p in providers}

    def get_provider(self, *, flow: str, name: str) -> FederationProviderPort | None:
        return self._providers.get((flow, name))

    def names(self) -> list[str]:
        return sorted(f"{flow}:{name}" for flow, name in self._providers)


def _build_config(flow: str, name: str, raw: dict) -> ProviderConfig:
    values = dict(GOOGLE_DEFAULTS[flow]) if name == "google" else {}
    values.update({key: value for key, value in raw.items() if value})
    return ProviderConfig(
        name=name,
        flow=flow,
        client_id=values.get("client_id", ""),
        client_secret=values.get("client_secret", ""),
        redirect_uri=values.get("redirect_uri", ""),
        authorization_endpoint=values.get("authorization_endpoint", ""),
        token_endpoint=values.get("token_endpoint", ""),
        userinfo_endpoint=values.get("userinfo_endpoint", ""),
        issuer=values.get("issuer", ""),
        jwks_uri=values.get("jwks_uri", ""),
        scopes=tuple(values.get("scopes", ())),
    )


def build_registry(raw: dict, *, timeout_seconds: float, client: httpx.Client | None = None) -> FederationRegistry:
    """Build providers from ``{"oauth2": {name: {...}}, "oidc": {name: {...}}}``."""
    client = client or httpx.Client(timeout=timeout_seconds)
    providers: list[FederationProviderPort] = []
    for flow in ("oauth2", "oidc"):
        for name, values in (raw.get(flow) or {}).items():
            config = _build_config(flow, name, values or {})
            if not config.client_id:
                logger.warning("federation: provider skipped, no client_id flow=%s name=%s", flow, name)
                continue
            if flow == "oidc":
                providers.append(OidcProvider(config, client=client))
            else:
                providers.append(OAuth2Provider(config, client=client))
    registry = FederationRegistry(providers)
    logger.info("federation: providers registered names=%s", registry.names())
    return registry
