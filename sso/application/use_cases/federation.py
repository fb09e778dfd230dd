from __future__ import annotations

import logging
import secrets
from datetime import timedelta
from uuid import uuid4

from sso.application.dto.federation import (
    FederatedProfile,
    FederationCallbackInput,
    FederationCallbackOutput,
    StartFederationInput,
    StartFederationOutput,
)
from sso.application.ports.auth_port import AuthPort
from sso.application.ports.device_port import DevicePort
from sso.application.ports.federation_provider_port import (
    FederationProviderPort,
    FederationRegistryPort,
)
from sso.application.ports.federation_state_port import FederationStatePort
from sso.application.ports.password_hasher_port import PasswordHasherPort
from sso.application.ports.revocation_port import RevocationPort
from sso.application.ports.token_port import TokenPort
from sso.domain.entities.challenge import FederationState
from sso.domain.entities.user import DEFAULT_ROLE, User
from sso.domain.exceptions import InvalidCredentialsError, NotFoundError

from .auth_common import issue_tokens, normalize_email, utcnow


logger = logging.getLogger(__name__)

MAX_STATE_TTL_SECONDS = 600


def _require_provider(registry: FederationRegistryPort, *, flow: str, name: str) -> FederationProviderPort:
    provider = registry.get_provider(flow=flow, name=name)
    if provider is None:
        raise NotFoundError()
    return provider


class StartFederationUseCase:
    def __init__(
        self,
        *,
        registry: FederationRegistryPort,
        state_port: FederationStatePort,
        state_ttl_seconds: int = MAX_STATE_TTL_SECONDS,
    ):
        self._registry = registry
        self._state_port = state_port
        self._ttl = timedelta(seconds=min(state_ttl_seconds, MAX_STATE_TTL_SECONDS))

    def execute(self, command: StartFederationInput) -> StartFederationOutput:
        provider = _require_provider(self._registry, flow=command.flow, name=command.provider)

        state = secrets.token_urlsafe(32)
        nonce = secrets.token_urlsafe(32) if command.flow == "oidc" else None
        self._state_port.save_federation_state(
            state=FederationState(
                state=state,
                flow=command.flow,
                provider=command.provider,
                nonce=nonce,
                expires_at=utcnow() + self._ttl,
            )
        )
        logger.info("federation: started flow=%s provider=%s", command.flow, command.provider)
        return StartFederationOutput(url=provider.authorization_url(state=state, nonce=nonce))


class CompleteFederationUseCase:
    def __init__(
        self,
        *,
        registry: FederationRegistryPort,
        state_port: FederationStatePort,
        auth_port: AuthPort,
        device_port: DevicePort,
        revocation_port: RevocationPort,
        token_port: TokenPort,
        password_hasher: PasswordHasherPort,
        success_url: str,
    ):
        self._registry = registry
        self._state_port = state_port
        self._auth_port = auth_port
        self._device_port = device_port
        self._revocation_port = revocation_port
        self._token_port = token_port
        self._password_hasher = password_hasher
        self._success_url = success_url

    def execute(self, command: FederationCallbackInput) -> FederationCallbackOutput:
        provider = _require_provider(self._registry, flow=command.flow, name=command.provider)

        if not command.state:
            raise NotFoundError()
        stored = self._state_port.consume_federation_state(state=command.state)
        if stored is None or stored.expires_at <= utcnow():
            raise NotFoundError()
        if stored.provider != command.provider or stored.flow != command.flow:
            logger.warning(
                "federation: state mismatch expected=%s:%s got=%s:%s",
                stored.flow,
                stored.provider,
                command.flow,
                command.provider,
            )
            raise InvalidCredentialsError()

        if command.error:
            logger.info("federation: provider denied provider=%s error=%s", command.provider, command.error)
            raise InvalidCredentialsError()
        if not command.code:
            raise InvalidCredentialsError()

        profile = provider.exchange(code=command.code, nonce=stored.nonce)
        user = self._auth_port.execute_in_transaction(
            lambda auth_port: self._map_profile(auth_port, provider=command.provider, profile=profile)
        )

        tokens = issue_tokens(
            user=user,
            fingerprint=command.fingerprint,
            device_port=self._device_port,
            revocation_port=self._revocation_port,
            token_port=self._token_port,
        )
        return FederationCallbackOutput(tokens=tokens, success_url=self._success_url)

    def _map_profile(self, auth_port: AuthPort, *, provider: str, profile: FederatedProfile) -> User:
        now = utcnow()
        identity = auth_port.get_identity_by_provider_subject(
            provider=provider,
            provider_subject=profile.subject,
        )
        user = auth_port.get_user_by_id(user_id=identity.user_id) if identity else None

        if user is None:
            user = auth_port.get_user_by_email(email=normalize_email(profile.email))

        if user is None:
            user = auth_port.create_user(
                user_id=str(uuid4()),
                name=profile.name or profile.email.split("@")[0],
                email=normalize_email(profile.email),
                avatar_url=profile.avatar_url,
                created_at=now,
                updated_at=now,
            )
            auth_port.create_identity(
                identity_id=str(uuid4()),
                user_id=user.id,
                provider="local",
                provider_subject=None,
                password_hash=self._password_hasher.hash(secrets.token_urlsafe(32)),
                created_at=now,
            )
            auth_port.assign_role(user_id=user.id, role_name=DEFAULT_ROLE)
            user = auth_port.get_user_by_id(user_id=user.id) or user
            logger.info("federation: user created provider=%s user_id=%s", provider, user.id)

        if identity is None or identity.user_id != user.id:
            identity = auth_port.get_identity_for_user_provider(user_id=user.id, provider=provider)
        if identity is None:
            identity = auth_port.create_identity(
                identity_id=str(uuid4()),
                user_id=user.id,
                provider=provider,
                provider_subject=profile.subject,
                password_hash=None,
                created_at=now,
            )

        auth_port.update_identity_tokens(
            identity_id=identity.id,
            access_token=profile.access_token,
            refresh_token=profile.refresh_token,
            id_token=profile.id_token,
            expires_at=profile.expires_at,
        )
        return user
