from __future__ import annotations

from datetime import timedelta
from functools import lru_cache

from fastapi import Cookie, Depends, Header, HTTPException, Request

from sso.application.dto.auth import RequestIdentity
from sso.application.use_cases.authorize_device_access import AuthorizeDeviceAccessUseCase
from sso.application.use_cases.check_email_exists import CheckEmailExistsUseCase
from sso.application.use_cases.check_login_code import CheckLoginCodeUseCase
from sso.application.use_cases.check_recovery_code import CheckRecoveryCodeUseCase
from sso.application.use_cases.federation import CompleteFederationUseCase, StartFederationUseCase
from sso.application.use_cases.get_me import GetMeUseCase
from sso.application.use_cases.login_code_manager import LoginCodeManager
from sso.application.use_cases.login_password import LoginPasswordUseCase
from sso.application.use_cases.logout_session import LogoutSessionUseCase
from sso.application.use_cases.manage_devices import (
    DeleteDeviceUseCase,
    GetDeviceUseCase,
    ListDevicesUseCase,
    RenameDeviceUseCase,
)
from sso.application.use_cases.parse_access_token import ParseAccessTokenUseCase
from sso.application.use_cases.refresh_session import RefreshSessionUseCase
from sso.application.use_cases.register_user import RegisterUserUseCase
from sso.application.use_cases.send_login_code import SendLoginCodeUseCase
from sso.application.use_cases.send_recovery_code import SendRecoveryCodeUseCase
from sso.application.use_cases.webauthn_ceremonies import WebAuthnCeremonyManager
from sso.domain.entities.device import DeviceFingerprint
from sso.domain.exceptions import (
    ForbiddenError,
    MissingTokenError,
    SigningKeyNotFoundError,
    TokenInvalidError,
)
from sso.domain.services.device_fingerprint import extract_fingerprint
from sso.infrastructure.clients.federation_providers import FederationRegistry, build_registry
from sso.infrastructure.clients.recaptcha_client import RecaptchaClient
from sso.infrastructure.clients.smtp_mailer import SmtpMailer
from sso.infrastructure.db.engine import get_engine
from sso.infrastructure.db.repositories.accounts_repository import SqlAccountsRepository
from sso.infrastructure.db.repositories.devices_repository import SqlDevicesRepository
from sso.infrastructure.db.repositories.ephemeral_state_repository import (
    SqlEphemeralStateRepository,
)
from sso.infrastructure.security.password_hasher import PasswordHasher
from sso.infrastructure.security.signing_keys import SigningKeyRing, build_key_ring
from sso.infrastructure.security.token_service import JwtTokenService
from sso.infrastructure.security.webauthn_verifier import PyWebAuthnVerifier
from sso.shared.config import get_settings


ACCESS_COOKIE_NAME = "access"
REFRESH_COOKIE_NAME = "refresh"


def _get_db_engine():
    settings = get_settings()
    if not settings.postgres_dsn:
        raise HTTPException(status_code=500, detail="POSTGRES_DSN is required.")
    return get_engine(settings.postgres_dsn)


def _get_accounts_repository() -> SqlAccountsRepository:
    return SqlAccountsRepository(_get_db_engine())


def _get_devices_repository() -> SqlDevicesRepository:
    return SqlDevicesRepository(_get_db_engine())


def _get_ephemeral_state_repository() -> SqlEphemeralStateRepository:
    return SqlEphemeralStateRepository(_get_db_engine())


@lru_cache(maxsize=1)
def _get_password_hasher() -> PasswordHasher:
    return PasswordHasher()


@lru_cache(maxsize=1)
def get_key_ring() -> SigningKeyRing:
    settings = get_settings()
    return build_key_ring(
        private_key_pem=settings.jwt_private_key,
        private_key_path=settings.jwt_private_key_path,
        key_id=settings.jwt_key_id,
        retention=timedelta(days=settings.jwt_refresh_ttl_days),
    )


@lru_cache(maxsize=1)
def _get_token_service() -> JwtTokenService:
    settings = get_settings()
    return JwtTokenService(
        key_ring=get_key_ring(),
        issuer=settings.jwt_issuer,
        access_ttl_minutes=settings.jwt_access_ttl_minutes,
        refresh_ttl_days=settings.jwt_refresh_ttl_days,
    )


@lru_cache(maxsize=1)
def _get_captcha_client() -> RecaptchaClient:
    settings = get_settings()
    if not settings.captcha_secret:
        raise HTTPException(status_code=500, detail="CAPTCHA_SECRET is required.")
    return RecaptchaClient(
        secret=settings.captcha_secret,
        verify_url=settings.captcha_verify_url,
        min_score=settings.captcha_min_score,
        timeout_seconds=settings.captcha_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _get_mailer() -> SmtpMailer:
    settings = get_settings()
    if not settings.smtp_host:
        raise HTTPException(status_code=500, detail="SMTP_HOST is required.")
    return SmtpMailer(
        host=settings.smtp_host,
        port=settings.smtp_port,
        user=settings.smtp_user,
        password=settings.smtp_password,
        sender=settings.smtp_sender,
        use_tls=settings.smtp_use_tls,
        timeout_seconds=settings.smtp_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _get_federation_registry() -> FederationRegistry:
    settings = get_settings()
    return build_registry(
        settings.federation_providers,
        timeout_seconds=settings.federation_timeout_seconds,
    )


@lru_cache(maxsize=1)
def _get_webauthn_verifier() -> PyWebAuthnVerifier:
    settings = get_settings()
    return PyWebAuthnVerifier(
        rp_id=settings.webauthn_rp_id,
        rp_name=settings.webauthn_rp_name,
        origins=settings.webauthn_origins,
    )


def _get_login_code_manager() -> LoginCodeManager:
    settings = get_settings()
    return LoginCodeManager(
        code_port=_get_ephemeral_state_repository(),
        ttl_seconds={
            "login": settings.login_code_ttl_seconds,
            "recover": settings.recovery_code_ttl_seconds,
        },
        code_length=settings.code_length,
        max_attempts=settings.code_max_attempts,
    )


def get_login_password_use_case() -> LoginPasswordUseCase:
    devices = _get_devices_repository()
    return LoginPasswordUseCase(
        auth_port=_get_accounts_repository(),
        device_port=devices,
        revocation_port=devices,
        password_hasher=_get_password_hasher(),
        token_port=_get_token_service(),
        captcha_port=_get_captcha_client(),
    )


def get_send_login_code_use_case() -> SendLoginCodeUseCase:
    devices = _get_devices_repository()
    return SendLoginCodeUseCase(
        auth_port=_get_accounts_repository(),
        device_port=devices,
        revocation_port=devices,
        password_hasher=_get_password_hasher(),
        token_port=_get_token_service(),
        captcha_port=_get_captcha_client(),
        mail_port=_get_mailer(),
        code_manager=_get_login_code_manager(),
    )


def get_check_login_code_use_case() -> CheckLoginCodeUseCase:
    devices = _get_devices_repository()
    return CheckLoginCodeUseCase(
        auth_port=_get_accounts_repository(),
        device_port=devices,
        revocation_port=devices,
        token_port=_get_token_service(),
        code_manager=_get_login_code_manager(),
    )


def get_send_recovery_code_use_case() -> SendRecoveryCodeUseCase:
    return SendRecoveryCodeUseCase(
        auth_port=_get_accounts_repository(),
        captcha_port=_get_captcha_client(),
        mail_port=_get_mailer(),
        code_manager=_get_login_code_manager(),
    )


def get_check_recovery_code_use_case() -> CheckRecoveryCodeUseCase:
    return CheckRecoveryCodeUseCase(
        auth_port=_get_accounts_repository(),
        revocation_port=_get_devices_repository(),
        password_hasher=_get_password_hasher(),
        code_manager=_get_login_code_manager(),
    )


def get_refresh_session_use_case() -> RefreshSessionUseCase:
    devices = _get_devices_repository()
    return RefreshSessionUseCase(
        auth_port=_get_accounts_repository(),
        device_port=devices,
        revocation_port=devices,
        token_port=_get_token_service(),
    )


def get_logout_session_use_case() -> LogoutSessionUseCase:
    return LogoutSessionUseCase(revocation_port=_get_devices_repository())


def get_parse_access_token_use_case() -> ParseAccessTokenUseCase:
    return ParseAccessTokenUseCase(token_port=_get_token_service())


def get_register_user_use_case() -> RegisterUserUseCase:
    return RegisterUserUseCase(
        auth_port=_get_accounts_repository(),
        password_hasher=_get_password_hasher(),
    )


def get_check_email_exists_use_case() -> CheckEmailExistsUseCase:
    return CheckEmailExistsUseCase(auth_port=_get_accounts_repository())


def get_get_me_use_case() -> GetMeUseCase:
    return GetMeUseCase(auth_port=_get_accounts_repository())


def get_webauthn_ceremony_manager() -> WebAuthnCeremonyManager:
    devices = _get_devices_repository()
    settings = get_settings()
    return WebAuthnCeremonyManager(
        auth_port=_get_accounts_repository(),
        ceremony_port=_get_ephemeral_state_repository(),
        webauthn_port=_get_webauthn_verifier(),
        device_port=devices,
        revocation_port=devices,
        token_port=_get_token_service(),
        captcha_port=_get_captcha_client(),
        ttl_seconds=settings.webauthn_ceremony_ttl_seconds,
    )


def get_start_federation_use_case() -> StartFederationUseCase:
    settings = get_settings()
    return StartFederationUseCase(
        registry=_get_federation_registry(),
        state_port=_get_ephemeral_state_repository(),
        state_ttl_seconds=settings.federation_state_ttl_seconds,
    )


def get_complete_federation_use_case() -> CompleteFederationUseCase:
    devices = _get_devices_repository()
    settings = get_settings()
    return CompleteFederationUseCase(
        registry=_get_federation_registry(),
        state_port=_get_ephemeral_state_repository(),
        auth_port=_get_accounts_repository(),
        device_port=devices,
        revocation_port=devices,
        token_port=_get_token_service(),
        password_hasher=_get_password_hasher(),
        success_url=settings.federation_success_url,
    )


def get_list_devices_use_case() -> ListDevicesUseCase:
    return ListDevicesUseCase(device_port=_get_devices_repository())


def get_get_device_use_case() -> GetDeviceUseCase:
    return GetDeviceUseCase(device_port=_get_devices_repository())


def get_rename_device_use_case() -> RenameDeviceUseCase:
    return RenameDeviceUseCase(device_port=_get_devices_repository())


def get_delete_device_use_case() -> DeleteDeviceUseCase:
    return DeleteDeviceUseCase(device_port=_get_devices_repository())


def get_authorize_device_access_use_case() -> AuthorizeDeviceAccessUseCase:
    return AuthorizeDeviceAccessUseCase(device_port=_get_devices_repository())


def get_device(
    request: Request,
    user_agent: str | None = Header(default=None),
    x_forwarded_for: str | None = Header(default=None),
    x_real_ip: str | None = Header(default=None),
) -> DeviceFingerprint:
    return extract_fingerprint(
        peer_ip=request.client.host if request.client else None,
        user_agent=user_agent,
        forwarded_for=x_forwarded_for,
        real_ip=x_real_ip,
        trust_proxy_headers=get_settings().trust_proxy_headers,
    )


def get_current_identity(
    access_cookie: str | None = Cookie(default=None, alias=ACCESS_COOKIE_NAME),
    authorization: str | None = Header(default=None),
    use_case: ParseAccessTokenUseCase = Depends(get_parse_access_token_use_case),
) -> RequestIdentity:
    token = access_cookie
    if not token and authorization and authorization.startswith("Bearer "):
        token = authorization.replace("Bearer ", "", 1).strip()
    if not token:
        raise MissingTokenError()

    try:
        claims = use_case.execute(token=token)
    except (TokenInvalidError, SigningKeyNotFoundError) as exc:
        raise ForbiddenError("invalid token", cause=exc) from exc
    return RequestIdentity(user_id=claims.user_id, roles=claims.roles)


def require_device_rights(
    device_id: str,
    identity: RequestIdentity = Depends(get_current_identity),
    use_case: AuthorizeDeviceAccessUseCase = Depends(get_authorize_device_access_use_case),
) -> RequestIdentity:
    use_case.execute(identity=identity, device_id=device_id)
    return identity
