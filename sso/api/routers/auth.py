from __future__ import annotations

from fastapi import APIRouter, Cookie, Depends, Response

from sso.api.cookies import clear_auth_cookies, set_auth_cookies
from sso.api.deps import (
    REFRESH_COOKIE_NAME,
    get_check_login_code_use_case,
    get_check_recovery_code_use_case,
    get_current_identity,
    get_device,
    get_login_password_use_case,
    get_logout_session_use_case,
    get_parse_access_token_use_case,
    get_refresh_session_use_case,
    get_send_login_code_use_case,
    get_send_recovery_code_use_case,
)
from sso.api.schemas.auth import (
    AccessClaimsResponse,
    EmailCheckRequest,
    EmailSendResponse,
    LoginRequest,
    ParseTokenRequest,
    RecoveryCheckRequest,
    RecoverySendRequest,
    StatusResponse,
    TokenPairResponse,
)
from sso.application.dto.auth import (
    AccessClaims,
    AuthTokensOutput,
    CheckLoginCodeInput,
    CheckRecoveryCodeInput,
    LoginPasswordInput,
    LogoutInput,
    RefreshSessionInput,
    RequestIdentity,
    SendLoginCodeInput,
    SendRecoveryCodeInput,
)
from sso.application.use_cases.check_login_code import CheckLoginCodeUseCase
from sso.application.use_cases.check_recovery_code import CheckRecoveryCodeUseCase
from sso.application.use_cases.login_password import LoginPasswordUseCase
from sso.application.use_cases.logout_session import LogoutSessionUseCase
from sso.application.use_cases.parse_access_token import ParseAccessTokenUseCase
from sso.application.use_cases.refresh_session import RefreshSessionUseCase
from sso.application.use_cases.send_login_code import SendLoginCodeUseCase
from sso.application.use_cases.send_recovery_code import SendRecoveryCodeUseCase
from sso.domain.entities.device import DeviceFingerprint
from sso.domain.exceptions import MissingTokenError


router = APIRouter()


def _token_pair_response(tokens: AuthTokensOutput) -> TokenPairResponse:
    return TokenPairResponse(
        access=tokens.access_token,
        refresh=tokens.refresh_token,
        access_expires_at=tokens.access_expires_at,
        refresh_expires_at=tokens.refresh_expires_at,
    )


def _claims_response(claims: AccessClaims) -> AccessClaimsResponse:
    return AccessClaimsResponse(
        uid=claims.user_id,
        roles=[
            {
                "id": role.id,
                "name": role.name,
                "permissions": [{"id": perm.id, "name": perm.name} for perm in role.permissions],
            }
            for role in claims.roles
        ],
        iat=claims.issued_at,
        exp=claims.expires_at,
    )


@router.post("/auth/jwt", response_model=TokenPairResponse)
def login_password(
    req: LoginRequest,
    response: Response,
    fingerprint: DeviceFingerprint = Depends(get_device),
    use_case: LoginPasswordUseCase = Depends(get_login_password_use_case),
):
    tokens = use_case.execute(
        LoginPasswordInput(
            email=req.email,
            password=req.password,
            captcha_token=req.captcha,
            fingerprint=fingerprint,
        )
    )
    set_auth_cookies(response, tokens)
    return _token_pair_response(tokens)


@router.post("/auth/jwt/refresh", response_model=TokenPairResponse)
def refresh_session(
    response: Response,
    refresh_cookie: str | None = Cookie(default=None, alias=REFRESH_COOKIE_NAME),
    fingerprint: DeviceFingerprint = Depends(get_device),
    use_case: RefreshSessionUseCase = Depends(get_refresh_session_use_case),
):
    if not refresh_cookie:
        raise MissingTokenError("missing refresh token")

    tokens = use_case.execute(
        RefreshSessionInput(refresh_token=refresh_cookie, fingerprint=fingerprint)
    )
    set_auth_cookies(response, tokens)
    return _token_pair_response(tokens)


@router.post("/auth/jwt/parse", response_model=AccessClaimsResponse)
def parse_access_token(
    req: ParseTokenRequest,
    use_case: ParseAccessTokenUseCase = Depends(get_parse_access_token_use_case),
):
    return _claims_response(use_case.execute(token=req.token))


@router.post("/auth/email/send", response_model=EmailSendResponse)
def send_login_code(
    req: LoginRequest,
    response: Response,
    fingerprint: DeviceFingerprint = Depends(get_device),
    use_case: SendLoginCodeUseCase = Depends(get_send_login_code_use_case),
):
    output = use_case.execute(
        SendLoginCodeInput(
            email=req.email,
            password=req.password,
            captcha_token=req.captcha,
            fingerprint=fingerprint,
        )
    )
    set_auth_cookies(response, output.tokens)
    return EmailSendResponse(access=output.tokens.access_token, refresh=output.tokens.refresh_token)


@router.post("/auth/email/check", response_model=TokenPairResponse)
def check_login_code(
    req: EmailCheckRequest,
    response: Response,
    fingerprint: DeviceFingerprint = Depends(get_device),
    use_case: CheckLoginCodeUseCase = Depends(get_check_login_code_use_case),
):
    tokens = use_case.execute(
        CheckLoginCodeInput(email=req.email, code=req.code, fingerprint=fingerprint)
    )
    set_auth_cookies(response, tokens)
    return _token_pair_response(tokens)


@router.post("/auth/recovery/send", response_model=StatusResponse)
def send_recovery_code(
    req: RecoverySendRequest,
    use_case: SendRecoveryCodeUseCase = Depends(get_send_recovery_code_use_case),
):
    use_case.execute(SendRecoveryCodeInput(email=req.email, captcha_token=req.captcha))
    return StatusResponse()


@router.post("/auth/recovery/check", response_model=StatusResponse)
def check_recovery_code(
    req: RecoveryCheckRequest,
    use_case: CheckRecoveryCodeUseCase = Depends(get_check_recovery_code_use_case),
):
    use_case.execute(
        CheckRecoveryCodeInput(email=req.email, code=req.code, new_password=req.new_password)
    )
    return StatusResponse()


@router.post("/auth/logout", response_model=StatusResponse)
def logout(
    response: Response,
    identity: RequestIdentity = Depends(get_current_identity),
    use_case: LogoutSessionUseCase = Depends(get_logout_session_use_case),
):
    use_case.execute(LogoutInput(user_id=identity.user_id))
    clear_auth_cookies(response)
    return StatusResponse()
