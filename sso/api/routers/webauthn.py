from __future__ import annotations

from fastapi import APIRouter, Body, Depends, Header, Response

from sso.api.cookies import set_auth_cookies
from sso.api.deps import get_current_identity, get_device, get_webauthn_ceremony_manager
from sso.api.schemas.auth import StatusResponse, TokenPairResponse
from sso.api.schemas.webauthn import WebAuthnLoginStartRequest
from sso.application.dto.auth import RequestIdentity
from sso.application.dto.webauthn import BeginWebAuthnLoginInput, FinishWebAuthnLoginInput
from sso.application.use_cases.webauthn_ceremonies import WebAuthnCeremonyManager
from sso.domain.entities.device import DeviceFingerprint
from sso.domain.exceptions import BadRequestError


router = APIRouter()


@router.post("/auth/webauthn/register/start")
def begin_registration(
    identity: RequestIdentity = Depends(get_current_identity),
    manager: WebAuthnCeremonyManager = Depends(get_webauthn_ceremony_manager),
) -> dict:
    return manager.begin_registration(identity=identity).options


@router.post("/auth/webauthn/register/finish", response_model=StatusResponse)
def finish_registration(
    credential: dict = Body(...),
    identity: RequestIdentity = Depends(get_current_identity),
    manager: WebAuthnCeremonyManager = Depends(get_webauthn_ceremony_manager),
):
    manager.finish_registration(identity=identity, credential=credential)
    return StatusResponse()


@router.post("/auth/webauthn/login/start")
def begin_login(
    req: WebAuthnLoginStartRequest,
    manager: WebAuthnCeremonyManager = Depends(get_webauthn_ceremony_manager),
) -> dict:
    output = manager.begin_login(BeginWebAuthnLoginInput(email=req.email, captcha_token=req.captcha))
    return output.options


@router.post("/auth/webauthn/login/finish", response_model=TokenPairResponse)
def finish_login(
    response: Response,
    credential: dict = Body(...),
    x_user_email: str | None = Header(default=None),
    fingerprint: DeviceFingerprint = Depends(get_device),
    manager: WebAuthnCeremonyManager = Depends(get_webauthn_ceremony_manager),
):
    if not x_user_email:
        raise BadRequestError("missing X-User-Email header")

    tokens = manager.finish_login(
        FinishWebAuthnLoginInput(email=x_user_email, credential=credential, fingerprint=fingerprint)
    )
    set_auth_cookies(response, tokens)
    return TokenPairResponse(
        access=tokens.access_token,
        refresh=tokens.refresh_token,
        access_expires_at=tokens.access_expires_at,
        refresh_expires_at=tokens.refresh_expires_at,
    )
