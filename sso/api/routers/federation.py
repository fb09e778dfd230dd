from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from sso.api.cookies import set_auth_cookies
from sso.api.deps import (
    get_complete_federation_use_case,
    get_device,
    get_start_federation_use_case,
)
from sso.application.dto.federation import FederationCallbackInput, StartFederationInput
from sso.application.use_cases.federation import (
    CompleteFederationUseCase,
    StartFederationUseCase,
)
from sso.domain.entities.device import DeviceFingerprint


router = APIRouter()


def _start(flow: str, provider: str, use_case: StartFederationUseCase) -> RedirectResponse:
    output = use_case.execute(StartFederationInput(flow=flow, provider=provider))
    return RedirectResponse(url=output.url, status_code=307)


def _callback(
    *,
    flow: str,
    provider: str,
    code: str | None,
    state: str | None,
    error: str | None,
    fingerprint: DeviceFingerprint,
    use_case: CompleteFederationUseCase,
) -> RedirectResponse:
    output = use_case.execute(
        FederationCallbackInput(
            flow=flow,
            provider=provider,
            code=code,
            state=state,
            error=error,
            fingerprint=fingerprint,
        )
    )
    response = RedirectResponse(url=output.success_url, status_code=307)
    set_auth_cookies(response, output.tokens)
    return response


@router.get("/auth/oauth2/{provider}/start")
def start_oauth2(
    provider: str,
    use_case: StartFederationUseCase = Depends(get_start_federation_use_case),
):
    return _start("oauth2", provider, use_case)


@router.get("/auth/oauth2/{provider}/callback")
def oauth2_callback(
    provider: str,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    fingerprint: DeviceFingerprint = Depends(get_device),
    use_case: CompleteFederationUseCase = Depends(get_complete_federation_use_case),
):
    return _callback(
        flow="oauth2",
        provider=provider,
        code=code,
        state=state,
        error=error,
        fingerprint=fingerprint,
        use_case=use_case,
    )


@router.api_route("/auth/oidc/{provider}/start", methods=["GET", "POST"])
def start_oidc(
    provider: str,
    use_case: StartFederationUseCase = Depends(get_start_federation_use_case),
):
    return _start("oidc", provider, use_case)


@router.api_route("/auth/oidc/{provider}/callback", methods=["GET", "POST"])
def oidc_callback(
    provider: str,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    fingerprint: DeviceFingerprint = Depends(get_device),
    use_case: CompleteFederationUseCase = Depends(get_complete_federation_use_case),
):
    return _callback(
        flow="oidc",
        provider=provider,
        code=code,
        state=state,
        error=error,
        fingerprint=fingerprint,
        use_case=use_case,
    )
