from __future__ import annotations

from fastapi import APIRouter, Depends

from sso.api.deps import (
    get_check_email_exists_use_case,
    get_current_identity,
    get_get_me_use_case,
    get_register_user_use_case,
)
from sso.api.schemas.users import (
    CheckEmailRequest,
    CheckEmailResponse,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
)
from sso.application.dto.auth import RegisterUserInput, RequestIdentity
from sso.application.use_cases.check_email_exists import CheckEmailExistsUseCase
from sso.application.use_cases.get_me import GetMeUseCase
from sso.application.use_cases.register_user import RegisterUserUseCase


router = APIRouter()


@router.post("/users", response_model=RegisterResponse, status_code=201)
def register_user(
    req: RegisterRequest,
    use_case: RegisterUserUseCase = Depends(get_register_user_use_case),
):
    output = use_case.execute(
        RegisterUserInput(
            name=req.name,
            email=req.email,
            password=req.password,
        )
    )
    return RegisterResponse(
        user={
            "id": output.user.id,
            "name": output.user.name,
            "email": output.user.email,
            "avatar_url": output.user.avatar_url,
            "roles": list(output.user.roles),
        }
    )


@router.post("/users/exists", response_model=CheckEmailResponse)
def check_email_exists(
    req: CheckEmailRequest,
    use_case: CheckEmailExistsUseCase = Depends(get_check_email_exists_use_case),
):
    return CheckEmailResponse(exists=use_case.execute(email=req.email))


@router.get("/users/me", response_model=MeResponse)
def get_me(
    identity: RequestIdentity = Depends(get_current_identity),
    use_case: GetMeUseCase = Depends(get_get_me_use_case),
):
    output = use_case.execute(identity=identity)
    return MeResponse(
        user={
            "id": output.user_id,
            "name": output.name,
            "email": output.email,
            "avatar_url": output.avatar_url,
            "roles": list(output.roles),
        },
        permissions=list(output.permissions),
    )
