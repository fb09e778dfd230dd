from __future__ import annotations

from datetime import datetime, timezone

from fastapi import Response

from sso.api.deps import ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME
from sso.application.dto.auth import AuthTokensOutput
from sso.shared.config import get_settings


def _max_age_seconds(expires_at: datetime) -> int:
    now = datetime.now(timezone.utc)
    return max(int((expires_at - now).total_seconds()), 0)


def _set_cookie(response: Response, *, key: str, value: str, max_age: int) -> None:
    response.set_cookie(
        key=key,
        value=value,
        httponly=True,
        samesite="strict",
        secure=get_settings().cookie_secure,
        max_age=max_age,
        path="/",
    )


def set_auth_cookies(response: Response, tokens: AuthTokensOutput) -> None:
    _set_cookie(
        response,
        key=ACCESS_COOKIE_NAME,
        value=tokens.access_token,
        max_age=_max_age_seconds(tokens.access_expires_at),
    )
    _set_cookie(
        response,
        key=REFRESH_COOKIE_NAME,
        value=tokens.refresh_token,
        max_age=_max_age_seconds(tokens.refresh_expires_at),
    )


def clear_auth_cookies(response: Response) -> None:
    for key in (ACCESS_COOKIE_NAME, REFRESH_COOKIE_NAME):
        _set_cookie(response, key=key, value="", max_age=-1)
